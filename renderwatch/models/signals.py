"""Ingestion channel items — what a transport can deliver to the monitor.

A channel yields, in order, any mix of:

- ``TextLine``        a raw, unstructured line of render output
- ``TerminalSignal``  an explicit success/failure message (authoritative)
- ``ChannelEvent``    a discrete open / failed / closed notification
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict


class TextLine(BaseModel):
    """A free-text diagnostic line from the render process."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["line"] = "line"
    text: str


class TerminalSignal(BaseModel):
    """Structured terminal message carrying an explicit result.

    ``success=True`` should carry ``artifact``; ``success=False`` should
    carry ``error``.  Missing fields are tolerated here and resolved by
    the job machine.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["signal"] = "signal"
    success: bool
    artifact: str | None = None
    error: str | None = None


class ChannelEventKind(str, Enum):
    """Discrete transport notifications."""

    OPENED = "opened"
    FAILED = "failed"
    CLOSED = "closed"


class ChannelEvent(BaseModel):
    """A transport-level notification (not render output)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["event"] = "event"
    event: ChannelEventKind
    detail: str = ""


ChannelItem = Union[TextLine, TerminalSignal, ChannelEvent]
