"""Transcript line models — classification tags and immutable log lines."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Classification(str, Enum):
    """Closed set of tags a single render log line can carry.

    Recomputed fresh for every line; never merged across lines.
    """

    PROGRESS = "progress"
    COMPLETION = "completion"
    ERROR = "error"
    NEUTRAL = "neutral"


class LogLine(BaseModel):
    """One raw line of render output plus its derived classification.

    ``seq`` is assigned by the monitor controller in arrival order, never
    by the transport.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    seq: int = Field(ge=0)
    classification: Classification = Classification.NEUTRAL
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
