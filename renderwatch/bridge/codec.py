"""Wire codec — turns raw transport lines into channel items.

A render process can report its result unambiguously by printing one JSON
object on its own line::

    {"event": "render_result", "success": true, "artifact": "/out/video.mp4"}
    {"event": "render_result", "success": false, "error": "ffmpeg missing"}

Such a line decodes to a ``TerminalSignal``.  Every other line, including
JSON that does not validate, is passed through verbatim as a ``TextLine``.
"""

from __future__ import annotations

import json
import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from renderwatch.models.signals import TerminalSignal, TextLine

logger = logging.getLogger(__name__)

RESULT_EVENT = "render_result"


class CodecError(ValueError):
    """Raised when a structured result line fails validation."""


class _WireResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: Literal["render_result"]
    success: bool
    artifact: str | None = None
    error: str | None = None


def decode_result(raw: str) -> TerminalSignal:
    """Decode a structured result line; raises CodecError if it is not one."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CodecError(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise CodecError(f"Result must be a JSON object, got {type(data).__name__}")

    try:
        wire = _WireResult.model_validate(data)
    except ValidationError as exc:
        raise CodecError(f"Result validation failed: {exc}") from exc

    return TerminalSignal(
        success=wire.success,
        artifact=wire.artifact or None,
        error=wire.error or None,
    )


def decode_line(raw: str | bytes) -> TextLine | TerminalSignal:
    """Decode one raw transport line into a channel item."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = raw.rstrip("\r\n")

    stripped = text.strip()
    if stripped.startswith("{") and RESULT_EVENT in stripped:
        try:
            return decode_result(stripped)
        except CodecError as exc:
            logger.debug("Treating malformed result line as text: %s", exc)

    return TextLine(text=text)


def encode_result(signal: TerminalSignal) -> str:
    """Serialize a TerminalSignal to its single-line wire form."""
    payload: dict[str, object] = {"event": RESULT_EVENT, "success": signal.success}
    if signal.artifact is not None:
        payload["artifact"] = signal.artifact
    if signal.error is not None:
        payload["error"] = signal.error
    return json.dumps(payload, sort_keys=True)
