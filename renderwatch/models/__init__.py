"""renderwatch data models — all Pydantic v2."""

from renderwatch.models.job import (
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    JobOutcome,
    JobRun,
    JobStatus,
    RenderEngine,
    Transition,
)
from renderwatch.models.lines import Classification, LogLine
from renderwatch.models.signals import (
    ChannelEvent,
    ChannelEventKind,
    ChannelItem,
    TerminalSignal,
    TextLine,
)

__all__ = [
    # lines
    "Classification",
    "LogLine",
    # job
    "JobStatus",
    "JobRun",
    "JobOutcome",
    "RenderEngine",
    "Transition",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    # signals
    "ChannelEvent",
    "ChannelEventKind",
    "ChannelItem",
    "TerminalSignal",
    "TextLine",
]
