"""Render job lifecycle models — statuses, transitions, and the JobRun aggregate."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RenderEngine(str, Enum):
    """Animation backends the render process can drive."""

    P5 = "p5"
    MANIM = "manim"


class JobStatus(str, Enum):
    """Aggregate lifecycle status of one render job."""

    CONNECTING = "connecting"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.ERROR}
)

# Valid status transitions, enforced by JobMachine.
# Terminal statuses (COMPLETED, ERROR) have no outgoing transitions.
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.CONNECTING: {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.ERROR},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.ERROR},
    JobStatus.COMPLETED: set(),  # terminal
    JobStatus.ERROR: set(),  # terminal
}


class JobRun(BaseModel):
    """Mutable aggregate for one watched render job.

    Only ``JobMachine`` mutates a JobRun.  Once ``status`` is terminal,
    exactly one of ``artifact`` / ``error_message`` is set and nothing on
    the run changes again.
    """

    model_config = ConfigDict(validate_assignment=True)

    job_id: str
    engine: RenderEngine = RenderEngine.P5
    status: JobStatus = JobStatus.CONNECTING
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    started_at: datetime | None = None  # set on first entry into PROCESSING
    finished_at: datetime | None = None
    artifact: str | None = None  # only when COMPLETED
    error_message: str | None = None  # only when ERROR

    @property
    def is_terminal(self) -> bool:
        """Whether the run has reached COMPLETED or ERROR."""
        return self.status in TERMINAL_STATUSES


class Transition(BaseModel):
    """Records a single applied status transition."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    from_status: JobStatus
    to_status: JobStatus
    reason: str  # e.g. "first_line", "classified_error", "terminal_signal"
    line_seq: int | None = None  # transcript line that caused it, if any
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class JobOutcome(BaseModel):
    """Terminal payload handed to the caller exactly once."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    status: JobStatus
    artifact: str | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the job completed with an artifact."""
        return self.status == JobStatus.COMPLETED
