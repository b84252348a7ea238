"""MonitorSnapshot — frozen, point-in-time view of one watched render job.

Snapshots are derived from the controller's JobRun and transcript on every
call; nothing here is a source of truth.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from renderwatch.models.job import JobStatus, RenderEngine
from renderwatch.models.lines import Classification, LogLine


class MonitorSnapshot(BaseModel):
    """Everything a view needs to draw the progress monitor."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    engine: RenderEngine = RenderEngine.P5
    status: JobStatus = JobStatus.CONNECTING
    elapsed_seconds: float = 0.0
    lines: list[LogLine] = []
    total_lines: int = 0
    counts: dict[Classification, int] = {}
    artifact: str | None = None
    error: str | None = None
    taken_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.ERROR)

    @property
    def hidden_lines(self) -> int:
        """Lines older than the tail included in this snapshot."""
        return max(0, self.total_lines - len(self.lines))

    @property
    def progress_count(self) -> int:
        return self.counts.get(Classification.PROGRESS, 0)
