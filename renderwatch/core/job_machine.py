"""Job lifecycle state machine — one JobRun, one mutation entry point.

Enforces:
- Valid status transitions only (VALID_TRANSITIONS table)
- Structured terminal signals override heuristic line classification
- Terminal latch: after COMPLETED or ERROR nothing changes again
- Every applied transition recorded in ``history``
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from renderwatch.core.classifier import RuleSet, classify
from renderwatch.models.job import (
    VALID_TRANSITIONS,
    JobOutcome,
    JobRun,
    JobStatus,
    RenderEngine,
    Transition,
)
from renderwatch.models.lines import Classification
from renderwatch.models.signals import (
    ChannelEvent,
    ChannelEventKind,
    ChannelItem,
    TerminalSignal,
    TextLine,
)

logger = logging.getLogger(__name__)

TRANSPORT_LOST_MESSAGE = "connection to render process lost"
MISSING_ARTIFACT_MESSAGE = "completed without artifact"
SIGNAL_FAILURE_MESSAGE = "render process reported failure"


class InvalidTransitionError(RuntimeError):
    """Raised when a requested status transition is not valid."""


class JobMachine:
    """Owns the lifecycle of a single render job.

    Parameters
    ----------
    job_id:
        Identifier of the watched job.
    engine:
        Animation backend, carried on the JobRun for display.
    artifact:
        Artifact reference already known to the caller (e.g. the output
        path returned when the job was submitted).  Used when a completion
        line arrives without a structured signal.
    rules:
        Classifier rule set; defaults to the built-in rules.
    clock:
        Monotonic clock used for elapsed time.
    """

    def __init__(
        self,
        job_id: str,
        *,
        engine: RenderEngine = RenderEngine.P5,
        artifact: str | None = None,
        rules: RuleSet | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._run = JobRun(job_id=job_id, engine=engine)
        self._artifact = artifact or None
        self._rules = rules
        self._clock = clock
        self._started_at: float | None = None
        self._finished_at: float | None = None
        self._history: list[Transition] = []
        self.ignored_after_terminal = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def run(self) -> JobRun:
        """A copy of the current JobRun."""
        return self._run.model_copy()

    @property
    def status(self) -> JobStatus:
        return self._run.status

    @property
    def is_terminal(self) -> bool:
        return self._run.is_terminal

    @property
    def history(self) -> list[Transition]:
        """Applied transitions, oldest first."""
        return list(self._history)

    def elapsed(self) -> float:
        """Seconds since PROCESSING was first entered; frozen once terminal."""
        if self._started_at is None:
            return 0.0
        end = self._finished_at if self._finished_at is not None else self._clock()
        return max(0.0, end - self._started_at)

    def outcome(self) -> JobOutcome | None:
        """The terminal payload, or None while the job is still running."""
        if not self._run.is_terminal:
            return None
        return JobOutcome(
            job_id=self._run.job_id,
            status=self._run.status,
            artifact=self._run.artifact,
            error=self._run.error_message,
            elapsed_seconds=self.elapsed(),
        )

    def provide_artifact(self, artifact: str | None) -> None:
        """Record an artifact reference obtained outside the stream."""
        if artifact:
            self._artifact = artifact

    # ------------------------------------------------------------------
    # Mutation entry point
    # ------------------------------------------------------------------

    def feed(
        self,
        item: ChannelItem,
        *,
        line_seq: int | None = None,
        classification: Classification | None = None,
    ) -> list[Transition]:
        """Apply one channel item and return the transitions it caused.

        ``classification`` may be passed for a TextLine that was already
        classified by the caller; otherwise the line is classified here.
        Input after a terminal status is ignored and counted.
        """
        if self._run.is_terminal:
            self.ignored_after_terminal += 1
            logger.debug(
                "Job %s: ignored %s after terminal status %s",
                self._run.job_id,
                item.kind,
                self._run.status.value,
            )
            return []

        if isinstance(item, TextLine):
            return self._on_line(item.text, line_seq, classification)
        if isinstance(item, TerminalSignal):
            return self._on_signal(item)
        if isinstance(item, ChannelEvent):
            return self._on_event(item)
        raise TypeError(f"Unsupported channel item: {type(item).__name__}")

    # ------------------------------------------------------------------
    # Item handlers
    # ------------------------------------------------------------------

    def _on_line(
        self,
        text: str,
        line_seq: int | None,
        classification: Classification | None,
    ) -> list[Transition]:
        applied: list[Transition] = []
        if self._run.status == JobStatus.CONNECTING:
            applied.append(self._transition(JobStatus.PROCESSING, "first_line", line_seq))

        tag = classification if classification is not None else classify(text, self._rules)
        if tag == Classification.ERROR:
            applied.append(self._fail(text, "classified_error", line_seq))
        elif tag == Classification.COMPLETION:
            applied.append(self._complete(self._artifact, "classified_completion", line_seq))
        return applied

    def _on_signal(self, signal: TerminalSignal) -> list[Transition]:
        if signal.success:
            return [self._complete(signal.artifact, "terminal_signal", None)]
        return [self._fail(signal.error or SIGNAL_FAILURE_MESSAGE, "terminal_signal", None)]

    def _on_event(self, event: ChannelEvent) -> list[Transition]:
        if event.event == ChannelEventKind.OPENED:
            if self._run.status == JobStatus.CONNECTING:
                return [self._transition(JobStatus.PROCESSING, "channel_opened", None)]
            return []

        logger.warning(
            "Job %s: channel %s before terminal status (%s)",
            self._run.job_id,
            event.event.value,
            event.detail or "no detail",
        )
        reason = "transport_failed" if event.event == ChannelEventKind.FAILED else "transport_closed"
        return [self._fail(TRANSPORT_LOST_MESSAGE, reason, None)]

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def _complete(
        self, artifact: str | None, reason: str, line_seq: int | None
    ) -> Transition:
        if not artifact:
            return self._fail(MISSING_ARTIFACT_MESSAGE, f"{reason}:missing_artifact", line_seq)
        self._run.artifact = artifact
        return self._transition(JobStatus.COMPLETED, reason, line_seq)

    def _fail(self, message: str, reason: str, line_seq: int | None) -> Transition:
        self._run.error_message = message
        return self._transition(JobStatus.ERROR, reason, line_seq)

    def _transition(
        self, target: JobStatus, reason: str, line_seq: int | None
    ) -> Transition:
        current = self._run.status
        allowed = VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition job {self._run.job_id} from {current.value} "
                f"to {target.value}. Allowed: {[s.value for s in allowed]}"
            )

        now = datetime.now(timezone.utc)
        if target == JobStatus.PROCESSING:
            self._started_at = self._clock()
            self._run.started_at = now
        elif target in (JobStatus.COMPLETED, JobStatus.ERROR):
            if self._started_at is not None:
                self._finished_at = self._clock()
            self._run.finished_at = now
        self._run.status = target

        transition = Transition(
            job_id=self._run.job_id,
            from_status=current,
            to_status=target,
            reason=reason,
            line_seq=line_seq,
            timestamp_utc=now,
        )
        self._history.append(transition)
        logger.info(
            "Job %s: %s -> %s (%s)",
            self._run.job_id,
            current.value,
            target.value,
            reason,
        )
        return transition
