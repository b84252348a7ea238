"""MonitorController — wires an ingestion channel to the job machine.

Single asyncio task of control: channel items and elapsed-time ticks are
handled on one event loop, so the JobRun is never mutated concurrently.

Guarantees:
- The channel is opened once and closed exactly once, whether the job
  completes, fails, the transport drops, or the caller cancels.
- Exactly one terminal callback.  COMPLETED is reported after the grace
  delay so the view can draw the final state first; ERROR immediately.
- Cancellation suppresses any callback that has not fired yet.
- Nothing raised by the channel or by caller callbacks escapes the event
  path; transport failures become the "connection lost" error status.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
import time
from collections.abc import Callable

from renderwatch.bridge.channels import BaseChannel
from renderwatch.config import WatchConfig, config
from renderwatch.core.classifier import RuleSet, classify
from renderwatch.core.job_machine import JobMachine
from renderwatch.core.transcript import TranscriptBuffer
from renderwatch.models.job import JobOutcome, JobStatus, RenderEngine, Transition
from renderwatch.models.lines import LogLine
from renderwatch.models.signals import (
    ChannelEvent,
    ChannelEventKind,
    ChannelItem,
    TextLine,
)
from renderwatch.monitor.projection import MonitorSnapshot

logger = logging.getLogger(__name__)


class MonitorController:
    """Watches one render job through one channel.

    Parameters
    ----------
    job_id:
        Identifier of the watched job.
    channel:
        The ingestion channel; owned by the controller from ``run()`` on.
    artifact:
        Artifact reference already known to the caller, used when the
        stream reports completion only as free text.
    engine:
        Animation backend, for display.  Defaults to the configured engine.
    on_terminal:
        Called exactly once with the ``JobOutcome``.
    on_tick:
        Called with the elapsed seconds on every sampler tick.
    on_line:
        Called with each ``LogLine`` after it is recorded.
    settings:
        Configuration; defaults to the module-level ``config``.
    rules:
        Classifier rules; defaults to ``settings.load_rules()``.
    clock:
        Monotonic clock used for elapsed time.
    """

    def __init__(
        self,
        job_id: str,
        channel: BaseChannel,
        *,
        artifact: str | None = None,
        engine: RenderEngine | None = None,
        on_terminal: Callable[[JobOutcome], None] | None = None,
        on_tick: Callable[[float], None] | None = None,
        on_line: Callable[[LogLine], None] | None = None,
        settings: WatchConfig | None = None,
        rules: RuleSet | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or config
        self._rules = rules or self._settings.load_rules()
        self._job_id = job_id
        self._channel = channel
        self._machine = JobMachine(
            job_id,
            engine=engine or self._settings.default_engine,
            artifact=artifact,
            rules=self._rules,
            clock=clock,
        )
        self._transcript = TranscriptBuffer()
        self._seq = itertools.count(1)
        self._on_terminal = on_terminal
        self._on_tick = on_tick
        self._on_line = on_line
        self._elapsed = 0.0
        self._ticker: asyncio.Task[None] | None = None
        self._task: asyncio.Task[JobOutcome | None] | None = None
        self._observers: list[Callable[[], None]] = []
        self._started = False
        self._notified = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def status(self) -> JobStatus:
        return self._machine.status

    @property
    def elapsed(self) -> float:
        """Last sampled elapsed seconds; frozen once the job is terminal."""
        return self._elapsed

    @property
    def transcript(self) -> TranscriptBuffer:
        return self._transcript

    @property
    def machine(self) -> JobMachine:
        return self._machine

    @property
    def outcome(self) -> JobOutcome | None:
        return self._machine.outcome()

    def provide_artifact(self, artifact: str | None) -> None:
        """Supply the artifact reference obtained outside the stream."""
        self._machine.provide_artifact(artifact)

    def add_observer(self, observer: Callable[[], None]) -> None:
        """Register a no-argument callable run after every line, event, and tick."""
        self._observers.append(observer)

    def snapshot(self, tail: int | None = None) -> MonitorSnapshot:
        """Point-in-time view for rendering."""
        run = self._machine.run
        return MonitorSnapshot(
            job_id=run.job_id,
            engine=run.engine,
            status=run.status,
            elapsed_seconds=self._elapsed,
            lines=self._transcript.tail(tail or self._settings.transcript_tail),
            total_lines=len(self._transcript),
            counts=self._transcript.counts(),
            artifact=run.artifact,
            error=run.error_message,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[JobOutcome | None]:
        """Run the monitor as a task on the current event loop."""
        if self._task is None:
            self._task = asyncio.create_task(
                self.run(), name=f"renderwatch-{self.job_id}"
            )
        return self._task

    async def cancel(self) -> None:
        """Cancel a task created by ``start()`` and wait for teardown."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def run(self) -> JobOutcome | None:
        """Consume the channel until the job is terminal.

        Returns the outcome after the terminal callback has fired.
        Raises ``asyncio.CancelledError`` if cancelled; in that case no
        callback is emitted.
        """
        if self._started:
            raise RuntimeError("MonitorController.run() may only be called once")
        self._started = True

        try:
            await self._consume()
        finally:
            try:
                await self._stop_ticker()
            finally:
                await self._channel.aclose()

        outcome = self._machine.outcome()
        if outcome is None:
            # Unreachable: _consume always ends in a terminal status.
            return None
        if outcome.status == JobStatus.COMPLETED:
            await asyncio.sleep(self._settings.grace_delay_seconds)
        self._notify(outcome)
        return outcome

    async def _consume(self) -> None:
        try:
            await self._channel.open()
            async with contextlib.aclosing(self._channel.__aiter__()) as items:
                async for item in items:
                    self._handle(item)
                    if self._machine.is_terminal:
                        return
        except asyncio.CancelledError:
            logger.info("Job %s: monitoring cancelled", self.job_id)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Job %s: channel failed: %s", self.job_id, exc)
            self._handle(ChannelEvent(event=ChannelEventKind.FAILED, detail=str(exc)))
            return

        if not self._machine.is_terminal:
            self._handle(ChannelEvent(event=ChannelEventKind.CLOSED))

    # ------------------------------------------------------------------
    # Event path
    # ------------------------------------------------------------------

    def _handle(self, item: ChannelItem) -> None:
        if isinstance(item, TextLine):
            tag = classify(item.text, self._rules)
            line = self._transcript.append(
                LogLine(text=item.text, seq=next(self._seq), classification=tag)
            )
            transitions = self._machine.feed(item, line_seq=line.seq, classification=tag)
            self._call(self._on_line, line)
        else:
            transitions = self._machine.feed(item)

        for transition in transitions:
            self._after_transition(transition)
        self._changed()

    def _after_transition(self, transition: Transition) -> None:
        if transition.to_status == JobStatus.PROCESSING:
            self._start_ticker()
        elif transition.to_status in (JobStatus.COMPLETED, JobStatus.ERROR):
            self._elapsed = max(self._elapsed, self._machine.elapsed())

    def _notify(self, outcome: JobOutcome) -> None:
        if self._notified:
            logger.debug("Job %s: duplicate terminal notification suppressed", self.job_id)
            return
        self._notified = True
        logger.info(
            "Job %s finished: %s%s",
            outcome.job_id,
            outcome.status.value,
            f" ({outcome.artifact})" if outcome.artifact else f" ({outcome.error})",
        )
        self._call(self._on_terminal, outcome)

    def _changed(self) -> None:
        for observer in self._observers:
            self._call(observer)

    def _call(self, callback: Callable[..., None] | None, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Job %s: callback %r raised", self.job_id, callback)

    # ------------------------------------------------------------------
    # Elapsed-time sampler
    # ------------------------------------------------------------------

    def _start_ticker(self) -> None:
        if self._ticker is None:
            self._ticker = asyncio.create_task(
                self._tick_loop(), name=f"renderwatch-{self.job_id}-ticker"
            )

    async def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None:
            return
        ticker.cancel()
        # Only a cancel aimed at run() itself may propagate from here.
        await asyncio.wait([ticker])

    async def _tick_loop(self) -> None:
        interval = self._settings.tick_interval_seconds
        while not self._machine.is_terminal:
            self._elapsed = max(self._elapsed, self._machine.elapsed())
            self._call(self._on_tick, self._elapsed)
            self._changed()
            await asyncio.sleep(interval)
