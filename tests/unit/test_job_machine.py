"""Tests for the JobMachine — transitions, terminal latch, signals, elapsed time."""

from __future__ import annotations

import logging

import pytest

from renderwatch.core.job_machine import (
    MISSING_ARTIFACT_MESSAGE,
    SIGNAL_FAILURE_MESSAGE,
    TRANSPORT_LOST_MESSAGE,
    JobMachine,
)
from renderwatch.models.job import JobStatus
from renderwatch.models.lines import Classification
from renderwatch.models.signals import (
    ChannelEvent,
    ChannelEventKind,
    TerminalSignal,
    TextLine,
)


def _line(text: str) -> TextLine:
    return TextLine(text=text)


class TestConnecting:
    def test_initial_status(self, machine: JobMachine):
        assert machine.status == JobStatus.CONNECTING
        assert machine.elapsed() == 0.0
        assert machine.outcome() is None

    def test_first_line_starts_processing(self, machine: JobMachine):
        transitions = machine.feed(_line("Initializing render"))
        assert [t.to_status for t in transitions] == [JobStatus.PROCESSING]
        assert transitions[0].reason == "first_line"
        assert machine.run.started_at is not None

    def test_channel_open_starts_processing(self, machine: JobMachine):
        machine.feed(ChannelEvent(event=ChannelEventKind.OPENED))
        assert machine.status == JobStatus.PROCESSING
        # A second open notification changes nothing.
        assert machine.feed(ChannelEvent(event=ChannelEventKind.OPENED)) == []

    def test_first_line_error_passes_through_processing(self, machine: JobMachine):
        transitions = machine.feed(_line("Traceback (most recent call last):"))
        assert [t.to_status for t in transitions] == [JobStatus.PROCESSING, JobStatus.ERROR]


class TestProcessing:
    def test_progress_and_neutral_keep_processing(self, machine: JobMachine):
        machine.feed(_line("Initializing render"))
        assert machine.feed(_line("Animation 1: 30%|███ |")) == []
        assert machine.feed(_line("Writing frames")) == []
        assert machine.status == JobStatus.PROCESSING

    def test_error_line_captured_verbatim(self, machine: JobMachine):
        machine.feed(_line("start"))
        machine.feed(_line("  Error: ffmpeg exploded  "))
        run = machine.run
        assert run.status == JobStatus.ERROR
        assert run.error_message == "  Error: ffmpeg exploded  "
        assert run.artifact is None

    def test_completion_uses_known_artifact(self, machine: JobMachine):
        machine.feed(_line("start"))
        machine.feed(_line("video generation completed successfully"))
        run = machine.run
        assert run.status == JobStatus.COMPLETED
        assert run.artifact == "/renders/out.mp4"
        assert run.error_message is None

    def test_completion_without_artifact_is_error(self, job_id: str):
        machine = JobMachine(job_id)
        machine.feed(_line("video saved to somewhere"))
        assert machine.status == JobStatus.ERROR
        assert machine.run.error_message == MISSING_ARTIFACT_MESSAGE
        assert machine.history[-1].reason == "classified_completion:missing_artifact"

    def test_artifact_provided_later(self, job_id: str):
        machine = JobMachine(job_id)
        machine.feed(_line("start"))
        machine.provide_artifact("/late/out.mp4")
        machine.feed(_line("render complete"))
        assert machine.run.artifact == "/late/out.mp4"

    def test_precomputed_classification_is_trusted(self, machine: JobMachine):
        machine.feed(_line("plain text"), classification=Classification.ERROR, line_seq=7)
        assert machine.status == JobStatus.ERROR
        assert machine.history[-1].line_seq == 7


class TestTerminalSignal:
    def test_success_signal(self, machine: JobMachine):
        machine.feed(_line("start"))
        machine.feed(TerminalSignal(success=True, artifact="/signal/out.mp4"))
        assert machine.run.artifact == "/signal/out.mp4"
        assert machine.status == JobStatus.COMPLETED

    def test_success_signal_overrides_known_artifact(self, machine: JobMachine):
        machine.feed(TerminalSignal(success=True, artifact="/signal/out.mp4"))
        assert machine.run.artifact == "/signal/out.mp4"

    @pytest.mark.parametrize("artifact", [None, ""])
    def test_success_without_artifact(self, machine: JobMachine, artifact):
        machine.feed(_line("start"))
        machine.feed(TerminalSignal(success=True, artifact=artifact))
        assert machine.status == JobStatus.ERROR
        assert machine.run.error_message == MISSING_ARTIFACT_MESSAGE

    def test_failure_signal(self, machine: JobMachine):
        machine.feed(TerminalSignal(success=False, error="out of memory"))
        assert machine.status == JobStatus.ERROR
        assert machine.run.error_message == "out of memory"

    def test_failure_signal_without_text(self, machine: JobMachine):
        machine.feed(TerminalSignal(success=False))
        assert machine.run.error_message == SIGNAL_FAILURE_MESSAGE

    def test_signal_while_connecting_skips_processing(self, machine: JobMachine):
        machine.feed(TerminalSignal(success=True, artifact="/a.mp4"))
        assert [t.to_status for t in machine.history] == [JobStatus.COMPLETED]


class TestTransport:
    def test_failure_before_any_line(self, machine: JobMachine):
        machine.feed(ChannelEvent(event=ChannelEventKind.FAILED, detail="socket reset"))
        assert machine.status == JobStatus.ERROR
        assert machine.run.error_message == TRANSPORT_LOST_MESSAGE
        assert JobStatus.PROCESSING not in [t.to_status for t in machine.history]

    def test_close_while_processing(self, machine: JobMachine):
        machine.feed(_line("start"))
        machine.feed(ChannelEvent(event=ChannelEventKind.CLOSED))
        assert machine.run.error_message == TRANSPORT_LOST_MESSAGE
        assert machine.history[-1].reason == "transport_closed"


class TestLatch:
    def test_error_is_never_overwritten(self, machine: JobMachine):
        machine.feed(_line("Traceback (most recent call last):"))
        machine.feed(_line("SyntaxError: invalid syntax"))
        machine.feed(_line("video generation completed successfully"))
        machine.feed(TerminalSignal(success=True, artifact="/x.mp4"))
        machine.feed(ChannelEvent(event=ChannelEventKind.FAILED))
        run = machine.run
        assert run.status == JobStatus.ERROR
        assert run.error_message == "Traceback (most recent call last):"
        assert run.artifact is None
        assert machine.ignored_after_terminal == 4

    def test_completed_is_never_overwritten(self, machine: JobMachine):
        machine.feed(_line("render complete"))
        machine.feed(_line("Error: late failure"))
        assert machine.status == JobStatus.COMPLETED
        assert machine.run.error_message is None

    def test_ignored_input_is_logged(self, machine: JobMachine, caplog):
        machine.feed(_line("render complete"))
        with caplog.at_level(logging.DEBUG, logger="renderwatch.core.job_machine"):
            assert machine.feed(_line("more output")) == []
        assert "ignored line after terminal status completed" in caplog.text

    def test_history_records_each_transition(self, machine: JobMachine):
        machine.feed(_line("start"))
        machine.feed(_line("render complete"))
        assert [(t.from_status, t.to_status) for t in machine.history] == [
            (JobStatus.CONNECTING, JobStatus.PROCESSING),
            (JobStatus.PROCESSING, JobStatus.COMPLETED),
        ]

    def test_unsupported_item(self, machine: JobMachine):
        with pytest.raises(TypeError):
            machine.feed("raw string")  # type: ignore[arg-type]


class TestElapsed:
    def test_elapsed_non_decreasing_and_frozen(self, machine: JobMachine, clock):
        machine.feed(_line("start"))
        samples = [machine.elapsed()]
        for _ in range(5):
            clock.advance(0.7)
            samples.append(machine.elapsed())
        assert samples == sorted(samples)
        assert all(s >= 0 for s in samples)

        machine.feed(_line("render complete"))
        final = machine.elapsed()
        clock.advance(10)
        assert machine.elapsed() == final
        assert machine.outcome().elapsed_seconds == pytest.approx(3.5)

    def test_outcome_payload(self, machine: JobMachine):
        machine.feed(_line("Error: nope"))
        outcome = machine.outcome()
        assert outcome is not None
        assert outcome.status == JobStatus.ERROR
        assert outcome.error == "Error: nope"
        assert outcome.succeeded is False
