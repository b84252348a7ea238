"""Tests for MonitorSnapshot — derived properties."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from renderwatch.models.job import JobStatus
from renderwatch.models.lines import Classification, LogLine
from renderwatch.monitor.projection import MonitorSnapshot


class TestMonitorSnapshot:
    def test_defaults(self):
        snap = MonitorSnapshot(job_id="rw-1")
        assert snap.status == JobStatus.CONNECTING
        assert snap.lines == []
        assert snap.is_terminal is False
        assert snap.hidden_lines == 0
        assert snap.progress_count == 0

    @pytest.mark.parametrize(
        "status, terminal",
        [
            (JobStatus.CONNECTING, False),
            (JobStatus.PROCESSING, False),
            (JobStatus.COMPLETED, True),
            (JobStatus.ERROR, True),
        ],
    )
    def test_is_terminal(self, status, terminal):
        assert MonitorSnapshot(job_id="rw-1", status=status).is_terminal is terminal

    def test_hidden_lines_and_counts(self):
        line = LogLine(text="Animation 1: 5%|", seq=9, classification=Classification.PROGRESS)
        snap = MonitorSnapshot(
            job_id="rw-1",
            lines=[line],
            total_lines=9,
            counts={Classification.PROGRESS: 4, Classification.NEUTRAL: 5},
        )
        assert snap.hidden_lines == 8
        assert snap.progress_count == 4

    def test_frozen(self):
        snap = MonitorSnapshot(job_id="rw-1")
        with pytest.raises(ValidationError):
            snap.status = JobStatus.ERROR
