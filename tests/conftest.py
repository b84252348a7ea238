"""Shared test fixtures for renderwatch."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from renderwatch.bridge.channels import IterableChannel
from renderwatch.config import WatchConfig
from renderwatch.core.classifier import DEFAULT_RULES
from renderwatch.core.job_machine import JobMachine
from renderwatch.models.job import JobOutcome


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def job_id() -> str:
    """Provide a deterministic test job ID."""
    return "rw-test-job-001"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> WatchConfig:
    """Fast timings so controller tests finish quickly."""
    return WatchConfig(grace_delay_seconds=0.05, tick_interval_seconds=0.01)


@pytest.fixture
def machine(job_id: str, clock: FakeClock) -> JobMachine:
    """A JobMachine that already knows its artifact."""
    return JobMachine(job_id, artifact="/renders/out.mp4", rules=DEFAULT_RULES, clock=clock)


@pytest.fixture
def outcomes() -> list[JobOutcome]:
    """Collects terminal callbacks."""
    return []


@pytest.fixture
def make_channel() -> Callable[..., IterableChannel]:
    """Factory fixture: an IterableChannel over the given raw lines."""

    def _factory(lines: list[str], **kwargs: Any) -> IterableChannel:
        return IterableChannel(list(lines), **kwargs)

    return _factory


async def _failing_source(lines: list[str], exc: Exception) -> AsyncIterator[str]:
    for line in lines:
        yield line
    raise exc


@pytest.fixture
def failing_source() -> Callable[[list[str], Exception], AsyncIterator[str]]:
    """Factory fixture: an async source that yields lines and then raises."""
    return _failing_source
