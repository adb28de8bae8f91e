"""
Pytest configuration for GrammarGuard tests

Provides an in-memory store with a deterministic clock and ids, and a
recording sleep so backoff delays are asserted without waiting.
"""

from __future__ import annotations

import itertools

import pytest

from grammarguard.infrastructure.coordinator import RequestCoordinator
from grammarguard.infrastructure.retry import RetryPolicy
from grammarguard.observability.telemetry import reset_counters
from grammarguard.storage.kv import InMemoryStorage
from grammarguard.storage.models import Explanation, GrammarAnalysis, Segment, Severity
from grammarguard.storage.state_store import StateStore

BASE_TIMESTAMP_MS = 1_760_000_000_000


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class StepClock:
    """Epoch-ms clock advancing one second per reading."""

    def __init__(self, start: int = BASE_TIMESTAMP_MS):
        self.now = start

    def __call__(self) -> int:
        value = self.now
        self.now += 1000
        return value


def make_analysis(text: str, critical: int = 0, suggestions: int = 0) -> GrammarAnalysis:
    segments = [Segment(text=text, is_error=False)]
    segments += [
        Segment(text="x", is_error=True, severity=Severity.CRITICAL, correction="y", reason="typo")
        for _ in range(critical)
    ]
    segments += [
        Segment(text="z", is_error=True, severity=Severity.SUGGESTION, correction="w", reason="style")
        for _ in range(suggestions)
    ]
    return GrammarAnalysis(
        segments=segments,
        corrected_sentence=text,
        explanation=Explanation(overview="Looks fine.", improvements=[]),
    )


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture(autouse=True)
def _no_env_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(fake_sleep):
    return RetryPolicy(stage="test", max_attempts=3, base_delay=2.0, sleep_fn=fake_sleep)


@pytest.fixture
def coordinator(retry_policy):
    return RequestCoordinator(retry_policy)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(storage, clock):
    ids = itertools.count(1)
    return StateStore(storage, expected_version="1.0.3", clock=clock, id_factory=lambda: f"id-{next(ids)}")
