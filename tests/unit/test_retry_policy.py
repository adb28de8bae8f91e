"""Unit tests for RetryPolicy backoff and terminal-error handling"""

from __future__ import annotations

import pytest

from grammarguard.infrastructure.retry import (
    AuthMissingError,
    PermissionDeniedError,
    RetryPolicy,
)
from grammarguard.observability.telemetry import get_counter


def scripted(*outcomes):
    """Coroutine factory yielding each outcome in turn (exceptions are raised)."""
    calls = []

    async def operation():
        outcome = outcomes[len(calls)]
        calls.append(outcome)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    operation.calls = calls
    return operation


@pytest.mark.asyncio
async def test_success_returns_immediately(retry_policy, fake_sleep):
    operation = scripted("ok")

    assert await retry_policy.execute(operation) == "ok"
    assert len(operation.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_rate_limited_twice_then_success_backs_off_exponentially(retry_policy, fake_sleep):
    operation = scripted(
        Exception("429 RESOURCE_EXHAUSTED"),
        Exception("429 RESOURCE_EXHAUSTED"),
        {"result": "fixed"},
    )

    result = await retry_policy.execute(operation)

    assert result == {"result": "fixed"}
    assert len(operation.calls) == 3
    assert fake_sleep.delays == [2.0, 4.0]
    assert get_counter("retry_count") == 2


@pytest.mark.asyncio
async def test_missing_credential_fails_immediately(retry_policy, fake_sleep):
    operation = scripted(AuthMissingError(), "never")

    with pytest.raises(AuthMissingError):
        await retry_policy.execute(operation)

    assert len(operation.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_permission_denied_is_resignalled(retry_policy, fake_sleep):
    original = Exception('{"error": {"code": 403, "status": "PERMISSION_DENIED"}}')
    operation = scripted(original, "never")

    with pytest.raises(PermissionDeniedError) as exc_info:
        await retry_policy.execute(operation)

    assert exc_info.value.__cause__ is original
    assert len(operation.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_exhausted_attempts_surface_last_error(retry_policy, fake_sleep):
    last = Exception("503 model is overloaded (third)")
    operation = scripted(Exception("503 Overloaded"), Exception("503 Overloaded"), last)

    with pytest.raises(Exception) as exc_info:
        await retry_policy.execute(operation)

    assert exc_info.value is last
    assert len(operation.calls) == 3
    assert fake_sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_unclassified_error_is_terminal(retry_policy, fake_sleep):
    operation = scripted(ValueError("response was not valid JSON"), "never")

    with pytest.raises(ValueError):
        await retry_policy.execute(operation)

    assert len(operation.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_max_attempts_is_respected(fake_sleep):
    policy = RetryPolicy(max_attempts=5, base_delay=0.5, sleep_fn=fake_sleep)
    failures = [Exception("429")] * 5
    operation = scripted(*failures)

    with pytest.raises(Exception, match="429"):
        await policy.execute(operation)

    assert len(operation.calls) == 5
    assert fake_sleep.delays == [0.5, 1.0, 2.0, 4.0]
