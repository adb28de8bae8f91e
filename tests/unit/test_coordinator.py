"""Unit tests for RequestCoordinator generation tokens and supersession"""

from __future__ import annotations

import asyncio

import pytest

from grammarguard.infrastructure.coordinator import ActionClass, SupersededError
from grammarguard.observability.telemetry import get_counter


def gated(value=None, error: Exception | None = None):
    gate = asyncio.Event()

    async def operation():
        await gate.wait()
        if error is not None:
            raise error
        return value

    return gate, operation


def test_tokens_strictly_increase(coordinator):
    first = coordinator.begin(ActionClass.GRAMMAR)
    second = coordinator.begin(ActionClass.REWRITE)
    third = coordinator.begin(ActionClass.GRAMMAR)

    assert first < second < third
    assert len({first.serial, second.serial, third.serial}) == 3


def test_begin_supersedes_same_class_only(coordinator):
    grammar = coordinator.begin(ActionClass.GRAMMAR)
    lookup = coordinator.begin(ActionClass.LOOKUP)
    newer = coordinator.begin(ActionClass.GRAMMAR)

    assert not coordinator.is_active(grammar)
    assert coordinator.is_active(newer)
    assert coordinator.is_active(lookup)


def test_invalidate_returns_class_to_idle(coordinator):
    token = coordinator.begin(ActionClass.REWRITE)

    coordinator.invalidate(ActionClass.REWRITE)

    assert not coordinator.is_active(token)
    assert coordinator.active_token(ActionClass.REWRITE) is None
    assert coordinator.is_active(coordinator.begin(ActionClass.REWRITE))


def test_invalidate_all(coordinator):
    tokens = [coordinator.begin(action_class) for action_class in ActionClass]

    coordinator.invalidate_all()

    assert not any(coordinator.is_active(token) for token in tokens)


def test_ensure_active_raises_and_counts(coordinator):
    stale = coordinator.begin(ActionClass.GRAMMAR)
    coordinator.begin(ActionClass.GRAMMAR)

    with pytest.raises(SupersededError) as exc_info:
        coordinator.ensure_active(stale)

    assert exc_info.value.token == stale
    assert get_counter("coordinator.superseded") == 1


@pytest.mark.asyncio
async def test_run_returns_result_for_active_token(coordinator):
    token = coordinator.begin(ActionClass.GRAMMAR)

    async def operation():
        return "analysis"

    assert await coordinator.run(token, operation) == "analysis"


@pytest.mark.asyncio
async def test_only_latest_action_commits_when_older_resolves_first(coordinator):
    gate_a1, op_a1 = gated("A1")
    gate_a2, op_a2 = gated("A2")

    token_a1 = coordinator.begin(ActionClass.GRAMMAR)
    task_a1 = asyncio.create_task(coordinator.run(token_a1, op_a1))
    token_a2 = coordinator.begin(ActionClass.GRAMMAR)
    task_a2 = asyncio.create_task(coordinator.run(token_a2, op_a2))

    gate_a1.set()
    with pytest.raises(SupersededError):
        await task_a1

    gate_a2.set()
    assert await task_a2 == "A2"


@pytest.mark.asyncio
async def test_only_latest_action_commits_when_older_resolves_last(coordinator):
    gate_a1, op_a1 = gated("A1")
    gate_a2, op_a2 = gated("A2")

    token_a1 = coordinator.begin(ActionClass.REWRITE)
    task_a1 = asyncio.create_task(coordinator.run(token_a1, op_a1))
    token_a2 = coordinator.begin(ActionClass.REWRITE)
    task_a2 = asyncio.create_task(coordinator.run(token_a2, op_a2))

    gate_a2.set()
    assert await task_a2 == "A2"

    gate_a1.set()
    with pytest.raises(SupersededError):
        await task_a1


@pytest.mark.asyncio
async def test_failure_of_superseded_action_is_not_reported(coordinator):
    gate, operation = gated(error=ValueError("bad payload"))
    token = coordinator.begin(ActionClass.GRAMMAR)
    task = asyncio.create_task(coordinator.run(token, operation))

    coordinator.invalidate(ActionClass.GRAMMAR)
    gate.set()

    with pytest.raises(SupersededError):
        await task


@pytest.mark.asyncio
async def test_failure_of_active_action_propagates(coordinator):
    token = coordinator.begin(ActionClass.GRAMMAR)

    async def operation():
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await coordinator.run(token, operation)


@pytest.mark.asyncio
async def test_run_retries_transient_failures(coordinator, fake_sleep):
    token = coordinator.begin(ActionClass.GRAMMAR)
    attempts = []

    async def operation():
        attempts.append(1)
        if len(attempts) < 2:
            raise Exception("503 UNAVAILABLE")
        return "ok"

    assert await coordinator.run(token, operation) == "ok"
    assert fake_sleep.delays == [2.0]
