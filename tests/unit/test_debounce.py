"""Unit tests for Debouncer"""

from __future__ import annotations

import asyncio

import pytest

from grammarguard.app.debounce import Debouncer


class Recorder:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


async def instant_sleep(delay):
    await asyncio.sleep(0)


def test_runs_immediately_without_event_loop():
    action = Recorder()
    debouncer = Debouncer(action, delay=5)

    debouncer.trigger()

    assert action.calls == 1
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_burst_of_triggers_runs_once():
    action = Recorder()
    debouncer = Debouncer(action, delay=1.0, sleep_fn=instant_sleep)

    for _ in range(5):
        debouncer.trigger()
    assert debouncer.pending
    for _ in range(5):
        await asyncio.sleep(0)

    assert action.calls == 1
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_flush_runs_pending_action_now():
    action = Recorder()
    debouncer = Debouncer(action, delay=60)

    debouncer.trigger()
    await debouncer.flush()

    assert action.calls == 1
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_flush_without_pending_is_noop():
    action = Recorder()
    await Debouncer(action, delay=60).flush()
    assert action.calls == 0


@pytest.mark.asyncio
async def test_cancel_drops_pending_action():
    action = Recorder()
    debouncer = Debouncer(action, delay=1.0, sleep_fn=instant_sleep)

    debouncer.trigger()
    debouncer.cancel()
    for _ in range(5):
        await asyncio.sleep(0)

    assert action.calls == 0
