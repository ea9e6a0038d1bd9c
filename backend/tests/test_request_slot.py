import asyncio

import pytest

from mapguide.models.poi_model import RequestState
from mapguide.services.request_slot import DebouncedRequest


class Recorder:
    def __init__(self):
        self.results = []
        self.errors = []

    def ok(self, value):
        self.results.append(value)

    def fail(self, error):
        self.errors.append(error)


def answer(value, started=None):
    async def call():
        if started is not None:
            started.append(value)
        return value
    return call


@pytest.mark.asyncio
async def test_latest_schedule_wins_within_debounce():
    slot = DebouncedRequest("test", delay=0.01)
    recorder = Recorder()
    started = []

    for value in range(5):
        slot.schedule(answer(value, started), recorder.ok, recorder.fail)
    await slot.wait()

    assert started == [4]
    assert slot.issued == 1
    assert recorder.results == [4]
    assert slot.state == RequestState.RESOLVED


@pytest.mark.asyncio
async def test_in_flight_call_is_aborted_by_newer_schedule():
    slot = DebouncedRequest("test")
    recorder = Recorder()
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "stale"

    slot.schedule(slow, recorder.ok, recorder.fail)
    await asyncio.sleep(0)
    assert slot.in_flight
    first = slot.task

    slot.schedule(answer("fresh"), recorder.ok, recorder.fail)
    await slot.wait()

    assert first.cancelled()
    assert recorder.results == ["fresh"]
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_cancel_is_silent():
    slot = DebouncedRequest("test", delay=0.05)
    recorder = Recorder()
    slot.schedule(answer(1), recorder.ok, recorder.fail)

    assert slot.cancel() is True
    await asyncio.sleep(0.06)

    assert slot.state == RequestState.CANCELED
    assert recorder.results == []
    assert recorder.errors == []
    assert slot.cancel() is False


@pytest.mark.asyncio
async def test_failure_reports_and_sets_state():
    slot = DebouncedRequest("test")
    recorder = Recorder()

    async def boom():
        raise RuntimeError("down")

    slot.schedule(boom, recorder.ok, recorder.fail)
    await slot.wait()

    assert slot.state == RequestState.FAILED
    assert str(recorder.errors[0]) == "down"


@pytest.mark.asyncio
async def test_reset_returns_to_idle():
    slot = DebouncedRequest("test", delay=0.05)
    slot.schedule(answer(1), lambda value: None, lambda error: None)
    slot.reset()
    assert slot.state == RequestState.IDLE
    assert not slot.in_flight


@pytest.mark.asyncio
async def test_error_applying_result_is_reported_as_failure():
    slot = DebouncedRequest("test")
    recorder = Recorder()

    def apply(value):
        raise ValueError(f"cannot apply {value}")

    slot.schedule(answer(7), apply, recorder.fail)
    await slot.wait()

    assert slot.state == RequestState.FAILED
    assert slot.task.done() and slot.task.exception() is None
    assert str(recorder.errors[0]) == "cannot apply 7"
