"""Alert countdown tests."""

import asyncio

import pytest

from safetrail.client.countdown import AlertCountdown, CountdownState

TICK = 0.001


def _run(coro):
    return asyncio.run(coro)


def test_full_countdown_fires_once():
    fired = []
    ticks = []

    async def scenario():
        countdown = AlertCountdown(seconds=10, tick_interval=TICK)
        countdown.start(lambda: fired.append(True), on_tick=ticks.append)
        await countdown.wait()
        return countdown

    countdown = _run(scenario())
    assert fired == [True]
    assert ticks == [9, 8, 7, 6, 5, 4, 3, 2, 1, 0]
    assert countdown.state == CountdownState.FIRED


@pytest.mark.parametrize("cancel_at", range(0, 10))
def test_cancel_on_any_tick_never_fires(cancel_at):
    fired = []

    async def scenario():
        countdown = AlertCountdown(seconds=10, tick_interval=TICK)

        def on_tick(remaining):
            if remaining == cancel_at:
                countdown.cancel()

        countdown.start(lambda: fired.append(True), on_tick=on_tick)
        await countdown.wait()
        return countdown

    countdown = _run(scenario())
    assert fired == []
    assert countdown.state == CountdownState.CANCELLED


def test_cancel_from_outside_stops_the_task():
    fired = []

    async def scenario():
        countdown = AlertCountdown(seconds=10, tick_interval=0.05)
        countdown.start(lambda: fired.append(True))
        await asyncio.sleep(0.01)
        assert countdown.cancel() is True
        await countdown.wait()
        return countdown

    countdown = _run(scenario())
    assert fired == []
    assert countdown.remaining == 0


def test_async_fire_callback_is_awaited():
    fired = []

    async def on_fire():
        await asyncio.sleep(0)
        fired.append(True)

    async def scenario():
        countdown = AlertCountdown(seconds=2, tick_interval=TICK)
        countdown.start(on_fire)
        await countdown.wait()

    _run(scenario())
    assert fired == [True]


def test_cannot_start_twice_while_counting():
    async def scenario():
        countdown = AlertCountdown(seconds=5, tick_interval=TICK)
        countdown.start(lambda: None)
        with pytest.raises(RuntimeError):
            countdown.start(lambda: None)
        countdown.cancel()
        await countdown.wait()

    _run(scenario())


def test_cancel_when_idle_is_a_no_op():
    assert AlertCountdown(seconds=3).cancel() is False


def test_failing_fire_callback_is_contained():
    def on_fire():
        raise RuntimeError("network down")

    async def scenario():
        countdown = AlertCountdown(seconds=1, tick_interval=TICK)
        countdown.start(on_fire)
        await countdown.wait()
        return countdown

    assert _run(scenario()).state == CountdownState.FIRED
