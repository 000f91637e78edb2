"""Alert countdown: the grace period between triggering and notifying contacts."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Callable

from safetrail.client.config import client_settings

logger = logging.getLogger(__name__)


class CountdownState(str, enum.Enum):
    IDLE = "idle"
    COUNTING = "counting"
    FIRED = "fired"
    CANCELLED = "cancelled"


class AlertCountdown:
    """One-shot countdown: idle -> counting -> fired | cancelled.

    `on_fire` runs at most once per start(). Cancellation is re-checked at
    the fire boundary, so a cancel that lands on the last tick still wins.
    Re-arming needs a new start() call.
    """

    def __init__(self, seconds: int | None = None, tick_interval: float = 1.0) -> None:
        self.seconds = seconds if seconds is not None else client_settings.countdown_seconds
        self.tick_interval = tick_interval
        self.state = CountdownState.IDLE
        self.remaining = 0
        self._cancelled = False
        self._task: asyncio.Task | None = None

    def start(
        self,
        on_fire: Callable[[], Any],
        on_tick: Callable[[int], None] | None = None,
    ) -> asyncio.Task:
        """Start counting down on the running event loop."""
        if self.state == CountdownState.COUNTING:
            raise RuntimeError("Countdown already running")
        self._cancelled = False
        self.remaining = self.seconds
        self.state = CountdownState.COUNTING
        self._task = asyncio.get_running_loop().create_task(self._run(on_fire, on_tick))
        return self._task

    def cancel(self) -> bool:
        """Cancel a running countdown. Returns False if it was not counting."""
        if self.state != CountdownState.COUNTING:
            return False
        self._cancelled = True
        self.state = CountdownState.CANCELLED
        self.remaining = 0
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        return True

    async def wait(self) -> None:
        """Wait until the countdown has fired or been cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise

    async def _run(self, on_fire: Callable[[], Any], on_tick: Callable[[int], None] | None) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.tick_interval)
            if self._cancelled:
                return
            self.remaining -= 1
            if on_tick is not None:
                on_tick(self.remaining)

        # Fire boundary
        if self._cancelled:
            return
        self.state = CountdownState.FIRED
        try:
            result = on_fire()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Countdown fire callback failed")
