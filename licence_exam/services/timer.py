"""
services/timer.py

Countdown ticker used by the exam session, plus remaining-time formatting.

The session never sleeps on its own: it hands a callback to a Ticker, and
the ticker calls it once per interval until the callback returns False or
stop() is called. Tests replace AsyncioTicker with a ticker they advance by hand.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[bool]]

LOW_TIME_SECONDS = 300  # under 5 minutes the timer is shown as a warning


class Ticker(ABC):
    @abstractmethod
    def start(self, callback: TickCallback) -> None:
        """Begin calling `callback` once per interval."""

    @abstractmethod
    def stop(self) -> None:
        """Stop ticking. Safe to call more than once."""

    @property
    @abstractmethod
    def running(self) -> bool: ...


class AsyncioTicker(Ticker):
    """Ticker backed by an asyncio task on the running loop."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def start(self, callback: TickCallback) -> None:
        if self.running:
            raise RuntimeError("ticker already running")
        self._task = asyncio.get_running_loop().create_task(self._run(callback))

    async def _run(self, callback: TickCallback) -> None:
        me = asyncio.current_task()
        while True:
            await asyncio.sleep(self.interval)
            try:
                keep_going = await callback()
            except Exception:
                logger.exception("tick callback failed; stopping ticker")
                raise
            # stop() during the callback detaches this task
            if not keep_going or self._task is not me:
                break
        if self._task is me:
            self._task = None

    def stop(self) -> None:
        task, self._task = self._task, None
        # the callback may stop its own ticker; do not cancel ourselves mid-tick
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


def format_time(seconds: int) -> str:
    """Seconds → "MM:SS" (minutes are not wrapped at 60)."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def is_low_time(seconds: int) -> bool:
    return seconds < LOW_TIME_SECONDS
