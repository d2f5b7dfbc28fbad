"""Periodic tick clock and the tick message format."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

TICK_PREFIX = "Tick at "

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def format_rfc3339(dt: datetime) -> str:
    """
    Format a datetime as RFC3339 with second precision.

    UTC renders as "Z", other offsets as "+HH:MM". Naive datetimes are
    taken to be local time. Offsets with a seconds part (historical local
    mean time zones) are rounded to whole minutes; the instant is unchanged.
    """
    if dt.tzinfo is None:
        dt = dt.astimezone()
    offset = dt.utcoffset() or timedelta(0)
    if offset % timedelta(minutes=1):
        minutes = round(offset.total_seconds() / 60)
        dt = dt.astimezone(timezone(timedelta(minutes=minutes)))
    text = dt.replace(microsecond=0).isoformat()
    if dt.utcoffset() == timedelta(0):
        text = text.removesuffix("+00:00") + "Z"
    return text


def format_tick_message(dt: datetime) -> str:
    return f"{TICK_PREFIX}{format_rfc3339(dt)}\n"


class Ticker:
    """
    Fixed-period timer anchored at construction time.

    Deadlines fall at start + n * interval. A consumer that falls behind
    gets a single tick for all the deadlines it missed, not a burst.
    """

    def __init__(self, interval: float, clock: Clock | None = None):
        if not math.isfinite(interval) or interval <= 0:
            raise ValueError("interval must be a positive finite number of seconds")
        self.interval = interval
        self._clock = clock or local_now
        self._loop = asyncio.get_running_loop()
        self._next_deadline = self._loop.time() + interval

    async def wait(self) -> datetime:
        """Sleep until the next deadline and return the tick timestamp."""
        delay = self._next_deadline - self._loop.time()
        if delay > 0:
            await asyncio.sleep(delay)

        # Only advance once the tick is delivered; a cancelled wait keeps its deadline
        now = self._loop.time()
        missed = max(0, int((now - self._next_deadline) // self.interval))
        self._next_deadline += self.interval * (missed + 1)
        return self._clock()
