"""
Wall-clock anchored timers for the active workout.

A clock never counts ticks. It stores the moment it was started and derives
its value as ``floor(now - start)`` on every read, so a suspended client or a
slow tick loop cannot make it drift.
"""
from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat those as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def elapsed_seconds(start: datetime, now: datetime) -> int:
    delta = (as_utc(now) - as_utc(start)).total_seconds()
    return max(0, math.floor(delta))


def format_clock(seconds: int) -> str:
    """``H:MM:SS`` with the hour segment only when nonzero, else ``MM:SS``."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


class Stopwatch:
    """One anchored clock. ``cancel()`` is safe to call any number of times."""

    def __init__(self, clock: Clock = utcnow, *, name: str = ""):
        self._clock = clock
        self.name = name
        self.started_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self.started_at is not None

    def start(self, at: Optional[datetime] = None) -> None:
        self.started_at = as_utc(at) if at is not None else self._clock()

    def elapsed(self) -> int:
        if self.started_at is None:
            return 0
        return elapsed_seconds(self.started_at, self._clock())

    def stop(self) -> int:
        """Cancel the clock and return the seconds it showed at that moment."""
        value = self.elapsed()
        self.started_at = None
        return value

    cancel = stop

    def __repr__(self) -> str:
        state = f"since {self.started_at.isoformat()}" if self.started_at else "stopped"
        return f"<Stopwatch {self.name or '?'} {state}>"


async def tick(
    snapshot: Callable[[], Awaitable[dict]],
    *,
    interval: float = 1.0,
    should_stop: Optional[Callable[[dict], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[dict]:
    """
    Yield the awaited ``snapshot()`` every ``interval`` seconds.

    Each value is recomputed from the anchors, not carried over from the
    previous tick. The loop ends when ``should_stop`` returns True for a
    snapshot (that last snapshot is still yielded) or when the consumer closes
    the generator, e.g. on client disconnect.
    """
    while True:
        snap = await snapshot()
        yield snap
        if should_stop is not None and should_stop(snap):
            return
        await sleep(interval)
