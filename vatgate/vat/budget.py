"""Deadline arithmetic and the per-call timeout race."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class TimeBudget:
    """Single deadline shared by every attempt of one request.

    Times are seconds on a monotonic clock. The deadline is fixed at
    creation and never extended.
    """

    deadline: float
    clock: Clock = field(default=time.monotonic, repr=False, compare=False)

    @classmethod
    def start(cls, total: float, clock: Clock = time.monotonic) -> TimeBudget:
        return cls(deadline=clock() + total, clock=clock)

    def remaining(self) -> float:
        return self.deadline - self.clock()

    @property
    def exhausted(self) -> bool:
        return self.remaining() <= 0

    def cap(self, local_cap: float) -> float:
        """Time allotted to the next attempt: its own cap, never past the deadline."""
        return max(0.0, min(local_cap, self.remaining()))


async def run_with_timeout(call: Awaitable[T], timeout: float) -> T:
    """Race ``call`` against a timer.

    Whichever settles first wins. If the timer wins, the call is cancelled
    so its connection is released, and ``asyncio.TimeoutError`` is raised.
    """
    if timeout <= 0:
        if asyncio.iscoroutine(call):
            call.close()
        raise asyncio.TimeoutError
    return await asyncio.wait_for(call, timeout=timeout)
