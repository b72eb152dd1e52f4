from __future__ import annotations

import asyncio
import random

def next_backoff(prev: float, cap: float) -> float:
    """Exponential backoff progression with cap (no jitter)."""
    return min(prev * 2.0, cap)

def jitter(v: float, *, ratio: float = 0.2) -> float:
    """
    Add ±ratio jitter. ratio=0.2 -> multiply by [0.8, 1.2].
    """
    lo = 1.0 - ratio
    hi = 1.0 + ratio
    return v * (lo + (hi - lo) * random.random())

class Backoff:
    """
    Stateful retry delay for background loops (mirror writer, watcher).
    delay() returns the current step and advances; reset() after a success.
    """
    __slots__ = ("initial", "cap", "ratio", "_current")

    def __init__(self, initial: float = 0.25, cap: float = 30.0, ratio: float = 0.2):
        self.initial = float(initial)
        self.cap = float(cap)
        self.ratio = float(ratio)
        self._current = self.initial

    @property
    def current(self) -> float:
        return self._current

    def delay(self) -> float:
        v = self._current
        self._current = next_backoff(v, self.cap)
        return v

    def reset(self) -> None:
        self._current = self.initial

    async def sleep(self) -> None:
        await asyncio.sleep(jitter(self.delay(), ratio=self.ratio))
