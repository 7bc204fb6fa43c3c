from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol


# Shared by PEEK and SELECT.
TURN_TIMEOUT = 30
QUIZ_TIMEOUT = 10


class Scheduler(Protocol):
    """Runs a callback after `delay` game time units."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:  # pragma: no cover
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop.

    One game time unit lasts `time_unit_sec` wall-clock seconds. Must be created
    from inside the loop it schedules on.
    """

    def __init__(self, *, time_unit_sec: float = 1.0, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.time_unit_sec = time_unit_sec
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self._loop.call_later(max(delay, 0.0) * self.time_unit_sec, callback)


class ManualScheduler:
    """Virtual clock: nothing fires until `advance()` is called.

    Callbacks run in due-time order; equal due times run in scheduling order.
    Callbacks scheduled while advancing fire in the same call if they fall due.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        heapq.heappush(self._queue, (self.now + max(delay, 0.0), next(self._seq), callback))

    def advance(self, units: float = 0.0) -> None:
        target = self.now + units
        while self._queue and self._queue[0][0] <= target:
            due, _, callback = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            callback()
        self.now = target

    def advance_until(self, predicate: Callable[[], bool], *, step: float = 0.5, limit: float = 600.0) -> bool:
        """Advance in `step` increments until `predicate()` holds or `limit` units pass."""

        waited = 0.0
        while not predicate():
            if waited >= limit:
                return False
            self.advance(step)
            waited += step
        return True


class Countdown:
    """The single shared countdown.

    `start()` (re)initialises the remaining time and ticks once per unit.
    Leaving it running across a phase change carries the remaining time over.
    Ticks armed before the latest `start()`/`stop()` are ignored.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_expire: Callable[[], None],
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._generation = 0
        self.remaining = 0
        self.running = False

    def start(self, units: int) -> None:
        self._generation += 1
        self.remaining = units
        self.running = True
        self._arm()

    def stop(self) -> None:
        self._generation += 1
        self.running = False

    def _arm(self) -> None:
        generation = self._generation
        self._scheduler.call_later(1, lambda: self._tick(generation))

    def _tick(self, generation: int) -> None:
        if generation != self._generation or not self.running:
            return

        self.remaining = max(self.remaining - 1, 0)
        if self._on_tick is not None:
            self._on_tick(self.remaining)

        if self.remaining == 0:
            self.running = False
            self._on_expire()
            return
        self._arm()
