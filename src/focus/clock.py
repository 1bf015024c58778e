"""Drift-free countdown clock scheduled on the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Callable, Optional

from .constants import DEFAULT_TICK_INTERVAL_SECONDS

TickCallback = Callable[[int, "ClockHandle"], None]


class ClockHandle:
    """Cancellable handle for one armed countdown."""

    def __init__(
        self,
        end_timestamp: float,
        on_tick: TickCallback,
        *,
        interval_seconds: float,
        time_fn: Callable[[], float],
        loop: asyncio.AbstractEventLoop,
        logger: Optional[logging.Logger] = None,
    ):
        self._end_timestamp = float(end_timestamp)
        self._on_tick = on_tick
        self._interval_seconds = interval_seconds
        self._time_fn = time_fn
        self._loop = loop
        self._logger = logger or logging.getLogger("focus.clock")
        self._timer: Optional[asyncio.Handle] = None
        self._cancelled = False
        self._tick_count = 0

    @property
    def end_timestamp(self) -> float:
        return self._end_timestamp

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def remaining_seconds(self) -> int:
        return max(0, math.floor(self._end_timestamp - self._time_fn()))

    def cancel(self) -> None:
        """Stop further ticks. Repeated calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, delay: Optional[float] = None) -> None:
        if self._cancelled:
            return
        if delay is None:
            self._timer = self._loop.call_soon(self._fire)
        else:
            self._timer = self._loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._cancelled:
            return

        # Recompute from the absolute end so late callbacks never accumulate drift.
        remaining = self.remaining_seconds()
        self._tick_count += 1
        try:
            self._on_tick(remaining, self)
        except Exception:
            self._logger.exception("Tick callback failed: remaining=%s", remaining)
        self._arm(self._interval_seconds)


class CountdownClock:
    """Reports remaining whole seconds until an absolute end timestamp."""

    def __init__(
        self,
        *,
        interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        time_fn: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._interval_seconds = float(interval_seconds)
        self._time_fn = time_fn or time.time
        self._logger = logger or logging.getLogger("focus.clock")

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def now(self) -> float:
        return self._time_fn()

    def start(self, end_timestamp: float, on_tick: TickCallback) -> ClockHandle:
        """Arm a countdown; the first tick runs on the next loop iteration.

        Must be called from within a running event loop. The clock keeps
        reporting ``0`` after the end timestamp until the handle is cancelled.
        """
        loop = asyncio.get_running_loop()
        handle = ClockHandle(
            end_timestamp,
            on_tick,
            interval_seconds=self._interval_seconds,
            time_fn=self._time_fn,
            loop=loop,
            logger=self._logger,
        )
        self._logger.debug(
            "Countdown armed: end=%.3f interval=%.3fs",
            end_timestamp,
            self._interval_seconds,
        )
        handle._arm()
        return handle

    @staticmethod
    def cancel(handle: Optional[ClockHandle]) -> None:
        if handle is not None:
            handle.cancel()
