"""
Flood control for output switches driven by ``WinnerChanged`` events.

At most one switch happens per protection window.  Requests arriving inside
the window are coalesced: the most recent target wins, and a single delayed
switch fires once the window has elapsed.  Intermediate targets are dropped,
not queued.

Typical wiring::

    governor = FloodGovernor(player.play, channels=session_channels)
    session.on_winner_changed(lambda e: governor.request(e.channel))
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Collection

from .atomic import AtomicCell
from .constants import PROTECTION_WINDOW_MS

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class FloodGovernor:
    """Rate-limits calls to *switch*.

    Args:
        switch: Action that moves the output to a channel.  Called on the
            requesting thread when the window is clear, otherwise on a timer
            thread.  Calls never overlap.
        channels: If given, requests for channels outside this collection are
            ignored.
        window: Protection window in seconds.
        clock: Monotonic time source.
        timer_factory: Builds the fire-once delayed task; must return an
            object with ``start()`` and ``cancel()``.
    """

    def __init__(
        self,
        switch: Callable[[int], None],
        channels: Collection[int] | None = None,
        window: float = PROTECTION_WINDOW_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._switch = switch
        self._channels = channels
        self.window = window
        self._clock = clock
        self._timer_factory = timer_factory

        self._requested: AtomicCell[int | None] = AtomicCell(None)
        self._active: AtomicCell[int | None] = AtomicCell(None)
        self._pending: AtomicCell[bool] = AtomicCell(False)
        self._last_switch: AtomicCell[float | None] = AtomicCell(None)
        self._timer: threading.Timer | None = None
        self._closed = AtomicCell(False)
        # Serializes the remaining-window check with the switch it guards
        self._lock = threading.RLock()

    # -- State --------------------------------------------------------------

    @property
    def active(self) -> int | None:
        """Channel of the last effective switch, or ``None`` before the first."""
        return self._active.get()

    @property
    def requested(self) -> int | None:
        return self._requested.get()

    @property
    def pending(self) -> bool:
        """``True`` while a delayed switch is scheduled."""
        return self._pending.get()

    # -- Requests -----------------------------------------------------------

    def request(self, channel: int | None) -> None:
        """Ask for the output to move to *channel*."""
        if channel is None or self._closed.get():
            return
        if self._channels is not None and channel not in self._channels:
            logger.warning("Ignoring switch to unknown channel %d", channel)
            return
        if self._requested.exchange(channel) == channel:
            return

        with self._lock:
            remaining = self._remaining()
            if remaining <= 0:
                self._fire()
                return

            # Flood prevention: reuse the pending timer, it reads the latest target
            if not self._pending.compare_and_set(False, True):
                logger.debug("Coalesced switch request to channel %d", channel)
                return
            logger.debug("Deferring switch to channel %d by %.3fs", channel, remaining)
            self._timer = self._timer_factory(remaining, self._fire_delayed)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop any pending delayed switch and ignore further requests."""
        if self._closed.exchange(True):
            return
        timer = self._timer
        if timer is not None:
            timer.cancel()
        self._pending.set(False)

    # -- Internal -----------------------------------------------------------

    def _remaining(self) -> float:
        last = self._last_switch.get()
        if last is None:
            return 0.0
        return last + self.window - self._clock()

    def _fire_delayed(self) -> None:
        with self._lock:
            self._pending.set(False)
            if self._closed.get():
                return
            self._fire()

    def _fire(self) -> None:
        # Caller holds _lock
        target = self._requested.get()
        if target is None or self._active.exchange(target) == target:
            return
        self._last_switch.set(self._clock())
        logger.info("Switching output to channel %d", target)
        try:
            self._switch(target)
        except Exception:
            logger.exception("Switch to channel %d failed", target)
            # Let a repeat request for the same target retry
            self._active.compare_and_set(target, None)
            self._requested.compare_and_set(target, None)
