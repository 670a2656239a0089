"""
Arbitration notifications and their synchronous delivery to listeners.

Listeners run on the thread that dispatches (the session's reader thread),
in subscription order.  A slow listener delays the next frame.  An exception
from a listener stops delivery and propagates to the dispatcher's caller,
which for a session ends the reader loop with a communication error.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WinnerChanged:
    """The channel holding the maximum value changed (``None``: no winner)."""

    channel: int | None


@dataclass(frozen=True)
class ValueChanged:
    """The winner's value (the effective value) changed."""

    value: int


Event = Union[WinnerChanged, ValueChanged]
Listener = Callable[[Event], None]


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle returned by :meth:`EventDispatcher.subscribe`."""

    dispatcher: EventDispatcher
    kind: type
    callback: Listener

    def cancel(self) -> None:
        """Stop delivering events to this listener (safe to call twice)."""
        self.dispatcher.unsubscribe(self)


class EventDispatcher:
    """Multicasts :class:`WinnerChanged` / :class:`ValueChanged` events."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, kind: type, callback: Listener) -> Subscription:
        if kind not in (WinnerChanged, ValueChanged):
            raise TypeError(f"Cannot subscribe to {kind!r}")
        sub = Subscription(self, kind, callback)
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug("Subscribed %r to %s", callback, kind.__name__)
        return sub

    def on_winner_changed(self, callback: Callable[[WinnerChanged], None]) -> Subscription:
        return self.subscribe(WinnerChanged, callback)

    def on_value_changed(self, callback: Callable[[ValueChanged], None]) -> Subscription:
        return self.subscribe(ValueChanged, callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def dispatch(self, events: Iterable[Event]) -> None:
        """Deliver *events* in order to every matching listener."""
        for event in events:
            with self._lock:
                targets = [s for s in self._subscriptions if isinstance(event, s.kind)]
            for sub in targets:
                sub.callback(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
