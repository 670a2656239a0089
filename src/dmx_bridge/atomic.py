"""
Lock-guarded value cells shared between the reader thread, timer threads
and disposers.

Every read-modify-write goes through a single cell method so that
"exchange and compare to previous" is one indivisible step::

    if last_value.exchange(value) != value:
        notify(value)
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class AtomicCell(Generic[T]):
    """A single value with atomic get / set / exchange / compare-and-set."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value

    def exchange(self, value: T) -> T:
        """Store *value* and return the value it replaced."""
        with self._lock:
            previous = self._value
            self._value = value
            return previous

    def compare_and_set(self, expected: T, value: T) -> bool:
        """Store *value* only if the cell currently equals *expected*.

        Returns ``True`` if the store happened.
        """
        with self._lock:
            if self._value != expected:
                return False
            self._value = value
            return True

    def __repr__(self) -> str:
        return f"AtomicCell({self.get()!r})"
