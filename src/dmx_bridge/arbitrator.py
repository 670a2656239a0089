"""
Channel arbitration: per-channel state, maximum selection, and
edge-triggered change detection.

Arbitration rules:

* The winner is the first registered channel holding the maximum value.
* When the maximum is 0 there is no winner (``None``) and the effective
  value is 0.
* ``WinnerChanged`` fires only for a non-zero maximum whose channel differs
  from the last announced winner. Going idle is never announced as a winner
  change; it clears the announced winner, so the next non-zero maximum is
  announced again.
* ``ValueChanged`` fires whenever the effective value differs from the last
  announced value.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .atomic import AtomicCell
from .events import Event, ValueChanged, WinnerChanged
from .exceptions import ChannelInvalidError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArbitrationResult:
    """Winner and effective value, published together."""

    winner: int | None
    value: int


IDLE = ArbitrationResult(winner=None, value=0)


def validate_channels(channel_ids: Iterable[int]) -> tuple[int, ...]:
    """Return *channel_ids* as a tuple, rejecting empty, non-positive or duplicate ids."""
    channels = tuple(channel_ids)
    if not channels:
        raise ValidationError("At least one channel must be registered")
    for channel in channels:
        if isinstance(channel, bool) or not isinstance(channel, int) or channel <= 0:
            raise ValidationError(f"Channel must be a positive integer, got {channel!r}")
    if len(set(channels)) != len(channels):
        raise ValidationError(f"Duplicate channel in {list(channels)}")
    return channels


class ChannelArbitrator:
    """Tracks channel values and decides which changes are worth announcing.

    The key set is fixed at construction (registration order is the tie
    break); every value starts at 0.  Only the reader thread calls
    :meth:`update`; other threads may read :attr:`result` at any time.

    Args:
        channel_ids: Registered channels in registration order.
    """

    def __init__(self, channel_ids: Iterable[int]) -> None:
        self._order = validate_channels(channel_ids)
        self._values: dict[int, int] = dict.fromkeys(self._order, 0)
        self._result: AtomicCell[ArbitrationResult] = AtomicCell(IDLE)
        self._last_winner: AtomicCell[int | None] = AtomicCell(None)
        self._last_value: AtomicCell[int] = AtomicCell(0)

    # -- State --------------------------------------------------------------

    @property
    def channels(self) -> tuple[int, ...]:
        return self._order

    def values(self) -> dict[int, int]:
        """Return a snapshot of the current channel values."""
        return dict(self._values)

    @property
    def result(self) -> ArbitrationResult:
        return self._result.get()

    @property
    def winner(self) -> int | None:
        return self._result.get().winner

    @property
    def value(self) -> int:
        return self._result.get().value

    def __contains__(self, channel: object) -> bool:
        return channel in self._values

    # -- Arbitration --------------------------------------------------------

    def _arbitrate(self) -> ArbitrationResult:
        winner = self._order[0]
        best = self._values[winner]
        for channel in self._order[1:]:
            if self._values[channel] > best:
                winner, best = channel, self._values[channel]
        if best == 0:
            return IDLE
        return ArbitrationResult(winner, best)

    def update(self, channel: int, value: int) -> list[Event]:
        """Apply one update and return the notifications it warrants.

        The returned list is empty, or holds a :class:`WinnerChanged` and/or a
        :class:`ValueChanged`, always in that order.

        Raises:
            ChannelInvalidError: *channel* is not registered.
        """
        if channel not in self._values:
            line = f"{channel}:{value}"
            raise ChannelInvalidError(
                f"Message channel invalid! Channel ID: {channel}, line: {line!r}", line, channel
            )

        self._values[channel] = value
        result = self._arbitrate()
        self._result.set(result)

        events: list[Event] = []
        if result.value == 0:
            # Idle: forget the announced winner without announcing the change
            self._last_winner.set(None)
        elif self._last_winner.exchange(result.winner) != result.winner:
            logger.debug("Winner changed to channel %s", result.winner)
            events.append(WinnerChanged(result.winner))
        if self._last_value.exchange(result.value) != result.value:
            events.append(ValueChanged(result.value))
        return events
