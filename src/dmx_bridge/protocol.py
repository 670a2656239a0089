"""
DMX bridge link protocol: handshake sequencing and update-frame parsing.

This module sits between the transport (raw serial I/O) and the session
(user-facing lifecycle).  It knows how to:

* drive the one-shot ``Start`` / channel-registration handshake,
* split and validate ``<channel>:<value>`` update lines,
* classify failures into the :mod:`exceptions` taxonomy.

It does **not** own the serial port; that belongs to
:class:`~dmx_bridge.transport.SerialTransport`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Container, Iterable
from dataclasses import dataclass

from .constants import (
    MAX_FIELD_VALUE,
    MIN_FIELD_VALUE,
    MSG_CHANNEL_OK,
    MSG_CHANNELS_COMPLETE,
    MSG_CHANNELS_COMPLETE_OK,
    MSG_START,
    MSG_START_OK,
    UPDATE_DELIMITER,
)
from .exceptions import (
    ChannelInvalidError,
    ChannelProtocolError,
    CommunicationError,
    MessageProtocolError,
    ProtocolError,
    StartProtocolError,
    TimeoutError,
)
from .transport import SerialTransport

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")

# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Frame:
    """One accepted steady-state update."""

    channel: int
    value: int


def parse_frame(line: str, registered: Container[int]) -> Frame:
    """Parse a raw update *line* into a :class:`Frame`.

    Fields are split on ``:``, trimmed, and empty fields dropped; exactly two
    signed 32-bit integer fields must remain.

    Raises:
        MessageProtocolError: Wrong field count, a non-integer field, or a
            field outside the 32-bit range.
        ChannelInvalidError: The channel is not in *registered*.
    """
    fields = [f.strip() for f in line.split(UPDATE_DELIMITER)]
    fields = [f for f in fields if f]
    if len(fields) != 2 or not all(_INTEGER.fullmatch(f) for f in fields):
        raise MessageProtocolError(f"Message comm protocol invalid! Line: {line!r}", line)

    channel, value = int(fields[0]), int(fields[1])
    if not all(MIN_FIELD_VALUE <= f <= MAX_FIELD_VALUE for f in (channel, value)):
        raise MessageProtocolError(f"Message comm protocol invalid! Line: {line!r}", line)
    if channel not in registered:
        raise ChannelInvalidError(
            f"Message channel invalid! Channel ID: {channel}, line: {line!r}", line, channel
        )
    return Frame(channel, value)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class LinkProtocol:
    """Drives the handshake and reads update frames over a transport.

    Args:
        transport: An open :class:`~dmx_bridge.transport.SerialTransport`.
    """

    def __init__(self, transport: SerialTransport) -> None:
        self._tx = transport

    # -- Handshake ----------------------------------------------------------

    def _exchange(self, message: str, expected: str, error: type[ProtocolError]) -> None:
        """Send *message* and raise *error* unless the reply is exactly *expected*."""
        try:
            self._tx.write_line(message)
            reply = self._tx.read_line()
        except (CommunicationError, TimeoutError) as exc:
            raise error(f"No valid reply to {message!r}: {exc}") from exc
        if reply != expected:
            raise error(f"Expected {expected!r} in reply to {message!r}, got {reply!r}")

    def handshake(self, channel_ids: Iterable[int]) -> None:
        """Register *channel_ids*, in order, with the peer.

        Stops at the first unexpected reply; nothing further is sent.

        Raises:
            StartProtocolError: ``Start`` was not answered with ``Go start``.
            ChannelProtocolError: A registration or the completion was rejected.
        """
        self._exchange(MSG_START, MSG_START_OK, StartProtocolError)
        for channel in channel_ids:
            self._exchange(str(channel), MSG_CHANNEL_OK, ChannelProtocolError)
        self._exchange(MSG_CHANNELS_COMPLETE, MSG_CHANNELS_COMPLETE_OK, ChannelProtocolError)
        logger.info("Handshake complete")

    # -- Steady state -------------------------------------------------------

    def read_frame(self, registered: Container[int]) -> Frame:
        """Block for the next line and parse it (see :func:`parse_frame`)."""
        return parse_frame(self._tx.read_line(), registered)
