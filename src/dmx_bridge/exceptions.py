"""
Exception hierarchy for the DMX channel bridge.

All exceptions inherit from :class:`DmxBridgeError` so callers can catch
broadly (``except DmxBridgeError``) or narrowly (``except MessageError``).

Errors that map onto a reportable condition carry a class-level
:class:`ErrorKind` in ``kind``; that is what ``on_error`` callbacks receive.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Reportable error conditions of a link session."""

    # Communication errors
    CANNOT_OPEN_PORT = "cannot_open_port"
    PORT_COMMUNICATION_ERROR = "port_communication_error"

    # Protocol errors
    START_PROTOCOL_INVALID = "start_protocol_invalid"
    CHANNEL_PROTOCOL_INVALID = "channel_protocol_invalid"
    MESSAGE_PROTOCOL_INVALID = "message_protocol_invalid"

    # Channel errors
    CHANNEL_INVALID = "channel_invalid"

    @property
    def fatal(self) -> bool:
        """``True`` if this condition ends (or prevents) the running phase."""
        return self not in (ErrorKind.MESSAGE_PROTOCOL_INVALID, ErrorKind.CHANNEL_INVALID)


class DmxBridgeError(Exception):
    """Base exception for all DMX bridge errors."""

    kind: ErrorKind | None = None


class ConnectionError(DmxBridgeError):  # noqa: A001 – intentional shadow of builtin
    """Raised when the serial port cannot be opened."""

    kind = ErrorKind.CANNOT_OPEN_PORT


class CommunicationError(DmxBridgeError):
    """Raised when the serial link fails mid-stream or is not open."""

    kind = ErrorKind.PORT_COMMUNICATION_ERROR


class TimeoutError(DmxBridgeError):  # noqa: A001 – intentional shadow of builtin
    """Raised when a configured read timeout expires before a terminator arrives."""


class ProtocolError(DmxBridgeError):
    """The peer did not speak the expected handshake dialect."""


class StartProtocolError(ProtocolError):
    """The peer did not answer ``Start`` with ``Go start``."""

    kind = ErrorKind.START_PROTOCOL_INVALID


class ChannelProtocolError(ProtocolError):
    """The peer rejected a channel registration or its completion."""

    kind = ErrorKind.CHANNEL_PROTOCOL_INVALID


class MessageError(DmxBridgeError):
    """A single update line could not be applied.  Never fatal to a session."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


class MessageProtocolError(MessageError):
    """The line is not a ``<channel>:<value>`` pair of integers."""

    kind = ErrorKind.MESSAGE_PROTOCOL_INVALID


class ChannelInvalidError(MessageError):
    """The line references a channel that was not registered."""

    kind = ErrorKind.CHANNEL_INVALID

    def __init__(self, message: str, line: str, channel: int) -> None:
        super().__init__(message, line)
        self.channel = channel


class ValidationError(DmxBridgeError):
    """Raised when an argument or config value fails validation."""


class SessionStateError(DmxBridgeError):
    """Raised when a session operation is invoked in the wrong lifecycle state."""


class SessionDisposedError(SessionStateError):
    """Raised when a disposed session is used."""
