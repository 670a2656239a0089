"""DMX channel bridge: serial link handshake, channel arbitration and flood control."""

from .arbitrator import ArbitrationResult, ChannelArbitrator
from .config import BridgeConfig, load_config
from .events import EventDispatcher, Subscription, ValueChanged, WinnerChanged
from .exceptions import (
    ChannelInvalidError,
    ChannelProtocolError,
    CommunicationError,
    ConnectionError,
    DmxBridgeError,
    ErrorKind,
    MessageError,
    MessageProtocolError,
    ProtocolError,
    SessionDisposedError,
    SessionStateError,
    StartProtocolError,
    TimeoutError,
    ValidationError,
)
from .governor import FloodGovernor
from .protocol import Frame, LinkProtocol, parse_frame
from .session import LinkSession, SessionState

__all__ = [
    "ArbitrationResult",
    "BridgeConfig",
    "ChannelArbitrator",
    "ChannelInvalidError",
    "ChannelProtocolError",
    "CommunicationError",
    "ConnectionError",
    "DmxBridgeError",
    "ErrorKind",
    "EventDispatcher",
    "FloodGovernor",
    "Frame",
    "LinkProtocol",
    "LinkSession",
    "MessageError",
    "MessageProtocolError",
    "ProtocolError",
    "SessionDisposedError",
    "SessionState",
    "SessionStateError",
    "StartProtocolError",
    "Subscription",
    "TimeoutError",
    "ValidationError",
    "ValueChanged",
    "WinnerChanged",
    "load_config",
    "parse_frame",
]
__version__ = "0.1.0"
