"""Shared runtime constants for the DMX channel bridge.

This is the canonical source of truth for wire framing, handshake literals
and runtime defaults.  Other modules should import from here rather than
defining their own copies.
"""

# ---------------------------------------------------------------------------
# Wire framing
# ---------------------------------------------------------------------------

TERMINATOR = b";"
ENCODING = "utf-8"
UPDATE_DELIMITER = ":"

# ---------------------------------------------------------------------------
# Handshake literals (exact, case-sensitive)
# ---------------------------------------------------------------------------

MSG_START = "Start"
MSG_START_OK = "Go start"
MSG_CHANNEL_OK = "Channel OK"
MSG_CHANNELS_COMPLETE = "Channel complete"
MSG_CHANNELS_COMPLETE_OK = "Channel complete OK"

# ---------------------------------------------------------------------------
# Serial link parameters (deployment constants)
# ---------------------------------------------------------------------------

BAUDRATE = 9600

# ---------------------------------------------------------------------------
# Runtime defaults
# ---------------------------------------------------------------------------

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_READ_TIMEOUT = 0.5  # seconds; bounds how long dispose() waits on a read
PROTECTION_WINDOW_MS = 100  # minimum spacing between two output switches

# ---------------------------------------------------------------------------
# Update field limits (signed 32-bit)
# ---------------------------------------------------------------------------

MIN_FIELD_VALUE = -(2**31)
MAX_FIELD_VALUE = 2**31 - 1
