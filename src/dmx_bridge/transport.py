"""
Serial transport layer for the DMX channel bridge.

Handles the physical serial connection, ``;`` framing, and buffer hygiene.
Knows nothing about what the lines mean; that's :mod:`protocol`'s job.

Typical usage (via :class:`~dmx_bridge.session.LinkSession`)::

    transport = SerialTransport("/dev/ttyUSB0")
    transport.open()
    transport.write_line("Start")
    reply = transport.read_line()
    transport.close()
"""

from __future__ import annotations

import logging

import serial
from serial.tools import list_ports

from .constants import BAUDRATE, DEFAULT_PORT, ENCODING, TERMINATOR
from .exceptions import CommunicationError, ConnectionError, TimeoutError

logger = logging.getLogger(__name__)


def available_ports() -> list[str]:
    """Return the device paths of the serial ports present on this machine."""
    return sorted(p.device for p in list_ports.comports())


class SerialTransport:
    """Manages the serial link to the DMX receiver.

    Line settings are fixed: 9600 baud, 8N1, RTS asserted, no software or
    hardware flow control.

    Args:
        port: Serial port path (e.g. ``/dev/ttyUSB0``).
        timeout: Per-read timeout in seconds.  ``None`` (the default) makes
            :meth:`read_line` block until a terminator arrives.
    """

    def __init__(self, port: str = DEFAULT_PORT, timeout: float | None = None) -> None:
        self.port = port
        self.timeout = timeout
        self._ser: serial.Serial | None = None
        self._partial = b""

    # -- Lifecycle ----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port and discard anything buffered before now.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        logger.info("Opening serial port %s at %d baud", self.port, BAUDRATE)
        try:
            ser = serial.Serial(
                port=self.port,
                baudrate=BAUDRATE,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                timeout=self.timeout,
            )
            ser.rts = True
            ser.reset_output_buffer()
            ser.reset_input_buffer()
        except (serial.SerialException, OSError) as exc:
            raise ConnectionError(f"Cannot open {self.port}: {exc}") from exc

        self._ser = ser
        self._partial = b""

    def close(self) -> None:
        """Close the serial port (safe to call multiple times)."""
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.info("Serial port %s closed", self.port)

    @property
    def is_open(self) -> bool:
        """Return ``True`` if the serial port is currently open."""
        return self._ser is not None and self._ser.is_open

    # -- I/O ----------------------------------------------------------------

    def write_line(self, payload: str) -> None:
        """Write *payload* followed by the terminator in a single write.

        Raises:
            CommunicationError: If the port is not open or the write fails.
        """
        ser = self._require_open()
        logger.debug("TX: %s", payload)
        try:
            ser.write(payload.encode(ENCODING) + TERMINATOR)
            ser.flush()
        except (serial.SerialException, OSError) as exc:
            raise CommunicationError(f"Write to {self.port} failed: {exc}") from exc

    def read_line(self) -> str:
        """Read up to the next terminator and return the trimmed payload.

        With a timeout configured, bytes read before the timeout expired are
        kept and prefixed to the next read, so no partial line is lost.

        Raises:
            TimeoutError: If the configured timeout expired mid-line.
            CommunicationError: If the port is not open, the read fails, or
                the link ended without a terminator while blocking.
        """
        ser = self._require_open()
        try:
            chunk = ser.read_until(TERMINATOR)
        except (serial.SerialException, OSError) as exc:
            raise CommunicationError(f"Read from {self.port} failed: {exc}") from exc

        data = self._partial + chunk
        if not data.endswith(TERMINATOR):
            if self.timeout is None:
                raise CommunicationError(f"Link on {self.port} ended mid-line: {data!r}")
            self._partial = data
            raise TimeoutError(f"No complete line from {self.port} within {self.timeout}s")

        self._partial = b""
        line = data[: -len(TERMINATOR)].decode(ENCODING, errors="replace").strip()
        logger.debug("RX: %s", line)
        return line

    # -- Internal -----------------------------------------------------------

    def _require_open(self) -> serial.Serial:
        """Return the open serial port or raise."""
        if not self.is_open:
            raise CommunicationError("Serial port not open; call open() first.")
        assert self._ser is not None  # for type-checker
        return self._ser
