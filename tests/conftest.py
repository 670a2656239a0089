"""Shared pytest fixtures for DMX bridge tests."""

from __future__ import annotations

import threading
import time
from unittest.mock import patch

import pytest

from dmx_bridge import LinkSession
from dmx_bridge.protocol import LinkProtocol
from dmx_bridge.transport import SerialTransport


class FakeSerial:
    """Lightweight stand-in for ``serial.Serial``.

    Implements the subset of the pyserial API used by
    :class:`~dmx_bridge.transport.SerialTransport`: ``write``, ``flush``,
    ``read_until``, ``reset_input_buffer``, ``reset_output_buffer``,
    ``close``, ``is_open`` and ``rts``.

    Patch it in with ``side_effect=fake.configure`` so the constructor
    keyword arguments (baud, timeout, flow control) are recorded.

    Handshake replies are scripted in :attr:`replies`: when a written frame
    matches a key, the mapped reply is queued for reading.  By default the
    peer accepts ``Start``, any channel id, and ``Channel complete``.
    Steady-state lines are pushed with :meth:`feed`.

    ``read_until`` honours the configured timeout: it waits for a terminator
    and returns whatever partial data is buffered once the timeout expires.
    With ``timeout=None`` it returns immediately instead of blocking forever.
    """

    def __init__(self) -> None:
        self.is_open: bool = False
        self.rts: bool = False
        self.timeout: float | None = None
        self.settings: dict = {}
        self.written: list[bytes] = []
        self.replies: dict[bytes, bytes] = {
            b"Start;": b"Go start;",
            b"Channel complete;": b"Channel complete OK;",
        }
        self.accept_any_channel = True
        self.close_count = 0
        self.input_resets = 0
        self.output_resets = 0
        self._rx = b""
        self._read_error: BaseException | None = None
        self._cond = threading.Condition()

    # -- Helpers for tests --------------------------------------------------

    def configure(self, **kwargs) -> FakeSerial:
        """Stand-in for the ``serial.Serial(...)`` constructor."""
        self.settings = kwargs
        self.timeout = kwargs.get("timeout")
        self.is_open = True
        return self

    def feed(self, text: str) -> None:
        """Make *text* available for reading."""
        with self._cond:
            self._rx += text.encode("utf-8")
            self._cond.notify_all()

    def fail_reads(self, exc: BaseException) -> None:
        """Raise *exc* from the next read."""
        with self._cond:
            self._read_error = exc
            self._cond.notify_all()

    @property
    def written_lines(self) -> list[str]:
        return [w.decode("utf-8").rstrip(";") for w in self.written]

    # -- pyserial interface -------------------------------------------------

    def write(self, data: bytes) -> int:
        self.written.append(data)
        reply = self.replies.get(data)
        if reply is None and self.accept_any_channel and data[:-1].isdigit():
            reply = b"Channel OK;"
        if reply is not None:
            self.feed(reply.decode("utf-8"))
        return len(data)

    def flush(self) -> None:
        pass

    def read_until(self, expected: bytes = b"\n", size: int | None = None) -> bytes:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        with self._cond:
            while True:
                if self._read_error is not None:
                    exc, self._read_error = self._read_error, None
                    raise exc
                idx = self._rx.find(expected)
                if idx != -1:
                    end = idx + len(expected)
                    data, self._rx = self._rx[:end], self._rx[end:]
                    return data
                remaining = 0 if deadline is None else deadline - time.monotonic()
                if remaining <= 0:
                    data, self._rx = self._rx, b""
                    return data
                self._cond.wait(remaining)

    def reset_input_buffer(self) -> None:
        self.input_resets += 1
        with self._cond:
            self._rx = b""

    def reset_output_buffer(self) -> None:
        self.output_resets += 1

    def close(self) -> None:
        self.close_count += 1
        self.is_open = False


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll *predicate* until it is truthy or *timeout* expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    """``threading.Timer`` stand-in that only fires when told to."""

    def __init__(self, interval: float, function) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


class TimerRecorder:
    """Timer factory that keeps every :class:`FakeTimer` it builds."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_serial() -> FakeSerial:
    """Return a fresh ``FakeSerial`` instance."""
    return FakeSerial()


@pytest.fixture()
def patched_serial(fake_serial: FakeSerial):
    """Route ``serial.Serial(...)`` in the transport to ``fake_serial``."""
    with patch("dmx_bridge.transport.serial.Serial", side_effect=fake_serial.configure):
        yield fake_serial


@pytest.fixture()
def transport(patched_serial: FakeSerial) -> SerialTransport:
    """Return an open ``SerialTransport`` wired to a fake serial port."""
    tx = SerialTransport("/dev/fake")
    tx.open()
    return tx


@pytest.fixture()
def timed_transport(patched_serial: FakeSerial) -> SerialTransport:
    """Return an open ``SerialTransport`` with a short read timeout."""
    tx = SerialTransport("/dev/fake", timeout=0.02)
    tx.open()
    return tx


@pytest.fixture()
def protocol(transport: SerialTransport) -> LinkProtocol:
    """Return a ``LinkProtocol`` wired to a fake transport."""
    return LinkProtocol(transport)


@pytest.fixture()
def session(patched_serial: FakeSerial):
    """Return an unstarted ``LinkSession`` on a fake port; disposed afterwards."""
    s = LinkSession("/dev/fake", read_timeout=0.02)
    yield s
    s.dispose()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timers() -> TimerRecorder:
    return TimerRecorder()
