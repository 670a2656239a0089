"""
Link session: lifecycle of one serial connection to the DMX receiver.

A session is started once.  :meth:`LinkSession.start` opens the port and
runs the handshake synchronously, then hands the link to a background
reader thread that parses updates, arbitrates, and dispatches events until
cancelled or until the link fails.

Use as a context manager for automatic disposal::

    with LinkSession("/dev/ttyUSB0", read_timeout=0.5) as session:
        session.on_winner_changed(lambda e: print("winner", e.channel))
        session.on_value_changed(lambda e: print("value", e.value))
        if session.start([1, 2, 3], on_error=report):
            session.wait()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, MutableMapping
from enum import Enum

from .arbitrator import ArbitrationResult, ChannelArbitrator, validate_channels
from .atomic import AtomicCell
from .constants import DEFAULT_PORT
from .events import EventDispatcher, Subscription, ValueChanged, WinnerChanged
from .exceptions import (
    CommunicationError,
    ConnectionError,
    ErrorKind,
    MessageError,
    ProtocolError,
    SessionDisposedError,
    SessionStateError,
    TimeoutError,
)
from .protocol import LinkProtocol
from .transport import SerialTransport

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[ErrorKind, str], None]


class SessionState(Enum):
    """Lifecycle states of a :class:`LinkSession`."""

    UNOPENED = "unopened"
    HANDSHAKING = "handshaking"
    RUNNING = "running"
    STOPPED = "stopped"
    DISPOSED = "disposed"


class LinkSession:
    """One handshake and one reader loop over a serial link.

    Args:
        port: Serial port path.
        transport: Pre-built transport (mainly for tests); overrides *port*
            and *read_timeout*.
        read_timeout: Per-read timeout in seconds.  ``None`` blocks on each
            read, so disposal waits for the next line to arrive.
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        *,
        transport: SerialTransport | None = None,
        read_timeout: float | None = None,
    ) -> None:
        self._tx = transport if transport is not None else SerialTransport(port, read_timeout)
        self.port = self._tx.port
        self._protocol = LinkProtocol(self._tx)
        self.events = EventDispatcher()

        self._state = AtomicCell(SessionState.UNOPENED)
        self._started = AtomicCell(False)
        self._disposed = AtomicCell(False)
        self._arbitrator: ChannelArbitrator | None = None
        self._worker: threading.Thread | None = None
        self._cancel: threading.Event | None = None
        self._on_error: ErrorCallback | None = None

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> LinkSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()

    # -- Subscriptions ------------------------------------------------------

    def on_winner_changed(self, callback: Callable[[WinnerChanged], None]) -> Subscription:
        return self.events.on_winner_changed(callback)

    def on_value_changed(self, callback: Callable[[ValueChanged], None]) -> Subscription:
        return self.events.on_value_changed(callback)

    # -- State --------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state.get()

    @property
    def is_running(self) -> bool:
        return self._state.get() is SessionState.RUNNING

    @property
    def channels(self) -> tuple[int, ...]:
        """Registered channels, empty before a successful handshake."""
        return self._arbitrator.channels if self._arbitrator else ()

    @property
    def result(self) -> ArbitrationResult | None:
        """Current winner and effective value, ``None`` before a successful start."""
        return self._arbitrator.result if self._arbitrator else None

    # -- Lifecycle ----------------------------------------------------------

    def start(
        self,
        channels: Iterable[int],
        on_error: ErrorCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """Open the link, register *channels*, and start the reader thread.

        Args:
            channels: Channel ids in registration order, or a mapping keyed
                by channel id.  A mutable mapping has its values reset to 0.
            on_error: Called with ``(kind, detail)`` for every reported
                error: synchronously for a failed start, on the reader thread
                for per-line and link errors while running.
            cancel_event: External cancellation signal; one is created if
                omitted.  :meth:`dispose` always sets it.

        Returns:
            ``True`` if the session is now running.

        Raises:
            SessionDisposedError: The session was disposed.
            SessionStateError: ``start`` was already called.
            ValidationError: *channels* is empty, or holds non-positive or
                duplicate ids.
        """
        if self._disposed.get():
            raise SessionDisposedError("Session has been disposed")
        channel_ids = validate_channels(channels)
        if not self._started.compare_and_set(False, True):
            raise SessionStateError("The serial port has already been opened")

        self._on_error = on_error
        self._state.set(SessionState.HANDSHAKING)
        try:
            self._tx.open()
            self._protocol.handshake(channel_ids)
        except (ConnectionError, ProtocolError) as exc:
            self._state.set(SessionState.STOPPED)
            self._report(exc.kind, str(exc))
            return False

        if isinstance(channels, MutableMapping):
            for channel in channel_ids:
                channels[channel] = 0
        self._arbitrator = ChannelArbitrator(channel_ids)
        self._cancel = cancel_event if cancel_event is not None else threading.Event()

        self._worker = threading.Thread(
            target=self._reader_loop,
            args=(self._arbitrator, self._cancel),
            name="dmx-bridge-reader",
            daemon=True,
        )
        self._state.set(SessionState.RUNNING)
        self._worker.start()
        logger.info("Session on %s running with channels %s", self.port, list(channel_ids))
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the reader thread ends.  Returns ``True`` if it has."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def dispose(self) -> None:
        """Stop the reader thread and release the port (safe to call multiple times).

        Waits for the reader thread to finish its in-flight read before the
        port is closed.  When called from a listener on the reader thread the
        wait is skipped; the loop exits after the current line.
        """
        if self._disposed.exchange(True):
            return

        if self._cancel is not None:
            self._cancel.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join()

        self._tx.close()
        self._state.set(SessionState.DISPOSED)
        logger.info("Session on %s disposed", self.port)

    # -- Internal -----------------------------------------------------------

    def _report(self, kind: ErrorKind | None, detail: str) -> None:
        kind = kind or ErrorKind.PORT_COMMUNICATION_ERROR
        logger.error("%s: %s", kind.name, detail)
        if self._on_error is None:
            return
        try:
            self._on_error(kind, detail)
        except Exception:
            logger.exception("Error callback failed for %s", kind.name)

    def _reader_loop(self, arbitrator: ChannelArbitrator, cancel: threading.Event) -> None:
        logger.info("Reader loop started on %s", self.port)
        try:
            while not cancel.is_set():
                try:
                    frame = self._protocol.read_frame(arbitrator)
                except TimeoutError:
                    continue
                except MessageError as exc:
                    self._report(exc.kind, str(exc))
                    continue
                self.events.dispatch(arbitrator.update(frame.channel, frame.value))
        except CommunicationError as exc:
            self._report(exc.kind, str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure in reader loop")
            self._report(ErrorKind.PORT_COMMUNICATION_ERROR, f"Unexpected error: {exc!r}")
        else:
            logger.info("Reader loop on %s cancelled", self.port)
        finally:
            self._state.compare_and_set(SessionState.RUNNING, SessionState.STOPPED)
