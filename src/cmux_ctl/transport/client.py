"""Synchronous client for CLI → application communication over the control socket."""

import enum
import logging
import os
import selectors
import socket
import time
from types import TracebackType
from typing import Any

from cmux_ctl.errors import ConnectFailedError, ProtocolError, RemoteError, ResponseTimeoutError, SocketNotFoundError, SocketPermissionError
from cmux_ctl.transport.protocol import ERROR_PREFIX, Envelope, check_plain_response, decode_envelope, encode_envelope

logger = logging.getLogger(__name__)

# Read buffer size
_BUFSIZE = 8192
# Poll slice for the read loop, seconds
_POLL_SLICE = 0.1

# Server reply when it predates socket authentication
_AUTH_UNSUPPORTED = "Unknown command 'auth'"


class _ReadState(enum.Enum):
    """Progress of a single response read."""

    AWAITING_DATA = enum.auto()  # no terminator seen yet
    HAVE_TERMINATOR = enum.auto()  # newline seen, draining until one idle slice passes
    QUIESCENT = enum.auto()  # done


class SocketClient:
    """One connection to the control socket, used for a bounded sequence of exchanges.

    Not shared across threads. Use as a context manager so the socket is closed on every exit path.
    """

    def __init__(self, path: str | os.PathLike[str], timeout: float = 15.0) -> None:
        """Initialize client.

        Args:
            path: Control socket path.
            timeout: Hard deadline per request in seconds.

        """
        self._path = os.fspath(path)
        self._timeout = timeout
        self._sock: socket.socket | None = None

    @property
    def path(self) -> str:
        """Control socket path."""
        return self._path

    @property
    def is_connected(self) -> bool:
        """Check whether the socket is open."""
        return self._sock is not None

    def connect(self) -> None:
        """Verify socket ownership and connect.

        Raises:
            SocketNotFoundError: Path does not exist.
            SocketPermissionError: Socket is owned by another user.
            ConnectFailedError: Socket cannot be created or connected.

        """
        if self._sock is not None:
            return

        # Refuse sockets planted by another user at a well-known path
        try:
            st = os.stat(self._path)
        except FileNotFoundError:
            raise SocketNotFoundError(self._path) from None
        except OSError as e:
            raise ConnectFailedError(f"Failed to stat socket at {self._path}: {e.strerror}") from None
        if st.st_uid != os.geteuid():
            raise SocketPermissionError(self._path)

        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as e:
            raise ConnectFailedError(f"Failed to create socket: {e.strerror}") from None
        try:
            sock.connect(self._path)
        except OSError as e:
            sock.close()
            raise ConnectFailedError(f"Failed to connect to socket at {self._path}: {e.strerror}") from None
        self._sock = sock
        logger.debug("Connected to %s", self._path)

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "SocketClient":
        self.connect()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None) -> None:
        self.close()

    # --- Framing ---

    def send_line(self, command: str) -> str:
        """Send one command line and return the response minus a single trailing newline.

        Some responses are flushed as several writes ending in one terminator, so the
        read keeps draining until a poll slice passes with no data after a newline was seen.

        Raises:
            ConnectFailedError: Not connected or the write fails.
            ResponseTimeoutError: No newline arrived before the deadline.
            ProtocolError: Response is not valid UTF-8.

        """
        sock = self._require_socket()
        try:
            sock.sendall(command.encode() + b"\n")
        except OSError as e:
            raise ConnectFailedError(f"Failed to write to socket: {e.strerror}") from None

        data = bytearray()
        state = _ReadState.AWAITING_DATA
        deadline = time.monotonic() + self._timeout

        with selectors.DefaultSelector() as selector:
            selector.register(sock, selectors.EVENT_READ)
            while state is not _ReadState.QUIESCENT:
                if not selector.select(_POLL_SLICE):
                    if state is _ReadState.HAVE_TERMINATOR:
                        state = _ReadState.QUIESCENT
                    elif time.monotonic() >= deadline:
                        raise ResponseTimeoutError(self._timeout)
                    continue

                try:
                    chunk = sock.recv(_BUFSIZE)
                except OSError as e:
                    raise ConnectFailedError(f"Socket read error: {e.strerror}") from None
                if not chunk:
                    # Peer closed the connection
                    break
                data += chunk
                if b"\n" in chunk:
                    state = _ReadState.HAVE_TERMINATOR

        try:
            response = data.decode()
        except UnicodeDecodeError:
            raise ProtocolError("Invalid UTF-8 response") from None
        return response.removesuffix("\n")

    # --- Codecs ---

    def send_command(self, command: str) -> str:
        """Send a v1 plaintext command.

        Raises:
            RemoteError: Server answered with an ``ERROR:`` line.

        """
        return check_plain_response(self.send_line(command))

    def send_envelope(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a v2 JSON request and return its result map.

        Raises:
            RemoteError: Plain ``ERROR:`` line or a structured failure.
            ProtocolError: Undecodable response.

        """
        envelope = Envelope(method=method, params=params or {})
        logger.debug("v2 request %s %s", envelope.id, method)
        return decode_envelope(self.send_line(encode_envelope(envelope)))

    def authenticate(self, password: str | None) -> None:
        """Authenticate the connection before application commands.

        A server that does not implement ``auth`` needs no authentication.

        Raises:
            RemoteError: Server rejected the password.

        """
        if password is None:
            return
        response = self.send_line(f"auth {password}")
        if response.startswith(ERROR_PREFIX):
            if _AUTH_UNSUPPORTED in response:
                logger.debug("Server does not support auth, continuing unauthenticated")
                return
            raise RemoteError(response)
        logger.debug("Authenticated")

    def _require_socket(self) -> socket.socket:
        """Return the open socket or raise if not connected."""
        if self._sock is None:
            raise ConnectFailedError("Not connected")
        return self._sock
