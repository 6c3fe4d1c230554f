"""Shared fixtures: a threaded fake control socket and a clean environment."""

import json
import shutil
import socket
import tempfile
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

# A reply is a list of chunks written in order; a chunk is raw bytes or (delay_seconds, bytes)
Chunk = bytes | tuple[float, bytes]
Handler = Callable[[str], list[Chunk] | None]

ENV_VARS = (
    "CMUX_SOCKET_PATH",
    "CMUX_SOCKET_PASSWORD",
    "CMUXTERM_CLI_RESPONSE_TIMEOUT_SEC",
    "CMUX_CLAUDE_HOOK_STATE_PATH",
    "CMUX_CTL_LOG_LEVEL",
    "CMUX_WORKSPACE_ID",
    "CMUX_SURFACE_ID",
    "CMUX_TAB_ID",
)


@dataclass(frozen=True)
class V2Error:
    """Structured v2 failure returned by the fake server."""

    code: str
    message: str


@dataclass
class FakeSocketServer:
    """Unix-socket server answering each request line through a handler, one connection at a time."""

    path: Path
    handler: Handler
    lines: list[str] = field(default_factory=list)
    connections: int = 0
    _listener: socket.socket | None = None
    _thread: threading.Thread | None = None
    _stopped: threading.Event = field(default_factory=threading.Event)

    def start(self) -> None:
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        listener.bind(str(self.path))
        listener.listen(8)
        listener.settimeout(0.05)
        self._listener = listener
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
        if self._listener is not None:
            self._listener.close()

    @property
    def requests(self) -> list[tuple[str, dict[str, Any]]]:
        """(method, params) of every v2 request received."""
        result = []
        for line in self.lines:
            if line.startswith("{"):
                obj = json.loads(line)
                result.append((obj["method"], obj["params"]))
        return result

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]

    def _serve(self) -> None:
        assert self._listener is not None
        while not self._stopped.is_set():
            try:
                conn, _ = self._listener.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            self.connections += 1
            with conn:
                self._handle(conn)

    def _handle(self, conn: socket.socket) -> None:
        conn.settimeout(0.05)
        buffer = b""
        while not self._stopped.is_set():
            try:
                chunk = conn.recv(4096)
            except TimeoutError:
                continue
            except OSError:
                return
            if not chunk:
                return
            buffer += chunk
            while b"\n" in buffer:
                raw, buffer = buffer.split(b"\n", 1)
                line = raw.decode()
                self.lines.append(line)
                for item in self.handler(line) or []:
                    delay, data = item if isinstance(item, tuple) else (0.0, item)
                    if delay:
                        time.sleep(delay)
                    try:
                        conn.sendall(data)
                    except OSError:
                        return


def routing_handler(v2: dict[str, Any] | None = None, v1: dict[str, str] | None = None) -> Handler:
    """Build a handler answering v2 methods and exact v1 lines from lookup tables.

    v2 values are a result dict, a V2Error, or a callable taking params and returning either.
    """
    v2_routes = v2 or {}
    v1_routes = v1 or {}

    def handle(line: str) -> list[Chunk]:
        if not line.startswith("{"):
            reply = v1_routes.get(line, f"ERROR: Unknown command '{line.split(' ', 1)[0]}'")
            return [reply.encode() + b"\n"]
        request = json.loads(line)
        route = v2_routes.get(request["method"], V2Error("method_not_found", f"Unknown method {request['method']}"))
        result = route(request["params"]) if callable(route) else route
        if isinstance(result, V2Error):
            response: dict[str, Any] = {"id": request["id"], "ok": False, "error": {"code": result.code, "message": result.message}}
        else:
            response = {"id": request["id"], "ok": True, "result": result}
        return [json.dumps(response).encode() + b"\n"]

    return handle


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from the caller's cmux environment and credential store."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("cmux_ctl.transport.credentials.keyring.get_password", lambda service, account: None)


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    """Short temporary directory; Unix socket paths are limited to about 100 bytes."""
    path = Path(tempfile.mkdtemp(prefix="cmx", dir="/tmp"))  # noqa: S108
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def serve(socket_dir: Path) -> Iterator[Callable[[Handler], FakeSocketServer]]:
    """Start fake servers on demand; all are stopped at teardown."""
    servers: list[FakeSocketServer] = []

    def start(handler: Handler) -> FakeSocketServer:
        server = FakeSocketServer(path=socket_dir / f"s{len(servers)}.sock", handler=handler)
        server.start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()
