"""Shared fixtures: an in-process fake Faktory server speaking the wire protocol."""

import hashlib
import json
import socketserver
import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any

import pytest

from faktory_client import FaktoryClient


class Action(Enum):
    """Scripted misbehavior for a command instead of a reply."""

    HANG = "hang"  # read the command, never answer
    DROP = "drop"  # close the connection


def expected_pwdhash(password: str, salt: str, iterations: int) -> str:
    """Reference pwdhash computed with hashlib."""
    data = (password + salt).encode()
    for _ in range(iterations):
        data = hashlib.sha256(data).digest()
    return data.hex()


class _Handler(socketserver.StreamRequestHandler):
    server: "_TCPServer"

    def handle(self) -> None:
        fake = self.server.fake
        self.wfile.write(fake.greeting_line())

        hello = self.rfile.readline().rstrip(b"\r\n").decode()
        verb, _, arg = hello.partition(" ")
        if verb != "HELLO":
            fake.record_error(hello)
            return
        payload = json.loads(arg)
        fake.record("HELLO", payload)
        override = fake.next_override("HELLO")
        if override is not None:
            self._apply(override)
            return
        if fake.password is not None and payload.get("pwdhash") != expected_pwdhash(
            fake.password, fake.salt, fake.iterations
        ):
            self.wfile.write(b"-ERR Invalid password\r\n")
            return
        self.wfile.write(b"+OK\r\n")

        while True:
            line = self.rfile.readline()
            if not line:
                return
            if not line.endswith(b"\r\n"):
                fake.record_error(line.decode(errors="replace"))
                return
            verb, _, arg = line.rstrip(b"\r\n").decode().partition(" ")
            override = fake.next_override(verb)
            if override is not None:
                fake.record(verb, arg)
                if not self._apply(override):
                    return
                continue
            reply = fake.dispatch(verb, arg)
            self.wfile.write(reply)

    def _apply(self, override: bytes | Action) -> bool:
        """Send a scripted reply. Return False when the connection must be dropped."""
        if override is Action.DROP:
            return False
        if override is not Action.HANG:
            self.wfile.write(override)
        return True


class _TCPServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True
    fake: "FakeFaktoryServer"


class FakeFaktoryServer:
    """Minimal Faktory server: one in-memory queue per name, scripted overrides per verb."""

    HANG = Action.HANG
    DROP = Action.DROP

    def __init__(self, *, password: str | None = None, salt: str = "", iterations: int = 0) -> None:
        self.password = password
        self.salt = salt
        self.iterations = iterations
        self.greeting: bytes | None = None  # raw greeting override
        self.info: bytes | None = b'{"server":{"faktory_version":"1.9.0"}}'
        self.queues: dict[str, deque[str]] = defaultdict(deque)
        self.commands: list[tuple[str, object]] = []
        self.errors: list[str] = []
        self._overrides: dict[str, deque[bytes | Action]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._server = _TCPServer(("127.0.0.1", 0), _Handler)
        self._server.fake = self
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def host(self) -> str:
        return "127.0.0.1"

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()

    # --- Scripting ---

    def script(self, verb: str, *replies: bytes | Action) -> None:
        """Answer the next commands of ``verb`` with the given raw replies or actions."""
        with self._lock:
            self._overrides[verb].extend(replies)

    def next_override(self, verb: str) -> bytes | Action | None:
        with self._lock:
            pending = self._overrides[verb]
            return pending.popleft() if pending else None

    # --- Recording ---

    def record(self, verb: str, arg: object) -> None:
        with self._lock:
            self.commands.append((verb, arg))

    def record_error(self, line: str) -> None:
        with self._lock:
            self.errors.append(line)

    def received(self, verb: str) -> list[object]:
        """Arguments of every received command with this verb, in order."""
        with self._lock:
            return [arg for v, arg in self.commands if v == verb]

    def wait_for(self, verb: str, count: int = 1, timeout: float = 5.0) -> bool:
        """Poll until at least ``count`` commands of ``verb`` arrived."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if len(self.received(verb)) >= count:
                return True
            time.sleep(0.01)
        return False

    # --- Protocol ---

    def greeting_line(self) -> bytes:
        if self.greeting is not None:
            return self.greeting
        hi: dict[str, object] = {"v": 2}
        if self.password is not None:
            hi["s"] = self.salt
            hi["i"] = self.iterations
        return b"+HI " + json.dumps(hi, separators=(",", ":")).encode() + b"\r\n"

    def dispatch(self, verb: str, arg: str) -> bytes:
        match verb:
            case "PUSH":
                try:
                    job = json.loads(arg)
                except json.JSONDecodeError:
                    self.record_error(arg)
                    return b"-ERR Invalid job\r\n"
                self.record(verb, job)
                with self._lock:
                    self.queues[job["queue"]].append(arg)
                return b"+OK\r\n"
            case "FETCH":
                self.record(verb, arg)
                with self._lock:
                    pending = self.queues[arg or "default"]
                    data = pending.popleft().encode() if pending else None
                return _bulk(data)
            case "ACK" | "FAIL" | "BEAT":
                try:
                    payload = json.loads(arg)
                except json.JSONDecodeError:
                    self.record_error(arg)
                    return b"-ERR Invalid payload\r\n"
                self.record(verb, payload)
                return b"+OK\r\n"
            case "INFO":
                self.record(verb, arg)
                return _bulk(self.info)
            case _:
                self.record_error(f"{verb} {arg}")
                return b"-ERR Unknown command\r\n"


def _bulk(data: bytes | None) -> bytes:
    if data is None:
        return b"$-1\r\n"
    return f"${len(data)}\r\n".encode() + data + b"\r\n"


@pytest.fixture
def make_server() -> Iterator[Callable[..., FakeFaktoryServer]]:
    """Factory for running fake servers, e.g. with a password challenge."""
    started: list[FakeFaktoryServer] = []

    def factory(**kwargs: Any) -> FakeFaktoryServer:
        srv = FakeFaktoryServer(**kwargs)
        srv.start()
        started.append(srv)
        return srv

    yield factory
    for srv in started:
        srv.stop()


@pytest.fixture
def server(make_server: Callable[..., FakeFaktoryServer]) -> FakeFaktoryServer:
    """Running fake server without authentication."""
    return make_server()


@pytest.fixture
def client(server: FakeFaktoryServer) -> Iterator[FaktoryClient]:
    """One-shot client connected to the fake server."""
    c = FaktoryClient()
    c.connect(server.host, server.port, oneshot=True, timeout=5)
    yield c
    c.close()
