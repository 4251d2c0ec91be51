"""Synchronous Faktory client: handshake, job commands, and heartbeat lifecycle."""

import json
import logging
import threading
from collections.abc import Callable, Sequence
from types import TracebackType
from typing import Any

from faktory_client.auth import hash_password
from faktory_client.client.connection import Connection
from faktory_client.client.heartbeat import DEFAULT_INTERVAL, Heartbeat, WorkerState, beat_state
from faktory_client.config import Config
from faktory_client.errors import AuthenticationError, FaktoryError, ProtocolError, ServerError, TransportError
from faktory_client.job import DEFAULT_QUEUE, DEFAULT_RESERVE_FOR, Job
from faktory_client.process import JID_LENGTH, PROTOCOL_VERSION, WID_LENGTH, random_id, rss_kb, worker_payload
from faktory_client.protocol import Reply, ReplyKind, encode_command, expect_bulk, expect_ok

logger = logging.getLogger(__name__)

StateCallback = Callable[[WorkerState], None]

# Upper bound on waiting for the heartbeat thread during close
_HEARTBEAT_JOIN_TIMEOUT = 5.0

_STATE_ORDER = (WorkerState.NEW, WorkerState.RUNNING, WorkerState.QUIET, WorkerState.TERMINATE, WorkerState.CLOSED)


class FaktoryClient:
    """Client for one Faktory connection.

    Foreground calls and the background heartbeat share one socket; every exchange goes through
    the connection guard, so at most one command is in flight at any time.

    Example:
        with FaktoryClient() as client:
            client.connect("localhost", 7419)
            jid = client.publish("echo", {"text": "hi"})
            job = client.fetch()
            client.ack(job.jid)

    """

    def __init__(
        self,
        *,
        labels: Sequence[str] = ("python",),
        heartbeat_interval: float = DEFAULT_INTERVAL,
        quote_fail_message: bool = True,
        on_state_change: StateCallback | None = None,
    ) -> None:
        """Initialize a disconnected client with a fresh worker id.

        Args:
            labels: Worker labels sent in HELLO.
            heartbeat_interval: Seconds between BEAT commands.
            quote_fail_message: JSON-quote the FAIL message; when False it is embedded verbatim.
            on_state_change: Called with the new state on every transition, possibly from the heartbeat thread.

        """
        self._wid = random_id(WID_LENGTH)
        self._labels = list(labels)
        self._heartbeat_interval = heartbeat_interval
        self._quote_fail_message = quote_fail_message
        self._on_state_change = on_state_change

        self._conn: Connection | None = None
        self._heartbeat: Heartbeat | None = None
        self._state = WorkerState.NEW
        self._state_lock = threading.Lock()
        self._closed = threading.Event()
        self._last_error: FaktoryError | None = None

    @staticmethod
    def from_config(cfg: Config, *, on_state_change: StateCallback | None = None) -> "FaktoryClient":
        """Build a client from configuration (connection settings are passed to ``connect_config``)."""
        return FaktoryClient(
            labels=cfg.labels,
            heartbeat_interval=cfg.heartbeat_interval,
            quote_fail_message=cfg.quote_fail_message,
            on_state_change=on_state_change,
        )

    # --- State ---

    @property
    def wid(self) -> str:
        """Worker id, fixed for the lifetime of this client."""
        return self._wid

    @property
    def state(self) -> WorkerState:
        """Current lifecycle state."""
        return self._state

    @property
    def last_error(self) -> FaktoryError | None:
        """Error that closed the client (heartbeat failure or transport error), if any."""
        return self._last_error

    @property
    def is_connected(self) -> bool:
        """Check if the handshake completed and the client is not closed."""
        conn = self._conn
        return conn is not None and conn.is_open

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the client is closed, by the caller or by the heartbeat. Return True if closed."""
        return self._closed.wait(timeout)

    # --- Handshake ---

    def connect(
        self, host: str, port: int, *, oneshot: bool = False, password: str | None = None, timeout: float | None = None
    ) -> None:
        """Connect, authenticate, and (unless oneshot) start the heartbeat.

        On failure the socket is closed and the client stays disconnected, so connect may be retried,
        for example with a different password.

        Args:
            host: Server host.
            port: Server port.
            oneshot: Skip the heartbeat, for short-lived connections.
            password: Server password, required if the server sends a challenge.
            timeout: Socket timeout in seconds for every read and write; None blocks indefinitely.

        Raises:
            FaktoryError: Client is already connected or closed.
            TransportError: Cannot connect, or the connection dropped.
            AuthenticationError: Password missing or rejected.
            ProtocolError: Unexpected greeting or HELLO reply.

        """
        if self._state is not WorkerState.NEW or self._conn is not None:
            raise FaktoryError(f"Cannot connect a client in state '{self._state}'.")

        conn = Connection.open(host, port, timeout)
        try:
            self._handshake(conn, password)
        except BaseException:
            conn.close()
            raise

        self._conn = conn
        self._set_state(WorkerState.RUNNING)
        logger.info("Worker %s registered with %s:%d", self._wid, host, port)

        if not oneshot:
            self._heartbeat = Heartbeat(self._beat, self._heartbeat_interval)
            self._heartbeat.start()

    def connect_config(self, cfg: Config, *, oneshot: bool = False) -> None:
        """Connect using host, port, password, and timeout from configuration."""
        self.connect(cfg.host, cfg.port, oneshot=oneshot, password=cfg.password, timeout=cfg.timeout)

    def _handshake(self, conn: Connection, password: str | None) -> None:
        """Read the greeting, answer the challenge if any, and send HELLO."""
        greeting = _parse_greeting(conn.exchange(None))
        payload = worker_payload(self._wid, self._labels)

        if password is not None:
            salt = str(greeting.get("s", ""))
            iterations = greeting.get("i", 0)
            if not isinstance(iterations, int) or iterations < 0:
                raise ProtocolError(f"Invalid challenge iteration count: {iterations!r}", raw=json.dumps(greeting))
            payload["pwdhash"] = hash_password(password, salt, iterations)
        elif "s" in greeting:
            raise AuthenticationError("Server requires a password.")

        try:
            reply = conn.exchange(encode_command("HELLO", payload))
        except ServerError as e:
            if password is not None:
                raise AuthenticationError(f"Authentication rejected: {e}", raw=e.raw) from e
            raise
        expect_ok(reply)

    # --- Commands ---

    def publish(
        self, jobtype: str, payload: Any, *, queue: str = DEFAULT_QUEUE, reserve_for: int = DEFAULT_RESERVE_FOR
    ) -> str:
        """Push a job with ``payload`` as its single argument and return its job id."""
        job = Job(jid=random_id(JID_LENGTH), jobtype=jobtype, args=[payload], queue=queue, reserve_for=reserve_for)
        expect_ok(self._exchange("PUSH", job.to_dict()))
        return job.jid

    def fetch(self, *, queue: str = DEFAULT_QUEUE) -> Job | None:
        """Fetch the next job from a queue, or None if the queue is empty.

        Raises:
            ProtocolError: Reply is not a bulk job document.

        """
        data = expect_bulk(self._exchange("FETCH", queue))
        if data is None:
            return None
        try:
            return Job.from_dict(json.loads(data))
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed job payload: {e}", raw=data.decode(errors="replace")) from e

    def ack(self, jid: str) -> None:
        """Acknowledge successful completion of a job."""
        expect_ok(self._exchange("ACK", {"jid": jid}))

    def fail(
        self, jid: str, *, errtype: str = "RuntimeError", message: str = "Unspecified", backtrace: Sequence[str] = ()
    ) -> None:
        """Report a job as failed, with an error type, message, and backtrace lines."""
        if self._quote_fail_message:
            body = json.dumps(
                {"jid": jid, "errtype": errtype, "message": message, "backtrace": list(backtrace)}, separators=(",", ":")
            )
        else:
            body = (
                f'{{"jid":{json.dumps(jid)},"errtype":{json.dumps(errtype)},'
                f'"message":{message},"backtrace":{json.dumps(list(backtrace))}}}'
            )
        expect_ok(self._exchange("FAIL", body))

    def info(self) -> str:
        """Return the server's status document as raw text, or an empty string if none.

        Raises:
            ProtocolError: Document is not valid UTF-8.

        """
        data = expect_bulk(self._exchange("INFO"))
        if data is None:
            return ""
        try:
            return data.decode()
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Malformed info document: {e}", raw=data.decode(errors="replace")) from e

    def _exchange(self, verb: str, payload: object = None) -> Reply:
        """Send one command and read its reply through the connection guard.

        A transport failure closes the client and is kept in ``last_error``.
        """
        conn = self._conn
        if conn is None:
            raise TransportError("Client is not connected.")
        logger.debug("Sending %s", verb)
        try:
            return conn.exchange(encode_command(verb, payload))
        except TransportError as e:
            if self._state is not WorkerState.CLOSED:
                logger.warning("%s failed, closing connection: %s", verb, e)
                self._close(e)
            raise

    # --- Heartbeat ---

    def _beat(self) -> None:
        """One heartbeat tick. Never raises: failures close the client and are kept in ``last_error``."""
        conn = self._conn
        if conn is None:
            return
        try:
            reply = conn.exchange(encode_command("BEAT", {"wid": self._wid, "rss_kb": rss_kb()}))
            state = beat_state(reply)
        except FaktoryError as e:
            if self._state is WorkerState.CLOSED:
                return
            logger.exception("Heartbeat failed, closing connection")
            self._close(e)
            return
        self._set_state(state)

    # --- Shutdown ---

    def close(self) -> None:
        """Stop the heartbeat, then close the socket. Idempotent."""
        self._close(None)

    def __enter__(self) -> "FaktoryClient":
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.close()

    def _close(self, error: FaktoryError | None) -> None:
        with self._state_lock:
            if self._state is WorkerState.CLOSED:
                return
            self._state = WorkerState.CLOSED
            if error is not None:
                self._last_error = error

        heartbeat, conn = self._heartbeat, self._conn
        self._heartbeat = None
        self._conn = None
        # Heartbeat first so no new tick starts, then the socket so a blocked read errors out
        if heartbeat is not None:
            heartbeat.cancel()
        if conn is not None:
            conn.close()
        if heartbeat is not None:
            heartbeat.join(_HEARTBEAT_JOIN_TIMEOUT)

        logger.info("Worker %s closed", self._wid)
        self._notify(WorkerState.CLOSED)
        self._closed.set()

    def _set_state(self, state: WorkerState) -> None:
        """Advance the state; server directives are sticky (running -> quiet -> terminate)."""
        with self._state_lock:
            if _STATE_ORDER.index(state) <= _STATE_ORDER.index(self._state):
                return
            self._state = state
        if state in (WorkerState.QUIET, WorkerState.TERMINATE):
            logger.warning("Server requested state '%s' for worker %s", state, self._wid)
        self._notify(state)

    def _notify(self, state: WorkerState) -> None:
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(state)
        except Exception:
            logger.exception("State change callback failed")


def _parse_greeting(reply: Reply) -> dict[str, Any]:
    """Decode ``+HI {json}`` into its JSON object.

    Raises:
        ProtocolError: Reply is not a HI greeting with a JSON object.

    """
    if reply.kind is not ReplyKind.STATUS or not reply.text.startswith("HI "):
        raw = reply.describe()
        raise ProtocolError(f"Expected HI greeting, got {raw!r}", raw=raw)
    try:
        greeting = json.loads(reply.text[3:])
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Malformed greeting: {e}", raw=f"+{reply.text}") from e
    if not isinstance(greeting, dict):
        raise ProtocolError("Greeting is not a JSON object.", raw=f"+{reply.text}")
    if greeting.get("v") != PROTOCOL_VERSION:
        logger.warning("Server protocol version %s, client speaks %d", greeting.get("v"), PROTOCOL_VERSION)
    return greeting
