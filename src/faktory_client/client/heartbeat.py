"""Background heartbeat: periodic BEAT commands for the lifetime of a connection."""

import json
import logging
import threading
from collections.abc import Callable
from enum import StrEnum

from faktory_client.errors import ProtocolError
from faktory_client.protocol import Reply, ReplyKind

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 15.0


class WorkerState(StrEnum):
    """Client lifecycle state, including directives the server sends in BEAT replies."""

    NEW = "new"
    RUNNING = "running"
    QUIET = "quiet"  # server asks the worker to stop fetching new jobs
    TERMINATE = "terminate"  # server asks the worker to shut down
    CLOSED = "closed"


def beat_state(reply: Reply) -> WorkerState:
    """Interpret a BEAT reply: ``+OK`` or ``+{"state":"quiet"|"terminate"}``.

    Raises:
        ProtocolError: Reply is neither form.

    """
    if reply.is_ok:
        return WorkerState.RUNNING
    if reply.kind is ReplyKind.STATUS:
        try:
            state = json.loads(reply.text).get("state")
        except (json.JSONDecodeError, AttributeError):
            state = None
        if state in (WorkerState.QUIET, WorkerState.TERMINATE):
            return WorkerState(state)
    raw = reply.describe()
    raise ProtocolError(f"Unexpected heartbeat reply: {raw!r}", raw=raw)


class Heartbeat:
    """Runs ``tick`` immediately, then every ``interval`` seconds, on a daemon thread.

    Ticks run back to back on a single thread, so they never overlap each other; the tick itself
    is responsible for taking the connection guard.
    """

    def __init__(self, tick: Callable[[], None], interval: float = DEFAULT_INTERVAL) -> None:
        """Initialize a stopped scheduler.

        Args:
            tick: Callable performing one heartbeat exchange. Must not raise.
            interval: Seconds between ticks.

        """
        self._tick = tick
        self._interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="faktory-heartbeat", daemon=True)

    @property
    def running(self) -> bool:
        """Check if the scheduler thread is alive and not asked to stop."""
        return self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        """Start the scheduler thread."""
        self._thread.start()

    def cancel(self) -> None:
        """Signal the scheduler to stop; no new tick starts after this returns. Idempotent."""
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the scheduler thread to exit. No-op when called from the scheduler thread itself."""
        if threading.current_thread() is self._thread or not self._thread.is_alive():
            return
        self._thread.join(timeout)

    def _run(self) -> None:
        logger.debug("Heartbeat started (interval %.1fs)", self._interval)
        while not self._stop.is_set():
            self._tick()
            if self._stop.wait(self._interval):
                break
        logger.debug("Heartbeat stopped")
