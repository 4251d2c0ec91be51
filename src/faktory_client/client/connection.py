"""TCP connection with a guard that serializes request/reply exchanges."""

import contextlib
import logging
import socket
import threading
from typing import BinaryIO

from faktory_client.errors import TransportError, TransportTimeoutError
from faktory_client.protocol import Reply, read_reply

logger = logging.getLogger(__name__)


class Connection:
    """One socket shared by foreground commands and the heartbeat.

    Every write+read pair goes through ``exchange``, which holds the guard lock until the
    reply is fully read, so bytes of concurrent exchanges never interleave.
    """

    def __init__(self, sock: socket.socket) -> None:
        """Wrap an already connected socket.

        Args:
            sock: Connected TCP socket, owned by this connection from now on.

        """
        self._sock: socket.socket | None = sock
        self._stream: BinaryIO | None = sock.makefile("rb")
        self._guard = threading.Lock()

    @staticmethod
    def open(host: str, port: int, timeout: float | None = None) -> "Connection":
        """Open a TCP connection to host:port.

        Raises:
            TransportTimeoutError: Connect timed out.
            TransportError: Connection could not be established.

        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except TimeoutError as e:
            raise TransportTimeoutError(f"Timed out connecting to {host}:{port}.") from e
        except OSError as e:
            raise TransportError(f"Cannot connect to {host}:{port}: {e}") from e
        logger.info("Connected to %s:%d", host, port)
        return Connection(sock)

    @property
    def is_open(self) -> bool:
        """Check if the socket has not been closed yet."""
        return self._sock is not None

    def exchange(self, command: bytes | None) -> Reply:
        """Write one command (if any) and read exactly one reply, holding the guard throughout.

        Args:
            command: Encoded command line, or None to only read (server greeting).

        A transport failure closes the connection: the buffered reader cannot be reused after it.

        Raises:
            TransportTimeoutError: Socket timeout expired.
            TransportError: Socket closed or failed.
            ProtocolError: Reply does not match the framing grammar.

        """
        with self._guard:
            sock, stream = self._sock, self._stream
            if sock is None or stream is None:
                raise TransportError("Connection is closed.")
            try:
                if command is not None:
                    sock.sendall(command)
                return read_reply(stream)
            except TimeoutError as e:
                self.close()
                raise TransportTimeoutError("Timed out waiting for the server.") from e
            except (OSError, ValueError, TransportError) as e:
                # ValueError: the stream was closed underneath a blocked read
                closed_locally = self._sock is None
                self.close()
                if closed_locally:
                    raise TransportError("Connection closed.") from e
                if isinstance(e, TransportError):
                    raise
                raise TransportError(f"Connection failed: {e}") from e

    def close(self) -> None:
        """Shut down and close the socket. Idempotent.

        Does not take the guard: shutting the socket down is what unblocks a read in progress.
        """
        sock, stream = self._sock, self._stream
        self._sock = None
        self._stream = None
        if sock is None:
            return
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        if stream is not None:
            with contextlib.suppress(OSError):
                stream.close()
        sock.close()
        logger.info("Connection closed")
