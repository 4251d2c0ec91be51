"""Error taxonomy for Faktory client operations.

Every error carries a machine-readable ``code`` so the CLI can report it in JSON mode.
None of them are retried internally; they all propagate to the caller.
"""


class FaktoryError(Exception):
    """Base class for all client-side Faktory errors."""

    code = "faktory"

    def __init__(self, message: str, *, raw: str = "") -> None:
        """Initialize with a human-readable message.

        Args:
            message: Human-readable error description.
            raw: Raw reply line that triggered the error, if any.

        """
        super().__init__(message)
        self.raw = raw


class TransportError(FaktoryError):
    """Socket could not be opened, or was closed/errored during an exchange. The client is closed."""

    code = "transport"
    retriable = False


class TransportTimeoutError(TransportError):
    """A read or write did not complete within the configured socket timeout.

    The connection and its client are closed.
    ``retriable`` means the command may be retried on a new client. A PUSH may then be enqueued twice.
    """

    code = "timeout"
    retriable = True


class ProtocolError(FaktoryError):
    """Reply did not match the grammar expected for the issued command."""

    code = "protocol"


class ServerError(ProtocolError):
    """Server answered with an error line (``-ERR ...``)."""

    code = "server"


class AuthenticationError(FaktoryError):
    """Handshake credentials were missing or rejected."""

    code = "auth"
