"""Process metadata and identifiers sent to the server."""

import os
import platform
import resource
import secrets
import socket
import string

PROTOCOL_VERSION = 2

_ID_ALPHABET = string.ascii_letters + string.digits

# Lengths of generated identifiers
WID_LENGTH = 12
JID_LENGTH = 18


def random_id(length: int) -> str:
    """Return a random alphanumeric identifier from a secure source."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def rss_kb() -> int:
    """Peak resident set size of this process in kilobytes."""
    maxrss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes on Linux
    return maxrss // 1024 if platform.system() == "Darwin" else maxrss


def worker_payload(wid: str, labels: list[str]) -> dict[str, object]:
    """Build the HELLO payload describing this worker process."""
    return {
        "hostname": socket.gethostname(),
        "pid": os.getpid(),
        "wid": wid,
        "v": PROTOCOL_VERSION,
        "labels": labels,
    }
