"""Job descriptor exchanged with the server by PUSH and FETCH."""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_QUEUE = "default"
DEFAULT_RESERVE_FOR = 1800

_KNOWN_FIELDS = ("jid", "jobtype", "queue", "reserve_for", "args")


@dataclass(frozen=True)
class Job:
    """A unit of work: type, arguments, and routing.

    Fields the server adds (``created_at``, ``enqueued_at``, ``retry``, ...) are kept in ``extra``
    so a fetched job round-trips without loss.
    """

    jid: str
    jobtype: str
    args: list[Any] = field(default_factory=list)
    queue: str = DEFAULT_QUEUE
    reserve_for: int = DEFAULT_RESERVE_FOR
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire mapping, known fields first."""
        return {
            "jid": self.jid,
            "jobtype": self.jobtype,
            "queue": self.queue,
            "reserve_for": self.reserve_for,
            "args": self.args,
            **self.extra,
        }

    @staticmethod
    def from_dict(obj: dict[str, Any]) -> "Job":
        """Deserialize a wire mapping.

        Raises:
            KeyError: ``jid`` or ``jobtype`` is missing.
            TypeError: ``args`` is not a list.

        """
        jid, jobtype = obj["jid"], obj["jobtype"]
        args = obj.get("args", [])
        if not isinstance(args, list):
            raise TypeError(f"Job args must be a list, got {type(args).__name__}")
        return Job(
            jid=jid,
            jobtype=jobtype,
            args=list(args),
            queue=obj.get("queue", DEFAULT_QUEUE),
            reserve_for=obj.get("reserve_for", DEFAULT_RESERVE_FOR),
            extra={k: v for k, v in obj.items() if k not in _KNOWN_FIELDS},
        )
