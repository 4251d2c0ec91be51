"""Structured output for CLI and JSON modes."""

# ruff: noqa: T201 — this module is the output layer; print() is its sole mechanism for producing CLI output.

import json
import sys
from typing import NoReturn

import typer

from faktory_client.job import Job


class Output:
    """Handles all CLI output in JSON or human-readable format."""

    def __init__(self, *, json_mode: bool) -> None:
        """Initialize output handler.

        Args:
            json_mode: If True, output JSON envelopes; otherwise human-readable text.

        """
        self._json_mode = json_mode

    def _success(self, data: dict[str, object], message: str) -> None:
        """Print a success result in JSON or human-readable format."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
        else:
            print(message)

    def print_error_and_exit(self, code: str, message: str) -> NoReturn:
        """Print an error in JSON or human-readable format and exit with code 1.

        Raises:
            typer.Exit: Always, with code 1.

        """
        if self._json_mode:
            print(json.dumps({"ok": False, "error": code, "message": message}))
        else:
            print(f"Error: {message}", file=sys.stderr)
        raise typer.Exit(code=1)

    # --- Jobs ---

    def print_pushed(self, jid: str, queue: str) -> None:
        """Print the id of a pushed job."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": {"jid": jid, "queue": queue}}))
        else:
            print(jid)

    def print_job(self, job: Job | None) -> None:
        """Print a fetched job, or a notice that the queue was empty."""
        if job is None:
            self._success({"job": None}, "No job available.")
        elif self._json_mode:
            print(json.dumps({"ok": True, "data": {"job": job.to_dict()}}))
        else:
            print(json.dumps(job.to_dict(), indent=2))

    def print_acked(self, jid: str) -> None:
        """Print ack confirmation."""
        self._success({"jid": jid}, f"Job '{jid}' acknowledged.")

    def print_failed(self, jid: str) -> None:
        """Print failure-report confirmation."""
        self._success({"jid": jid}, f"Job '{jid}' marked as failed.")

    # --- Server ---

    def print_info(self, info: str) -> None:
        """Print the server status document, parsed when it is JSON."""
        if not self._json_mode:
            print(info)
            return
        try:
            data: object = json.loads(info) if info else {}
        except json.JSONDecodeError:
            data = info
        print(json.dumps({"ok": True, "data": {"info": data}}))
