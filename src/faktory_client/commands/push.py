"""Push a job."""

import json
from typing import Annotated

import typer

from faktory_client.app_context import use_context
from faktory_client.job import DEFAULT_QUEUE, DEFAULT_RESERVE_FOR


def push(
    ctx: typer.Context,
    jobtype: str,
    *,
    arg: Annotated[str, typer.Option("--arg", help="Job argument as JSON")] = "null",
    queue: Annotated[str, typer.Option("--queue", "-q", help="Target queue")] = DEFAULT_QUEUE,
    reserve_for: Annotated[int, typer.Option("--reserve-for", min=1, help="Reservation timeout in seconds")] = DEFAULT_RESERVE_FOR,
) -> None:
    """Push a job of JOBTYPE and print its id."""
    app = use_context(ctx)
    try:
        payload = json.loads(arg)
    except json.JSONDecodeError as e:
        app.out.print_error_and_exit("invalid_argument", f"--arg is not valid JSON: {e}")
    with app.client() as client:
        jid = client.publish(jobtype, payload, queue=queue, reserve_for=reserve_for)
    app.out.print_pushed(jid, queue)
