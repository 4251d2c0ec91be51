"""Fetch the next job from a queue."""

from typing import Annotated

import typer

from faktory_client.app_context import use_context
from faktory_client.job import DEFAULT_QUEUE


def fetch(
    ctx: typer.Context,
    *,
    queue: Annotated[str, typer.Option("--queue", "-q", help="Queue to fetch from")] = DEFAULT_QUEUE,
) -> None:
    """Fetch the next job from a queue (reserves it until ack/fail or timeout)."""
    app = use_context(ctx)
    with app.client() as client:
        job = client.fetch(queue=queue)
    app.out.print_job(job)
