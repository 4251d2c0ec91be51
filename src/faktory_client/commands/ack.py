"""Acknowledge a job."""

import typer

from faktory_client.app_context import use_context


def ack(ctx: typer.Context, jid: str) -> None:
    """Acknowledge successful completion of job JID."""
    app = use_context(ctx)
    with app.client() as client:
        client.ack(jid)
    app.out.print_acked(jid)
