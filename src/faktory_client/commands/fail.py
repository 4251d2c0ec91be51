"""Report a job failure."""

from typing import Annotated

import typer

from faktory_client.app_context import use_context


def fail(
    ctx: typer.Context,
    jid: str,
    *,
    errtype: Annotated[str, typer.Option("--errtype", help="Error type tag")] = "RuntimeError",
    message: Annotated[str, typer.Option("--message", "-m", help="Error message")] = "Unspecified",
    backtrace: Annotated[list[str] | None, typer.Option("--backtrace", help="Backtrace line (repeatable)")] = None,
) -> None:
    """Mark job JID as failed."""
    app = use_context(ctx)
    with app.client() as client:
        client.fail(jid, errtype=errtype, message=message, backtrace=backtrace or [])
    app.out.print_failed(jid)
