"""Show server information."""

import typer

from faktory_client.app_context import use_context


def info(ctx: typer.Context) -> None:
    """Show the server status document."""
    app = use_context(ctx)
    with app.client() as client:
        text = client.info()
    app.out.print_info(text)
