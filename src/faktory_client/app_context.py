"""Application context shared across CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer

from faktory_client.client import FaktoryClient
from faktory_client.config import Config
from faktory_client.errors import FaktoryError
from faktory_client.output import Output


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared application state passed through Typer context."""

    out: Output
    cfg: Config

    @contextmanager
    def client(self) -> Iterator[FaktoryClient]:
        """Open a one-shot connection; Faktory errors are reported and exit with code 1."""
        try:
            with FaktoryClient.from_config(self.cfg) as client:
                client.connect_config(self.cfg, oneshot=True)
                yield client
        except FaktoryError as e:
            self.out.print_error_and_exit(e.code, str(e))


def use_context(ctx: typer.Context) -> AppContext:
    """Extract application context from Typer context."""
    result: AppContext = ctx.obj
    return result
