"""CLI entry point for faktory-client."""

from pathlib import Path
from typing import Annotated

import typer
from mm_clikit import TyperPlus

from faktory_client.app_context import AppContext
from faktory_client.commands.ack import ack
from faktory_client.commands.fail import fail
from faktory_client.commands.fetch import fetch
from faktory_client.commands.info import info
from faktory_client.commands.push import push
from faktory_client.config import Config
from faktory_client.log import setup_logging
from faktory_client.output import Output

app = TyperPlus(package_name="faktory-client")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Directory holding config.toml and logs.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Also log to stderr.")] = False,
) -> None:
    """Push, fetch, and settle jobs on a Faktory server."""
    out = Output(json_mode=json_output)
    try:
        cfg = Config.build(data_dir)
    except ValueError as e:
        out.print_error_and_exit("invalid_config", str(e))
    cfg.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(cfg.log_path, verbose=verbose)
    ctx.obj = AppContext(out=out, cfg=cfg)


# Jobs
app.command(aliases=["p"])(push)
app.command(aliases=["f"])(fetch)
app.command()(ack)
app.command()(fail)

# Server
app.command(aliases=["i"])(info)
