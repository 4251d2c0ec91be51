"""Logging setup for the faktory-client CLI.

Library code only creates module loggers; handlers are attached here, by the CLI.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "faktory_client"
_FORMAT = "%(asctime)s %(levelname)-8s %(threadName)s %(name)s: %(message)s"


def setup_logging(log_path: Path, *, verbose: bool = False) -> None:
    """Attach a rotating file handler, plus a stderr handler when verbose.

    Idempotent — skips if the package logger already has handlers.
    """
    root = logging.getLogger(LOGGER_NAME)
    if root.handlers:
        return

    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if verbose:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        root.addHandler(console)

    root.setLevel(logging.DEBUG)
