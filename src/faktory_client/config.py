"""Centralized client configuration."""

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_DATA_DIR = Path.home() / ".local" / "faktory-client"
DEFAULT_PORT = 7419

# Environment variable holding the server URL, e.g. tcp://:secret@localhost:7419
URL_ENV_VAR = "FAKTORY_URL"


class Config(BaseModel):
    """Connection and worker settings."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Field(description="Base directory for config and logs")
    host: str = Field(default="localhost", min_length=1, description="Faktory server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Faktory server port")
    password: str | None = Field(default=None, description="Server password, if the server requires one")
    heartbeat_interval: float = Field(default=15, gt=0, description="Seconds between BEAT commands")
    timeout: float | None = Field(default=None, gt=0, description="Socket timeout in seconds (None = block)")
    labels: list[str] = Field(default_factory=lambda: ["python"], description="Worker labels sent in HELLO")
    quote_fail_message: bool = Field(default=True, description="JSON-quote the FAIL message field")

    @computed_field(description="Optional TOML configuration file")
    @property
    def config_path(self) -> Path:
        """Optional TOML configuration file."""
        return self.data_dir / "config.toml"

    @computed_field(description="Log file")
    @property
    def log_path(self) -> Path:
        """Log file."""
        return self.data_dir / "faktory.log"

    @staticmethod
    def build(data_dir: Path | None = None) -> "Config":
        """Build a Config from defaults, optional config.toml, and FAKTORY_URL (highest priority)."""
        resolved_dir = data_dir if data_dir is not None else DEFAULT_DATA_DIR
        config_path = resolved_dir / "config.toml"

        kwargs: dict[str, Any] = {"data_dir": resolved_dir}
        if config_path.is_file():
            with config_path.open("rb") as f:
                toml_data = tomllib.load(f)
            for key in ("host", "password"):
                if isinstance(toml_data.get(key), str):
                    kwargs[key] = toml_data[key]
            if isinstance(toml_data.get("port"), int):
                kwargs["port"] = toml_data["port"]
            for key in ("heartbeat_interval", "timeout"):
                if isinstance(toml_data.get(key), int | float):
                    kwargs[key] = toml_data[key]
            if isinstance(toml_data.get("labels"), list):
                kwargs["labels"] = toml_data["labels"]
            if isinstance(toml_data.get("quote_fail_message"), bool):
                kwargs["quote_fail_message"] = toml_data["quote_fail_message"]

        url = os.environ.get(URL_ENV_VAR)
        if url:
            kwargs.update(parse_url(url))

        return Config(**kwargs)


def parse_url(url: str) -> dict[str, Any]:
    """Extract host, port, and password from a ``tcp://:password@host:port`` URL.

    Raises:
        ValueError: Unsupported scheme or missing host.

    """
    parts = urlsplit(url)
    if parts.scheme != "tcp":
        msg = f"Unsupported {URL_ENV_VAR} scheme: {parts.scheme!r} (only tcp:// is supported)"
        raise ValueError(msg)
    if not parts.hostname:
        msg = f"{URL_ENV_VAR} has no host: {url!r}"
        raise ValueError(msg)
    result: dict[str, Any] = {"host": parts.hostname, "port": parts.port or DEFAULT_PORT}
    if parts.password:
        result["password"] = parts.password
    return result
