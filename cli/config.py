"""Connection settings for the command-line client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settings import read_positive_float, read_str_env


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = "http://localhost:8000"
    refresh_interval: float = 10.0
    timeout: float = 10.0


def load_config(
    base_url: Optional[str] = None,
    refresh_interval: Optional[float] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    """Explicit arguments win over ``API_BASE_URL``, ``CLI_REFRESH_INTERVAL`` and ``CLI_TIMEOUT``."""
    defaults = CLIConfig()
    if refresh_interval is None:
        refresh_interval = read_positive_float("CLI_REFRESH_INTERVAL", defaults.refresh_interval)
    if timeout is None:
        timeout = read_positive_float("CLI_TIMEOUT", defaults.timeout)
    url = base_url or read_str_env("API_BASE_URL", defaults.base_url)
    return CLIConfig(base_url=url.rstrip("/"), refresh_interval=refresh_interval, timeout=timeout)
