"""
Centralized configuration for servitor daemons.

Configuration sources (priority order):
1. Command-line flags (parsed by the daemon)
2. Environment variables (SERVITOR_*)
3. Default values

Environment variables:
- SERVITOR_LOG_LEVEL: Minimum log level (default: INFO)
- SERVITOR_SLEEP: Seconds between main loop runs (default: 0)
- SERVITOR_PID_FILE: Pidfile path (default: none)
- SERVITOR_TICK: Sleep granularity in seconds (default: 0.1)
"""

import math
import os
from dataclasses import dataclass

__all__ = ["DaemonConfig", "config"]


def _get_env(key: str, default: str) -> str:
    """Get environment variable with SERVITOR_ prefix."""
    return os.environ.get(f"SERVITOR_{key}", default)


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(_get_env(key, str(default)))


def _get_env_optional(key: str) -> str | None:
    """Get environment variable, None when unset or empty."""
    val = os.environ.get(f"SERVITOR_{key}")
    return val or None


@dataclass(frozen=True)
class DaemonConfig:
    """Immutable daemon configuration."""

    log_level: str = _get_env("LOG_LEVEL", "INFO")
    sleep: float = _get_env_float("SLEEP", 0.0)
    pid_file: str | None = _get_env_optional("PID_FILE")

    # Main loop sleeps in slices of this size so termination is noticed promptly
    tick: float = _get_env_float("TICK", 0.1)

    def __post_init__(self) -> None:
        if math.isnan(self.sleep) or self.sleep < 0:
            raise ValueError(f"sleep must be >= 0, got {self.sleep}")
        if math.isnan(self.tick) or self.tick <= 0:
            raise ValueError(f"tick must be > 0, got {self.tick}")


# Global singleton
config = DaemonConfig()
