"""
Daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every variable carries the ``BATTFLOW_`` prefix and may also come from a
``.env`` file in the working directory.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BattflowSettings(BaseSettings):
    """Configuration for the battery telemetry daemon and limit client.

    All values are optional; defaults match a stock macOS install with the
    batt daemon running.

    Attributes:
        tick_interval_s: Seconds between sampler ticks.
        ioreg_timeout_s: Seconds before an ioreg invocation is killed.
        socket_path: Unix socket path of the batt daemon.
        socket_timeout_s: Timeout for one daemon round trip.
        debounce_ms: Quiet period before a limit edit is transmitted.
        status_path: JSON status file path; empty disables the file.
        pause_file: While this file exists sampling is paused; empty means
            always visible.
        log_level: Root log level name.
    """

    tick_interval_s: float = 1.0
    ioreg_timeout_s: float = 5.0
    socket_path: str = "/var/run/batt.sock"
    socket_timeout_s: float = 5.0
    debounce_ms: int = 500
    status_path: str = ""
    pause_file: str = ""
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="BATTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("tick_interval_s", "ioreg_timeout_s", "socket_timeout_s")
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        """Validate that intervals and timeouts are strictly positive."""
        if v <= 0:
            raise ValueError("interval and timeout values must be > 0")
        return v

    @field_validator("debounce_ms")
    @classmethod
    def debounce_must_be_valid(cls, v: int) -> int:
        """Validate debounce window is between 0 and 5000 ms."""
        if v < 0 or v > 5000:
            raise ValueError("BATTFLOW_DEBOUNCE_MS must be >= 0 and <= 5000")
        return v

    @field_validator("socket_path")
    @classmethod
    def socket_path_must_be_set(cls, v: str) -> str:
        """Validate that the daemon socket path is not empty."""
        if not v.strip():
            raise ValueError("BATTFLOW_SOCKET_PATH must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Validate and normalise the log level name."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"BATTFLOW_LOG_LEVEL '{v}' is not a logging level")
        return level

    @property
    def debounce_s(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000.0
