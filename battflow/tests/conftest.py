"""
Shared test fixtures for battflow tests.

Provides environment variable fixtures for BattflowSettings configuration
tests and a fake SMC register reader.  All battflow env vars are cleaned
before each test to ensure isolation.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

# All BattflowSettings environment variable names, used for cleanup.
_ALL_BATTFLOW_ENV_VARS = (
    "BATTFLOW_TICK_INTERVAL_S",
    "BATTFLOW_IOREG_TIMEOUT_S",
    "BATTFLOW_SOCKET_PATH",
    "BATTFLOW_SOCKET_TIMEOUT_S",
    "BATTFLOW_DEBOUNCE_MS",
    "BATTFLOW_STATUS_PATH",
    "BATTFLOW_PAUSE_FILE",
    "BATTFLOW_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_battflow_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all battflow env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_BATTFLOW_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every BattflowSettings environment variable.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "BATTFLOW_TICK_INTERVAL_S": "2.5",
        "BATTFLOW_IOREG_TIMEOUT_S": "3",
        "BATTFLOW_SOCKET_PATH": "/tmp/test-batt.sock",
        "BATTFLOW_SOCKET_TIMEOUT_S": "1.5",
        "BATTFLOW_DEBOUNCE_MS": "750",
        "BATTFLOW_STATUS_PATH": "/tmp/battflow-status.json",
        "BATTFLOW_PAUSE_FILE": "/tmp/battflow.pause",
        "BATTFLOW_LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def make_reader(
    *,
    system_power_w: float = 12.0,
    adapter_voltage_v: float = 20.0,
    adapter_power_w: float = 60.0,
    battery_voltage_v: float = 12.5,
    battery_current_a: float = 1.2,
) -> MagicMock:
    """Create a fake SMC register reader returning fixed values."""
    reader = MagicMock()
    reader.system_power_w.return_value = system_power_w
    reader.adapter_voltage_v.return_value = adapter_voltage_v
    reader.adapter_power_w.return_value = adapter_power_w
    reader.battery_voltage_v.return_value = battery_voltage_v
    reader.battery_current_a.return_value = battery_current_a
    return reader


@pytest.fixture()
def reader() -> MagicMock:
    """A fake register reader on AC power, charging at 1.2 A."""
    return make_reader()


# Sample filtered ioreg output from an Apple Silicon MacBook.
IOREG_SAMPLE = """\
    |   "AppleRawMaxCapacity" = 4123
    |   "CycleCount" = 187
    |   "DesignCapacity" = 4382
    |   "CurrentCapacity" = 76
    |   "Serial" = "F8Y2476013QQ05MAT"
    |   "Temperature" = 3074
    |   "VirtualTemperature" = 3012
    |   "BatteryData" = {"DesignCapacity"=4382,"CycleCount"=187,"Serial"="F8Y2476013QQ05MAT"}
"""


@pytest.fixture()
def ioreg_sample() -> str:
    """Filtered ioreg battery registry text with all recognised keys."""
    return IOREG_SAMPLE
