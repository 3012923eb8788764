"""
Telemetry daemon main loop for the battflow battery monitor.

Runs a single periodic tick loop driving the TelemetrySampler.  Each tick
publishes fresh SMC power readings immediately and kicks off an ioreg
refresh in the background (at most one in flight).  A StatusWriter
subscribed to the sampler mirrors every published Snapshot into a JSON file
for external status-bar tools.

The loop is resilient: an exception in one tick is logged and does not stop
the loop.  Graceful shutdown on SIGTERM/SIGINT sets a shared asyncio.Event;
the loop finishes its current tick, waits for the in-flight ioreg refresh,
and exits.

Visibility: when a pause file is configured, the sampler's visibility gate is
hidden for as long as that file exists, so a UI process can pause sampling
while it is not shown.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from battflow.src.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup.

    Args:
        settings: A BattflowSettings instance (or any object with the same attrs).
    """
    logger.info(
        "battflow daemon starting with config: "
        "tick_interval_s=%s, ioreg_timeout_s=%s, socket_path=%s, "
        "socket_timeout_s=%s, debounce_ms=%s, status_path=%s, pause_file=%s",
        settings.tick_interval_s,  # type: ignore[attr-defined]
        settings.ioreg_timeout_s,  # type: ignore[attr-defined]
        settings.socket_path,  # type: ignore[attr-defined]
        settings.socket_timeout_s,  # type: ignore[attr-defined]
        settings.debounce_ms,  # type: ignore[attr-defined]
        settings.status_path or "<disabled>",  # type: ignore[attr-defined]
        settings.pause_file or "<disabled>",  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


def _sync_gate(sampler: TelemetrySampler, pause_file: Path | None) -> None:
    """Hide the sampler's gate while *pause_file* exists, show it otherwise."""
    if pause_file is None:
        return
    visible = not pause_file.exists()
    if visible != sampler.gate.visible:
        logger.info("Sampling %s", "resumed" if visible else "paused")
    sampler.gate.visible = visible


def _tick_once(*, sampler: TelemetrySampler, pause_file: Path | None = None) -> None:
    """Execute a single guarded sampler tick.

    Catches all exceptions so that the caller's loop is never broken.

    Args:
        sampler: The telemetry sampler.
        pause_file: Optional pause file bound to the visibility gate.
    """
    try:
        _sync_gate(sampler, pause_file)
        sampler.tick()
    except Exception:
        logger.error("Tick error", exc_info=True)


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def _tick_loop(
    *,
    sampler: TelemetrySampler,
    interval_s: float,
    shutdown_event: asyncio.Event,
    pause_file: Path | None = None,
) -> None:
    """Run the tick loop until shutdown_event is set.

    Executes _tick_once, then waits for interval_s, checking the shutdown
    event between iterations.  On exit waits for the in-flight ioreg
    refresh so no subprocess is left behind.

    Args:
        sampler: The telemetry sampler.
        interval_s: Seconds between ticks.
        shutdown_event: Event to signal graceful shutdown.
        pause_file: Optional pause file bound to the visibility gate.
    """
    logger.info("Tick loop started (interval=%ss)", interval_s)
    while not shutdown_event.is_set():
        _tick_once(sampler=sampler, pause_file=pause_file)
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                shutdown_event.wait(),
                timeout=interval_s,
            )
    await sampler.drain()
    logger.info(
        "Tick loop stopped (ticks=%d, skipped_refreshes=%d, failed_refreshes=%d)",
        sampler.ticks,
        sampler.skipped_refreshes,
        sampler.failed_refreshes,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    from battflow.src.config import BattflowSettings
    from battflow.src.ioreg import read_battery_registry
    from battflow.src.registers import NullRegisterReader
    from battflow.src.sampler import TelemetrySampler
    from battflow.src.status import StatusWriter

    settings = BattflowSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    sampler = TelemetrySampler(
        NullRegisterReader(),
        functools.partial(read_battery_registry, timeout_s=settings.ioreg_timeout_s),
    )

    if settings.status_path:
        status = StatusWriter(settings.status_path)
        sampler.subscribe(status.record_snapshot)

    await _tick_loop(
        sampler=sampler,
        interval_s=settings.tick_interval_s,
        shutdown_event=shutdown_event,
        pause_file=Path(settings.pause_file) if settings.pause_file else None,
    )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the telemetry daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
