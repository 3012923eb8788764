"""
Async ioreg reader -- the slow, subprocess-backed half of the sampler.

Runs ``ioreg -r -c AppleSmartBattery`` and returns only the registry lines
that carry the battery keys the parser understands.  Designed to be robust:

- Never raises; every failure returns ``None`` and logs a warning.
- Kills and reaps the child process if it does not finish within the timeout
  or the caller is cancelled.
- Treats a non-zero exit status or empty filtered output as a failure.

CHANGELOG:
- 2026-10-16: Tolerate an already-exited child on kill, reap on cancellation
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from collections.abc import Sequence

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

IOREG_COMMAND: tuple[str, ...] = ("ioreg", "-r", "-c", "AppleSmartBattery")
"""Read-only registry query for the internal battery."""

IOREG_KEYS: tuple[str, ...] = (
    "DesignCapacity",
    "CycleCount",
    "Serial",
    "Temperature",
    "CurrentCapacity",
    "AppleRawMaxCapacity",
)
"""Keys whose lines are kept from the ioreg dump."""

DEFAULT_TIMEOUT_S: float = 5.0
"""Maximum time to wait for ioreg to exit."""

_KEY_LINE_RE = re.compile("|".join(re.escape(key) for key in IOREG_KEYS))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def filter_lines(text: str) -> str:
    """Keep only the lines mentioning one of :data:`IOREG_KEYS`.

    Substring match, so ``VirtualTemperature`` and ``DesignCapacity``
    entries nested in ``BatteryData`` are kept too.
    """
    return "\n".join(line for line in text.splitlines() if _KEY_LINE_RE.search(line))


async def read_battery_registry(
    command: Sequence[str] = IOREG_COMMAND,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> str | None:
    """Run the registry query and return its filtered output.

    Args:
        command: Program and arguments to execute (no shell).
        timeout_s: Seconds to wait before killing the process.

    Returns:
        Filtered stdout text, or ``None`` if the command could not be
        launched, timed out, exited non-zero, or produced no battery lines.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        logger.warning("Failed to launch %s: %s", command[0], exc)
        return None

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
    except TimeoutError:
        logger.warning("%s did not finish within %.1fs, killing it", command[0], timeout_s)
        return None
    finally:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()

    if proc.returncode != 0:
        logger.warning("%s exited with status %d", command[0], proc.returncode)
        return None

    filtered = filter_lines(stdout.decode("utf-8", errors="replace"))
    if not filtered:
        logger.warning("%s returned no battery registry lines", command[0])
        return None

    return filtered
