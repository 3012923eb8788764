"""
Charge-limit command-line tool -- talks to the batt daemon socket.

Sends a single ``set-limit`` or ``get-limit`` command and prints the parsed
result.  Socket path and timeout default to the daemon settings
(``BATTFLOW_SOCKET_PATH``, ``BATTFLOW_SOCKET_TIMEOUT_S``).

Usage:
    battflow-limit get
    battflow-limit set 80
    battflow-limit --socket /tmp/batt.sock set 65

Exit codes: 0 applied, 1 rejected by the daemon, 2 daemon unreachable.

CHANGELOG:
- 2026-10-16: Build the client from settings, status write failures only warn
- 2026-10-16: Initial creation
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from battflow.src.config import BattflowSettings
from battflow.src.control import ControlChannelClient
from battflow.src.models import MAX_LIMIT_PCT, MIN_LIMIT_PCT, Applied, CommandResult, Rejected
from battflow.src.status import StatusWriter

logger = logging.getLogger(__name__)

EXIT_CODES: dict[str, int] = {
    "applied": 0,
    "rejected": 1,
    "transport_failure": 2,
}


def _limit_arg(value: str) -> int:
    """argparse type for a charge limit in [10, 99]."""
    try:
        percent = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if not (MIN_LIMIT_PCT <= percent <= MAX_LIMIT_PCT):
        raise argparse.ArgumentTypeError(
            f"limit must be between {MIN_LIMIT_PCT} and {MAX_LIMIT_PCT}"
        )
    return percent


def format_result(result: CommandResult) -> str:
    """Render a CommandResult as one human-readable line."""
    if isinstance(result, Applied):
        return f"Charge limit: {result.limit}%"
    if isinstance(result, Rejected):
        return f"Daemon refused: {result.reason}"
    return f"Daemon unreachable: {result.detail}"


async def run_command(
    *,
    command: str,
    limit: int | None,
    client: ControlChannelClient,
) -> CommandResult:
    """Execute one CLI command against *client*."""
    if command == "set":
        if limit is None:
            raise ValueError("set requires a limit")
        return await client.send_limit(limit)
    return await client.query_limit()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        prog="battflow-limit",
        description="Read or change the battery charge limit enforced by the batt daemon",
    )
    p.add_argument("--socket", default=None, help="Daemon socket path (default from settings)")
    p.add_argument(
        "--timeout", type=float, default=None,
        help="Round-trip timeout in seconds (default from settings)",
    )
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("get", help="Print the current charge limit")
    set_p = sub.add_parser("set", help="Set a new charge limit")
    set_p.add_argument("limit", type=_limit_arg, help="Charge limit percentage (10-99)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Synchronous entrypoint; returns the process exit code."""
    args = parse_args(argv)
    settings = BattflowSettings()

    client = ControlChannelClient.from_settings(
        settings, socket_path=args.socket, timeout_s=args.timeout
    )
    result = asyncio.run(
        run_command(
            command=args.command,
            limit=getattr(args, "limit", None),
            client=client,
        )
    )

    print(format_result(result))

    if settings.status_path and args.command == "set":
        try:
            StatusWriter(settings.status_path).record_command(result)
        except OSError:
            logger.warning(
                "Failed to record command in status file %s", settings.status_path, exc_info=True
            )

    return EXIT_CODES[result.kind]


if __name__ == "__main__":
    sys.exit(main())
