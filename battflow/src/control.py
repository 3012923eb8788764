"""
Unix-socket client for the privileged batt charge-limit daemon.

Sends one command line per connection and interprets the daemon's textual
acknowledgment.  Transport problems and protocol rejections are returned as
distinct :data:`~battflow.src.models.CommandResult` variants so the caller can
tell "daemon unreachable" from "daemon refused".  The client never retries.

Wire format (one request line, one response line, then close)::

    -> set-limit 80
    <- Set charging limit to 80%

    -> get-limit
    <- Upper limit: 80%

Debounce: ``set_limit`` tags every call with a monotonically increasing
sequence number and waits the debounce window.  Only a call that is still the
latest after the wait is transmitted, and only a response whose sequence is
still the latest is returned.  Superseded calls return ``None``.

Operations:
- send_limit(percent): one raw round trip, no debounce.
- set_limit(percent): debounced, sequence-checked entry point for UI edits.
- query_limit(): read the limit currently enforced by the daemon.
- from_settings(settings): client wired to the BATTFLOW_* socket and debounce
  settings.

CHANGELOG:
- 2026-10-16: Settings factory, clamp warning on every set, overrun-only size errors
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING

from battflow.src.models import (
    MAX_LIMIT_PCT,
    MIN_LIMIT_PCT,
    Applied,
    CommandResult,
    Rejected,
    TransportFailure,
)

if TYPE_CHECKING:
    from battflow.src.config import BattflowSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_SOCKET_PATH: str = "/var/run/batt.sock"
"""Well-known socket path of the batt daemon."""

DEFAULT_TIMEOUT_S: float = 5.0
"""Timeout for the whole connect-write-read round trip."""

DEFAULT_DEBOUNCE_S: float = 0.5
"""Quiet period a limit edit must survive before it is transmitted."""

MAX_RESPONSE_BYTES: int = 4096
"""Upper bound on the response line read from the daemon."""

_SET_CONFIRMATION_RE = re.compile(r"charging limit to\s+(\d+)%")
_GET_CONFIRMATION_RE = re.compile(r"Upper limit:\s+(\d+)%")


class _ResponseOverrunError(Exception):
    """The daemon sent a line longer than MAX_RESPONSE_BYTES."""


# ---------------------------------------------------------------------------
# Response parsing (pure)
# ---------------------------------------------------------------------------


def _parse_response(text: str, pattern: re.Pattern[str]) -> CommandResult:
    stripped = text.strip()
    if not stripped:
        return Rejected(reason="empty response")

    match = pattern.search(stripped)
    if match is None:
        return Rejected(reason=stripped)
    return Applied(limit=int(match.group(1)))


def parse_set_response(text: str) -> CommandResult:
    """Interpret the daemon's reply to ``set-limit``.

    Returns:
        ``Applied(n)`` when the text contains ``charging limit to n%``,
        otherwise ``Rejected`` carrying the raw text.
    """
    return _parse_response(text, _SET_CONFIRMATION_RE)


def parse_get_response(text: str) -> CommandResult:
    """Interpret the daemon's reply to ``get-limit`` (``Upper limit: n%``)."""
    return _parse_response(text, _GET_CONFIRMATION_RE)


def validate_limit(percent: int) -> int:
    """Return *percent* if it is an accepted charge limit.

    Raises:
        ValueError: If *percent* is outside ``[10, 99]``.
    """
    if not (MIN_LIMIT_PCT <= percent <= MAX_LIMIT_PCT):
        raise ValueError(
            f"Charge limit must be between {MIN_LIMIT_PCT} and {MAX_LIMIT_PCT} (got {percent})"
        )
    return percent


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ControlChannelClient:
    """Charge-limit client for the batt daemon socket.

    Args:
        socket_path: Filesystem path of the daemon's Unix socket.
        timeout_s: Timeout for one full round trip.
        debounce_s: Quiet period for :meth:`set_limit`.
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._socket_path = socket_path
        self._timeout_s = timeout_s
        self._debounce_s = debounce_s
        self._seq: int = 0

    @classmethod
    def from_settings(
        cls,
        settings: BattflowSettings,
        *,
        socket_path: str | None = None,
        timeout_s: float | None = None,
    ) -> ControlChannelClient:
        """Build a client from daemon settings.

        Args:
            settings: Loaded BattflowSettings.
            socket_path: Overrides ``settings.socket_path`` when given.
            timeout_s: Overrides ``settings.socket_timeout_s`` when given.
        """
        return cls(
            socket_path or settings.socket_path,
            timeout_s=timeout_s if timeout_s is not None else settings.socket_timeout_s,
            debounce_s=settings.debounce_s,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def socket_path(self) -> str:
        return self._socket_path

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    @property
    def debounce_s(self) -> float:
        return self._debounce_s

    @property
    def latest_seq(self) -> int:
        """Sequence number of the most recently issued ``set_limit`` call."""
        return self._seq

    async def set_limit(self, percent: int) -> CommandResult | None:
        """Debounced charge-limit change.

        Args:
            percent: Requested limit in ``[10, 99]``.

        Returns:
            The daemon's result, or ``None`` if a newer ``set_limit`` call
            superseded this one before or during transmission.

        Raises:
            ValueError: If *percent* is out of range.
        """
        validate_limit(percent)
        self._seq += 1
        seq = self._seq

        await asyncio.sleep(self._debounce_s)
        if seq != self._seq:
            logger.debug("Limit request #%d (%d%%) superseded before dispatch", seq, percent)
            return None

        result = await self.send_limit(percent)

        if seq != self._seq:
            logger.info("Discarding stale result for limit request #%d: %s", seq, result)
            return None
        return result

    async def send_limit(self, percent: int) -> CommandResult:
        """Transmit one ``set-limit`` command immediately (no debounce).

        Raises:
            ValueError: If *percent* is out of range.
        """
        validate_limit(percent)
        response = await self._round_trip(f"set-limit {percent}\n")
        if isinstance(response, TransportFailure):
            return response

        result = parse_set_response(response)
        if isinstance(result, Applied):
            logger.info("Daemon confirmed charging limit %d%%", result.limit)
            if result.limit != percent:
                logger.warning(
                    "Daemon applied %d%% instead of requested %d%%", result.limit, percent
                )
        else:
            logger.warning("Daemon did not confirm limit %d%%: %r", percent, response)
        return result

    async def query_limit(self) -> CommandResult:
        """Ask the daemon which upper limit it currently enforces."""
        response = await self._round_trip("get-limit\n")
        if isinstance(response, TransportFailure):
            return response
        return parse_get_response(response)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _round_trip(self, command: str) -> str | TransportFailure:
        """Connect, write *command*, read one response line, close."""
        try:
            return await asyncio.wait_for(self._exchange(command), timeout=self._timeout_s)
        except TimeoutError:
            detail = f"timed out after {self._timeout_s:.1f}s talking to {self._socket_path}"
            logger.warning("Daemon round trip failed: %s", detail)
            return TransportFailure(detail=detail)
        except OSError as exc:
            logger.warning("Daemon round trip failed (%s): %s", self._socket_path, exc)
            return TransportFailure(detail=str(exc))
        except _ResponseOverrunError:
            detail = f"response from {self._socket_path} exceeded {MAX_RESPONSE_BYTES} bytes"
            logger.warning("Daemon round trip failed: %s", detail)
            return TransportFailure(detail=detail)
        except ValueError as exc:
            logger.warning("Daemon round trip failed (%s): %s", self._socket_path, exc)
            return TransportFailure(detail=str(exc))

    async def _exchange(self, command: str) -> str:
        reader, writer = await asyncio.open_unix_connection(
            self._socket_path, limit=MAX_RESPONSE_BYTES
        )
        try:
            writer.write(command.encode("utf-8"))
            await writer.drain()
            if writer.can_write_eof():
                writer.write_eof()
            try:
                raw = await reader.readline()
            except ValueError as exc:
                raise _ResponseOverrunError(str(exc)) from exc
        finally:
            writer.close()
            await writer.wait_closed()
        return raw.decode("utf-8", errors="replace")
