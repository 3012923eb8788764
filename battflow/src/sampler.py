"""
Telemetry sampler that reconciles register reads and ioreg parses.

Each active tick:

1. Reads the five SMC power registers synchronously and publishes a new
   Snapshot whose fast-path fields all derive from that one reading.
2. Starts one asyncio task that runs the ioreg query and parser, unless a
   previous one is still running, in which case this tick's slow refresh is
   dropped.  When the task completes, a new Snapshot carrying the parsed
   slow-path fields is published.

Failure policy: acquisition errors are logged and absorbed.  The last
published Snapshot keeps serving its previous values; subscribers never see
an error state.

The Snapshot is the only shared mutable state and is replaced wholesale on
every publish, so readers never observe a half-updated record.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from battflow.src.models import BatteryPatch, Snapshot
from battflow.src.parser import parse_battery_info
from battflow.src.registers import read_registers

if TYPE_CHECKING:
    from battflow.src.registers import RegisterReader

logger = logging.getLogger(__name__)

TextSource = Callable[[], Awaitable[str | None]]
"""Zero-argument coroutine function returning ioreg text or ``None``."""

Subscriber = Callable[[Snapshot], None]


# ---------------------------------------------------------------------------
# Visibility gate
# ---------------------------------------------------------------------------


class VisibilityGate:
    """Boolean written by the presentation layer to pause or resume sampling.

    The sampler reads it once at the top of each tick; a change takes effect
    on the next tick.

    Args:
        visible: Initial state.
    """

    def __init__(self, visible: bool = True) -> None:
        self.visible = visible

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------


class TelemetrySampler:
    """Produces one fresh Snapshot per tick without blocking on ioreg.

    At most one slow refresh is outstanding at any time.  Ticks that arrive
    while it is running skip their slow refresh instead of queueing one.

    Args:
        reader: SMC register reader (fast path).
        source: Coroutine function returning ioreg text (slow path).
        gate: Visibility gate; a hidden gate turns ``tick()`` into a no-op.
        parser: Text-to-patch function, defaults to
            :func:`~battflow.src.parser.parse_battery_info`.

    Usage::

        sampler = TelemetrySampler(reader, read_battery_registry, gate=gate)
        sampler.subscribe(lambda snap: print(snap.battery_power_w))
        sampler.tick()
    """

    def __init__(
        self,
        reader: RegisterReader,
        source: TextSource,
        *,
        gate: VisibilityGate | None = None,
        parser: Callable[[str], BatteryPatch] = parse_battery_info,
    ) -> None:
        self._reader = reader
        self._source = source
        self._parser = parser
        self.gate = gate if gate is not None else VisibilityGate()

        self._snapshot = Snapshot()
        self._subscribers: list[Subscriber] = []
        self._refresh_task: asyncio.Task[None] | None = None

        self.ticks: int = 0
        self.skipped_refreshes: int = 0
        self.failed_refreshes: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        """The most recently published Snapshot."""
        return self._snapshot

    @property
    def refresh_in_flight(self) -> bool:
        """True while an ioreg refresh task is running."""
        return self._refresh_task is not None and not self._refresh_task.done()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* to receive every published Snapshot.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def tick(self) -> None:
        """Run one sampling cycle.

        Must be called from within a running event loop, since the slow
        refresh is scheduled as a task on it.  Returns as soon as the fast
        path has been published.
        """
        if not self.gate.visible:
            return

        self.ticks += 1

        try:
            readings = read_registers(self._reader)
        except Exception:
            logger.error("Register read failed, keeping previous fast-path values", exc_info=True)
        else:
            self._publish(self._snapshot.with_registers(readings, ts=datetime.now(tz=UTC)))

        if self.refresh_in_flight:
            self.skipped_refreshes += 1
            logger.debug("ioreg refresh still in flight, skipping this tick's refresh")
            return

        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())

    async def drain(self) -> None:
        """Wait for the in-flight slow refresh, if any, to finish."""
        if self._refresh_task is not None:
            await asyncio.gather(self._refresh_task, return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _refresh(self) -> None:
        """Run the slow path once and merge its patch into a new Snapshot."""
        try:
            text = await self._source()
            if text is None:
                self.failed_refreshes += 1
                logger.warning("ioreg refresh failed, keeping last known battery values")
                return

            patch = self._parser(text)
        except Exception:
            self.failed_refreshes += 1
            logger.error("ioreg refresh error, keeping last known battery values", exc_info=True)
            return

        if patch.is_empty():
            self.failed_refreshes += 1
            logger.warning("ioreg output contained no recognised battery fields")
            return

        # Fast-path fields published while the refresh ran must survive the merge.
        self._publish(self._snapshot.with_patch(patch, ts=datetime.now(tz=UTC)))

    def _publish(self, snapshot: Snapshot) -> None:
        """Swap in *snapshot* and notify subscribers."""
        self._snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.error("Snapshot subscriber raised", exc_info=True)
