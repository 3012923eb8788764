"""
Pydantic models for battery telemetry snapshots and charge-limit results.

Defines the immutable Snapshot published once per sampling cycle, the
BatteryPatch produced by the ioreg parser, and the tagged CommandResult
variants returned by the control channel client.

Snapshots are never mutated in place.  Every update goes through
``with_registers`` (fast-path fields) or ``with_patch`` (slow-path fields),
both of which return a new frozen instance.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from battflow.src.registers import RegisterReadings

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_LIMIT_PCT: int = 10
"""Lowest charge limit accepted by the daemon."""

MAX_LIMIT_PCT: int = 99
"""Highest charge limit accepted by the daemon."""

CHARGING_THRESHOLD_A: float = 0.05
"""Battery current above which the battery counts as charging."""

MIN_ADAPTER_VOLTAGE_V: float = 0.01
"""Adapter voltage at or below which adapter current is reported as zero."""

SERIAL_PLACEHOLDER: str = "--"
"""Serial number shown until the first successful ioreg parse."""


# ---------------------------------------------------------------------------
# Slow-path patch
# ---------------------------------------------------------------------------


class BatteryPatch(BaseModel):
    """Partial battery record extracted from one ioreg dump.

    Every field is optional.  ``None`` means the key was not found (or could
    not be parsed) and the corresponding Snapshot field must keep its
    previous value.

    Attributes:
        design_capacity_mah: ``DesignCapacity`` in mAh.
        max_capacity_mah: ``AppleRawMaxCapacity`` in mAh.
        cycle_count: ``CycleCount``.
        charge_pct: ``CurrentCapacity`` as a percentage (0-100).
        temperature_c: ``Temperature`` converted from hundredths of a degree.
        serial_number: ``Serial`` string.
    """

    model_config = ConfigDict(frozen=True)

    design_capacity_mah: int | None = None
    max_capacity_mah: int | None = None
    cycle_count: int | None = None
    charge_pct: int | None = None
    temperature_c: float | None = None
    serial_number: str | None = None

    def is_empty(self) -> bool:
        """Return True when no field was extracted."""
        return not self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class Snapshot(BaseModel):
    """One immutable, internally consistent set of battery telemetry.

    Fast-path fields (voltages, currents, wattages, charging state) come
    from a single register reading generation.  Slow-path fields
    (capacities, cycle count, serial, temperature, charge percent) come from
    the most recent successful ioreg parse and may lag the fast path.

    Attributes:
        ts: Time of the register reading generation, ``None`` before the
            first tick.
        slow_ts: Time of the last slow-path merge, ``None`` before the first
            successful parse.
        design_capacity_mah: Factory design capacity in mAh.
        max_capacity_mah: Current full-charge capacity in mAh.
        health_pct: ``100 * max / design``, recomputed only when the design
            capacity is known and positive.
        cycle_count: Charge cycle count.
        charge_pct: State of charge (0-100).
        temperature_c: Battery temperature in degrees Celsius.
        serial_number: Battery serial number.
        adapter_voltage_v: Adapter input voltage.
        adapter_power_w: Adapter input power.
        adapter_current_a: Adapter current derived from power and voltage.
        battery_voltage_v: Battery terminal voltage.
        battery_current_a: Battery current, positive while charging.
        battery_power_w: Battery power, positive while charging.
        is_charging: True when battery current exceeds 0.05 A.
        system_load_w: Total system power draw.
    """

    model_config = ConfigDict(frozen=True)

    ts: datetime | None = None
    slow_ts: datetime | None = None

    design_capacity_mah: int = 0
    max_capacity_mah: int = 0
    health_pct: float = 0.0
    cycle_count: int = 0
    charge_pct: int = 0
    temperature_c: float = 0.0
    serial_number: str = SERIAL_PLACEHOLDER

    adapter_voltage_v: float = 0.0
    adapter_power_w: float = 0.0
    adapter_current_a: float = 0.0
    battery_voltage_v: float = 0.0
    battery_current_a: float = 0.0
    battery_power_w: float = 0.0
    is_charging: bool = False
    system_load_w: float = 0.0

    def with_registers(self, readings: RegisterReadings, *, ts: datetime) -> Snapshot:
        """Return a copy with every fast-path field derived from *readings*.

        All derived values are computed from the same reading generation so a
        published snapshot never mixes stale and fresh register values.
        """
        adapter_current = (
            readings.adapter_power_w / readings.adapter_voltage_v
            if readings.adapter_voltage_v > MIN_ADAPTER_VOLTAGE_V
            else 0.0
        )
        return self.model_copy(
            update={
                "ts": ts,
                "system_load_w": readings.system_power_w,
                "adapter_voltage_v": readings.adapter_voltage_v,
                "adapter_power_w": readings.adapter_power_w,
                "adapter_current_a": adapter_current,
                "battery_voltage_v": readings.battery_voltage_v,
                "battery_current_a": readings.battery_current_a,
                "battery_power_w": readings.battery_voltage_v * readings.battery_current_a,
                "is_charging": readings.battery_current_a > CHARGING_THRESHOLD_A,
            }
        )

    def with_patch(self, patch: BatteryPatch, *, ts: datetime) -> Snapshot:
        """Return a copy with the fields present in *patch* replaced.

        Absent patch fields keep their current values.  Health is recomputed
        from the merged capacities only when the design capacity is positive.
        """
        update: dict[str, object] = dict(patch.model_dump(exclude_none=True))
        update["slow_ts"] = ts

        design = update.get("design_capacity_mah", self.design_capacity_mah)
        maximum = update.get("max_capacity_mah", self.max_capacity_mah)
        if isinstance(design, int) and design > 0 and isinstance(maximum, int):
            update["health_pct"] = 100.0 * maximum / design

        return self.model_copy(update=update)


# ---------------------------------------------------------------------------
# Command results
# ---------------------------------------------------------------------------


class Applied(BaseModel):
    """The daemon confirmed a charge limit.

    Attributes:
        limit: The percentage the daemon reports as in effect.  May differ
            from the requested value when the daemon clamps it.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["applied"] = "applied"
    limit: int


class Rejected(BaseModel):
    """The daemon answered without a parseable confirmation.

    Attributes:
        reason: The raw response text.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    reason: str


class TransportFailure(BaseModel):
    """The daemon could not be reached or the round trip failed.

    Attributes:
        detail: Text of the underlying socket error.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["transport_failure"] = "transport_failure"
    detail: str


CommandResult = Applied | Rejected | TransportFailure
"""Tagged outcome of one control-channel command."""
