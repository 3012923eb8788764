"""
SMC power register interface -- the fast, synchronous half of the sampler.

The sampler depends on five raw power readings that macOS exposes through the
System Management Controller.  Reading the SMC is a platform primitive: this
module defines the interface the core consumes, not an SMC driver.  Any
object with the five zero-argument methods below satisfies it.

Register names, units, and SMC keys:

    =====================  =====  ========  ===============================
    name                   unit   SMC key   description
    =====================  =====  ========  ===============================
    system_power_w         W      PSTR      total system power draw
    adapter_voltage_v      V      VD0R      adapter input voltage
    adapter_power_w        W      PDTR      adapter input power
    battery_voltage_v      V      B0AV      battery terminal voltage
    battery_current_a      A      B0AC      battery current (+ charging)
    =====================  =====  ========  ===============================

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------

REGISTER_NAMES: tuple[str, ...] = (
    "system_power_w",
    "adapter_voltage_v",
    "adapter_power_w",
    "battery_voltage_v",
    "battery_current_a",
)
"""Read order of the five power registers."""


class RegisterReader(Protocol):
    """Synchronous accessor for the SMC power registers.

    Each call must be cheap and bounded; the sampler invokes all five on the
    ticking context.
    """

    def system_power_w(self) -> float: ...

    def adapter_voltage_v(self) -> float: ...

    def adapter_power_w(self) -> float: ...

    def battery_voltage_v(self) -> float: ...

    def battery_current_a(self) -> float: ...


@dataclass(frozen=True, slots=True)
class RegisterReadings:
    """One generation of raw power register values.

    Attributes:
        system_power_w: Total system power draw in watts.
        adapter_voltage_v: Adapter input voltage in volts.
        adapter_power_w: Adapter input power in watts.
        battery_voltage_v: Battery voltage in volts.
        battery_current_a: Battery current in amps, positive while charging.
    """

    system_power_w: float = 0.0
    adapter_voltage_v: float = 0.0
    adapter_power_w: float = 0.0
    battery_voltage_v: float = 0.0
    battery_current_a: float = 0.0


class NullRegisterReader:
    """Reader for hosts without SMC power registers; every register reads 0."""

    def system_power_w(self) -> float:
        return 0.0

    def adapter_voltage_v(self) -> float:
        return 0.0

    def adapter_power_w(self) -> float:
        return 0.0

    def battery_voltage_v(self) -> float:
        return 0.0

    def battery_current_a(self) -> float:
        return 0.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_registers(reader: RegisterReader) -> RegisterReadings:
    """Read all five power registers in one pass.

    Values are coerced to ``float`` so readers may return ints.  Exceptions
    raised by the reader propagate to the caller.

    Args:
        reader: Any object implementing :class:`RegisterReader`.

    Returns:
        A :class:`RegisterReadings` holding one consistent generation.
    """
    values = {name: float(getattr(reader, name)()) for name in REGISTER_NAMES}
    return RegisterReadings(**values)
