"""
Pure parser that converts filtered ioreg text into a BatteryPatch.

Each field is extracted by its own key/value pattern (``"Key" = 123`` or
``"Key" = "text"``).  Extraction is independent per field: a missing or
malformed key leaves only that field unset, never the whole record.

This is a pure function: no side effects, no I/O, no clock.  Health percent
is deliberately not computed here; the snapshot derives it when merging.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import re

from battflow.src.models import BatteryPatch

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mapping from BatteryPatch integer field names to ioreg keys.
# ---------------------------------------------------------------------------

_INT_FIELD_MAP: dict[str, str] = {
    "design_capacity_mah": "DesignCapacity",
    "max_capacity_mah": "AppleRawMaxCapacity",
    "cycle_count": "CycleCount",
    "charge_pct": "CurrentCapacity",
}
"""Maps BatteryPatch field name -> ioreg key for plain integer values."""

_VALID_RANGES: dict[str, tuple[int, int]] = {
    "charge_pct": (0, 100),
}
"""Inclusive ranges; values outside are treated as absent."""

_TEMPERATURE_KEYS: tuple[str, ...] = ("Temperature", "VirtualTemperature")
"""Temperature keys in order of preference (hundredths of a degree C)."""

_SERIAL_KEY = "Serial"

_INT_VALUE = r'"{key}" = (\S+)'
_STR_VALUE = r'"{key}" = "([^"]*)"'


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------


def extract_int(text: str, key: str) -> int | None:
    """Return the non-negative integer value of *key*, or ``None``.

    Only the first occurrence of ``"key" = value`` is considered.  A value
    that is not a plain run of digits (negative, quoted, fractional) counts
    as absent.
    """
    match = re.search(_INT_VALUE.format(key=re.escape(key)), text)
    if match is None:
        return None

    raw = match.group(1)
    if not (raw.isascii() and raw.isdigit()):
        logger.warning("ioreg key '%s': non-numeric value %r ignored", key, raw)
        return None
    return int(raw)


def extract_str(text: str, key: str) -> str | None:
    """Return the quoted string value of *key*, or ``None``."""
    match = re.search(_STR_VALUE.format(key=re.escape(key)), text)
    if match is None or not match.group(1):
        return None
    return match.group(1)


def extract_temperature(text: str) -> float | None:
    """Return the battery temperature in degrees Celsius, or ``None``.

    ioreg reports temperature as a fixed-point integer in hundredths of a
    degree, so ``3742`` becomes ``37.42``.
    """
    for key in _TEMPERATURE_KEYS:
        raw = extract_int(text, key)
        if raw is not None:
            return raw / 100.0
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_battery_info(text: str) -> BatteryPatch:
    """Extract every recognised battery field from ioreg output.

    Args:
        text: Raw (or pre-filtered) ``ioreg -r -c AppleSmartBattery`` output.

    Returns:
        A :class:`BatteryPatch` with only the located fields populated.
    """
    fields: dict[str, object] = {}

    for field_name, key in _INT_FIELD_MAP.items():
        value = extract_int(text, key)
        if value is None:
            continue

        valid_range = _VALID_RANGES.get(field_name)
        if valid_range is not None:
            lo, hi = valid_range
            if not (lo <= value <= hi):
                logger.warning(
                    "ioreg key '%s': value %d outside valid range (%d, %d)",
                    key,
                    value,
                    lo,
                    hi,
                )
                continue

        fields[field_name] = value

    temperature = extract_temperature(text)
    if temperature is not None:
        fields["temperature_c"] = temperature

    serial = extract_str(text, _SERIAL_KEY)
    if serial is not None:
        fields["serial_number"] = serial

    return BatteryPatch(**fields)
