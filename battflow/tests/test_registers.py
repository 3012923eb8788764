"""
Tests for the SMC power register interface.

Verifies that read_registers reads all five registers in one pass, coerces
values to float, and propagates reader errors.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from battflow.src.registers import (
    REGISTER_NAMES,
    NullRegisterReader,
    RegisterReadings,
    read_registers,
)
from conftest import make_reader


class TestRegisterNames:
    def test_five_registers(self) -> None:
        assert len(REGISTER_NAMES) == 5
        assert len(set(REGISTER_NAMES)) == 5

    def test_names_match_readings_fields(self) -> None:
        assert set(REGISTER_NAMES) == set(RegisterReadings.__dataclass_fields__)


class TestReadRegisters:
    def test_reads_every_register_once(self, reader: MagicMock) -> None:
        read_registers(reader)
        for name in REGISTER_NAMES:
            getattr(reader, name).assert_called_once_with()

    def test_returns_values(self) -> None:
        reader = make_reader(
            system_power_w=9.5,
            adapter_voltage_v=20.0,
            adapter_power_w=45.0,
            battery_voltage_v=12.8,
            battery_current_a=-0.7,
        )
        assert read_registers(reader) == RegisterReadings(
            system_power_w=9.5,
            adapter_voltage_v=20.0,
            adapter_power_w=45.0,
            battery_voltage_v=12.8,
            battery_current_a=-0.7,
        )

    def test_integers_coerced_to_float(self) -> None:
        readings = read_registers(make_reader(system_power_w=7))
        assert isinstance(readings.system_power_w, float)

    def test_reader_errors_propagate(self, reader: MagicMock) -> None:
        reader.battery_current_a.side_effect = OSError("SMC unavailable")
        with pytest.raises(OSError, match="SMC unavailable"):
            read_registers(reader)

    def test_readings_are_frozen(self) -> None:
        readings = RegisterReadings()
        with pytest.raises(AttributeError):
            readings.system_power_w = 1.0  # type: ignore[misc]


class TestNullRegisterReader:
    def test_reads_zero_everywhere(self) -> None:
        assert read_registers(NullRegisterReader()) == RegisterReadings()
