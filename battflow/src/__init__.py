"""
Battery telemetry and charge-limit client package.

Samples macOS battery and power-adapter metrics from the SMC power registers
and the ``ioreg`` battery registry, publishes immutable snapshots to the
presentation layer, and sends charge-limit changes to the privileged batt
daemon over its Unix socket.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""
