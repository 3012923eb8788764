"""
Unit tests for the status file writer.

Tests verify:
- record_snapshot() writes the snapshot and last_tick_ts.
- record_command() writes last_command without touching the snapshot.
- Two writers sharing a file do not clobber each other's fields, even
  when one writes while the other is between its read and its replace.
- An unreadable file is replaced rather than crashing the writer.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from unittest.mock import patch

from battflow.src.models import Applied, Snapshot, TransportFailure
from battflow.src.status import StatusWriter


class TestRecordSnapshot:
    def test_writes_snapshot_and_timestamp(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        writer = StatusWriter(path)

        writer.record_snapshot(Snapshot(charge_pct=76, serial_number="ABC"))

        data = json.loads(path.read_text())
        assert data["snapshot"]["charge_pct"] == 76
        assert data["snapshot"]["serial_number"] == "ABC"
        assert "T" in data["last_tick_ts"]
        assert data["last_command"] is None

    def test_leaves_no_temporary_file(self, tmp_path: Path) -> None:
        writer = StatusWriter(tmp_path / "status.json")
        writer.record_snapshot(Snapshot())
        writer.record_snapshot(Snapshot())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["status.json", "status.json.lock"]


class TestRecordCommand:
    def test_writes_command_result(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        StatusWriter(path).record_command(Applied(limit=80))

        data = json.loads(path.read_text())
        assert data["last_command"] == {"kind": "applied", "limit": 80}
        assert data["snapshot"] is None

    def test_separate_writers_keep_each_others_fields(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        daemon_writer = StatusWriter(path)
        cli_writer = StatusWriter(path)

        daemon_writer.record_snapshot(Snapshot(cycle_count=187))
        cli_writer.record_command(TransportFailure(detail="No such file or directory"))
        daemon_writer.record_snapshot(Snapshot(cycle_count=188))

        data = json.loads(path.read_text())
        assert data["snapshot"]["cycle_count"] == 188
        assert data["last_command"]["kind"] == "transport_failure"

    def test_command_written_during_snapshot_write_survives(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        daemon_writer = StatusWriter(path)
        cli_writer = StatusWriter(path)
        daemon_writer.record_snapshot(Snapshot(cycle_count=187))

        cli_thread = threading.Thread(
            target=cli_writer.record_command, args=(Applied(limit=80),)
        )
        original_read = daemon_writer.read

        def _read_then_let_cli_run() -> dict:
            data = original_read()
            # The CLI tries to write while the daemon holds its merged copy.
            cli_thread.start()
            time.sleep(0.2)
            return data

        with patch.object(daemon_writer, "read", side_effect=_read_then_let_cli_run):
            daemon_writer.record_snapshot(Snapshot(cycle_count=188))
        cli_thread.join(timeout=5)

        assert not cli_thread.is_alive()
        data = json.loads(path.read_text())
        assert data["snapshot"]["cycle_count"] == 188
        assert data["last_command"] == {"kind": "applied", "limit": 80}


class TestRead:
    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        assert StatusWriter(tmp_path / "nope.json").read() == {
            "snapshot": None,
            "last_tick_ts": None,
            "last_command": None,
        }

    def test_corrupt_file_is_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        path.write_text("{not json")
        writer = StatusWriter(path)

        writer.record_command(Applied(limit=60))

        data = json.loads(path.read_text())
        assert data["last_command"]["limit"] == 60
