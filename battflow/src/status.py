"""
Status file writer for the telemetry daemon.

Writes a JSON file at a configurable path with three fields:
- snapshot: the most recently published Snapshot.
- last_tick_ts: ISO timestamp of the most recent snapshot write.
- last_command: the most recent charge-limit CommandResult, or null.

The daemon records snapshots and the limit CLI records commands into the
same file.  Each write holds an exclusive ``flock`` on a ``<name>.lock``
sibling while it reads, merges and replaces the document, and only replaces
the fields its caller owns, so the two processes do not clobber each other's
entries.

CHANGELOG:
- 2026-10-16: Serialise writers with a lock file, unique temp file per write
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from battflow.src.models import CommandResult, Snapshot

logger = logging.getLogger(__name__)

_EMPTY_STATUS: dict[str, Any] = {
    "snapshot": None,
    "last_tick_ts": None,
    "last_command": None,
}


class StatusWriter:
    """Writes daemon status to a JSON file.

    Each mutating method takes the lock file, merges its fields into the
    current file content and rewrites the file through a uniquely named
    temporary sibling and ``os.replace``, so readers never see a truncated
    document.

    Args:
        path: Filesystem path for the status JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    def record_snapshot(self, snapshot: Snapshot) -> None:
        """Record a published snapshot and write the status file."""
        self._write(
            snapshot=snapshot.model_dump(mode="json"),
            last_tick_ts=datetime.now(tz=UTC).isoformat(),
        )

    def record_command(self, result: CommandResult) -> None:
        """Record a charge-limit command outcome and write the status file."""
        self._write(last_command=result.model_dump(mode="json"))

    def read(self) -> dict[str, Any]:
        """Return the current status document, or an empty one.

        An unreadable or malformed file is logged and treated as empty.
        """
        if not self.path.exists():
            return dict(_EMPTY_STATUS)
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable status file %s", self.path, exc_info=True)
            return dict(_EMPTY_STATUS)
        if not isinstance(data, dict):
            return dict(_EMPTY_STATUS)
        return {**_EMPTY_STATUS, **data}

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold an exclusive advisory lock shared by every writer of this path."""
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _write(self, **fields: Any) -> None:
        """Merge *fields* into the status document and write it."""
        with self._locked():
            data = self.read()
            data.update(fields)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                json.dump(data, tmp)
            try:
                os.replace(tmp.name, self.path)
            except OSError:
                with contextlib.suppress(OSError):
                    os.unlink(tmp.name)
                raise
