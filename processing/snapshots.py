"""
Snapshot store: append-only, timestamp-named JSON captures of the registry.

Each capture is one file ``snapshot-<UTC timestamp>.json`` holding
``{"timestamp", "count", "institutions"}``. File names sort lexically in
capture order, so "latest" never depends on filesystem mtimes.
"""

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from config.logging import logger
from processing.errors import StorageError
from processing.registry import RegistryEntity

SNAPSHOT_PREFIX = "snapshot-"
SNAPSHOT_SUFFIX = ".json"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


@dataclass(frozen=True)
class Snapshot:
    """One immutable capture of the full entity set."""
    snapshot_id: str
    timestamp: str
    count: int
    entities: tuple[RegistryEntity, ...]

    def __repr__(self) -> str:
        return f"<Snapshot({self.snapshot_id}, count={self.count})>"


class SnapshotStore:
    """
    Owns the on-disk snapshot directory.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash mid-write never exposes a partial
    snapshot under a ``snapshot-*.json`` name.

    Usage:
        store = SnapshotStore(settings.SNAPSHOT_DIR)
        previous = store.load_latest()
        snapshot_id = store.save(entities)
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def save(self, entities: list[RegistryEntity], now: Optional[datetime] = None) -> str:
        """
        Write a new snapshot and return its identifier.

        Raises:
            StorageError: if the directory cannot be created or written
        """
        now = now or datetime.now(timezone.utc)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create snapshot directory {self.directory}: {e}") from e

        # Never reuse an identifier: bump by a microsecond until free
        snapshot_id = self._snapshot_id(now)
        while self._path(snapshot_id).exists():
            now += timedelta(microseconds=1)
            snapshot_id = self._snapshot_id(now)

        data = {
            "timestamp": now.isoformat(),
            "count": len(entities),
            "institutions": [e.to_dict() for e in entities],
        }

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.directory,
                prefix=".tmp-",
                suffix=SNAPSHOT_SUFFIX,
                delete=False,
                encoding="utf-8",
            ) as f:
                tmp_path = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path(snapshot_id))
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Cannot write snapshot {snapshot_id}: {e}") from e

        logger.info(f"Saved snapshot {snapshot_id} ({len(entities)} entities)")
        return snapshot_id

    def list_ids(self) -> list[str]:
        """Snapshot identifiers, oldest first."""
        if not self.directory.exists():
            return []
        return sorted(
            p.name[: -len(SNAPSHOT_SUFFIX)]
            for p in self.directory.iterdir()
            if p.name.startswith(SNAPSHOT_PREFIX) and p.name.endswith(SNAPSHOT_SUFFIX)
        )

    def load(self, snapshot_id: str) -> Snapshot:
        """Load one snapshot by identifier."""
        path = self._path(snapshot_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            entities = tuple(RegistryEntity.from_dict(d) for d in data["institutions"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Cannot read snapshot {snapshot_id}: {e}") from e

        return Snapshot(
            snapshot_id=snapshot_id,
            timestamp=data.get("timestamp", ""),
            count=len(entities),
            entities=entities,
        )

    def load_latest(self) -> Optional[Snapshot]:
        """Most recent snapshot, or None when the store is empty."""
        ids = self.list_ids()
        if not ids:
            return None
        snapshot = self.load(ids[-1])
        logger.info(f"Loaded latest snapshot {snapshot.snapshot_id} ({snapshot.count} entities)")
        return snapshot

    def load_n_previous(self, n: int) -> list[Snapshot]:
        """The n most recent snapshots, newest first."""
        if n <= 0:
            return []
        ids = self.list_ids()
        return [self.load(snapshot_id) for snapshot_id in reversed(ids[-n:])]

    def history(self) -> list[dict]:
        """Identifier, timestamp and count of every snapshot, newest first."""
        history = []
        for snapshot_id in reversed(self.list_ids()):
            snapshot = self.load(snapshot_id)
            history.append({
                "snapshot_id": snapshot.snapshot_id,
                "timestamp": snapshot.timestamp,
                "count": snapshot.count,
            })
        return history

    def _path(self, snapshot_id: str) -> Path:
        return self.directory / f"{snapshot_id}{SNAPSHOT_SUFFIX}"

    @staticmethod
    def _snapshot_id(moment: datetime) -> str:
        return f"{SNAPSHOT_PREFIX}{moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)}"
