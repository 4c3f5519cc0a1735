"""Persistence interfaces and implementations for relay snapshots."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Protocol

from dmrelay.backend.errors import CorruptSnapshot
from dmrelay.backend.models import Snapshot

logger = logging.getLogger(__name__)

SNAPSHOT_ROW_ID = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS relay_snapshots (
    id SMALLINT PRIMARY KEY,
    state_json JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
)
"""


class SnapshotStore(Protocol):
    def load(self) -> Snapshot:
        """Return the stored snapshot, or an empty one when nothing was saved."""

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot with ``snapshot``."""


def decode_snapshot(raw: str) -> Snapshot:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptSnapshot(f"Snapshot is not valid JSON: {exc}") from exc
    return Snapshot.from_dict(data)


@dataclass
class InMemorySnapshotStore:
    saved: dict[str, Any] | None = None
    save_count: int = field(default=0, init=False)

    def load(self) -> Snapshot:
        if self.saved is None:
            return Snapshot.empty()
        return Snapshot.from_dict(copy.deepcopy(self.saved))

    def save(self, snapshot: Snapshot) -> None:
        self.saved = copy.deepcopy(snapshot.to_dict())
        self.save_count += 1


@dataclass
class JsonFileSnapshotStore:
    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def load(self) -> Snapshot:
        if not self.path.exists():
            logger.info("No snapshot at %s, starting empty", self.path)
            return Snapshot.empty()
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return Snapshot.empty()
        snapshot = decode_snapshot(raw)
        logger.info("Loaded %d rooms from %s", len(snapshot.rooms), self.path)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot.to_dict(), handle)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


@dataclass
class PostgresSnapshotStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def load(self) -> Snapshot:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT state_json FROM relay_snapshots WHERE id = %s",
                    (SNAPSHOT_ROW_ID,),
                )
                row = cur.fetchone()

        if row is None:
            return Snapshot.empty()

        (state_json,) = row
        if isinstance(state_json, dict):
            return Snapshot.from_dict(state_json)
        return decode_snapshot(state_json)

    def save(self, snapshot: Snapshot) -> None:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO relay_snapshots (id, state_json, updated_at)
                    VALUES (%s, %s::jsonb, %s)
                    ON CONFLICT (id) DO UPDATE
                    SET state_json = EXCLUDED.state_json, updated_at = EXCLUDED.updated_at
                    """,
                    (SNAPSHOT_ROW_ID, json.dumps(snapshot.to_dict()), now),
                )
            conn.commit()


def create_store(database_url: str | None, snapshot_path: str | None) -> SnapshotStore:
    if database_url:
        return PostgresSnapshotStore(database_url=database_url)
    if snapshot_path:
        return JsonFileSnapshotStore(path=Path(snapshot_path))
    return InMemorySnapshotStore()
