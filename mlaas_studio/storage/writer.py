from __future__ import annotations

import logging
import os
import sqlite3
import uuid
from typing import Any, Dict, List, Mapping

from ..errors import StoreError
from ..models.records import format_timestamp, utcnow

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS models (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    algorithm TEXT NOT NULL,
    accuracy REAL NOT NULL,
    created_at TEXT NOT NULL,
    dataset_name TEXT NOT NULL,
    parameters TEXT NOT NULL DEFAULT '{}',
    neural_network_architecture TEXT,
    targets TEXT,
    is_trained INTEGER,
    model_data TEXT,
    model_predictions TEXT
);
CREATE INDEX IF NOT EXISTS idx_models_dataset ON models (dataset_name);
"""

COLUMNS = (
    "id", "name", "type", "algorithm", "accuracy", "created_at", "dataset_name",
    "parameters", "neural_network_architecture", "targets", "is_trained",
    "model_data", "model_predictions",
)


def make_store(kind: str, **kwargs):
    if kind == "sqlite":
        return SQLiteModelStore(**kwargs)
    raise ValueError(f"Unknown store kind: {kind}")


class SQLiteModelStore:
    """The ``models`` table. Rows are plain dicts with JSON columns as text."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = None

    def start(self) -> None:
        folder = os.path.dirname(self.db_path)
        try:
            if folder:
                os.makedirs(folder, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(SCHEMA)
            self.conn.commit()
        except (OSError, sqlite3.Error) as e:
            self.conn = None
            raise StoreError(f"Could not open model store at {self.db_path}: {e}") from e

    def _require(self) -> sqlite3.Connection:
        if self.conn is None:
            self.start()
        return self.conn

    def _ins(self, table: str, row: Mapping[str, Any]) -> None:
        keys = list(row.keys())
        placeholders = ",".join(["?"] * len(keys))
        sql = f"INSERT OR REPLACE INTO {table} ({','.join(keys)}) VALUES ({placeholders})"
        self._require().execute(sql, [row[k] for k in keys])

    def fetch_all(self) -> List[Dict[str, Any]]:
        """Every stored row, newest ``created_at`` first."""
        try:
            cur = self._require().execute(
                f"SELECT {','.join(COLUMNS)} FROM models ORDER BY created_at DESC, rowid DESC"
            )
            return [dict(r) for r in cur.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to fetch models: {e}") from e

    def insert(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a new row; the store assigns ``id`` and ``created_at``."""
        unknown = set(row) - set(COLUMNS)
        if unknown:
            raise StoreError(f"Unknown columns: {sorted(unknown)}")
        record = {k: v for k, v in row.items() if k not in ("id", "created_at")}
        record["id"] = str(uuid.uuid4())
        record["created_at"] = format_timestamp(utcnow())
        try:
            self._ins("models", record)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert model: {e}") from e
        logger.debug("Inserted model %s", record["id"])
        return self.get(record["id"])

    def get(self, model_id: str) -> Dict[str, Any] | None:
        try:
            cur = self._require().execute(
                f"SELECT {','.join(COLUMNS)} FROM models WHERE id = ?", (model_id,)
            )
            r = cur.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read model {model_id}: {e}") from e
        return dict(r) if r is not None else None

    def update(self, model_id: str, changes: Mapping[str, Any]) -> Dict[str, Any] | None:
        """Apply ``changes`` and return the updated row, or None if ``model_id`` is unknown."""
        fields = {k: v for k, v in changes.items() if k not in ("id", "created_at")}
        unknown = set(fields) - set(COLUMNS)
        if unknown:
            raise StoreError(f"Unknown columns: {sorted(unknown)}")
        if fields:
            assignments = ",".join(f"{k} = ?" for k in fields)
            try:
                cur = self._require().execute(
                    f"UPDATE models SET {assignments} WHERE id = ?",
                    [*fields.values(), model_id],
                )
                self.conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to update model {model_id}: {e}") from e
            if cur.rowcount == 0:
                return None
        return self.get(model_id)

    def delete(self, model_id: str) -> bool:
        try:
            cur = self._require().execute("DELETE FROM models WHERE id = ?", (model_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete model {model_id}: {e}") from e
        return cur.rowcount > 0

    def ping(self) -> bool:
        try:
            self._require().execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Model store unreachable: {e}") from e
        return True

    def finish(self) -> None:
        if self.conn is not None:
            self.conn.commit()
            self.conn.close()
            self.conn = None
