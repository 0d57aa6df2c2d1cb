"""SQLite-backed record storage keyed by (pk, sk)."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from ledgerlink.core.errors import RecordStoreError


def _require_keys(item: Dict[str, Any]) -> tuple[str, str]:
    pk = item.get("pk")
    sk = item.get("sk")
    if not pk or not sk:
        raise ValueError("Item must include 'pk' and 'sk' keys")
    return pk, sk


class SQLiteStore:
    """Key-value store using a normalized table keyed by (pk, sk)."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose statements commit together or not at all."""
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Could not open record store: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Record store operation failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def put_item(self, item: Dict[str, Any]) -> None:
        self.put_items([item])

    def put_items(self, items: Iterable[Dict[str, Any]]) -> None:
        """Upsert every item in a single transaction."""
        rows = []
        for item in items:
            pk, sk = _require_keys(item)
            rows.append((pk, sk, json.dumps(item)))

        with self._transaction() as conn:
            conn.executemany(
                """
                INSERT INTO kv_records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                rows,
            )

    def put_item_if(self, item: Dict[str, Any], *, expected: Mapping[str, Any]) -> bool:
        """Replace an existing item only while its stored attributes equal ``expected``.

        Returns False, writing nothing, when the item is gone or has changed.
        """
        pk, sk = _require_keys(item)
        data = json.dumps(item)
        with self._transaction() as conn:
            # Hold the write lock across the check and the update.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?", (pk, sk)
            ).fetchone()
            if not row:
                return False
            stored = json.loads(row["data"])
            if any(stored.get(key) != value for key, value in expected.items()):
                return False
            conn.execute(
                "UPDATE kv_records SET data = ? WHERE pk = ? AND sk = ?", (data, pk, sk)
            )
        return True

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        escaped = (
            sort_key_prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk LIKE ? ESCAPE '\\'",
                (partition_key, f"{escaped}%"),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["SQLiteStore"]
