"""SQLite-backed record storage keyed by (pk, sk)."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional


class SQLiteStore:
    """Simple key-value store using a normalized table keyed by (pk, sk).

    Record bodies are JSON documents; ``compare_and_put`` relies on SQLite's
    JSON1 functions to make conditional updates atomic.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
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
            conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_records_sk ON kv_records (sk)")

    @staticmethod
    def _keys(item: Dict[str, Any]) -> tuple[str, str]:
        pk = item.get("pk")
        sk = item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")
        return pk, sk

    def put_item(self, item: Dict[str, Any]) -> None:
        pk, sk = self._keys(item)
        data_json = json.dumps(item)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                (pk, sk, data_json),
            )

    def compare_and_put(
        self, item: Dict[str, Any], *, field: str, expected: Any
    ) -> bool:
        """Replace an existing record only while ``data[field] == expected``.

        Returns False when the record is missing or was changed concurrently.
        """
        pk, sk = self._keys(item)
        data_json = json.dumps(item)
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE kv_records SET data = ?
                WHERE pk = ? AND sk = ? AND json_extract(data, ?) = ?
                """,
                (data_json, pk, sk, f"$.{field}", expected),
            )
        return cursor.rowcount == 1

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def list_items_by_sort_key(self, *, sort_key: str) -> list[Dict[str, Any]]:
        """Return every record sharing ``sort_key`` across partitions."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM kv_records WHERE sk = ?",
                (sort_key,),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["SQLiteStore"]
