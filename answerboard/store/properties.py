from __future__ import annotations

import threading
from typing import Any, Protocol

from .row_store import RowStoreError

"""Persistent key/value properties (cache version counters, system settings).

`increment` must be atomic across processes: the versioned cache relies on it
to make an invalidation visible to every later reader.
"""

__all__ = [
    "PropertyStore",
    "MemoryPropertyStore",
    "PostgresPropertyStore",
]


class PropertyStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def increment(self, key: str) -> int: ...


class MemoryPropertyStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._mutex = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._mutex:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._mutex:
            self._values[key] = str(value)

    def increment(self, key: str) -> int:
        with self._mutex:
            current = int(self._values.get(key) or 0)
            self._values[key] = str(current + 1)
            return current + 1


class PostgresPropertyStore:
    SCHEMA_SQL = (
        "CREATE TABLE IF NOT EXISTS board_properties ("
        "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
    )

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _query(self, sql: str, params: Any = None) -> list[tuple[Any, ...]]:
        try:
            self.cursor.execute(sql, params)
            return list(self.cursor.fetchall())
        except Exception as e:
            raise RowStoreError(str(e)) from e

    def ensure_schema(self) -> None:
        try:
            self.cursor.execute(self.SCHEMA_SQL)
        except Exception as e:
            raise RowStoreError(str(e)) from e

    def get(self, key: str) -> str | None:
        found = self._query("SELECT value FROM board_properties WHERE key = %s", (key,))
        return found[0][0] if found else None

    def set(self, key: str, value: str) -> None:
        self._query(
            "INSERT INTO board_properties (key, value) VALUES (%s, %s) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value RETURNING value",
            (key, str(value)),
        )

    def increment(self, key: str) -> int:
        found = self._query(
            "INSERT INTO board_properties (key, value) VALUES (%s, '1') "
            "ON CONFLICT (key) DO UPDATE SET value = "
            "((COALESCE(NULLIF(board_properties.value, ''), '0'))::integer + 1)::text "
            "RETURNING value",
            (key,),
        )
        return int(found[0][0])
