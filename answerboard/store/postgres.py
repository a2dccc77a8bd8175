from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .a1 import InvalidRangeError, parse_range
from .row_store import CellWrite, RowStore, RowStoreError, SheetNotFoundError

"""PostgreSQL-backed row store.

Cells are stored one per row in ``board_cells``; ``board_sheets`` keeps the
per-sheet row count so appends allocate row numbers atomically. Writes are
batched with ``psycopg2.extras.execute_values`` upserts, one round trip per
``batch_update``.

The cursor is expected to come from an autocommit connection: every statement
stands alone, the same way a spreadsheet write does.
"""

try:  # pragma: no cover - optional until psycopg2 present at runtime
    import psycopg2
    from psycopg2.extras import execute_values
except Exception:  # pragma: no cover
    psycopg2 = None  # type: ignore
    execute_values = None  # type: ignore

__all__ = [
    "SCHEMA_SQL",
    "PostgresRowStore",
    "cell_text",
]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS board_sheets (
    spreadsheet_id TEXT NOT NULL,
    sheet_name TEXT NOT NULL,
    row_count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (spreadsheet_id, sheet_name)
);
CREATE TABLE IF NOT EXISTS board_cells (
    spreadsheet_id TEXT NOT NULL,
    sheet_name TEXT NOT NULL,
    row_num INTEGER NOT NULL,
    col_num INTEGER NOT NULL,
    value TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (spreadsheet_id, sheet_name, row_num, col_num)
);
"""

_UPSERT_SQL = (
    "INSERT INTO board_cells (spreadsheet_id, sheet_name, row_num, col_num, value) "
    "VALUES %s ON CONFLICT (spreadsheet_id, sheet_name, row_num, col_num) "
    "DO UPDATE SET value = EXCLUDED.value"
)


def cell_text(value: Any) -> str:
    """Cells are TEXT; booleans use the lowercase spelling the board reads back."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class PostgresRowStore(RowStore):
    def __init__(self, cursor: Any, page_size: int = 500) -> None:
        self.cursor = cursor
        self.page_size = page_size

    def _execute(self, sql: str, params: Any = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except Exception as e:
            raise RowStoreError(str(e)) from e

    def _fetchall(self) -> list[tuple[Any, ...]]:
        try:
            return list(self.cursor.fetchall())
        except Exception as e:  # pragma: no cover
            raise RowStoreError(f"failed fetching rows: {e}") from e

    def _upsert(self, rows: list[tuple[Any, ...]]) -> None:
        if execute_values is None:
            raise RowStoreError("psycopg2 not available")
        if not rows:
            return
        try:
            execute_values(self.cursor, _UPSERT_SQL, rows, page_size=self.page_size)
        except Exception as e:
            raise RowStoreError(str(e)) from e

    def ensure_schema(self) -> None:
        self._execute(SCHEMA_SQL)

    def _row_count(self, spreadsheet_id: str, sheet_name: str) -> int:
        self._execute(
            "SELECT row_count FROM board_sheets WHERE spreadsheet_id = %s AND sheet_name = %s",
            (spreadsheet_id, sheet_name),
        )
        found = self._fetchall()
        if not found:
            raise SheetNotFoundError(f"sheet not found: {spreadsheet_id}/{sheet_name}")
        return int(found[0][0])

    def sheet_exists(self, spreadsheet_id: str, sheet_name: str) -> bool:
        try:
            self._row_count(spreadsheet_id, sheet_name)
        except SheetNotFoundError:
            return False
        return True

    def create_sheet(
        self, spreadsheet_id: str, sheet_name: str, header: Sequence[Any] | None = None
    ) -> None:
        self._execute(
            "INSERT INTO board_sheets (spreadsheet_id, sheet_name, row_count) VALUES (%s, %s, 0) "
            "ON CONFLICT DO NOTHING RETURNING sheet_name",
            (spreadsheet_id, sheet_name),
        )
        if not self._fetchall():
            raise RowStoreError(f"sheet already exists: {spreadsheet_id}/{sheet_name}")
        if header:
            self.append_row(spreadsheet_id, sheet_name, header)

    def batch_get(
        self, spreadsheet_id: str, sheet_name: str, ranges: Sequence[str]
    ) -> list[list[list[Any]]]:
        parsed = []
        for text in ranges:
            try:
                p = parse_range(text)
            except InvalidRangeError as e:
                raise RowStoreError(str(e)) from e
            if p.sheet is not None and p.sheet != sheet_name:
                raise RowStoreError(f"range {text!r} targets sheet {p.sheet!r}")
            parsed.append(p)
        self._row_count(spreadsheet_id, sheet_name)
        rows = sorted({p.row for p in parsed})
        self._execute(
            "SELECT row_num, col_num, value FROM board_cells "
            "WHERE spreadsheet_id = %s AND sheet_name = %s AND row_num = ANY(%s)",
            (spreadsheet_id, sheet_name, rows),
        )
        cells: dict[int, dict[int, str]] = {}
        for row_num, col_num, value in self._fetchall():
            cells.setdefault(row_num, {})[col_num] = value
        blocks: list[list[list[Any]]] = []
        for p in parsed:
            row_cells = cells.get(p.row, {})
            if p.col is None:
                width = max(row_cells, default=-1) + 1
                blocks.append([[row_cells.get(c, "") for c in range(width)]])
            else:
                blocks.append([[row_cells.get(p.col, "")]])
        return blocks

    def batch_update(
        self, spreadsheet_id: str, sheet_name: str, writes: Sequence[CellWrite]
    ) -> None:
        rows: list[tuple[Any, ...]] = []
        max_row = 0
        for w in writes:
            try:
                p = parse_range(w.range)
            except InvalidRangeError as e:
                raise RowStoreError(str(e)) from e
            if len(w.values) != 1:
                raise RowStoreError(f"only single-row writes are supported: {w.range}")
            start = p.col or 0
            for offset, value in enumerate(w.values[0]):
                rows.append((spreadsheet_id, sheet_name, p.row, start + offset, cell_text(value)))
            max_row = max(max_row, p.row)
        self._row_count(spreadsheet_id, sheet_name)
        self._upsert(rows)
        self._execute(
            "UPDATE board_sheets SET row_count = GREATEST(row_count, %s) "
            "WHERE spreadsheet_id = %s AND sheet_name = %s",
            (max_row, spreadsheet_id, sheet_name),
        )

    def append_row(self, spreadsheet_id: str, sheet_name: str, row: Sequence[Any]) -> None:
        # row_count の UPDATE ... RETURNING で行番号を原子的に確保
        self._execute(
            "UPDATE board_sheets SET row_count = row_count + 1 "
            "WHERE spreadsheet_id = %s AND sheet_name = %s RETURNING row_count",
            (spreadsheet_id, sheet_name),
        )
        found = self._fetchall()
        if not found:
            raise SheetNotFoundError(f"sheet not found: {spreadsheet_id}/{sheet_name}")
        row_num = int(found[0][0])
        self._upsert(
            [(spreadsheet_id, sheet_name, row_num, col, cell_text(v)) for col, v in enumerate(row)]
        )

    def get_all_values(self, spreadsheet_id: str, sheet_name: str) -> list[list[Any]]:
        count = self._row_count(spreadsheet_id, sheet_name)
        self._execute(
            "SELECT row_num, col_num, value FROM board_cells "
            "WHERE spreadsheet_id = %s AND sheet_name = %s ORDER BY row_num, col_num",
            (spreadsheet_id, sheet_name),
        )
        found = self._fetchall()
        width = max((col for _, col, _ in found), default=-1) + 1
        grid = [[""] * width for _ in range(count)]
        for row_num, col_num, value in found:
            if 1 <= row_num <= count:
                grid[row_num - 1][col_num] = value
        return grid

    def last_row(self, spreadsheet_id: str, sheet_name: str) -> int:
        return self._row_count(spreadsheet_id, sheet_name)

    def delete_row(self, spreadsheet_id: str, sheet_name: str, row: int) -> None:
        count = self._row_count(spreadsheet_id, sheet_name)
        if row < 1 or row > count:
            raise RowStoreError(f"row out of range: {row}")
        key = (spreadsheet_id, sheet_name)
        self._execute(
            "DELETE FROM board_cells WHERE spreadsheet_id = %s AND sheet_name = %s AND row_num = %s",
            (*key, row),
        )
        # 一意制約の途中衝突を避けるため負数を経由して詰める
        self._execute(
            "UPDATE board_cells SET row_num = -(row_num - 1) "
            "WHERE spreadsheet_id = %s AND sheet_name = %s AND row_num > %s",
            (*key, row),
        )
        self._execute(
            "UPDATE board_cells SET row_num = -row_num "
            "WHERE spreadsheet_id = %s AND sheet_name = %s AND row_num < 0",
            key,
        )
        self._execute(
            "UPDATE board_sheets SET row_count = row_count - 1 "
            "WHERE spreadsheet_id = %s AND sheet_name = %s",
            key,
        )
