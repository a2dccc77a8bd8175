from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .a1 import InvalidRangeError, parse_range

"""Row store contract and the in-memory implementation.

A row store is a set of named 2-D grids per spreadsheet id. Rows are physical
and 1-based (row 1 holds the headers); columns are zero-based. There are no
transactions and no row locks: callers serialise through `answerboard.locking`.
"""

__all__ = [
    "RowStoreError",
    "SheetNotFoundError",
    "CellWrite",
    "RowStore",
    "MemoryRowStore",
]


class RowStoreError(Exception):
    pass


class SheetNotFoundError(RowStoreError):
    pass


@dataclass(frozen=True)
class CellWrite:
    range: str  # A1 range: single cell or whole row
    values: list[list[Any]]


class RowStore(ABC):
    """Narrow adapter over a row-oriented datastore."""

    @abstractmethod
    def batch_get(
        self, spreadsheet_id: str, sheet_name: str, ranges: Sequence[str]
    ) -> list[list[list[Any]]]:
        """Read several ranges in one round trip. Missing cells read as ``""``."""

    @abstractmethod
    def batch_update(
        self, spreadsheet_id: str, sheet_name: str, writes: Sequence[CellWrite]
    ) -> None:
        """Write several ranges in one round trip."""

    @abstractmethod
    def append_row(self, spreadsheet_id: str, sheet_name: str, row: Sequence[Any]) -> None: ...

    @abstractmethod
    def get_all_values(self, spreadsheet_id: str, sheet_name: str) -> list[list[Any]]:
        """Whole data range (header included), padded to a rectangle."""

    @abstractmethod
    def last_row(self, spreadsheet_id: str, sheet_name: str) -> int: ...

    @abstractmethod
    def delete_row(self, spreadsheet_id: str, sheet_name: str, row: int) -> None: ...

    @abstractmethod
    def sheet_exists(self, spreadsheet_id: str, sheet_name: str) -> bool: ...

    @abstractmethod
    def create_sheet(
        self, spreadsheet_id: str, sheet_name: str, header: Sequence[Any] | None = None
    ) -> None: ...


def _check_sheet(sheet_name: str, range_text: str) -> Any:
    try:
        parsed = parse_range(range_text)
    except InvalidRangeError as e:
        raise RowStoreError(str(e)) from e
    if parsed.sheet is not None and parsed.sheet != sheet_name:
        raise RowStoreError(
            f"range {range_text!r} targets sheet {parsed.sheet!r}, expected {sheet_name!r}"
        )
    return parsed


class MemoryRowStore(RowStore):
    """Process-local store. Used for tests and as the CLI fallback backend."""

    def __init__(self) -> None:
        self._grids: dict[tuple[str, str], list[list[Any]]] = {}
        self._mutex = threading.RLock()

    def _grid(self, spreadsheet_id: str, sheet_name: str) -> list[list[Any]]:
        try:
            return self._grids[(spreadsheet_id, sheet_name)]
        except KeyError:
            raise SheetNotFoundError(
                f"sheet not found: {spreadsheet_id}/{sheet_name}"
            ) from None

    def sheet_exists(self, spreadsheet_id: str, sheet_name: str) -> bool:
        with self._mutex:
            return (spreadsheet_id, sheet_name) in self._grids

    def create_sheet(
        self, spreadsheet_id: str, sheet_name: str, header: Sequence[Any] | None = None
    ) -> None:
        with self._mutex:
            if (spreadsheet_id, sheet_name) in self._grids:
                raise RowStoreError(f"sheet already exists: {spreadsheet_id}/{sheet_name}")
            self._grids[(spreadsheet_id, sheet_name)] = [list(header)] if header else []

    def batch_get(
        self, spreadsheet_id: str, sheet_name: str, ranges: Sequence[str]
    ) -> list[list[list[Any]]]:
        with self._mutex:
            grid = self._grid(spreadsheet_id, sheet_name)
            blocks: list[list[list[Any]]] = []
            for text in ranges:
                parsed = _check_sheet(sheet_name, text)
                row = grid[parsed.row - 1] if parsed.row <= len(grid) else []
                if parsed.col is None:
                    blocks.append([list(row)])
                else:
                    value = row[parsed.col] if parsed.col < len(row) else ""
                    blocks.append([["" if value is None else value]])
            return blocks

    def batch_update(
        self, spreadsheet_id: str, sheet_name: str, writes: Sequence[CellWrite]
    ) -> None:
        with self._mutex:
            grid = self._grid(spreadsheet_id, sheet_name)
            # 全件検証してから書き込む (途中まで適用された状態を残さない)
            parsed_writes = [(_check_sheet(sheet_name, w.range), w) for w in writes]
            for _, w in parsed_writes:
                if len(w.values) != 1:
                    raise RowStoreError(f"only single-row writes are supported: {w.range}")
            for parsed, w in parsed_writes:
                while len(grid) < parsed.row:
                    grid.append([])
                target = grid[parsed.row - 1]
                start = parsed.col or 0
                values = w.values[0]
                needed = start + len(values)
                if len(target) < needed:
                    target.extend([""] * (needed - len(target)))
                target[start:needed] = list(values)

    def append_row(self, spreadsheet_id: str, sheet_name: str, row: Sequence[Any]) -> None:
        with self._mutex:
            self._grid(spreadsheet_id, sheet_name).append(list(row))

    def get_all_values(self, spreadsheet_id: str, sheet_name: str) -> list[list[Any]]:
        with self._mutex:
            grid = self._grid(spreadsheet_id, sheet_name)
            width = max((len(r) for r in grid), default=0)
            return [list(r) + [""] * (width - len(r)) for r in grid]

    def last_row(self, spreadsheet_id: str, sheet_name: str) -> int:
        with self._mutex:
            return len(self._grid(spreadsheet_id, sheet_name))

    def delete_row(self, spreadsheet_id: str, sheet_name: str, row: int) -> None:
        with self._mutex:
            grid = self._grid(spreadsheet_id, sheet_name)
            if row < 1 or row > len(grid):
                raise RowStoreError(f"row out of range: {row}")
            del grid[row - 1]
