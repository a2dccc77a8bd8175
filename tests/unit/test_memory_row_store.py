from __future__ import annotations

import pytest

from answerboard.store import CellWrite, MemoryRowStore, RowStoreError, SheetNotFoundError


def _store() -> MemoryRowStore:
    s = MemoryRowStore()
    s.create_sheet("ss", "S", ["a", "b", "c"])
    s.append_row("ss", "S", ["1", "2"])
    return s


def test_missing_sheet_raises():
    s = MemoryRowStore()
    assert not s.sheet_exists("ss", "nope")
    with pytest.raises(SheetNotFoundError):
        s.get_all_values("ss", "nope")


def test_create_sheet_twice_raises():
    s = _store()
    with pytest.raises(RowStoreError):
        s.create_sheet("ss", "S")


def test_batch_get_missing_cells_read_empty():
    s = _store()
    blocks = s.batch_get("ss", "S", ["S!A2", "S!C2", "S!Z9", "S!1:1"])
    assert blocks == [[["1"]], [[""]], [[""]], [["a", "b", "c"]]]


def test_batch_update_writes_cells_and_extends_rows():
    s = _store()
    s.batch_update("ss", "S", [CellWrite("S!C2", [["x"]]), CellWrite("S!B4", [["y"]])])
    values = s.get_all_values("ss", "S")
    assert values[1] == ["1", "2", "x"]
    assert s.last_row("ss", "S") == 4
    assert values[3] == ["", "y", ""]


def test_batch_update_row_values_spread_right():
    s = _store()
    s.batch_update("ss", "S", [CellWrite("S!D1", [["LIKE", "HIGHLIGHT"]])])
    assert s.get_all_values("ss", "S")[0] == ["a", "b", "c", "LIKE", "HIGHLIGHT"]


def test_range_for_other_sheet_rejected():
    s = _store()
    with pytest.raises(RowStoreError):
        s.batch_get("ss", "S", ["Other!A1"])
    with pytest.raises(RowStoreError):
        s.batch_update("ss", "S", [CellWrite("bad range", [["x"]])])


def test_multi_row_write_rejected():
    s = _store()
    with pytest.raises(RowStoreError):
        s.batch_update("ss", "S", [CellWrite("S!A2", [["x"], ["y"]])])


def test_get_all_values_pads_to_width():
    s = _store()
    assert s.get_all_values("ss", "S") == [["a", "b", "c"], ["1", "2", ""]]


def test_delete_row_shifts_up():
    s = _store()
    s.append_row("ss", "S", ["3"])
    s.delete_row("ss", "S", 2)
    assert s.get_all_values("ss", "S")[1][0] == "3"
    with pytest.raises(RowStoreError):
        s.delete_row("ss", "S", 9)


def test_native_values_kept():
    s = _store()
    s.batch_update("ss", "S", [CellWrite("S!A2", [[True]])])
    assert s.batch_get("ss", "S", ["S!A2"]) == [[[True]]]


def test_rejected_batch_leaves_grid_untouched():
    s = _store()
    before = s.get_all_values("ss", "S")
    writes = [
        CellWrite("S!A2", [["changed"]]),
        CellWrite("S!A5", [["new row"]]),
        CellWrite("S!B2", [["x"], ["y"]]),
    ]
    with pytest.raises(RowStoreError):
        s.batch_update("ss", "S", writes)
    assert s.get_all_values("ss", "S") == before
    assert s.last_row("ss", "S") == 2
