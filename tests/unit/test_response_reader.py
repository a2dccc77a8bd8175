from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from answerboard.excel.reader import ResponseHeaderError, normalize_responses, read_response_file


def test_normalize_applies_first_row_header():
    df = pd.DataFrame([
        ["タイムスタンプ", "回答", "理由", None],
        [datetime(2024, 4, 1, 9, 0), "光合成", float("nan"), None],
        [None, None, None, None],
        ["2024-04-02", 12.0, " 葉 ", None],
    ])
    sheet = normalize_responses(df, "Form")
    assert sheet.columns == ["タイムスタンプ", "回答", "理由"]
    assert sheet.rows == [
        ["2024-04-01T09:00:00", "光合成", ""],
        ["2024-04-02", "12", "葉"],
    ]


def test_empty_sheet_rejected():
    with pytest.raises(ResponseHeaderError):
        normalize_responses(pd.DataFrame(), "Empty")
    with pytest.raises(ResponseHeaderError):
        normalize_responses(pd.DataFrame([[None, None], ["a", "b"]]), "NoHeader")


def test_read_csv_keeps_text(tmp_path: Path):
    f = tmp_path / "class1.csv"
    f.write_text("名前,回答\n001,NA\n", encoding="utf-8")
    [(name, df)] = read_response_file(f).items()
    assert name == "class1"
    sheet = normalize_responses(df, name)
    assert sheet.rows == [["001", "NA"]]


def test_read_xlsx_all_sheets(tmp_path: Path):
    f = tmp_path / "responses.xlsx"
    with pd.ExcelWriter(f) as writer:
        pd.DataFrame([["回答"], ["a"]]).to_excel(writer, sheet_name="1-A", header=False, index=False)
        pd.DataFrame([["回答"], ["b"]]).to_excel(writer, sheet_name="1-B", header=False, index=False)
    dfs = read_response_file(f)
    assert list(dfs) == ["1-A", "1-B"]
    assert normalize_responses(dfs["1-B"], "1-B").rows == [["b"]]
    assert list(read_response_file(f, target_sheets=["1-B"])) == ["1-B"]


def test_unsupported_suffix(tmp_path: Path):
    with pytest.raises(ValueError):
        read_response_file(tmp_path / "notes.txt")
