from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

"""Form response reader (pandas).

Exports from the answer form keep the header in row 1 and one response per
following row. ``.xlsx`` files yield every sheet; ``.csv`` files yield one
sheet named after the file stem.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "ResponseHeaderError",
    "ResponseSheet",
    "read_response_file",
    "normalize_responses",
]

SUPPORTED_SUFFIXES = (".xlsx", ".csv")


class ResponseHeaderError(Exception):
    """Raised when a sheet has no usable header row."""


@dataclass
class ResponseSheet:
    sheet_name: str
    columns: list[str]
    rows: list[list[str]]  # セルは全て文字列化済み


def read_response_file(
    path: Path, target_sheets: Iterable[str] | None = None
) -> dict[str, pd.DataFrame]:
    """Read raw DataFrames keyed by sheet name (no header applied yet)."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # 文字列として生読み ("001" などの先頭ゼロを保持)
        return {path.stem: pd.read_csv(path, header=None, dtype=str, keep_default_na=False)}
    if suffix != ".xlsx":
        raise ValueError(f"unsupported response file: {path.name}")
    dfs: dict[str, pd.DataFrame] = {}
    xls = pd.ExcelFile(path)
    for name in xls.sheet_names:
        if target_sheets is not None and str(name) not in target_sheets:
            continue
        dfs[str(name)] = xls.parse(name, header=None)
    return dfs


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return ""
        return value.to_pydatetime().isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        # Excel の整数値は float で読まれる
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def normalize_responses(df: pd.DataFrame, sheet_name: str) -> ResponseSheet:
    """Apply row 1 as header, drop fully empty rows, stringify cells."""
    if df.shape[0] < 1:
        raise ResponseHeaderError(f"sheet '{sheet_name}' has no header row")
    columns = [_cell_text(c) for c in df.iloc[0].tolist()]
    # 末尾の空ヘッダーは切り詰める
    while columns and not columns[-1]:
        columns.pop()
    if not columns:
        raise ResponseHeaderError(f"sheet '{sheet_name}' has an empty header row")

    rows: list[list[str]] = []
    for _, raw in df.iloc[1:].iterrows():
        cells = [_cell_text(v) for v in raw.tolist()[: len(columns)]]
        if not any(cells):
            continue
        cells.extend([""] * (len(columns) - len(cells)))
        rows.append(cells)
    return ResponseSheet(sheet_name=sheet_name, columns=columns, rows=rows)
