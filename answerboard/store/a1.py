from __future__ import annotations

import re
from dataclasses import dataclass

"""A1-style range helpers.

Ranges look like ``Sheet1!C5`` (single cell) or ``Sheet1!5:5`` (whole row).
Sheet names containing anything other than letters, digits and ``_`` are
single-quoted, with embedded quotes doubled: ``'Form Responses 1'!C5``.
Rows are physical (1 = header row); columns are zero-based in the API and
lettered in the range text.
"""

__all__ = [
    "InvalidRangeError",
    "ParsedRange",
    "column_letter",
    "column_index",
    "cell_range",
    "row_range",
    "parse_range",
]

_PLAIN_SHEET = re.compile(r"^[A-Za-z0-9_]+$")
_CELL = re.compile(r"^([A-Za-z]+)([0-9]+)$")
_ROW = re.compile(r"^([0-9]+):([0-9]+)$")


class InvalidRangeError(ValueError):
    pass


@dataclass(frozen=True)
class ParsedRange:
    sheet: str | None
    row: int
    col: int | None  # None = whole row


def column_letter(index: int) -> str:
    if index < 0:
        raise InvalidRangeError(f"negative column index: {index}")
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_index(letters: str) -> int:
    if not letters or not letters.isalpha():
        raise InvalidRangeError(f"invalid column letters: {letters!r}")
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def _quote_sheet(sheet: str) -> str:
    if _PLAIN_SHEET.match(sheet):
        return sheet
    return "'" + sheet.replace("'", "''") + "'"


def cell_range(sheet: str, row: int, col: int) -> str:
    if row < 1:
        raise InvalidRangeError(f"row must be >= 1: {row}")
    return f"{_quote_sheet(sheet)}!{column_letter(col)}{row}"


def row_range(sheet: str, row: int) -> str:
    if row < 1:
        raise InvalidRangeError(f"row must be >= 1: {row}")
    return f"{_quote_sheet(sheet)}!{row}:{row}"


def _split_sheet(text: str) -> tuple[str | None, str]:
    if text.startswith("'"):
        # 'It''s'!A1 -> It's
        end = 1
        while True:
            end = text.find("'", end)
            if end == -1:
                raise InvalidRangeError(f"unterminated sheet quote: {text!r}")
            if text[end + 1:end + 2] == "'":
                end += 2
                continue
            break
        if text[end + 1:end + 2] != "!":
            raise InvalidRangeError(f"expected '!' after sheet name: {text!r}")
        return text[1:end].replace("''", "'"), text[end + 2:]
    if "!" in text:
        sheet, _, ref = text.rpartition("!")
        return sheet, ref
    return None, text


def parse_range(text: str) -> ParsedRange:
    if not isinstance(text, str) or not text.strip():
        raise InvalidRangeError(f"empty range: {text!r}")
    sheet, ref = _split_sheet(text.strip())
    m = _CELL.match(ref)
    if m:
        row = int(m.group(2))
        if row < 1:
            raise InvalidRangeError(f"row must be >= 1: {text!r}")
        return ParsedRange(sheet=sheet, row=row, col=column_index(m.group(1)))
    m = _ROW.match(ref)
    if m:
        start, end = int(m.group(1)), int(m.group(2))
        if start != end or start < 1:
            raise InvalidRangeError(f"only single-row ranges are supported: {text!r}")
        return ParsedRange(sheet=sheet, row=start, col=None)
    raise InvalidRangeError(f"unsupported range: {text!r}")
