from __future__ import annotations

import pytest

from answerboard.store.a1 import (
    InvalidRangeError,
    ParsedRange,
    cell_range,
    column_index,
    column_letter,
    parse_range,
    row_range,
)


@pytest.mark.parametrize("index,letters", [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA")])
def test_column_letter_and_index(index, letters):
    assert column_letter(index) == letters
    assert column_index(letters) == index
    assert column_index(letters.lower()) == index


def test_column_letter_negative():
    with pytest.raises(InvalidRangeError):
        column_letter(-1)


def test_cell_range_plain_sheet():
    assert cell_range("Sheet1", 5, 2) == "Sheet1!C5"


def test_cell_range_quotes_sheet_names():
    assert cell_range("Form Responses 1", 2, 0) == "'Form Responses 1'!A2"
    assert cell_range("It's", 1, 1) == "'It''s'!B1"
    assert cell_range("回答", 3, 3) == "'回答'!D3"


def test_row_range():
    assert row_range("Sheet1", 1) == "Sheet1!1:1"
    with pytest.raises(InvalidRangeError):
        row_range("Sheet1", 0)


def test_parse_range_cell_and_row():
    assert parse_range("Sheet1!C5") == ParsedRange(sheet="Sheet1", row=5, col=2)
    assert parse_range("'It''s'!B1") == ParsedRange(sheet="It's", row=1, col=1)
    assert parse_range("'Form Responses 1'!7:7") == ParsedRange(sheet="Form Responses 1", row=7, col=None)
    assert parse_range("AA10") == ParsedRange(sheet=None, row=10, col=26)


@pytest.mark.parametrize("text", ["", "Sheet1!", "Sheet1!A0", "Sheet1!2:3", "'open!A1", "Sheet1!A1:B2"])
def test_parse_range_rejects(text):
    with pytest.raises(InvalidRangeError):
        parse_range(text)


def test_cell_range_parses_back():
    text = cell_range("Form Responses 1", 12, 30)
    assert parse_range(text) == ParsedRange(sheet="Form Responses 1", row=12, col=30)
