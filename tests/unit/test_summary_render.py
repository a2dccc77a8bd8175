from __future__ import annotations

import re
from datetime import UTC, datetime

from answerboard.models.import_result import ImportResult
from answerboard.services.summary import render_summary_line

SUMMARY_RE = re.compile(r"^SUMMARY files=\d+ success=\d+ failed=\d+ rows=\d+ elapsed_sec=[0-9.]+$")
T = datetime(2024, 4, 1, tzinfo=UTC)


def test_summary_format():
    line = render_summary_line(ImportResult(2, 1, 40, T, T, 1.5))
    assert line == "SUMMARY files=3 success=2 failed=1 rows=40 elapsed_sec=1.5"
    assert SUMMARY_RE.match(line)


def test_elapsed_formatting():
    assert render_summary_line(ImportResult(0, 0, 0, T, T, 0.0)).endswith("elapsed_sec=0")
    assert render_summary_line(ImportResult(1, 0, 1, T, T, 2.0)).endswith("elapsed_sec=2")
    assert render_summary_line(ImportResult(1, 0, 1, T, T, 0.000123)).endswith("elapsed_sec=0.000123")
    assert render_summary_line(ImportResult(1, 0, 1, T, T, 1.23456)).endswith("elapsed_sec=1.235")
