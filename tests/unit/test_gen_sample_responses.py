from __future__ import annotations

import importlib.util
from pathlib import Path

from answerboard.excel.reader import normalize_responses, read_response_file

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "gen_sample_responses.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("gen_sample_responses", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_generated_workbook_imports_cleanly(tmp_path: Path):
    gen = _load_script()
    out = tmp_path / "science.xlsx"
    assert gen.main([str(out), "--rows", "5", "--classes", "1-A", "2-B"]) == 0

    frames = read_response_file(out)
    assert list(frames) == ["1-A", "2-B"]
    sheet = normalize_responses(frames["2-B"], "2-B")
    assert sheet.columns == gen.HEADER
    assert len(sheet.rows) == 5
    assert {row[2] for row in sheet.rows} == {"2-B"}
    # タイムスタンプは昇順
    stamps = [row[0] for row in sheet.rows]
    assert stamps == sorted(stamps)


def test_dry_run_and_bad_args(tmp_path: Path):
    gen = _load_script()
    assert gen.main([str(tmp_path / "x.xlsx"), "--dry-run"]) == 0
    assert not (tmp_path / "x.xlsx").exists()
    assert gen.main([str(tmp_path / "x.xlsx"), "--rows", "0"]) == 1
    assert gen.main([str(tmp_path / "x.csv")]) == 1
