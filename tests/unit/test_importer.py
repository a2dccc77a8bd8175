from __future__ import annotations

from pathlib import Path

import pytest

from answerboard.services.importer import ImportProcessingError, import_directory, scan_response_files

SS = "import-ss"


def _csv(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_scan_filters_and_sorts(tmp_path: Path):
    _csv(tmp_path / "b.csv", "回答\nx\n")
    _csv(tmp_path / "a.csv", "回答\nx\n")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")
    (tmp_path / "~$lock.xlsx").write_bytes(b"")
    (tmp_path / "sub").mkdir()
    assert [p.name for p in scan_response_files(tmp_path)] == ["a.csv", "b.csv"]


def test_scan_missing_directory(tmp_path: Path):
    with pytest.raises(ImportProcessingError):
        scan_response_files(tmp_path / "nope")


def test_import_creates_board_sheets(tmp_path, settings, store, header_cache):
    _csv(tmp_path / "1-A.csv", "名前,回答,理由\nAoi,光合成,葉\nBen,呼吸,\n")
    result = import_directory(settings, store, header_cache, SS, directory=tmp_path)
    assert (result.success_files, result.failed_files, result.total_rows) == (1, 0, 2)
    values = store.get_all_values(SS, "1-A")
    assert values[0] == ["名前", "回答", "理由", "UNDERSTAND", "LIKE", "CURIOUS", "HIGHLIGHT"]
    assert values[1][:3] == ["Aoi", "光合成", "葉"]
    assert result.file_stats[0].sheets == ["1-A"]


def test_import_appends_to_existing_sheet_by_label(tmp_path, settings, store, header_cache):
    store.create_sheet(SS, "1-A", ["回答", "名前", "LIKE"])
    _csv(tmp_path / "1-A.csv", "名前,回答,色\nAoi,光合成,赤\n")
    import_directory(settings, store, header_cache, SS, directory=tmp_path)
    values = store.get_all_values(SS, "1-A")
    assert values[1][:3] == ["光合成", "Aoi", ""]


def test_failed_file_does_not_stop_run(tmp_path, settings, store, header_cache):
    _csv(tmp_path / "good.csv", "回答\nok\n")
    (tmp_path / "broken.xlsx").write_bytes(b"not a zip")
    result = import_directory(settings, store, header_cache, SS, directory=tmp_path)
    assert (result.success_files, result.failed_files) == (1, 1)
    failed = [s for s in result.file_stats if s.status == "failed"]
    assert failed[0].file_name == "broken.xlsx"
    assert failed[0].error


def test_source_directory_required(settings, store, header_cache):
    with pytest.raises(ImportProcessingError, match="source_directory"):
        import_directory(settings, store, header_cache, SS)


def test_failure_after_writes_reports_written_rows(tmp_path, settings, store, header_cache, monkeypatch):
    import answerboard.services.importer as importer
    from answerboard.store import RowStoreError

    def broken(*args, **kwargs):
        raise RowStoreError("header write failed")

    monkeypatch.setattr(importer, "ensure_board_columns", broken)
    _csv(tmp_path / "1-A.csv", "名前,回答\nAoi,光合成\nBen,呼吸\nChie,蒸散\n")
    result = import_directory(settings, store, header_cache, SS, directory=tmp_path)
    stat = result.file_stats[0]
    assert (stat.status, stat.imported_rows, stat.sheets) == ("failed", 3, [])
    assert result.total_rows == 3
    assert store.last_row(SS, "1-A") == 4


def test_bad_sheet_in_workbook_writes_nothing(tmp_path, settings, store, header_cache):
    import pandas as pd

    path = tmp_path / "science.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([["回答"], ["光合成"]]).to_excel(writer, sheet_name="1-A", header=False, index=False)
        # 空シートはヘッダー行が無いので読み込み段階で失敗する
        pd.DataFrame().to_excel(writer, sheet_name="1-B", header=False, index=False)
    result = import_directory(settings, store, header_cache, SS, directory=tmp_path)
    assert result.file_stats[0].imported_rows == 0
    assert result.total_rows == 0
    assert not store.sheet_exists(SS, "1-A")
