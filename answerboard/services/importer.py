from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from answerboard.cache.header_index import HeaderIndexCache, normalize_label
from answerboard.excel.reader import (
    SUPPORTED_SUFFIXES,
    ResponseHeaderError,
    ResponseSheet,
    normalize_responses,
    read_response_file,
)
from answerboard.models.config_models import BoardSettings
from answerboard.models.import_result import FileStat, ImportResult
from answerboard.store.row_store import RowStore

from .board_setup import ensure_board_columns
from .progress import ProgressTracker

"""Seed board sheets from exported form responses.

Each workbook sheet (or csv file) becomes a sheet of the target spreadsheet.
When the sheet already exists, responses are appended under its header,
matched by label. Board columns (reaction kinds, HIGHLIGHT) are added
afterwards. A failing file is counted and logged; the run continues.
"""

__all__ = [
    "ImportProcessingError",
    "scan_response_files",
    "import_directory",
]

logger = logging.getLogger(__name__)


class ImportProcessingError(Exception):
    """Fatal import problem (source directory missing or unreadable)."""


def scan_response_files(directory: Path) -> list[Path]:
    """Non-recursive scan for ``.xlsx`` / ``.csv`` files, sorted by name."""
    if not directory.exists():
        raise ImportProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ImportProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ImportProcessingError(f"Error reading directory {directory}: {e}") from e


@dataclass
class _FileProgress:
    """Rows and sheets written so far for one file, kept when the file fails midway."""
    rows: int = 0
    sheets: list[str] = field(default_factory=list)


def _write_sheet(
    store: RowStore, spreadsheet_id: str, sheet: ResponseSheet, done: _FileProgress
) -> None:
    if not store.sheet_exists(spreadsheet_id, sheet.sheet_name):
        store.create_sheet(spreadsheet_id, sheet.sheet_name, sheet.columns)
        for row in sheet.rows:
            store.append_row(spreadsheet_id, sheet.sheet_name, row)
            done.rows += 1
        return

    # 既存シート: ヘッダー名で列を合わせて追記
    existing = store.get_all_values(spreadsheet_id, sheet.sheet_name)
    headers = [normalize_label(h) for h in (existing[0] if existing else [])]
    if not headers:
        raise ResponseHeaderError(f"existing sheet '{sheet.sheet_name}' has no header row")
    positions = {normalize_label(c): i for i, c in enumerate(sheet.columns)}
    unknown = [c for c in sheet.columns if normalize_label(c) not in headers]
    if unknown:
        logger.warning("sheet=%s ignoring columns not in existing header: %s", sheet.sheet_name, unknown)
    for row in sheet.rows:
        aligned = [row[positions[h]] if h in positions else "" for h in headers]
        store.append_row(spreadsheet_id, sheet.sheet_name, aligned)
        done.rows += 1


def _import_file(
    path: Path,
    settings: BoardSettings,
    store: RowStore,
    header_cache: HeaderIndexCache,
    spreadsheet_id: str,
    done: _FileProgress,
) -> None:
    board_labels = [*settings.reaction_kinds.values(), settings.highlight_column]
    # 読み込みと正規化を先に全シート分済ませる (不正なファイルは何も書かない)
    sheets = [normalize_responses(df, name) for name, df in read_response_file(path).items()]
    for sheet in sheets:
        _write_sheet(store, spreadsheet_id, sheet, done)
        ensure_board_columns(store, header_cache, spreadsheet_id, sheet.sheet_name, board_labels)
        done.sheets.append(sheet.sheet_name)
        logger.debug("file=%s sheet=%s rows=%d", path.name, sheet.sheet_name, len(sheet.rows))


def import_directory(
    settings: BoardSettings,
    store: RowStore,
    header_cache: HeaderIndexCache,
    spreadsheet_id: str,
    directory: Path | None = None,
) -> ImportResult:
    """Import every response file of ``directory`` (default: ``settings.source_directory``).

    Raises:
        ImportProcessingError: no directory configured, or it cannot be scanned
    """
    start_time = datetime.now(UTC)
    if directory is None:
        if not settings.source_directory:
            raise ImportProcessingError("source_directory is not configured")
        directory = Path(settings.source_directory)
    file_paths = scan_response_files(directory)

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_rows = 0

    with ProgressTracker(len(file_paths)) as progress:
        for path in file_paths:
            progress.start_file(path)
            file_start = datetime.now(UTC)
            done = _FileProgress()
            try:
                _import_file(path, settings, store, header_cache, spreadsheet_id, done)
            except Exception as e:  # noqa: BLE001 - one bad file must not stop the run
                failed_count += 1
                total_rows += done.rows
                logger.error("file=%s import failed: %s", path.name, e)
                if done.rows:
                    logger.warning("file=%s %d rows were written before the failure", path.name, done.rows)
                stat = FileStat(
                    file_name=path.name,
                    status="failed",
                    imported_rows=done.rows,
                    sheets=list(done.sheets),
                    elapsed_seconds=(datetime.now(UTC) - file_start).total_seconds(),
                    error=str(e),
                )
            else:
                success_count += 1
                total_rows += done.rows
                logger.info("file=%s rows=%d sheets=%s", path.name, done.rows, ",".join(done.sheets))
                stat = FileStat(
                    file_name=path.name,
                    status="success",
                    imported_rows=done.rows,
                    sheets=list(done.sheets),
                    elapsed_seconds=(datetime.now(UTC) - file_start).total_seconds(),
                )
            file_stats.append(stat)
            progress.finish_file(success=success_count, failed=failed_count, rows=total_rows)

    end_time = datetime.now(UTC)
    return ImportResult(
        success_files=success_count,
        failed_files=failed_count,
        total_rows=total_rows,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
