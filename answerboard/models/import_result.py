from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Result models for importing exported form responses into board sheets."""

__all__ = [
    "FileStat",
    "ImportResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file import statistics."""
    file_name: str
    status: str  # success/failed
    imported_rows: int
    sheets: list[str]  # board sheets written by this file
    elapsed_seconds: float
    error: str | None = None


@dataclass(frozen=True)
class ImportResult:
    """Aggregated import results, rendered as the SUMMARY line."""
    success_files: int
    failed_files: int
    total_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
