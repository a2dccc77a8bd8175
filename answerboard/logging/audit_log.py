from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

from answerboard.models.audit_record import AuditRecord

"""Audit log buffering for board mutations.

- JSON Lines, fixed schema (no extra keys)
- one ``logs/audit-YYYYMMDD-HHMMSS.log`` (UTC) per process, created on first flush
- records are buffered and written in one append per flush
"""

__all__ = [
    "AuditRecord",
    "AuditLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class AuditLogBuffer:
    """In-memory buffer for audit records. Flush appends JSON Lines.

    Requests may append concurrently; the buffer is guarded by a mutex.
    """
    def __init__(self, logs_dir: Path | None = None, auto_flush_at: int = 50) -> None:
        self._records: list[AuditRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir
        self._mutex = threading.Lock()
        self.auto_flush_at = auto_flush_at

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            logs_dir = self._logs_dir or LOGS_DIR
            logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = logs_dir / f"audit-{stamp}.log"
        return self._file_path

    def append(self, record: AuditRecord) -> None:
        with self._mutex:
            self._records.append(record)
            full = self.auto_flush_at > 0 and len(self._records) >= self.auto_flush_at
        if full:
            self.flush()

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    @property
    def records(self) -> list[AuditRecord]:
        with self._mutex:
            return list(self._records)

    def flush(self) -> Path:
        with self._mutex:
            pending, self._records = self._records, []
        fp = self.file_path
        if not pending:
            return fp
        with fp.open("a", encoding="utf-8") as f:
            for r in pending:
                f.write(r.to_json_line() + "\n")
        return fp
