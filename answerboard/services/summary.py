from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering for response imports."""

__all__ = [
    "render_summary_line",
]


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render the import SUMMARY line.

    Format:
        SUMMARY files={total} success={success} failed={failed} rows={rows} elapsed_sec={elapsed}

    >>> from datetime import UTC, datetime
    >>> t = datetime(2024, 4, 1, tzinfo=UTC)
    >>> render_summary_line(ImportResult(2, 1, 40, t, t, 1.5))
    'SUMMARY files=3 success=2 failed=1 rows=40 elapsed_sec=1.5'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
