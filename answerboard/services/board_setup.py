from __future__ import annotations

import logging
from collections.abc import Sequence

from answerboard.cache.header_index import HeaderIndexCache, normalize_label
from answerboard.store.a1 import cell_range
from answerboard.store.row_store import CellWrite, RowStore

"""Prepare a response sheet for use as a board.

Reaction and highlight columns are appended to the header row once, after
the last existing column. The header cache entry for the sheet is dropped
afterwards so the next resolution sees the new columns.
"""

__all__ = [
    "ensure_board_columns",
]

logger = logging.getLogger(__name__)


def ensure_board_columns(
    store: RowStore,
    header_cache: HeaderIndexCache,
    spreadsheet_id: str,
    sheet_name: str,
    labels: Sequence[str],
) -> list[str]:
    """Append every label missing from row 1; returns the labels added."""
    headers = header_cache.read_headers(spreadsheet_id, sheet_name, force_refresh=True)
    present = {normalize_label(h) for h in headers}
    missing = [label for label in labels if normalize_label(label) not in present]
    if not missing:
        return []

    # 末尾の空ヘッダーは詰めずに、その後ろへ追加する
    last_col = len(headers)
    store.batch_update(
        spreadsheet_id,
        sheet_name,
        [CellWrite(cell_range(sheet_name, 1, last_col), [list(missing)])],
    )
    header_cache.invalidate(spreadsheet_id, sheet_name)
    logger.info("sheet=%s added board columns: %s", sheet_name, ", ".join(missing))
    return missing
