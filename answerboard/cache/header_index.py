from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from answerboard.errors import ColumnNotFound
from answerboard.store.a1 import row_range
from answerboard.store.row_store import RowStore

from .ttl_cache import Cache, put_json

"""Header index cache: logical column name -> zero-based physical column.

The source of truth is row 1 of the sheet; the cached copy is the raw header
row, kept for ``ttl`` seconds. Schema changes made through this package call
`HeaderIndexCache.invalidate`. A change made outside it is picked up either
when the TTL expires or by `resolve`, which re-reads row 1 once before
reporting a column as missing.
"""

__all__ = [
    "HeaderIndexCache",
    "header_cache_key",
    "normalize_label",
]

logger = logging.getLogger(__name__)

DEFAULT_TTL = 1200  # ヘッダーは滅多に変わらないので長め


def header_cache_key(spreadsheet_id: str, sheet_name: str) -> str:
    return f"sheet_headers_{spreadsheet_id}_{sheet_name}"


def normalize_label(value: Any) -> str:
    return str(value if value is not None else "").strip().upper()


class HeaderIndexCache:
    def __init__(
        self,
        store: RowStore,
        cache: Cache,
        labels: Mapping[str, str],
        ttl: int = DEFAULT_TTL,
    ) -> None:
        self.store = store
        self.cache = cache
        self.labels = dict(labels)
        self.ttl = ttl

    def read_headers(
        self, spreadsheet_id: str, sheet_name: str, *, force_refresh: bool = False
    ) -> list[str]:
        key = header_cache_key(spreadsheet_id, sheet_name)
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                try:
                    return json.loads(cached)
                except ValueError:
                    logger.warning("header cache entry %s unreadable, refetching", key)
        [block] = self.store.batch_get(spreadsheet_id, sheet_name, [row_range(sheet_name, 1)])
        headers = ["" if v is None else str(v) for v in (block[0] if block else [])]
        if headers:
            put_json(self.cache, key, headers, self.ttl)
        return headers

    def invalidate(self, spreadsheet_id: str, sheet_name: str) -> None:
        self.cache.remove(header_cache_key(spreadsheet_id, sheet_name))

    def build_indices(
        self, headers: list[str], column_mapping: Mapping[str, Any] | None = None
    ) -> dict[str, int]:
        labels: dict[str, Any] = dict(self.labels)
        if column_mapping:
            labels.update({k: v for k, v in column_mapping.items() if v not in (None, "")})
        by_label: dict[str, int] = {}
        for idx, header in enumerate(headers):
            by_label.setdefault(normalize_label(header), idx)
        indices: dict[str, int] = {}
        for name, label in labels.items():
            # 列番号で直接指定されたマッピングも受け付ける
            if isinstance(label, int) and not isinstance(label, bool):
                if 0 <= label < len(headers):
                    indices[name] = label
                continue
            idx = by_label.get(normalize_label(label))
            if idx is not None:
                indices[name] = idx
        return indices

    def get_header_indices(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        *,
        column_mapping: Mapping[str, Any] | None = None,
        force_refresh: bool = False,
    ) -> dict[str, int]:
        headers = self.read_headers(spreadsheet_id, sheet_name, force_refresh=force_refresh)
        return self.build_indices(headers, column_mapping)

    def resolve(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        names: Iterable[str],
        *,
        column_mapping: Mapping[str, Any] | None = None,
    ) -> dict[str, int]:
        """Indices for every name in ``names``; raises `ColumnNotFound` otherwise."""
        wanted = list(names)
        indices = self.get_header_indices(
            spreadsheet_id, sheet_name, column_mapping=column_mapping
        )
        if any(n not in indices for n in wanted):
            logger.debug("header cache miss for %s/%s, re-reading row 1", spreadsheet_id, sheet_name)
            indices = self.get_header_indices(
                spreadsheet_id, sheet_name, column_mapping=column_mapping, force_refresh=True
            )
        missing = [n for n in wanted if n not in indices]
        if missing:
            headers = self.read_headers(spreadsheet_id, sheet_name)
            raise ColumnNotFound(sheet_name, missing, [h for h in headers if h.strip()])
        return {n: indices[n] for n in wanted}
