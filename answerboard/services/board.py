from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from answerboard.cache.header_index import HeaderIndexCache
from answerboard.errors import InvalidInput, UpdateFailed
from answerboard.models.board_row import BoardRow, ReactionState
from answerboard.models.config_models import ScoringWeights
from answerboard.models.user_record import UserRecord
from answerboard.store.row_store import RowStore, RowStoreError

from . import reaction_codec
from .access import AccessMode, check_access
from .context import RequestContext
from .reactions import HIGHLIGHT, is_highlighted, normalize_actor
from .scoring import SORT_MODES, score_row, sort_rows

"""Board reader: published sheet -> ordered `BoardRow` list for one viewer."""

__all__ = [
    "BoardReader",
]

logger = logging.getLogger(__name__)


def _cell(row: list[Any], indices: dict[str, int], name: str) -> str:
    idx = indices.get(name)
    if idx is None or idx >= len(row):
        return ""
    value = row[idx]
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value).strip()


class BoardReader:
    def __init__(
        self,
        store: RowStore,
        header_cache: HeaderIndexCache,
        reaction_kinds: Sequence[str],
        weights: ScoringWeights | None = None,
    ) -> None:
        self.store = store
        self.header_cache = header_cache
        self.reaction_kinds = [k.upper() for k in reaction_kinds]
        self.weights = weights or ScoringWeights()

    def read_board(
        self,
        ctx: RequestContext,
        target: UserRecord,
        *,
        sort_by: str | None = None,
        class_filter: str | None = None,
        limit: int | None = None,
        rng: random.Random | None = None,
    ) -> list[BoardRow]:
        config = target.config
        if not config.is_complete:
            raise InvalidInput("Board configuration incomplete")
        mode = sort_by or config.sort_order or "newest"
        if mode not in SORT_MODES:
            raise InvalidInput(f"unknown sort mode {mode!r}; expected one of {list(SORT_MODES)}")
        rng = rng or random.Random()
        viewer = normalize_actor(ctx.actor_email)
        show_names = config.display_mode == "named" or check_access(AccessMode.OWNER, ctx, target)
        wanted_class = (class_filter or "").strip()
        if wanted_class.lower() == "all":
            wanted_class = ""

        try:
            values = self.store.get_all_values(config.spreadsheet_id, config.sheet_name)
            # 回答列が無いシートは表示できない
            self.header_cache.resolve(
                config.spreadsheet_id,
                config.sheet_name,
                ["opinion"],
                column_mapping=config.column_mapping,
            )
            indices = self.header_cache.get_header_indices(
                config.spreadsheet_id, config.sheet_name, column_mapping=config.column_mapping
            )
        except RowStoreError as e:
            raise UpdateFailed(f"board read failed for {config.sheet_name}: {e}") from e

        rows: list[BoardRow] = []
        for offset, raw in enumerate(values[1:]):
            opinion = _cell(raw, indices, "opinion")
            if not opinion:
                continue
            class_name = _cell(raw, indices, "class")
            if wanted_class and class_name != wanted_class:
                continue
            reactions = {}
            for kind in self.reaction_kinds:
                users = reaction_codec.decode(_cell(raw, indices, kind))
                reactions[kind] = ReactionState(
                    count=len(users), reacted=bool(viewer) and viewer in {u.lower() for u in users}
                )
            row = BoardRow(
                row_index=offset + 1,
                opinion=opinion,
                reason=_cell(raw, indices, "reason"),
                class_name=class_name,
                name=_cell(raw, indices, "name") if show_names else "",
                email=_cell(raw, indices, "email") if show_names else "",
                timestamp=_cell(raw, indices, "timestamp"),
                reactions=reactions,
                highlighted=is_highlighted(_cell(raw, indices, HIGHLIGHT)),
            )
            if mode != "score":
                row = replace(row, score=score_row(row, self.weights, rng))
            rows.append(row)

        logger.debug("board sheet=%s rows=%d sort=%s", config.sheet_name, len(rows), mode)
        return sort_rows(rows, mode, weights=self.weights, rng=rng, limit=limit)
