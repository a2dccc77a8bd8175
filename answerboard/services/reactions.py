from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from answerboard.cache.header_index import HeaderIndexCache
from answerboard.errors import InvalidInput, UpdateFailed
from answerboard.locking import Lock, held
from answerboard.models.board_row import HighlightResult, ReactionResult, ReactionState
from answerboard.store.a1 import cell_range
from answerboard.store.row_store import CellWrite, RowStore, RowStoreError

from . import reaction_codec

"""Row-level reaction and highlight updates.

`ReactionService.apply_reaction` toggles the acting user's membership in one
reaction kind's set for a row and removes the user from every other kind on
the same row, so a user holds at most one reaction per row. The whole
read-decode-mutate-encode-write sequence, column resolution included, runs
under the process-wide lock; the lock is released on every path.

Row numbers here are data-row numbers (1 = first answer); the physical sheet
row is ``row_index + 1``.
"""

__all__ = [
    "HIGHLIGHT",
    "ReactionService",
    "is_highlighted",
    "normalize_actor",
]

logger = logging.getLogger(__name__)

HIGHLIGHT = "HIGHLIGHT"
_TRUTHY = {"TRUE", "1", "YES"}


def normalize_actor(value: Any) -> str:
    """Reaction sets hold lower-cased emails; one person is one member whatever the case."""
    return str(value or "").strip().lower()


def _holds(users: list[str], actor: str) -> bool:
    return any(u.lower() == actor for u in users)


def _without(users: list[str], actor: str) -> list[str]:
    # 大文字小文字違いで書かれた既存の値もまとめて除く
    return [u for u in users if u.lower() != actor]


def is_highlighted(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value if value is not None else "").strip().upper() in _TRUTHY


class ReactionService:
    def __init__(
        self,
        store: RowStore,
        lock: Lock,
        header_cache: HeaderIndexCache,
        reaction_kinds: Sequence[str],
        lock_timeout_ms: int = 10_000,
    ) -> None:
        self.store = store
        self.lock = lock
        self.header_cache = header_cache
        self.reaction_kinds = [k.upper() for k in reaction_kinds]
        self.lock_timeout_ms = lock_timeout_ms

    def normalize_kind(self, reaction_kind: Any) -> str:
        kind = str(reaction_kind or "").strip().upper()
        if kind not in self.reaction_kinds:
            raise InvalidInput(
                f"invalid reaction kind {reaction_kind!r}; expected one of {self.reaction_kinds}"
            )
        return kind

    @staticmethod
    def _check_row_index(row_index: Any) -> int:
        if isinstance(row_index, bool) or not isinstance(row_index, int) or row_index < 1:
            raise InvalidInput(f"row index must be a positive integer, got {row_index!r}")
        return row_index

    def _require_row(self, spreadsheet_id: str, sheet_name: str, row_index: int) -> int:
        physical = row_index + 1
        if physical > self.store.last_row(spreadsheet_id, sheet_name):
            raise InvalidInput(f"row {row_index} does not exist in sheet '{sheet_name}'")
        return physical

    def _kind_columns(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        target: str | None,
        column_mapping: Mapping[str, Any] | None,
    ) -> dict[str, int]:
        if target is not None:
            self.header_cache.resolve(
                spreadsheet_id, sheet_name, [target], column_mapping=column_mapping
            )
        indices = self.header_cache.get_header_indices(
            spreadsheet_id, sheet_name, column_mapping=column_mapping
        )
        columns = {k: indices[k] for k in self.reaction_kinds if k in indices}
        missing = [k for k in self.reaction_kinds if k not in columns]
        if missing:
            logger.warning("sheet=%s reaction columns missing: %s", sheet_name, missing)
        return columns

    def _read_sets(
        self, spreadsheet_id: str, sheet_name: str, physical_row: int, columns: dict[str, int]
    ) -> dict[str, list[str]]:
        kinds = list(columns)
        ranges = [cell_range(sheet_name, physical_row, columns[k]) for k in kinds]
        blocks = self.store.batch_get(spreadsheet_id, sheet_name, ranges)
        return {
            kind: reaction_codec.decode(block[0][0] if block and block[0] else "")
            for kind, block in zip(kinds, blocks, strict=True)
        }

    def apply_reaction(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        reaction_kind: str,
        acting_user_id: str,
        *,
        column_mapping: Mapping[str, Any] | None = None,
    ) -> ReactionResult:
        row_index = self._check_row_index(row_index)
        kind = self.normalize_kind(reaction_kind)
        actor = normalize_actor(acting_user_id)
        if not actor:
            raise InvalidInput("acting user id is required")

        with held(self.lock, self.lock_timeout_ms, "apply_reaction"):
            try:
                columns = self._kind_columns(spreadsheet_id, sheet_name, kind, column_mapping)
                physical = self._require_row(spreadsheet_id, sheet_name, row_index)
                sets = self._read_sets(spreadsheet_id, sheet_name, physical, columns)

                mutated: set[str] = set()
                if _holds(sets[kind], actor):
                    sets[kind] = _without(sets[kind], actor)
                    action = "removed"
                else:
                    sets[kind].append(actor)
                    action = "added"
                mutated.add(kind)
                for other, users in sets.items():
                    if other != kind and _holds(users, actor):
                        sets[other] = _without(users, actor)
                        mutated.add(other)

                writes = [
                    CellWrite(
                        cell_range(sheet_name, physical, columns[k]),
                        [[reaction_codec.encode(sets[k])]],
                    )
                    for k in columns
                    if k in mutated
                ]
                self.store.batch_update(spreadsheet_id, sheet_name, writes)
            except RowStoreError as e:
                raise UpdateFailed(
                    f"reaction update failed for {sheet_name} row {row_index}: {e}"
                ) from e

        logger.debug(
            "reaction %s kind=%s row=%d sheet=%s count=%d",
            action, kind, row_index, sheet_name, len(sets[kind]),
        )
        return ReactionResult(
            action=action,
            count=len(sets[kind]),
            user_reaction=kind if action == "added" else None,
            reactions={
                k: ReactionState(count=len(users), reacted=_holds(users, actor))
                for k, users in sets.items()
            },
        )

    def read_reactions(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        viewer: str | None = None,
        *,
        column_mapping: Mapping[str, Any] | None = None,
    ) -> dict[str, ReactionState]:
        """Current reaction state of a row, read without the lock."""
        row_index = self._check_row_index(row_index)
        viewer_id = normalize_actor(viewer)
        try:
            columns = self._kind_columns(spreadsheet_id, sheet_name, None, column_mapping)
            physical = self._require_row(spreadsheet_id, sheet_name, row_index)
            sets = self._read_sets(spreadsheet_id, sheet_name, physical, columns)
        except RowStoreError as e:
            raise UpdateFailed(f"reaction read failed for {sheet_name} row {row_index}: {e}") from e
        return {
            k: ReactionState(count=len(users), reacted=bool(viewer_id) and _holds(users, viewer_id))
            for k, users in sets.items()
        }

    def toggle_highlight(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        *,
        column_mapping: Mapping[str, Any] | None = None,
    ) -> HighlightResult:
        """Flip the row's highlight flag. Callers check owner/admin rights first."""
        row_index = self._check_row_index(row_index)
        with held(self.lock, self.lock_timeout_ms, "toggle_highlight"):
            try:
                col = self.header_cache.resolve(
                    spreadsheet_id, sheet_name, [HIGHLIGHT], column_mapping=column_mapping
                )[HIGHLIGHT]
                physical = self._require_row(spreadsheet_id, sheet_name, row_index)
                target = cell_range(sheet_name, physical, col)
                [block] = self.store.batch_get(spreadsheet_id, sheet_name, [target])
                current = is_highlighted(block[0][0] if block and block[0] else "")
                highlighted = not current
                self.store.batch_update(
                    spreadsheet_id,
                    sheet_name,
                    [CellWrite(target, [["true" if highlighted else "false"]])],
                )
            except RowStoreError as e:
                raise UpdateFailed(
                    f"highlight update failed for {sheet_name} row {row_index}: {e}"
                ) from e
        return HighlightResult(highlighted=highlighted)
