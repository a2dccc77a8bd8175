from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from answerboard.cache.header_index import HeaderIndexCache
from answerboard.errors import (
    AccessDenied,
    BoardError,
    ColumnNotFound,
    InvalidInput,
    UpdateFailed,
    UserNotFound,
)
from answerboard.logging.audit_log import AuditLogBuffer
from answerboard.models.audit_record import AuditRecord
from answerboard.models.user_record import UserRecord
from answerboard.store.row_store import RowStoreError

from .access import AccessMode, check_access
from .board import BoardReader
from .context import RequestContext
from .reactions import HIGHLIGHT, ReactionService
from .users import UserRepository

"""Operation boundary.

Every public operation here returns a plain dict and never raises:

    {"status": "success", ...}
    {"status": "error", "message": ..., "errorType": ..., "retryable": ...}

Mutations (reactions, highlights, publication, account state) are recorded in
the audit log as processed, denied or failed. Reads are not audited.
"""

__all__ = [
    "BoardActions",
    "parse_row_id",
    "error_result",
]

logger = logging.getLogger(__name__)

_ROW_ID_RE = re.compile(r"^(?:row_)?(\d+)$")


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def parse_row_id(value: Any) -> int:
    """Accept ``5``, ``"5"`` or ``"row_5"``. Returns the 1-based data-row number."""
    if isinstance(value, bool):
        raise InvalidInput(f"invalid row id: {value!r}")
    if isinstance(value, int):
        row = value
    else:
        m = _ROW_ID_RE.match(str(value or "").strip())
        if not m:
            raise InvalidInput(f"invalid row id: {value!r}")
        row = int(m.group(1))
    if row < 1:
        raise InvalidInput(f"row id must be >= 1, got {value!r}")
    return row


def error_result(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, BoardError):
        return {
            "status": "error",
            "message": str(exc),
            "errorType": exc.error_type,
            "retryable": exc.retryable,
        }
    return {
        "status": "error",
        "message": f"unexpected error: {exc}",
        "errorType": "INTERNAL_ERROR",
        "retryable": False,
    }


class BoardActions:
    def __init__(
        self,
        users: UserRepository,
        reactions: ReactionService,
        board_reader: BoardReader,
        audit_log: AuditLogBuffer | None = None,
        admin_emails: Iterable[str] = (),
    ) -> None:
        self.users = users
        self.reactions = reactions
        self.board_reader = board_reader
        self.audit_log = audit_log
        self.admin_emails = frozenset(e.strip().lower() for e in admin_emails)

    def context_for(self, actor_email: str | None) -> RequestContext:
        return RequestContext.for_actor(actor_email, self.admin_emails)

    @property
    def header_cache(self) -> HeaderIndexCache:
        return self.reactions.header_cache

    # -- helpers ---------------------------------------------------------

    def _target(self, ctx: RequestContext, user_id: str) -> UserRecord:
        # 同一リクエスト内での再読込を避ける
        return ctx.memo_get(f"user:{user_id}", lambda: self.users.get(user_id))

    @staticmethod
    def _require_config(target: UserRecord) -> None:
        if not target.config.is_complete:
            raise InvalidInput("Board configuration incomplete")

    def _viewable(self, ctx: RequestContext, user_id: str) -> UserRecord:
        target = self._target(ctx, user_id)
        self._require_config(target)
        if not check_access(AccessMode.VIEW, ctx, target):
            raise AccessDenied("board is not published")
        return target

    def _audit(
        self,
        action: str,
        ctx: RequestContext,
        target: UserRecord | None,
        target_user_id: str,
        row: int,
        detail: Mapping[str, Any],
    ) -> None:
        if self.audit_log is None:
            return
        self.audit_log.append(
            AuditRecord.create(
                action=action,
                actor=ctx.actor_email,
                target=target.user_id if target else target_user_id,
                spreadsheet_id=target.config.spreadsheet_id if target else None,
                row=row,
                detail=dict(detail),
            )
        )

    def _run(
        self,
        name: str,
        ctx: RequestContext,
        target_user_id: str,
        row_id: Any,
        body: Callable[[UserRecord, int], dict[str, Any]],
        detail: Mapping[str, Any],
        *,
        needs_board: bool = True,
    ) -> dict[str, Any]:
        """Resolve the target, run ``body`` and map the outcome to a result + audit line.

        ``row_id`` is None for account-level operations; they are audited with row -1.
        """
        target: UserRecord | None = None
        row = -1
        try:
            if row_id is not None:
                row = parse_row_id(row_id)
            target = self._target(ctx, target_user_id)
            if needs_board:
                self._require_config(target)
            payload = body(target, row)
        except AccessDenied as e:
            self._audit(f"{name}_denied", ctx, target, target_user_id, row, {**detail, "error": str(e)})
            return error_result(e)
        except BoardError as e:
            logger.warning("%s failed: %s (%s)", name, e, e.error_type)
            self._audit(
                f"{name}_error", ctx, target, target_user_id, row,
                {**detail, "error": str(e), "errorType": e.error_type},
            )
            return error_result(e)
        except Exception as e:  # noqa: BLE001 - boundary converts everything to a result
            logger.exception("%s failed unexpectedly", name)
            self._audit(
                f"{name}_error", ctx, target, target_user_id, row,
                {**detail, "error": str(e), "errorType": "INTERNAL_ERROR"},
            )
            return error_result(e)
        self._audit(f"{name}_processed", ctx, target, target_user_id, row, {**detail, **payload})
        return {"status": "success", **payload}

    @staticmethod
    def _query(name: str, body: Callable[[], dict[str, Any]]) -> dict[str, Any]:
        """Unaudited variant of `_run` for reads and registration."""
        try:
            payload = body()
        except BoardError as e:
            return error_result(e)
        except Exception as e:  # noqa: BLE001
            logger.exception("%s failed unexpectedly", name)
            return error_result(e)
        return {"status": "success", **payload}

    # -- operations ------------------------------------------------------

    def add_reaction(
        self, ctx: RequestContext, target_user_id: str, row_id: Any, reaction_kind: str
    ) -> dict[str, Any]:
        def body(target: UserRecord, row: int) -> dict[str, Any]:
            if not check_access(AccessMode.REACT, ctx, target):
                raise AccessDenied("not allowed to react on this board")
            config = target.config
            result = self.reactions.apply_reaction(
                config.spreadsheet_id,
                config.sheet_name,
                row,
                reaction_kind,
                ctx.actor_email or "",
                column_mapping=config.column_mapping,
            )
            return {"rowId": f"row_{row}", "reaction": str(reaction_kind).upper(), **result.to_dict()}

        return self._run("reaction", ctx, target_user_id, row_id, body, {"kind": str(reaction_kind)})

    def toggle_highlight(self, ctx: RequestContext, target_user_id: str, row_id: Any) -> dict[str, Any]:
        def body(target: UserRecord, row: int) -> dict[str, Any]:
            if not check_access(AccessMode.HIGHLIGHT, ctx, target):
                raise AccessDenied("only the board owner can highlight answers")
            config = target.config
            result = self.reactions.toggle_highlight(
                config.spreadsheet_id, config.sheet_name, row, column_mapping=config.column_mapping
            )
            return {"rowId": f"row_{row}", **result.to_dict()}

        return self._run("highlight", ctx, target_user_id, row_id, body, {})

    def get_board(
        self,
        ctx: RequestContext,
        target_user_id: str,
        sort_by: str | None = None,
        class_filter: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Read-only; not audited."""

        def body() -> dict[str, Any]:
            target = self._viewable(ctx, target_user_id)
            rows = self.board_reader.read_board(
                ctx, target, sort_by=sort_by, class_filter=class_filter, limit=limit
            )
            config = target.config
            return {
                "sheetName": config.sheet_name,
                "showCounts": config.show_counts,
                "isOwner": check_access(AccessMode.OWNER, ctx, target),
                "rows": [r.to_dict() for r in rows],
            }

        return self._query("get_board", body)

    def get_data_count(
        self, ctx: RequestContext, target_user_id: str, class_filter: str | None = None
    ) -> dict[str, Any]:
        def body() -> dict[str, Any]:
            target = self._viewable(ctx, target_user_id)
            rows = self.board_reader.read_board(ctx, target, class_filter=class_filter)
            return {"count": len(rows), "sheetName": target.config.sheet_name}

        return self._query("get_data_count", body)

    def get_row_reactions(self, ctx: RequestContext, target_user_id: str, row_id: Any) -> dict[str, Any]:
        """Reaction counts of one row, with the viewer's own flags."""

        def body() -> dict[str, Any]:
            row = parse_row_id(row_id)
            target = self._viewable(ctx, target_user_id)
            config = target.config
            states = self.reactions.read_reactions(
                config.spreadsheet_id,
                config.sheet_name,
                row,
                ctx.actor_email,
                column_mapping=config.column_mapping,
            )
            return {"rowId": f"row_{row}", "reactions": {k: s.to_dict() for k, s in states.items()}}

        return self._query("get_row_reactions", body)

    def validate_headers(self, ctx: RequestContext, target_user_id: str) -> dict[str, Any]:
        """Check that the board sheet carries the answer, reaction and highlight columns.

        A sheet with missing columns is still a success result, with
        ``valid: False`` and the missing / available header names.
        """

        def body() -> dict[str, Any]:
            target = self._target(ctx, target_user_id)
            self._require_config(target)
            if not check_access(AccessMode.OWNER, ctx, target):
                raise AccessDenied("only the board owner can validate headers")
            config = target.config
            names = ["opinion", *self.reactions.reaction_kinds, HIGHLIGHT]
            try:
                columns = self.header_cache.resolve(
                    config.spreadsheet_id, config.sheet_name, names, column_mapping=config.column_mapping
                )
            except ColumnNotFound as e:
                return {"valid": False, "missing": e.missing, "available": e.available}
            except RowStoreError as e:
                raise UpdateFailed(f"header read failed for {config.sheet_name}: {e}") from e
            return {"valid": True, "missing": [], "columns": columns}

        return self._query("validate_headers", body)

    def set_published(
        self, ctx: RequestContext, target_user_id: str, published: bool | None = None
    ) -> dict[str, Any]:
        """Publish or unpublish a board. ``None`` flips the current state."""

        def body(target: UserRecord, _row: int) -> dict[str, Any]:
            if not check_access(AccessMode.OWNER, ctx, target):
                raise AccessDenied("only the board owner can change publication")
            was_published = target.config.is_published
            value = not was_published if published is None else bool(published)
            changes: dict[str, Any] = {"isPublished": value}
            if value:
                # シート未設定のボードは公開できない
                self._require_config(target)
                if not target.config.extra.get("publishedAt"):
                    changes["publishedAt"] = _now()
            else:
                changes["publishedAt"] = None
            self.users.update_config(target.user_id, changes)
            return {"userId": target.user_id, "isPublished": value, "wasPublished": was_published}

        detail = {} if published is None else {"requested": bool(published)}
        return self._run("publish", ctx, target_user_id, None, body, detail, needs_board=False)

    def set_active(
        self, ctx: RequestContext, target_user_id: str, active: bool | None = None
    ) -> dict[str, Any]:
        """Admin only. ``None`` flips the current state."""

        def body(target: UserRecord, _row: int) -> dict[str, Any]:
            if not check_access(AccessMode.ADMIN, ctx, target):
                raise AccessDenied("admin rights required")
            value = not target.is_active if active is None else bool(active)
            updated = self.users.update(target.user_id, {"isActive": value})
            return {"userId": updated.user_id, "isActive": updated.is_active}

        return self._run("set_active", ctx, target_user_id, None, body, {}, needs_board=False)

    def delete_user(self, ctx: RequestContext, target_user_id: str) -> dict[str, Any]:
        def body(target: UserRecord, _row: int) -> dict[str, Any]:
            if not check_access(AccessMode.ADMIN, ctx, target):
                raise AccessDenied("admin rights required")
            self.users.delete(target.user_id)
            return {"userId": target.user_id, "deleted": True}

        return self._run("delete_user", ctx, target_user_id, None, body, {}, needs_board=False)

    def list_users(
        self, ctx: RequestContext, active_only: bool = False, published_only: bool = False
    ) -> dict[str, Any]:
        def body() -> dict[str, Any]:
            if not ctx.is_admin:
                raise AccessDenied("admin rights required")
            users = self.users.get_all(active_only=active_only, published_only=published_only)
            return {"count": len(users), "users": [u.to_dict() for u in users]}

        return self._query("list_users", body)

    def find_board_owner(self, ctx: RequestContext, spreadsheet_id: str) -> dict[str, Any]:
        """Owner record of the board on ``spreadsheet_id``. Admins, or that owner."""

        def body() -> dict[str, Any]:
            owner = self.users.find_by_spreadsheet_id(spreadsheet_id)
            # 非管理者には存在の有無も返さない
            if not ctx.is_admin and (owner is None or not ctx.is_actor(owner.user_email)):
                raise AccessDenied("admin rights required")
            if owner is None:
                raise UserNotFound(f"no board on spreadsheet {spreadsheet_id}")
            return {"user": owner.to_dict(), "isPublished": owner.config.is_published}

        return self._query("find_board_owner", body)

    def create_user(
        self, ctx: RequestContext, email: str, initial_config: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Register a board owner. Admins may register anyone, others only themselves."""

        def body() -> dict[str, Any]:
            if not (ctx.is_admin or ctx.is_actor(email)):
                raise AccessDenied("only admins can register other users")
            return {"user": self.users.create(email, initial_config).to_dict()}

        return self._query("create_user", body)
