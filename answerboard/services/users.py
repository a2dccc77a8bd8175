from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from answerboard.cache.versioned import VersionedCache
from answerboard.errors import InvalidInput, UpdateFailed, UserNotFound
from answerboard.locking import Lock, held
from answerboard.models.user_record import USER_COLUMNS, BoardConfig, UserRecord
from answerboard.store.a1 import cell_range
from answerboard.store.row_store import CellWrite, RowStore, RowStoreError

"""Tenant records kept in the ``users`` sheet of the database spreadsheet.

Reads go through the versioned cache under the ``users`` kind; every write
(create, update, delete) bumps that kind's version, so the next read from any
process misses the old entries and re-reads the sheet.
"""

__all__ = [
    "USERS_SHEET",
    "CACHE_KIND",
    "UserRepository",
    "validate_email",
]

logger = logging.getLogger(__name__)

USERS_SHEET = "users"
CACHE_KIND = "users"

CREATE_LOCK_TIMEOUT_MS = 10_000
UPDATE_LOCK_TIMEOUT_MS = 5_000

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: Any) -> str:
    if not isinstance(email, str) or not _EMAIL_RE.match(email.strip()):
        raise InvalidInput(f"invalid email address: {email!r}")
    return email.strip()


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class UserRepository:
    def __init__(
        self,
        store: RowStore,
        cache: VersionedCache,
        lock: Lock,
        database_spreadsheet_id: str,
        ttl: int = 900,
    ) -> None:
        self.store = store
        self.cache = cache
        self.lock = lock
        self.database_spreadsheet_id = database_spreadsheet_id
        self.ttl = ttl

    def ensure_schema(self) -> None:
        try:
            if not self.store.sheet_exists(self.database_spreadsheet_id, USERS_SHEET):
                self.store.create_sheet(self.database_spreadsheet_id, USERS_SHEET, USER_COLUMNS)
                logger.info("created users sheet in %s", self.database_spreadsheet_id)
        except RowStoreError as e:
            raise UpdateFailed(f"users sheet setup failed: {e}") from e

    # -- reads -----------------------------------------------------------

    def _read_sheet(self) -> tuple[list[str], list[tuple[int, UserRecord]]]:
        """Uncached read: header plus (physical row, record) pairs."""
        try:
            values = self.store.get_all_values(self.database_spreadsheet_id, USERS_SHEET)
        except RowStoreError as e:
            raise UpdateFailed(f"users sheet read failed: {e}") from e
        if not values:
            return list(USER_COLUMNS), []
        headers = [str(h) for h in values[0]]
        records = [
            (i + 2, UserRecord.from_row(row, headers))
            for i, row in enumerate(values[1:])
            if any(str(c).strip() for c in row)
        ]
        return headers, records

    def get_all(self, active_only: bool = False, published_only: bool = False) -> list[UserRecord]:
        params = [p for p, on in (("active", active_only), ("published", published_only)) if on]

        def load() -> list[dict[str, Any]]:
            _, records = self._read_sheet()
            users = []
            for _, user in records:
                if active_only and not user.is_active:
                    continue
                if published_only and not user.config.is_published:
                    continue
                users.append(user.to_dict())
            return users

        return [UserRecord.from_dict(d) for d in self.cache.get(CACHE_KIND, params, load, self.ttl)]

    def _find_cached(self, field: str, value: str, match) -> UserRecord | None:
        def load() -> dict[str, Any] | None:
            for user in self.get_all():
                if match(user):
                    return user.to_dict()
            return None

        found = self.cache.get(CACHE_KIND, (field, value), load, self.ttl)
        return UserRecord.from_dict(found) if found else None

    def find_by_id(self, user_id: str) -> UserRecord | None:
        if not user_id:
            return None
        return self._find_cached("id", user_id, lambda u: u.user_id == user_id)

    def find_by_email(self, email: str) -> UserRecord | None:
        if not email or not email.strip():
            return None
        needle = email.strip().lower()
        return self._find_cached("email", needle, lambda u: u.user_email.lower() == needle)

    def find_by_spreadsheet_id(self, spreadsheet_id: str) -> UserRecord | None:
        if not spreadsheet_id:
            return None
        return self._find_cached(
            "sheet", spreadsheet_id, lambda u: u.config.spreadsheet_id == spreadsheet_id
        )

    def get(self, user_id: str) -> UserRecord:
        user = self.find_by_id(user_id)
        if user is None:
            raise UserNotFound(f"user not found: {user_id}")
        return user

    # -- writes ----------------------------------------------------------

    def create(self, email: str, initial_config: Mapping[str, Any] | None = None) -> UserRecord:
        """Create a tenant, or return the existing one for the same email."""
        email = validate_email(email)
        with held(self.lock, CREATE_LOCK_TIMEOUT_MS, "create_user"):
            _, records = self._read_sheet()
            for _, existing in records:
                if existing.user_email.lower() == email.lower():
                    return existing
            config = BoardConfig.from_dict(dict(initial_config or {}))
            now = _now()
            user = UserRecord(
                user_id=str(uuid.uuid4()),
                user_email=email,
                is_active=True,
                config_json=config.to_json(),
                created_at=now,
                last_modified=now,
            )
            try:
                self.store.append_row(self.database_spreadsheet_id, USERS_SHEET, user.to_row())
            except RowStoreError as e:
                raise UpdateFailed(f"user create failed: {e}") from e
            self.cache.invalidate(CACHE_KIND)
        logger.info("created user %s", user.user_id)
        return user

    def update(self, user_id: str, updates: Mapping[str, Any]) -> UserRecord:
        """Write the named columns (``userEmail``, ``isActive``, ``configJson``) of one user."""
        unknown = [k for k in updates if k not in USER_COLUMNS or k == "userId"]
        if unknown:
            raise InvalidInput(f"cannot update columns: {unknown}")
        with held(self.lock, UPDATE_LOCK_TIMEOUT_MS, "update_user"):
            headers, records = self._read_sheet()
            row_num = next((r for r, u in records if u.user_id == user_id), None)
            if row_num is None:
                raise UserNotFound(f"user not found: {user_id}")
            changes = dict(updates)
            changes["lastModified"] = _now()
            writes = [
                CellWrite(cell_range(USERS_SHEET, row_num, headers.index(col)), [[value]])
                for col, value in changes.items()
                if col in headers
            ]
            try:
                self.store.batch_update(self.database_spreadsheet_id, USERS_SHEET, writes)
            except RowStoreError as e:
                raise UpdateFailed(f"user update failed: {e}") from e
            self.cache.invalidate(CACHE_KIND)
            _, records = self._read_sheet()
        return next(u for r, u in records if u.user_id == user_id)

    def update_config(self, user_id: str, changes: Mapping[str, Any]) -> UserRecord:
        """Merge ``changes`` (camelCase config keys) into the user's configJson."""
        current = self.get(user_id).config.to_dict()
        current.update(changes)
        return self.update(user_id, {"configJson": BoardConfig.from_dict(current).to_json()})

    def delete(self, user_id: str) -> None:
        """Hard delete. Only reachable from explicit admin actions."""
        with held(self.lock, UPDATE_LOCK_TIMEOUT_MS, "delete_user"):
            _, records = self._read_sheet()
            rows = [r for r, u in records if u.user_id == user_id]
            if not rows:
                raise UserNotFound(f"user not found: {user_id}")
            try:
                for row_num in reversed(rows):
                    self.store.delete_row(self.database_spreadsheet_id, USERS_SHEET, row_num)
            except RowStoreError as e:
                raise UpdateFailed(f"user delete failed: {e}") from e
            self.cache.invalidate(CACHE_KIND)
        logger.info("deleted user %s", user_id)
