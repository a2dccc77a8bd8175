from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

"""Tenant identity and its per-board settings.

A `UserRecord` is one row of the ``users`` sheet. Its ``config_json`` column
is an opaque JSON blob; `BoardConfig` is the parsed view used by the board
services. Unknown keys survive a parse/serialise cycle.
"""

__all__ = [
    "USER_COLUMNS",
    "BoardConfig",
    "UserRecord",
]

logger = logging.getLogger(__name__)

USER_COLUMNS = ["userId", "userEmail", "isActive", "configJson", "createdAt", "lastModified"]

_DISPLAY_MODES = {"anonymous", "named"}


@dataclass(frozen=True)
class BoardConfig:
    spreadsheet_id: str | None = None
    sheet_name: str | None = None
    is_published: bool = False
    display_mode: str = "anonymous"
    sort_order: str = "newest"
    show_counts: bool = True
    column_mapping: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)  # keys this package does not interpret

    @property
    def is_complete(self) -> bool:
        return bool(self.spreadsheet_id and self.sheet_name)

    @classmethod
    def from_json(cls, text: str | None) -> BoardConfig:
        """Parse ``config_json``; unreadable or non-object JSON falls back to defaults."""
        if not text:
            return cls()
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.warning("configJson unreadable, using defaults: %s", e)
            return cls()
        if not isinstance(data, dict):
            logger.warning("configJson is not an object, using defaults")
            return cls()
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoardConfig:
        known = {
            "spreadsheetId", "sheetName", "isPublished", "displayMode",
            "sortOrder", "showCounts", "columnMapping",
        }
        display_mode = str(data.get("displayMode") or "anonymous")
        if display_mode not in _DISPLAY_MODES:
            display_mode = "anonymous"
        mapping = data.get("columnMapping")
        return cls(
            spreadsheet_id=data.get("spreadsheetId") or None,
            sheet_name=data.get("sheetName") or None,
            is_published=bool(data.get("isPublished", False)),
            display_mode=display_mode,
            sort_order=str(data.get("sortOrder") or "newest"),
            show_counts=bool(data.get("showCounts", True)),
            column_mapping=dict(mapping) if isinstance(mapping, dict) else {},
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "spreadsheetId": self.spreadsheet_id,
            "sheetName": self.sheet_name,
            "isPublished": self.is_published,
            "displayMode": self.display_mode,
            "sortOrder": self.sort_order,
            "showCounts": self.show_counts,
            "columnMapping": dict(self.column_mapping),
        })
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes"}


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    user_email: str
    is_active: bool = True
    config_json: str = "{}"
    created_at: str | None = None
    last_modified: str | None = None

    @property
    def config(self) -> BoardConfig:
        return BoardConfig.from_json(self.config_json)

    @classmethod
    def from_row(cls, row: list[Any], headers: list[str]) -> UserRecord:
        values = {h: row[i] if i < len(row) else "" for i, h in enumerate(headers)}
        return cls(
            user_id=str(values.get("userId") or ""),
            user_email=str(values.get("userEmail") or ""),
            is_active=_as_bool(values.get("isActive", True)),
            config_json=str(values.get("configJson") or "{}"),
            created_at=str(values.get("createdAt")) if values.get("createdAt") else None,
            last_modified=str(values.get("lastModified")) if values.get("lastModified") else None,
        )

    def to_row(self) -> list[Any]:
        return [
            self.user_id,
            self.user_email,
            self.is_active,
            self.config_json,
            self.created_at or "",
            self.last_modified or "",
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserRecord:
        return cls(**data)
