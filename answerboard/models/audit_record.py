from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

"""AuditRecord model for the reaction / highlight audit trail.

One record per board mutation attempt (processed, denied or failed). The
JSON Lines schema is fixed: exactly the dataclass fields, nothing added.
"""

__all__ = [
    "AuditRecord",
    "mask_spreadsheet_id",
]


def mask_spreadsheet_id(spreadsheet_id: str | None) -> str:
    if not spreadsheet_id:
        return "unknown"
    return f"{spreadsheet_id[:8]}***"


@dataclass(frozen=True)
class AuditRecord:
    """Structured audit record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        action: e.g. ``reaction_processed``, ``highlight_denied``, ``reaction_error``
        actor: email of the acting user (``unknown`` when not resolvable)
        target: board owner user id or email
        spreadsheet: masked spreadsheet id
        row: data-row number. Use -1 when the row could not be parsed
        detail: free-form details (reaction kind, result, error message)
    """
    timestamp: str  # ISO8601 UTC
    action: str
    actor: str
    target: str
    spreadsheet: str
    row: int  # 不明な場合 -1
    detail: dict[str, Any]

    @staticmethod
    def create(
        action: str,
        actor: str | None,
        target: str | None,
        spreadsheet_id: str | None = None,
        row: int = -1,
        detail: dict[str, Any] | None = None,
    ) -> AuditRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return AuditRecord(
            timestamp=ts,
            action=action,
            actor=actor or "unknown",
            target=target or "unknown",
            spreadsheet=mask_spreadsheet_id(spreadsheet_id),
            row=row,
            detail=dict(detail or {}),
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
