from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Board-facing row and reaction result models."""

__all__ = [
    "ReactionState",
    "BoardRow",
    "ReactionResult",
    "HighlightResult",
]


@dataclass(frozen=True)
class ReactionState:
    count: int = 0
    reacted: bool = False  # viewer is in this kind's set

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "reacted": self.reacted}


@dataclass(frozen=True)
class BoardRow:
    """One answer as rendered on a board.

    ``row_index`` is the 1-based data-row number (header excluded), the same
    number the reaction and highlight operations take.
    """
    row_index: int
    opinion: str
    reason: str = ""
    class_name: str = ""
    name: str = ""
    email: str = ""
    timestamp: str = ""
    reactions: dict[str, ReactionState] = field(default_factory=dict)
    highlighted: bool = False
    score: float = 0.0

    def count(self, kind: str) -> int:
        state = self.reactions.get(kind)
        return state.count if state else 0

    @property
    def id(self) -> str:
        return f"row_{self.row_index}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rowIndex": self.row_index,
            "opinion": self.opinion,
            "reason": self.reason,
            "class": self.class_name,
            "name": self.name,
            "timestamp": self.timestamp,
            "reactions": {k: v.to_dict() for k, v in self.reactions.items()},
            "highlight": self.highlighted,
            "score": round(self.score, 4),
        }


@dataclass(frozen=True)
class ReactionResult:
    action: str  # "added" | "removed"
    count: int  # size of the target kind's set after the toggle
    user_reaction: str | None  # kind the acting user now holds on the row
    reactions: dict[str, ReactionState] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "count": self.count,
            "userReaction": self.user_reaction,
            "reactions": {k: v.to_dict() for k, v in self.reactions.items()},
        }


@dataclass(frozen=True)
class HighlightResult:
    highlighted: bool

    def to_dict(self) -> dict[str, Any]:
        return {"highlighted": self.highlighted}
