from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

"""Per-request context.

Carries the acting user and a memo map that lives exactly as long as one
inbound call. Lookups repeated within a request (the target user, its board
config) are memoised here instead of in module-level state.
"""

__all__ = [
    "RequestContext",
]

T = TypeVar("T")


@dataclass
class RequestContext:
    actor_email: str | None
    is_admin: bool = False
    memo: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_actor(cls, email: str | None, admin_emails: Iterable[str] = ()) -> RequestContext:
        # メールアドレスは小文字に揃える (リアクション集合と同じ表記)
        actor = email.strip().lower() if email and email.strip() else None
        admins = {a.strip().lower() for a in admin_emails}
        return cls(actor_email=actor, is_admin=bool(actor) and actor in admins)

    def memo_get(self, key: str, loader: Callable[[], T]) -> T:
        if key not in self.memo:
            self.memo[key] = loader()
        return self.memo[key]

    def is_actor(self, email: str | None) -> bool:
        return bool(self.actor_email and email) and self.actor_email.lower() == email.lower()
