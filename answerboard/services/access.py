from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from answerboard.models.user_record import UserRecord

from .context import RequestContext

"""Board access checks, dispatched by mode.

Admins pass every check. Owners pass every check except ADMIN. Anyone with an
identity may view and react on a published board.
"""

__all__ = [
    "AccessMode",
    "check_access",
]

logger = logging.getLogger(__name__)


class AccessMode(Enum):
    VIEW = "view"
    REACT = "react"
    HIGHLIGHT = "highlight"
    OWNER = "owner"
    ADMIN = "admin"


def _is_owner(ctx: RequestContext, target: UserRecord) -> bool:
    return ctx.is_actor(target.user_email)


def _published_or_owner(ctx: RequestContext, target: UserRecord) -> bool:
    if _is_owner(ctx, target):
        return True
    return bool(ctx.actor_email) and target.is_active and target.config.is_published


_CHECKS: dict[AccessMode, Callable[[RequestContext, UserRecord], bool]] = {
    AccessMode.VIEW: _published_or_owner,
    AccessMode.REACT: _published_or_owner,
    AccessMode.HIGHLIGHT: _is_owner,
    AccessMode.OWNER: _is_owner,
    AccessMode.ADMIN: lambda ctx, target: False,
}


def check_access(mode: AccessMode | str, ctx: RequestContext, target: UserRecord | None) -> bool:
    if target is None:
        return False
    mode = AccessMode(mode)
    if ctx.is_admin:
        return True
    allowed = _CHECKS[mode](ctx, target)
    if not allowed:
        actor = ctx.actor_email.split("@")[0] + "@***" if ctx.actor_email else "N/A"
        logger.info("access denied mode=%s actor=%s target=%s", mode.value, actor, target.user_id)
    return allowed
