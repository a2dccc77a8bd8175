from __future__ import annotations

from collections.abc import Iterable
from typing import Any

"""Reaction cell codec.

A reaction cell holds the users who applied one reaction kind to one row,
as ``"a@x.com, b@x.com"``. Order is kept for stable output but carries no
meaning; duplicates never survive a decode or an encode.
"""

__all__ = [
    "SEPARATOR",
    "decode",
    "encode",
]

SEPARATOR = ", "


def decode(cell_value: Any) -> list[str]:
    if cell_value is None:
        return []
    users: list[str] = []
    for token in str(cell_value).split(","):
        token = token.strip()
        if token and token not in users:
            users.append(token)
    return users


def encode(users: Iterable[str]) -> str:
    seen: list[str] = []
    for user in users:
        user = user.strip()
        if user and user not in seen:
            seen.append(user)
    return SEPARATOR.join(seen)
