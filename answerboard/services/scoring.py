from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import replace

from answerboard.errors import InvalidInput
from answerboard.models.board_row import BoardRow
from answerboard.models.config_models import ScoringWeights

"""Row scoring and board sort order.

Pure functions over already-decoded rows. The ``score`` mode carries a small
random jitter, so its order only groups rows by like count and is not
repeatable between calls unless the caller passes a seeded ``rng``.
"""

__all__ = [
    "SORT_MODES",
    "score_row",
    "sort_rows",
]

SORT_MODES = ("score", "newest", "oldest", "likes", "random")

UNDERSTAND_CURIOUS_WEIGHT = 0.01
HIGHLIGHT_BONUS = 0.5


def score_row(
    row: BoardRow,
    weights: ScoringWeights | None = None,
    rng: random.Random | None = None,
) -> float:
    weights = weights or ScoringWeights()
    rng = rng or random.Random()
    return (
        1.0
        + row.count("LIKE") * weights.like_weight
        + (row.count("UNDERSTAND") + row.count("CURIOUS")) * UNDERSTAND_CURIOUS_WEIGHT
        + (HIGHLIGHT_BONUS if row.highlighted else 0.0)
        + rng.random() * weights.random_weight
    )


def sort_rows(
    rows: Sequence[BoardRow],
    mode: str = "newest",
    *,
    weights: ScoringWeights | None = None,
    rng: random.Random | None = None,
    limit: int | None = None,
) -> list[BoardRow]:
    """Return a new list in board order; ``rows`` is in insertion (sheet) order."""
    rng = rng or random.Random()
    if mode == "score":
        scored = [replace(r, score=score_row(r, weights, rng)) for r in rows]
        ordered = sorted(scored, key=lambda r: r.score, reverse=True)
    elif mode == "newest":
        ordered = list(reversed(rows))
    elif mode == "oldest":
        ordered = list(rows)
    elif mode == "likes":
        ordered = sorted(rows, key=lambda r: r.count("LIKE"), reverse=True)
    elif mode == "random":
        ordered = list(rows)
        rng.shuffle(ordered)  # Fisher-Yates
    else:
        raise InvalidInput(f"unknown sort mode {mode!r}; expected one of {list(SORT_MODES)}")
    if limit is not None and limit > 0:
        ordered = ordered[:limit]
    return ordered
