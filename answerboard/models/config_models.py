from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the answer board.

These are the typed form of ``config/board.yml`` after validation by
`answerboard.config.loader`.
"""

__all__ = [
    "DEFAULT_REACTION_KINDS",
    "DEFAULT_COLUMN_LABELS",
    "DatabaseConfig",
    "CacheTtlConfig",
    "ScoringWeights",
    "BoardSettings",
]

DEFAULT_REACTION_KINDS: dict[str, str] = {
    "UNDERSTAND": "UNDERSTAND",
    "LIKE": "LIKE",
    "CURIOUS": "CURIOUS",
}

# logical name -> header label of a typical form response sheet
DEFAULT_COLUMN_LABELS: dict[str, str] = {
    "timestamp": "タイムスタンプ",
    "email": "メールアドレス",
    "class": "クラス",
    "name": "名前",
    "opinion": "回答",
    "reason": "理由",
}


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection fallback.

    Environment variables (``DATABASE_URL`` / ``PG*``, possibly loaded from
    ``.env``) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class CacheTtlConfig:
    headers: int = 1200  # ヘッダー情報
    users: int = 900  # 個別ユーザー / ユーザー一覧


@dataclass(frozen=True)
class ScoringWeights:
    like_weight: float = 0.05
    random_weight: float = 0.001


@dataclass(frozen=True)
class BoardSettings:
    """Root configuration object."""
    database_spreadsheet_id: str  # users sheet lives here
    admin_emails: frozenset[str] = frozenset()  # lower-cased
    reaction_kinds: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REACTION_KINDS))
    highlight_column: str = "HIGHLIGHT"
    column_labels: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COLUMN_LABELS))
    lock_timeout_ms: int = 10_000
    cache_ttl: CacheTtlConfig = field(default_factory=CacheTtlConfig)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    source_directory: str | None = None  # response exports for `import`
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def header_labels(self) -> dict[str, str]:
        """Every logical column the header cache resolves, reaction kinds and HIGHLIGHT included."""
        labels = dict(self.column_labels)
        labels.update(self.reaction_kinds)
        labels["HIGHLIGHT"] = self.highlight_column
        return labels

    def is_admin(self, email: str | None) -> bool:
        return bool(email) and email.strip().lower() in self.admin_emails
