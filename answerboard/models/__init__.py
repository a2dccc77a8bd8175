"""Domain models for the answer board.

Configuration, tenant records, board rows, reaction results, audit records
and import results.
"""

from .audit_record import AuditRecord
from .board_row import BoardRow, HighlightResult, ReactionResult, ReactionState
from .config_models import BoardSettings, CacheTtlConfig, DatabaseConfig, ScoringWeights
from .import_result import FileStat, ImportResult
from .user_record import BoardConfig, UserRecord

__all__ = [
    # Configuration models
    "BoardSettings",
    "CacheTtlConfig",
    "DatabaseConfig",
    "ScoringWeights",
    # Tenant models
    "BoardConfig",
    "UserRecord",
    # Board models
    "BoardRow",
    "HighlightResult",
    "ReactionResult",
    "ReactionState",
    # Logging / import
    "AuditRecord",
    "FileStat",
    "ImportResult",
]
