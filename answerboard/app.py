from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from answerboard.cache import HeaderIndexCache, TtlCache, VersionedCache
from answerboard.locking import Lock, PgAdvisoryLock, ProcessLock
from answerboard.logging.audit_log import AuditLogBuffer
from answerboard.models.config_models import BoardSettings
from answerboard.services.actions import BoardActions
from answerboard.services.board import BoardReader
from answerboard.services.reactions import ReactionService
from answerboard.services.users import UserRepository
from answerboard.store import (
    MemoryPropertyStore,
    MemoryRowStore,
    PostgresPropertyStore,
    PropertyStore,
    RowStore,
)
from answerboard.store.postgres import PostgresRowStore

"""Wiring: settings + backends -> services.

``cursor=None`` selects the in-memory backends (tests, DB-less CLI runs);
a psycopg2 cursor from an autocommit connection selects PostgreSQL for
cells, properties and the advisory lock. The TTL cache is process-local
in both modes.

A psycopg2 cursor is not safe to share between threads: in PostgreSQL mode
build one app per thread, each on its own connection. Separate sessions are
excluded from each other by the advisory lock.
"""

__all__ = [
    "BoardApp",
    "build_app",
]

logger = logging.getLogger(__name__)


@dataclass
class BoardApp:
    settings: BoardSettings
    store: RowStore
    properties: PropertyStore
    lock: Lock
    cache: TtlCache
    versioned: VersionedCache
    header_cache: HeaderIndexCache
    users: UserRepository
    reactions: ReactionService
    board_reader: BoardReader
    actions: BoardActions
    audit_log: AuditLogBuffer
    mode: str  # "memory" | "postgres"


def build_app(
    settings: BoardSettings,
    cursor: Any = None,
    audit_log: AuditLogBuffer | None = None,
) -> BoardApp:
    if cursor is None:
        store: RowStore = MemoryRowStore()
        properties: PropertyStore = MemoryPropertyStore()
        lock: Lock = ProcessLock()
        mode = "memory"
    else:
        pg_store = PostgresRowStore(cursor)
        pg_store.ensure_schema()
        pg_properties = PostgresPropertyStore(cursor)
        pg_properties.ensure_schema()
        store, properties = pg_store, pg_properties
        lock = PgAdvisoryLock(cursor)
        mode = "postgres"

    cache = TtlCache()
    versioned = VersionedCache(cache, properties, default_ttl=settings.cache_ttl.users)
    header_cache = HeaderIndexCache(store, cache, settings.header_labels, ttl=settings.cache_ttl.headers)
    users = UserRepository(
        store, versioned, lock, settings.database_spreadsheet_id, ttl=settings.cache_ttl.users
    )
    users.ensure_schema()
    reactions = ReactionService(
        store, lock, header_cache, list(settings.reaction_kinds), lock_timeout_ms=settings.lock_timeout_ms
    )
    board_reader = BoardReader(store, header_cache, list(settings.reaction_kinds), settings.scoring)
    audit_log = audit_log or AuditLogBuffer()
    actions = BoardActions(users, reactions, board_reader, audit_log, settings.admin_emails)
    logger.debug("backends mode=%s", mode)
    return BoardApp(
        settings=settings,
        store=store,
        properties=properties,
        lock=lock,
        cache=cache,
        versioned=versioned,
        header_cache=header_cache,
        users=users,
        reactions=reactions,
        board_reader=board_reader,
        actions=actions,
        audit_log=audit_log,
        mode=mode,
    )
