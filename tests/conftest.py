# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from answerboard.cache import HeaderIndexCache, TtlCache, VersionedCache
from answerboard.locking import ProcessLock
from answerboard.models.config_models import BoardSettings
from answerboard.services.reactions import ReactionService
from answerboard.store import MemoryPropertyStore, MemoryRowStore

SS = "ss-0001-abcdef"
SHEET = "Form Responses 1"

BOARD_HEADER = ["タイムスタンプ", "メールアドレス", "クラス", "名前", "回答", "理由",
                "UNDERSTAND", "LIKE", "CURIOUS", "HIGHLIGHT"]


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database_spreadsheet_id: board-db
admin_emails:
  - Admin@Example.com
source_directory: ./data
lock_timeout_ms: 2000
cache_ttl:
  headers: 1200
  users: 900
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "board.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(autouse=True)
def _no_db(monkeypatch):
    # テストでは常にメモリバックエンド
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


@pytest.fixture()
def settings() -> BoardSettings:
    return BoardSettings(database_spreadsheet_id="board-db", admin_emails=frozenset({"admin@example.com"}))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryRowStore:
    return MemoryRowStore()


@pytest.fixture()
def board_sheet(store: MemoryRowStore) -> MemoryRowStore:
    """Answer sheet with three answers and empty board columns."""
    store.create_sheet(SS, SHEET, BOARD_HEADER)
    store.append_row(SS, SHEET, ["2024-04-01T09:00:00", "a@example.com", "1-A", "Aoi", "光合成", "葉が緑", "", "", "", ""])
    store.append_row(SS, SHEET, ["2024-04-01T09:05:00", "b@example.com", "1-B", "Ben", "呼吸", "", "", "", "", ""])
    store.append_row(SS, SHEET, ["2024-04-01T09:10:00", "c@example.com", "1-A", "Chie", "蒸散", "水", "", "", "", ""])
    return store


@pytest.fixture()
def cache(clock: FakeClock) -> TtlCache:
    return TtlCache(clock=clock)


@pytest.fixture()
def properties() -> MemoryPropertyStore:
    return MemoryPropertyStore()


@pytest.fixture()
def versioned(cache: TtlCache, properties: MemoryPropertyStore) -> VersionedCache:
    return VersionedCache(cache, properties)


@pytest.fixture()
def header_cache(store: MemoryRowStore, cache: TtlCache, settings: BoardSettings) -> HeaderIndexCache:
    return HeaderIndexCache(store, cache, settings.header_labels)


@pytest.fixture()
def lock() -> ProcessLock:
    return ProcessLock()


@pytest.fixture()
def reactions(store, lock, header_cache, settings) -> ReactionService:
    return ReactionService(store, lock, header_cache, list(settings.reaction_kinds), lock_timeout_ms=200)


@pytest.fixture(autouse=True)
def _clean_logging():
    from answerboard.logging.init import reset_logging

    reset_logging()
    yield
    reset_logging()
