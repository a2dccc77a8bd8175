from __future__ import annotations

import pytest

from answerboard.errors import InvalidInput, UpdateFailed, UserNotFound
from answerboard.services.users import USERS_SHEET, UserRepository, validate_email
from answerboard.store import MemoryRowStore, RowStoreError


@pytest.fixture()
def repo(store, versioned, lock) -> UserRepository:
    r = UserRepository(store, versioned, lock, "board-db")
    r.ensure_schema()
    return r


def test_ensure_schema_creates_header_once(repo, store):
    repo.ensure_schema()
    assert store.get_all_values("board-db", USERS_SHEET) == [
        ["userId", "userEmail", "isActive", "configJson", "createdAt", "lastModified"]
    ]


def test_create_and_find(repo):
    user = repo.create("Owner@School.jp", {"spreadsheetId": "ss", "sheetName": "S"})
    assert len(user.user_id) == 36
    assert user.created_at.endswith("Z")
    assert repo.find_by_id(user.user_id) == user
    assert repo.find_by_email("owner@school.jp").user_id == user.user_id
    assert repo.find_by_spreadsheet_id("ss").user_id == user.user_id
    assert repo.find_by_id("nope") is None
    assert repo.find_by_email("") is None


def test_create_is_idempotent_per_email(repo):
    first = repo.create("t@school.jp")
    again = repo.create("T@School.jp")
    assert again.user_id == first.user_id
    assert len(repo.get_all()) == 1


def test_invalid_email(repo):
    with pytest.raises(InvalidInput):
        repo.create("not-an-email")
    with pytest.raises(InvalidInput):
        validate_email(None)


def test_cache_invalidated_by_writes(repo, store):
    assert repo.get_all() == []
    user = repo.create("t@school.jp")
    # create は版を上げるので一覧に即反映
    assert [u.user_id for u in repo.get_all()] == [user.user_id]


def test_stale_without_invalidation(repo, store):
    repo.create("a@school.jp")
    assert len(repo.get_all()) == 1
    # キャッシュを経由しない直接の書き込みは TTL まで見えない
    store.append_row("board-db", USERS_SHEET, ["u-x", "x@school.jp", True, "{}", "", ""])
    assert len(repo.get_all()) == 1
    repo.cache.invalidate("users")
    assert len(repo.get_all()) == 2


def test_filters(repo):
    a = repo.create("a@school.jp", {"isPublished": True})
    b = repo.create("b@school.jp")
    repo.update(b.user_id, {"isActive": False})
    assert {u.user_email for u in repo.get_all(active_only=True)} == {"a@school.jp"}
    assert [u.user_id for u in repo.get_all(published_only=True)] == [a.user_id]


def test_update_and_update_config(repo):
    user = repo.create("t@school.jp", {"spreadsheetId": "ss", "theme": "dark"})
    updated = repo.update_config(user.user_id, {"sheetName": "S", "isPublished": True})
    config = updated.config
    assert (config.spreadsheet_id, config.sheet_name, config.is_published) == ("ss", "S", True)
    assert config.extra == {"theme": "dark"}
    assert updated.last_modified >= user.last_modified
    assert repo.get(user.user_id).config.is_published is True


def test_update_rejects_unknown_columns(repo):
    user = repo.create("t@school.jp")
    with pytest.raises(InvalidInput):
        repo.update(user.user_id, {"userId": "other"})
    with pytest.raises(InvalidInput):
        repo.update(user.user_id, {"password": "x"})


def test_update_and_delete_missing_user(repo):
    with pytest.raises(UserNotFound):
        repo.update("missing", {"isActive": False})
    with pytest.raises(UserNotFound):
        repo.delete("missing")
    with pytest.raises(UserNotFound):
        repo.get("missing")


def test_delete(repo):
    a = repo.create("a@school.jp")
    b = repo.create("b@school.jp")
    repo.delete(a.user_id)
    assert [u.user_id for u in repo.get_all()] == [b.user_id]
    assert repo.find_by_id(a.user_id) is None


class BrokenStore(MemoryRowStore):
    def get_all_values(self, spreadsheet_id, sheet_name):
        raise RowStoreError("backend down")


def test_store_failure_wrapped(versioned, lock):
    repo = UserRepository(BrokenStore(), versioned, lock, "board-db")
    with pytest.raises(UpdateFailed):
        repo.get_all()
