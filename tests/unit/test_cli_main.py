from __future__ import annotations

import logging
import os
from unittest.mock import MagicMock

import pytest

import answerboard.cli.__main__ as cli
from answerboard.models.config_models import BoardSettings, DatabaseConfig


@pytest.fixture()
def clean_pg_env(monkeypatch):
    for name in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(name, raising=False)


def _settings(**db) -> BoardSettings:
    return BoardSettings(database_spreadsheet_id="board-db", database=DatabaseConfig(**db))


def test_resolve_dsn_prefers_database_url(clean_pg_env, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u@h/db")
    assert cli._resolve_dsn(_settings(dsn="ignored")) == "postgresql://u@h/db"


def test_resolve_dsn_uses_config_dsn(clean_pg_env):
    assert cli._resolve_dsn(_settings(dsn="host=cfg dbname=x")) == "host=cfg dbname=x"


def test_resolve_dsn_env_parts_override_config(clean_pg_env, monkeypatch):
    monkeypatch.setenv("PGHOST", "envhost")
    dsn = cli._resolve_dsn(_settings(host="cfghost", port=6543, user="board", database="answers"))
    assert dsn == "host=envhost port=6543 user=board dbname=answers"


def test_resolve_dsn_adds_password_only_when_set(clean_pg_env, monkeypatch):
    monkeypatch.setenv("PGPASSWORD", "s3cret")
    assert cli._resolve_dsn(_settings()).endswith(" password=s3cret")


def test_connect_disabled_returns_none(monkeypatch):
    connect = MagicMock()
    monkeypatch.setattr(cli.psycopg2, "connect", connect)
    assert cli._connect(_settings(), logging.getLogger("t")) is None
    connect.assert_not_called()


def test_connect_failure_falls_back_to_memory(clean_pg_env, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT")
    monkeypatch.setattr(cli.psycopg2, "connect", MagicMock(side_effect=cli.psycopg2.OperationalError("refused")))
    assert cli._connect(_settings(), logging.getLogger("t")) is None


def test_connect_sets_autocommit(clean_pg_env, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT")
    conn = MagicMock()
    monkeypatch.setattr(cli.psycopg2, "connect", MagicMock(return_value=conn))
    assert cli._connect(_settings(), logging.getLogger("t")) is conn
    assert conn.autocommit is True


def test_env_file_values_win(temp_workdir, monkeypatch):
    monkeypatch.setenv("PGHOST", "from-process")
    (temp_workdir / ".env").write_text("PGHOST=from-dotenv\n", encoding="utf-8")
    cli._load_env_file(temp_workdir / ".env")
    assert os.environ["PGHOST"] == "from-dotenv"


def test_create_user_rejects_invalid_email(write_config, capsys):
    code = cli.main(["create-user", "--email", "not-an-email"])
    out = capsys.readouterr().out
    assert code == 1
    assert "INVALID_INPUT" in out
