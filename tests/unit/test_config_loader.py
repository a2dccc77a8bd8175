from __future__ import annotations

from pathlib import Path

import pytest

from answerboard.config.loader import ConfigError, load_config


def test_load_defaults(write_config: Path):
    settings = load_config(write_config)
    assert settings.database_spreadsheet_id == "board-db"
    assert settings.admin_emails == frozenset({"admin@example.com"})
    assert list(settings.reaction_kinds) == ["UNDERSTAND", "LIKE", "CURIOUS"]
    assert settings.highlight_column == "HIGHLIGHT"
    assert settings.column_labels["opinion"] == "回答"
    assert settings.lock_timeout_ms == 2000
    assert settings.cache_ttl.headers == 1200
    assert settings.scoring.like_weight == pytest.approx(0.05)
    assert settings.source_directory == "./data"
    assert settings.is_admin("ADMIN@example.com")


def test_overrides(temp_workdir: Path):
    cfg = temp_workdir / "config" / "board.yml"
    cfg.write_text(
        """database_spreadsheet_id: db
reaction_kinds:
  like: いいね
  curious: 気になる
highlight_column: 注目
column_labels:
  opinion: 意見
scoring:
  like_weight: 0.1
database:
  dsn: postgresql://localhost/board
""",
        encoding="utf-8",
    )
    settings = load_config(cfg)
    assert settings.reaction_kinds == {"LIKE": "いいね", "CURIOUS": "気になる"}
    assert settings.header_labels["HIGHLIGHT"] == "注目"
    assert settings.header_labels["opinion"] == "意見"
    assert settings.header_labels["reason"] == "理由"
    assert settings.scoring.random_weight == pytest.approx(0.001)
    assert settings.database.dsn == "postgresql://localhost/board"


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_invalid_yaml(temp_workdir: Path):
    cfg = temp_workdir / "config" / "board.yml"
    cfg.write_text("database_spreadsheet_id: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(cfg)


@pytest.mark.parametrize("body", [
    "admin_emails: []\n",
    "database_spreadsheet_id: db\nunknown_key: 1\n",
    "database_spreadsheet_id: db\nlock_timeout_ms: 0\n",
    "database_spreadsheet_id: db\ncache_ttl:\n  headers: fast\n",
    "database_spreadsheet_id: db\ncolumn_labels:\n  color: 色\n",
    "- a\n- b\n",
])
def test_schema_violations(temp_workdir: Path, body: str):
    cfg = temp_workdir / "config" / "board.yml"
    cfg.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg)


def test_sample_config_in_repo_is_valid():
    repo_config = Path(__file__).resolve().parents[2] / "config" / "board.yml"
    assert load_config(repo_config).database_spreadsheet_id == "board-db"
