from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from answerboard.models.config_models import (
    DEFAULT_COLUMN_LABELS,
    DEFAULT_REACTION_KINDS,
    BoardSettings,
    CacheTtlConfig,
    DatabaseConfig,
    ScoringWeights,
)

"""Config loader.

Responsibilities:
- Load YAML config (``config/board.yml`` by default)
- Validate against the packaged ``board_config.schema.json``
- Apply defaults (reaction kinds, labels, TTLs, scoring weights)
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
    "settings_from_dict",
]

DEFAULT_CONFIG_PATH = Path("config/board.yml")
SCHEMA_PATH = Path(__file__).with_name("board_config.schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or broken, or the data violates it
            (missing required keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def settings_from_dict(data: dict[str, Any]) -> BoardSettings:
    """Build settings from already-validated data."""
    db_raw = data.get("database") or {}
    ttl_raw = data.get("cache_ttl") or {}
    scoring_raw = data.get("scoring") or {}
    kinds = {str(k).upper(): v for k, v in (data.get("reaction_kinds") or DEFAULT_REACTION_KINDS).items()}
    labels = dict(DEFAULT_COLUMN_LABELS)
    labels.update(data.get("column_labels") or {})
    return BoardSettings(
        database_spreadsheet_id=data["database_spreadsheet_id"],
        admin_emails=frozenset(e.strip().lower() for e in data.get("admin_emails") or []),
        reaction_kinds=kinds,
        highlight_column=data.get("highlight_column", "HIGHLIGHT"),
        column_labels=labels,
        lock_timeout_ms=data.get("lock_timeout_ms", 10_000),
        cache_ttl=CacheTtlConfig(**ttl_raw),
        scoring=ScoringWeights(**scoring_raw),
        source_directory=data.get("source_directory"),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> BoardSettings:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return settings_from_dict(data)
