from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from answerboard.app import BoardApp, build_app
from answerboard.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from answerboard.errors import UpdateFailed
from answerboard.logging.init import log_summary, set_debug, setup_logging
from answerboard.models.config_models import BoardSettings
from answerboard.services.context import RequestContext
from answerboard.services.importer import ImportProcessingError, import_directory
from answerboard.services.summary import render_summary_line
from answerboard.store.row_store import RowStoreError

try:  # pragma: no cover - import guard
    import psycopg2
except Exception:  # pragma: no cover
    psycopg2 = None  # type: ignore

"""CLI entrypoint.

    python -m answerboard.cli [--config PATH] [--debug] <command> ...

Commands print their result as JSON on stdout. Exit codes:
    0  success
    1  fatal (config error, operation returned an error result)
    2  import finished with failed files
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(settings: BoardSettings) -> str:
    """Connection string resolution.

    接続情報の優先順位:
        1. `.env` / 環境変数の DATABASE_URL / PGDSN (DSN 全体)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config の database セクション (不足分のフォールバック)
    """
    db_cfg = settings.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _connect(settings: BoardSettings, logger) -> Any | None:
    """Autocommit connection, or None for the in-memory backends."""
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> memory mode")
        return None
    if psycopg2 is None:  # pragma: no cover
        logger.info("psycopg2 not available -> memory mode")
        return None
    try:
        conn = psycopg2.connect(_resolve_dsn(settings), connect_timeout=5)
    except psycopg2.Error as db_e:
        logger.info(f"DB connection failed -> fallback to memory mode: {db_e}")
        return None
    # 各書き込みを単独で確定させる (スプレッドシートと同じ粒度)
    conn.autocommit = True
    return conn


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="answerboard", description="Shared answer board")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import exported responses into board sheets")
    imp.add_argument("--spreadsheet-id", required=True)
    imp.add_argument("--source", type=Path, help="Override source_directory")

    react = sub.add_parser("react", help="Toggle a reaction on a row")
    react.add_argument("--user-id", required=True, help="Board owner user id")
    react.add_argument("--row", required=True, help="Row id (5 or row_5)")
    react.add_argument("--kind", required=True, help="Reaction kind")
    react.add_argument("--actor", required=True, help="Acting user email")

    hl = sub.add_parser("highlight", help="Toggle the highlight flag of a row")
    hl.add_argument("--user-id", required=True)
    hl.add_argument("--row", required=True)
    hl.add_argument("--actor", required=True)

    board = sub.add_parser("board", help="Print the board of a user")
    board.add_argument("--user-id", required=True)
    board.add_argument("--sort", default=None)
    board.add_argument("--class", dest="class_filter", default=None)
    board.add_argument("--limit", type=int, default=None)
    board.add_argument("--actor", default=None)

    cu = sub.add_parser("create-user", help="Register a board owner")
    cu.add_argument("--email", required=True)
    cu.add_argument("--spreadsheet-id", default=None)
    cu.add_argument("--sheet-name", default=None)
    cu.add_argument("--publish", action="store_true")

    for name, help_text in (("publish", "Publish a board"), ("unpublish", "Take a board off publication")):
        pub = sub.add_parser(name, help=help_text)
        pub.add_argument("--user-id", required=True)
        pub.add_argument("--actor", required=True)

    act = sub.add_parser("set-active", help="Enable or disable a user account (admin)")
    act.add_argument("--user-id", required=True)
    act.add_argument("--actor", required=True)
    act.add_argument("--inactive", action="store_true", help="Disable instead of enable")

    du = sub.add_parser("delete-user", help="Delete a user record (admin)")
    du.add_argument("--user-id", required=True)
    du.add_argument("--actor", required=True)

    lu = sub.add_parser("list-users", help="List registered users (admin)")
    lu.add_argument("--actor", required=True)
    lu.add_argument("--active-only", action="store_true")
    lu.add_argument("--published-only", action="store_true")

    vh = sub.add_parser("validate-headers", help="Check the board sheet columns")
    vh.add_argument("--user-id", required=True)
    vh.add_argument("--actor", required=True)

    rr = sub.add_parser("row-reactions", help="Print the reaction state of one row")
    rr.add_argument("--user-id", required=True)
    rr.add_argument("--row", required=True)
    rr.add_argument("--actor", default=None)

    cnt = sub.add_parser("count", help="Count the answers shown on a board")
    cnt.add_argument("--user-id", required=True)
    cnt.add_argument("--class", dest="class_filter", default=None)
    cnt.add_argument("--actor", default=None)

    own = sub.add_parser("owner-of", help="Find the board owner of a spreadsheet")
    own.add_argument("--spreadsheet-id", required=True)
    own.add_argument("--actor", required=True)

    inv = sub.add_parser("invalidate", help="Bump the cache version of a kind")
    inv.add_argument("--kind", default="users")
    return p.parse_args(argv)


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _result_exit(result: dict[str, Any]) -> int:
    _print_json(result)
    return EXIT_SUCCESS if result.get("status") == "success" else EXIT_FATAL


def _run_import(app: BoardApp, args: argparse.Namespace, logger) -> int:
    try:
        result = import_directory(
            app.settings, app.store, app.header_cache, args.spreadsheet_id, directory=args.source
        )
    except ImportProcessingError as e:
        logger.error(f"import: {e}")
        return EXIT_FATAL
    logger.info(f"mode={app.mode} total_rows={result.total_rows}")
    # "SUMMARY " は log_summary 側で付与される
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    return EXIT_PARTIAL_FAILURE if result.failed_files > 0 else EXIT_SUCCESS


def _dispatch(app: BoardApp, args: argparse.Namespace, logger) -> int:
    if args.command == "import":
        return _run_import(app, args, logger)

    if args.command == "react":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.add_reaction(ctx, args.user_id, args.row, args.kind))

    if args.command == "highlight":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.toggle_highlight(ctx, args.user_id, args.row))

    if args.command == "board":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(
            app.actions.get_board(
                ctx, args.user_id, sort_by=args.sort, class_filter=args.class_filter, limit=args.limit
            )
        )

    if args.command == "create-user":
        initial: dict[str, Any] = {"isPublished": args.publish}
        if args.spreadsheet_id:
            initial["spreadsheetId"] = args.spreadsheet_id
        if args.sheet_name:
            initial["sheetName"] = args.sheet_name
        # CLI 実行者は管理者扱い
        ctx = RequestContext(actor_email=args.email, is_admin=True)
        return _result_exit(app.actions.create_user(ctx, args.email, initial))

    if args.command in ("publish", "unpublish"):
        ctx = app.actions.context_for(args.actor)
        return _result_exit(
            app.actions.set_published(ctx, args.user_id, published=args.command == "publish")
        )

    if args.command == "set-active":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.set_active(ctx, args.user_id, active=not args.inactive))

    if args.command == "delete-user":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.delete_user(ctx, args.user_id))

    if args.command == "list-users":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(
            app.actions.list_users(
                ctx, active_only=args.active_only, published_only=args.published_only
            )
        )

    if args.command == "validate-headers":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.validate_headers(ctx, args.user_id))

    if args.command == "row-reactions":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.get_row_reactions(ctx, args.user_id, args.row))

    if args.command == "count":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.get_data_count(ctx, args.user_id, class_filter=args.class_filter))

    if args.command == "owner-of":
        ctx = app.actions.context_for(args.actor)
        return _result_exit(app.actions.find_board_owner(ctx, args.spreadsheet_id))

    if args.command == "invalidate":
        version = app.versioned.invalidate(args.kind)
        _print_json({"status": "success", "kind": args.kind, "version": version})
        return EXIT_SUCCESS

    raise AssertionError(f"unhandled command {args.command}")  # pragma: no cover


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む ([] はそのまま使う)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        settings = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    conn = _connect(settings, logger)
    try:
        try:
            app = build_app(settings, cursor=conn.cursor() if conn is not None else None)
        except (RowStoreError, UpdateFailed) as e:
            logger.error(f"backend setup: {e}")
            return EXIT_FATAL
        try:
            return _dispatch(app, args, logger)
        finally:
            app.audit_log.flush()
    finally:
        if conn is not None:
            conn.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
