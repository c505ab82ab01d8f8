from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from template_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from template_import.db.postgres_store import PostgresTemplateStore
from template_import.db.template_store import InMemoryTemplateStore, TemplateStore, TemplateStoreError
from template_import.logging.init import log_summary, set_debug, setup_logging
from template_import.models.config_models import ImportConfig
from template_import.models.import_result import CommitMode
from template_import.services.orchestrator import ProcessingError, run_import
from template_import.services.summary import render_summary_line

"""CLI entrypoint: import a directory of markdown templates.

    python -m template_import.cli [--config PATH] [--dry-run]
                                  [--mode partial|abort_all] [--report PATH]

Flow: load .env -> load config -> connect (or mock mode) -> parse ->
preflight -> commit -> SUMMARY line.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _build_dsn(cfg: ImportConfig) -> str:
    """Resolve connection parameters.

    Priority: DATABASE_URL / PGDSN env -> config dsn -> PG* env per field ->
    config database section -> libpq defaults.
    """
    db_cfg = cfg.database
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


@contextmanager
def _db_store(cfg: ImportConfig) -> Iterator[TemplateStore]:  # pragma: no cover (thin wrapper)
    """Yield a PostgresTemplateStore bound to a fresh connection.

    autocommit=True: the store issues BEGIN / COMMIT itself around creates.
    """
    conn = psycopg2.connect(_build_dsn(cfg))
    conn.autocommit = True
    cur = conn.cursor()
    try:
        yield PostgresTemplateStore(cur)
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv; .env values win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Markdown template importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to import.yml")
    p.add_argument("--dry-run", action="store_true", help="Run preflight only, do not create templates")
    p.add_argument(
        "--mode",
        choices=[m.value for m in CommitMode],
        default=None,
        help="Commit mode (overrides config commit_mode)",
    )
    p.add_argument("--report", type=Path, default=None, help="Write a JSON report of the run")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _write_report(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] が渡された場合に sys.argv (pytest の引数等) を読まないよう None のときのみ参照
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")
    mode = CommitMode(args.mode) if args.mode else None

    # DISABLE_DB_CONNECT=1 で DB 接続を完全に無効化 (テスト / ローカル確認用)
    disable_db = os.getenv("DISABLE_DB_CONNECT") == "1"
    db_mode = "mock"
    try:
        if disable_db:
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = run_import(cfg, InMemoryTemplateStore(), dry_run=args.dry_run, mode=mode)
        else:
            try:
                with _db_store(cfg) as store:
                    db_mode = "live"
                    result = run_import(cfg, store, dry_run=args.dry_run, mode=mode)
            except psycopg2.OperationalError as db_e:
                if db_mode == "live":
                    raise
                logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
                result = run_import(cfg, InMemoryTemplateStore(), dry_run=args.dry_run, mode=mode)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except (TemplateStoreError, psycopg2.Error) as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} created={result.created}")

    if args.report is not None:
        _write_report(args.report, result.to_dict())
        logger.info(f"report written to {args.report}")

    summary_line = render_summary_line(result)
    # log_summary 側で "SUMMARY " を付与する
    log_summary(summary_line[len("SUMMARY "):])

    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
