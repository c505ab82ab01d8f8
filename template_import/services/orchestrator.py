from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..db.template_store import TemplateStore
from ..logging.error_log import ErrorLogBuffer
from ..markdown.reader import LocalMarkdownFile, ProcessingError, scan_markdown_files
from ..models.config_models import ImportConfig
from ..models.import_result import CommitMode, CommitResult, PreviewResult
from ..models.processing_result import ImportRunResult
from .batch_parser import parse_files
from .commit import commit
from .preflight import preview

"""Service orchestration for a directory import run.

scan -> parse -> preflight -> (commit) -> error log flush. Used by the CLI;
library callers drive parse_files / preview / commit (or ImportSession)
directly.
"""

__all__ = [
    "ProcessingError",
    "run_import",
]

logger = logging.getLogger(__name__)


def run_import(
    config: ImportConfig,
    store: TemplateStore,
    *,
    dry_run: bool = False,
    mode: CommitMode | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportRunResult:
    """Import every .md file of config.source_directory.

    Args:
        config: Loaded import configuration
        store: Record store (Postgres or in-memory mock)
        dry_run: Stop after preflight
        mode: Overrides config.commit_mode
        error_log: Buffer receiving one record per rejected row

    Raises:
        ProcessingError: directory missing / unreadable, or the configured
            product does not exist
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    commit_mode = mode if mode is not None else config.commit_mode

    paths = scan_markdown_files(Path(config.source_directory))
    logger.info("found %d markdown file(s) in %s", len(paths), config.source_directory)

    parse = parse_files([LocalMarkdownFile(p) for p in paths], config.start_row_index)
    error_log.add_local_errors(parse.errors)
    for e in parse.errors:
        logger.warning("%s: %s", e.file_name, "; ".join(e.messages))

    preview_result: PreviewResult | None = None
    commit_result: CommitResult | None = None
    if parse.rows:
        if not store.resolve_product_ids(config.product_id):
            raise ProcessingError(f"product not found: {config.product_id}")

        preview_result = preview(parse.rows, config.product_id, store)
        if dry_run:
            error_log.add_preview_errors(preview_result)
        else:
            commit_result = commit(
                parse.rows, config.product_id, store, mode=commit_mode, dry_run=preview_result
            )
            error_log.add_commit_failures(commit_result)

    for error_type, count in error_log.counts_by_type().items():
        logger.info("rejected rows error_type=%s count=%d", error_type, count)

    try:
        log_path = error_log.flush()
    except OSError as e:
        # エラーログ書き込み失敗で run 全体は失敗にしない
        logger.warning("failed to write error log: %s", e)
    else:
        if log_path is not None:
            logger.info("error log written to %s", log_path)

    end_time = datetime.now(UTC)
    return ImportRunResult(
        total_files=len(paths),
        parse=parse,
        preview=preview_result,
        commit=commit_result,
        dry_run=dry_run,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
    )
