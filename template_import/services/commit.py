from __future__ import annotations

import logging
from collections.abc import Iterable

from ..db.template_store import TemplateCreate, TemplateStore, TemplateStoreError
from ..models.import_result import (
    CommitAction,
    CommitMode,
    CommitResult,
    CommitRow,
    PreviewAction,
    PreviewResult,
)
from ..models.import_row import ImportRow
from .preflight import preview
from .row_evaluation import EvaluationContext, evaluate_row

"""Commit executor.

Re-evaluates every row at commit time (never trusting a cached preflight)
and persists according to the commit mode:

- partial:   each row is created or rejected on its own
- abort_all: nothing is persisted unless every row passes; any failure
             (validation or store) marks every row "aborted"

Each CommitRow also carries the preflight prediction (dry_run_action) so
that drift between the two phases is visible.
"""

__all__ = [
    "commit",
    "retry_subset",
    "ABORTED_NOTICE",
]

logger = logging.getLogger(__name__)

ABORTED_NOTICE = "Not applied: another row in the batch failed."


def _create_failed_message(error: TemplateStoreError) -> str:
    return f"Could not create template: {error}"


def _fields_for(row: ImportRow, ctx: EvaluationContext) -> TemplateCreate:
    return TemplateCreate(
        title=row.title.strip(),
        category=row.category,
        status=row.status,
        body=row.body,
        product_ids=tuple(ctx.resolved_product_ids),
    )


def _predictions(
    rows: list[ImportRow],
    product_id: str,
    store: TemplateStore,
    dry_run: PreviewResult | None,
) -> dict[str, PreviewAction]:
    supplied: dict[str, PreviewAction] = {}
    if dry_run is not None:
        supplied = {r.source_id: r.action for r in dry_run.rows}
    if all(r.source_id in supplied for r in rows):
        return supplied
    fresh = preview(rows, product_id, store)
    merged = {r.source_id: r.action for r in fresh.rows}
    merged.update(supplied)
    return merged


def _commit_row(
    row: ImportRow,
    prediction: PreviewAction,
    action: CommitAction,
    messages: list[str] | tuple[str, ...] = (),
    template_id: str | None = None,
) -> CommitRow:
    return CommitRow(
        row_index=row.row_index,
        source_id=row.source_id,
        file_name=row.file_name,
        title=row.title,
        dry_run_action=prediction,
        action=action,
        template_id=template_id,
        messages=tuple(messages),
    )


def _commit_partial(
    rows: list[ImportRow], ctx: EvaluationContext, predictions: dict[str, PreviewAction]
) -> list[CommitRow]:
    results: list[CommitRow] = []
    for row in rows:
        prediction = predictions[row.source_id]
        messages = evaluate_row(row, ctx)
        if messages:
            results.append(_commit_row(row, prediction, CommitAction.ERROR, messages))
            continue
        try:
            with ctx.store.transaction():
                template_id = ctx.store.create_template(_fields_for(row, ctx))
        except TemplateStoreError as e:
            logger.warning("create failed row=%d title=%s err=%s", row.row_index, row.title, e)
            results.append(_commit_row(row, prediction, CommitAction.ERROR, [_create_failed_message(e)]))
            continue
        ctx.claim(row)
        results.append(_commit_row(row, prediction, CommitAction.CREATED, template_id=template_id))
    return results


def _abort_every_row(
    rows: list[ImportRow],
    predictions: dict[str, PreviewAction],
    failures: dict[str, list[str]],
) -> list[CommitRow]:
    return [
        _commit_row(
            row,
            predictions[row.source_id],
            CommitAction.ABORTED,
            failures.get(row.source_id) or [ABORTED_NOTICE],
        )
        for row in rows
    ]


def _commit_abort_all(
    rows: list[ImportRow], ctx: EvaluationContext, predictions: dict[str, PreviewAction]
) -> list[CommitRow]:
    failures: dict[str, list[str]] = {}
    for row in rows:
        messages = evaluate_row(row, ctx)
        if messages:
            failures[row.source_id] = messages
        else:
            ctx.claim(row)

    if failures:
        logger.info("abort_all: %d row(s) failed validation, nothing applied", len(failures))
        return _abort_every_row(rows, predictions, failures)

    created: list[tuple[ImportRow, str]] = []
    current: ImportRow | None = None
    try:
        with ctx.store.transaction():
            for row in rows:
                current = row
                created.append((row, ctx.store.create_template(_fields_for(row, ctx))))
    except TemplateStoreError as e:
        # transaction() でロールバック済
        logger.warning("abort_all: create failed, rolled back err=%s", e)
        failed_id = current.source_id if current is not None else ""
        return _abort_every_row(rows, predictions, {failed_id: [_create_failed_message(e)]})

    return [
        _commit_row(row, predictions[row.source_id], CommitAction.CREATED, template_id=template_id)
        for row, template_id in created
    ]


def commit(
    rows: Iterable[ImportRow],
    product_id: str,
    store: TemplateStore,
    mode: CommitMode = CommitMode.PARTIAL,
    dry_run: PreviewResult | None = None,
) -> CommitResult:
    """Create templates for `rows` following `mode`.

    Args:
        rows: Rows to commit (order does not matter; processed by row_index)
        product_id: Product associated with every created template
        store: Record store
        mode: CommitMode.PARTIAL or CommitMode.ABORT_ALL
        dry_run: Optional preview result shown to the user; used only to fill
            dry_run_action. Missing rows are predicted afresh.

    Returns:
        CommitResult with one CommitRow per input row.

    Raises:
        TemplateStoreError: when a read-only store query fails (not a row
            level problem).
    """
    mode = CommitMode(mode)
    ordered = sorted(rows, key=lambda r: r.row_index)
    predictions = _predictions(ordered, product_id, store, dry_run)
    ctx = EvaluationContext.open(product_id, store)

    if mode is CommitMode.ABORT_ALL:
        commit_rows = _commit_abort_all(ordered, ctx, predictions)
    else:
        commit_rows = _commit_partial(ordered, ctx, predictions)

    result = CommitResult.from_rows(mode, commit_rows)
    logger.info(
        "commit mode=%s applied=%s created=%d failed=%d aborted=%d",
        result.mode.value,
        result.applied,
        result.created,
        result.failed,
        result.aborted,
    )
    return result


def retry_subset(rows: Iterable[ImportRow], result: CommitResult) -> list[ImportRow]:
    """Original rows whose commit action was "error", matched by source_id."""
    failed = result.failed_source_ids()
    return [row for row in rows if row.source_id in failed]
