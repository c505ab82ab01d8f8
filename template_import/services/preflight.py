from __future__ import annotations

import logging
from collections.abc import Iterable

from ..db.template_store import TemplateStore
from ..models.import_result import PreviewResult, PreviewRow
from ..models.import_row import ImportRow
from .row_evaluation import EvaluationContext, evaluate_row

"""Preflight (dry run) evaluator.

Consults the store read-only and predicts, per row, whether commit would
create the template or reject it. Calling preview() any number of times has
no persisted side effects.
"""

__all__ = [
    "preview",
]

logger = logging.getLogger(__name__)


def preview(rows: Iterable[ImportRow], product_id: str, store: TemplateStore) -> PreviewResult:
    """Predict the commit outcome of `rows` for `product_id`.

    Rows are evaluated and returned in ascending row_index order regardless
    of input order, so they merge cleanly with locally detected parse
    errors that share the same row_index space.
    """
    ordered = sorted(rows, key=lambda r: r.row_index)
    ctx = EvaluationContext.open(product_id, store)

    preview_rows: list[PreviewRow] = []
    for row in ordered:
        messages = evaluate_row(row, ctx)
        if not messages:
            ctx.claim(row)
        preview_rows.append(PreviewRow.for_row(row, messages, ctx.resolved_product_ids))

    result = PreviewResult.from_rows(preview_rows)
    logger.info(
        "preflight product=%s total=%d create=%d errors=%d",
        product_id,
        result.total_requested,
        result.create_count,
        result.errors,
    )
    return result
