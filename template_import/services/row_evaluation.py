from __future__ import annotations

from dataclasses import dataclass, field

from ..db.template_store import TemplateStore, title_key
from ..models.import_row import ImportRow
from .normalizer import validate_row_fields

"""Row evaluation predicate shared by preflight and commit.

Both phases call evaluate_row() with the same context type, so a row that
preflight predicts as "create" is created by commit unless the store changed
in between (e.g. another user created the same title).
"""

__all__ = [
    "EvaluationContext",
    "evaluate_row",
    "product_not_found_message",
    "duplicate_title_message",
    "batch_duplicate_message",
]


def product_not_found_message(product_id: str) -> str:
    return f"Product not found: {product_id}"


def duplicate_title_message(title: str) -> str:
    return f'A template titled "{title}" already exists for this product.'


def batch_duplicate_message(first_row_index: int) -> str:
    return f"Duplicate title within this import batch (row {first_row_index})."


@dataclass
class EvaluationContext:
    """Per-call state: product, store and titles already claimed in this batch."""
    product_id: str
    store: TemplateStore
    resolved_product_ids: list[str]
    claimed_titles: dict[str, int] = field(default_factory=dict)

    @classmethod
    def open(cls, product_id: str, store: TemplateStore) -> EvaluationContext:
        return cls(
            product_id=product_id,
            store=store,
            resolved_product_ids=store.resolve_product_ids(product_id),
        )

    def claim(self, row: ImportRow) -> None:
        """Record that `row` will be (or was) created in this batch."""
        self.claimed_titles.setdefault(title_key(row.title), row.row_index)


def evaluate_row(row: ImportRow, ctx: EvaluationContext) -> list[str]:
    """Return every reason `row` cannot be created; empty means it can.

    Order: schema -> product -> duplicate in batch -> duplicate in store.
    Store lookups are read-only; raising TemplateStoreError is left to the
    caller (it is not a row-level failure).
    """
    messages = validate_row_fields(row.to_payload())
    title_invalid = any(m.startswith("title:") for m in messages)

    if not ctx.resolved_product_ids:
        messages.append(product_not_found_message(ctx.product_id))
        return messages

    if title_invalid:
        return messages

    first_index = ctx.claimed_titles.get(title_key(row.title))
    if first_index is not None and first_index != row.row_index:
        messages.append(batch_duplicate_message(first_index))
        return messages

    match = ctx.store.find_duplicate(ctx.product_id, row.title.strip())
    if match is not None:
        messages.append(duplicate_title_message(match.title))

    return messages
