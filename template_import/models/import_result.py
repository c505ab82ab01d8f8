from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .import_row import ImportRow, LocalParseError

"""Preflight and commit result models.

PreviewRow / PreviewResult describe what a commit would do without touching
the store. CommitRow / CommitResult describe what actually happened and keep
the preflight prediction (dry_run_action) next to the real outcome.
"""

__all__ = [
    "PreviewAction",
    "CommitAction",
    "CommitMode",
    "PreviewRow",
    "PreviewResult",
    "CommitRow",
    "CommitResult",
]

PLACEHOLDER = "-"


class PreviewAction(str, Enum):
    CREATE = "create"
    ERROR = "error"


class CommitAction(str, Enum):
    CREATED = "created"
    ERROR = "error"
    ABORTED = "aborted"


class CommitMode(str, Enum):
    """Commit policy.

    - PARTIAL: every row succeeds or fails on its own
    - ABORT_ALL: any failing row prevents persistence of the whole batch
    """
    PARTIAL = "partial"
    ABORT_ALL = "abort_all"


@dataclass(frozen=True)
class PreviewRow:
    row_index: int
    source_id: str
    file_name: str
    title: str
    category: str
    status: str
    action: PreviewAction
    template_id: str | None = None  # commit 前は常に None
    resolved_product_ids: tuple[str, ...] = ()
    messages: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.action is PreviewAction.ERROR:
            if not self.messages:
                raise ValueError(f"row {self.row_index}: error action requires messages")
            if self.template_id is not None:
                raise ValueError(f"row {self.row_index}: error action cannot carry template_id")

    @staticmethod
    def for_row(
        row: ImportRow,
        messages: list[str],
        resolved_product_ids: list[str],
    ) -> PreviewRow:
        action = PreviewAction.ERROR if messages else PreviewAction.CREATE
        return PreviewRow(
            row_index=row.row_index,
            source_id=row.source_id,
            file_name=row.file_name,
            title=row.title,
            category=row.category,
            status=row.status,
            action=action,
            template_id=None,
            resolved_product_ids=tuple(resolved_product_ids),
            messages=tuple(messages),
        )

    @staticmethod
    def from_local_error(error: LocalParseError) -> PreviewRow:
        """Placeholder row so local parse failures line up with preflight rows."""
        return PreviewRow(
            row_index=error.row_index,
            source_id=error.source_id,
            file_name=error.file_name,
            title=PLACEHOLDER,
            category=PLACEHOLDER,
            status=PLACEHOLDER,
            action=PreviewAction.ERROR,
            messages=error.messages,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "source_id": self.source_id,
            "file_name": self.file_name,
            "title": self.title,
            "category": self.category,
            "status": self.status,
            "action": self.action.value,
            "template_id": self.template_id,
            "resolved_product_ids": list(self.resolved_product_ids),
            "messages": list(self.messages),
        }


@dataclass(frozen=True)
class PreviewResult:
    total_requested: int
    valid_rows: int
    errors: int
    create_count: int
    rows: tuple[PreviewRow, ...] = field(default_factory=tuple)

    @staticmethod
    def from_rows(rows: list[PreviewRow]) -> PreviewResult:
        ordered = sorted(rows, key=lambda r: r.row_index)
        creates = sum(1 for r in ordered if r.action is PreviewAction.CREATE)
        return PreviewResult(
            total_requested=len(ordered),
            valid_rows=creates,
            errors=len(ordered) - creates,
            create_count=creates,
            rows=tuple(ordered),
        )

    def action_for(self, source_id: str) -> PreviewAction | None:
        for row in self.rows:
            if row.source_id == source_id:
                return row.action
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requested": self.total_requested,
            "valid_rows": self.valid_rows,
            "errors": self.errors,
            "create_count": self.create_count,
            "rows": [r.to_dict() for r in self.rows],
        }


@dataclass(frozen=True)
class CommitRow:
    row_index: int
    source_id: str
    file_name: str
    title: str
    dry_run_action: PreviewAction
    action: CommitAction
    template_id: str | None = None
    messages: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "source_id": self.source_id,
            "file_name": self.file_name,
            "title": self.title,
            "dry_run_action": self.dry_run_action.value,
            "action": self.action.value,
            "template_id": self.template_id,
            "messages": list(self.messages),
        }


@dataclass(frozen=True)
class CommitResult:
    mode: CommitMode
    applied: bool
    total_requested: int
    created: int
    failed: int
    aborted: int
    rows: tuple[CommitRow, ...] = field(default_factory=tuple)

    @staticmethod
    def from_rows(mode: CommitMode, rows: list[CommitRow]) -> CommitResult:
        ordered = sorted(rows, key=lambda r: r.row_index)
        created = sum(1 for r in ordered if r.action is CommitAction.CREATED)
        failed = sum(1 for r in ordered if r.action is CommitAction.ERROR)
        aborted = sum(1 for r in ordered if r.action is CommitAction.ABORTED)
        return CommitResult(
            mode=mode,
            applied=created > 0,
            total_requested=len(ordered),
            created=created,
            failed=failed,
            aborted=aborted,
            rows=tuple(ordered),
        )

    def failed_source_ids(self) -> set[str]:
        return {r.source_id for r in self.rows if r.action is CommitAction.ERROR}

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "applied": self.applied,
            "total_requested": self.total_requested,
            "created": self.created,
            "failed": self.failed,
            "aborted": self.aborted,
            "rows": [r.to_dict() for r in self.rows],
        }
