from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal

"""Import row models produced by the batch file parser.

A parsed file yields exactly one of ImportRow (kind="row") or
LocalParseError (kind="error"). Both carry the same identity triple
(source_id, file_name, row_index) so that downstream views can merge them
by row_index and retry by source_id.
"""

__all__ = [
    "ImportRow",
    "LocalParseError",
    "ParseStage",
    "ParsedFile",
    "BatchParseResult",
    "build_source_id",
]


def build_source_id(file_name: str, size: int, last_modified: int, row_index: int) -> str:
    """Deterministic identity for one uploaded file within a session."""
    return f"{file_name}:{size}:{last_modified}:{row_index}"


class ParseStage(Enum):
    """Pipeline stage at which a file was rejected locally."""
    READ = "read"
    EMPTY = "empty"
    FRONT_MATTER = "front_matter"
    METADATA = "metadata"
    DEPRECATED_KEYS = "deprecated_keys"
    SCHEMA = "schema"

    @property
    def error_type(self) -> str:
        # error log 用 UPPER_SNAKE
        return f"{self.value.upper()}_ERROR"


@dataclass(frozen=True)
class ImportRow:
    """Canonical, validated template row ready for preflight / commit."""
    kind: ClassVar[Literal["row"]] = "row"

    row_index: int  # 1 始まり, batch driver が採番
    source_id: str
    file_name: str
    title: str  # trim 済
    category: str
    status: str
    body: str  # closing delimiter 以降そのまま (trim しない)

    def to_payload(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "source_id": self.source_id,
            "file_name": self.file_name,
            "title": self.title,
            "category": self.category,
            "status": self.status,
            "body": self.body,
        }

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> ImportRow:
        return ImportRow(
            row_index=payload["row_index"],
            source_id=payload["source_id"],
            file_name=payload["file_name"],
            title=payload["title"],
            category=payload["category"],
            status=payload.get("status", "draft"),
            body=payload["body"],
        )


@dataclass(frozen=True)
class LocalParseError:
    """File-local failure detected before anything is sent to the store."""
    kind: ClassVar[Literal["error"]] = "error"

    source_id: str
    file_name: str
    row_index: int
    messages: tuple[str, ...]
    stage: ParseStage = ParseStage.SCHEMA

    def __post_init__(self) -> None:
        if not self.messages:
            raise ValueError("LocalParseError requires at least one message")


ParsedFile = ImportRow | LocalParseError


@dataclass(frozen=True)
class BatchParseResult:
    rows: tuple[ImportRow, ...] = field(default_factory=tuple)
    errors: tuple[LocalParseError, ...] = field(default_factory=tuple)

    @property
    def total_files(self) -> int:
        return len(self.rows) + len(self.errors)
