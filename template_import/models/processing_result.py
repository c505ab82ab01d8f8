from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .import_result import CommitResult, PreviewResult
from .import_row import BatchParseResult

"""Aggregated result of one CLI import run (parse -> preflight -> commit)."""

__all__ = [
    "ImportRunResult",
]


@dataclass(frozen=True)
class ImportRunResult:
    total_files: int  # 検出した .md ファイル数
    parse: BatchParseResult
    preview: PreviewResult | None  # 有効行 0 件の場合 None
    commit: CommitResult | None  # dry run / 有効行 0 件の場合 None
    dry_run: bool
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float

    @property
    def local_errors(self) -> int:
        return len(self.parse.errors)

    @property
    def preflight_errors(self) -> int:
        return self.preview.errors if self.preview is not None else 0

    @property
    def created(self) -> int:
        return self.commit.created if self.commit is not None else 0

    @property
    def failed(self) -> int:
        return self.commit.failed if self.commit is not None else 0

    @property
    def aborted(self) -> int:
        return self.commit.aborted if self.commit is not None else 0

    @property
    def has_failures(self) -> bool:
        """Any file or row that did not (or would not) become a template."""
        if self.local_errors:
            return True
        if self.dry_run or self.commit is None:
            return self.preflight_errors > 0
        return self.failed > 0 or self.aborted > 0

    def to_dict(self) -> dict[str, object]:
        return {
            "total_files": self.total_files,
            "dry_run": self.dry_run,
            "local_errors": [
                {
                    "row_index": e.row_index,
                    "source_id": e.source_id,
                    "file_name": e.file_name,
                    "stage": e.stage.value,
                    "messages": list(e.messages),
                }
                for e in self.parse.errors
            ],
            "preview": self.preview.to_dict() if self.preview is not None else None,
            "commit": self.commit.to_dict() if self.commit is not None else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "elapsed_seconds": self.elapsed_seconds,
        }
