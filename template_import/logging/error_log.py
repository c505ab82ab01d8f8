from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.import_result import CommitAction, CommitResult, PreviewAction, PreviewResult
from ..models.import_row import LocalParseError

"""Error log buffering.

- JSON Lines, fixed key set (see ErrorRecord)
- one file per run: `logs/errors-YYYYMMDD-HHMMSS.log` (UTC), created lazily
- records are buffered and written in one go by flush()

error_type per pipeline phase:

- local parse failures: `<STAGE>_ERROR` (READ_ERROR, SCHEMA_ERROR, ...)
- preflight (dry run) rejections: PREFLIGHT_ERROR
- commit: COMMIT_ERROR for rejected rows, COMMIT_ABORTED for abort_all rows
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "PREFLIGHT_ERROR",
    "COMMIT_ERROR",
    "COMMIT_ABORTED",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

PREFLIGHT_ERROR = "PREFLIGHT_ERROR"
COMMIT_ERROR = "COMMIT_ERROR"
COMMIT_ABORTED = "COMMIT_ABORTED"

_COMMIT_ERROR_TYPES = {
    CommitAction.ERROR: COMMIT_ERROR,
    CommitAction.ABORTED: COMMIT_ABORTED,
}


class ErrorLogBuffer:
    """In-memory buffer for rejected import rows. flush() appends JSON Lines.

    No thread safety: the importer runs serially.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        # flush 後も run 全体の件数を保持
        self._counts: Counter[str] = Counter()

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)
        self._counts[record.error_type] += 1

    def add_local_errors(self, errors: Iterable[LocalParseError]) -> int:
        """One record per file rejected before preflight; error_type from its stage."""
        added = 0
        for e in errors:
            self.append(ErrorRecord.create(e.file_name, e.source_id, e.row_index, e.stage.error_type, e.messages))
            added += 1
        return added

    def add_preview_errors(self, result: PreviewResult) -> int:
        added = 0
        for r in result.rows:
            if r.action is PreviewAction.ERROR:
                self.append(ErrorRecord.create(r.file_name, r.source_id, r.row_index, PREFLIGHT_ERROR, r.messages))
                added += 1
        return added

    def add_commit_failures(self, result: CommitResult) -> int:
        """Rows that were not created: rejected (COMMIT_ERROR) or aborted (COMMIT_ABORTED)."""
        added = 0
        for r in result.rows:
            error_type = _COMMIT_ERROR_TYPES.get(r.action)
            if error_type is None:
                continue
            self.append(ErrorRecord.create(r.file_name, r.source_id, r.row_index, error_type, r.messages))
            added += 1
        return added

    def counts_by_type(self) -> dict[str, int]:
        """Records appended during this run, grouped by error_type (sorted by name)."""
        return dict(sorted(self._counts.items()))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path or None when nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
