from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Each record describes one rejected import row: a local parse failure, a
preflight/commit validation failure, or an aborted row. row=-1 is accepted
for batch-level failures where no single row is to blame (e.g. the store
refused to open a transaction).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Markdown file name as uploaded
        source_id: Stable source identity of the row ("" when unknown)
        row: Row index (1-based). Use -1 for batch-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable messages joined with "; "
    """
    timestamp: str  # ISO8601 UTC
    file: str
    source_id: str
    row: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(
        file: str,
        source_id: str,
        row: int,
        error_type: str,
        messages: list[str] | tuple[str, ...] | str,
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        if isinstance(messages, str):
            text = messages
        else:
            text = "; ".join(messages)
        return ErrorRecord(
            timestamp=ts,
            file=file,
            source_id=source_id,
            row=row,
            error_type=error_type,
            message=text,
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
