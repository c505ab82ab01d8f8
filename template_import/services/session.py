from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..db.template_store import TemplateStore
from ..markdown.reader import MarkdownSource, is_markdown_name
from ..models.import_result import CommitMode, CommitResult, PreviewResult, PreviewRow
from ..models.import_row import ImportRow, LocalParseError, ParseStage
from .batch_parser import parse_files
from .commit import commit, retry_subset
from .preflight import preview

"""Import session: the upload -> preflight -> commit -> retry workflow.

Holds the entries uploaded during one session (possibly over several "add
files" actions), the selected product, and the latest preflight / commit
results. Any change to the entries or product invalidates cached results.
"""

__all__ = [
    "SessionError",
    "UploadEntry",
    "AddFilesResult",
    "ImportSession",
]

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when an action is not possible in the current session state."""


@dataclass(frozen=True)
class UploadEntry:
    source_id: str
    row_index: int
    file_name: str
    row: ImportRow | None
    messages: tuple[str, ...] = ()
    stage: ParseStage | None = None

    @staticmethod
    def from_parsed(parsed: ImportRow | LocalParseError) -> UploadEntry:
        if isinstance(parsed, ImportRow):
            return UploadEntry(parsed.source_id, parsed.row_index, parsed.file_name, parsed)
        return UploadEntry(
            parsed.source_id, parsed.row_index, parsed.file_name, None, parsed.messages, parsed.stage
        )

    def to_local_error(self) -> LocalParseError:
        return LocalParseError(
            source_id=self.source_id,
            file_name=self.file_name,
            row_index=self.row_index,
            messages=self.messages,
            stage=self.stage or ParseStage.SCHEMA,
        )


@dataclass(frozen=True)
class AddFilesResult:
    added: int
    rows: int
    errors: int
    skipped: tuple[str, ...] = ()  # .md 以外で無視したファイル名


class ImportSession:
    def __init__(self, product_id: str | None = None) -> None:
        self.product_id = product_id
        self.entries: list[UploadEntry] = []
        self.preview_result: PreviewResult | None = None
        self.commit_result: CommitResult | None = None

    # -- entries ---------------------------------------------------------

    @property
    def next_row_index(self) -> int:
        return max((e.row_index for e in self.entries), default=0) + 1

    @property
    def valid_rows(self) -> list[ImportRow]:
        return [e.row for e in self.entries if e.row is not None]

    @property
    def local_errors(self) -> list[LocalParseError]:
        return [e.to_local_error() for e in self.entries if e.row is None]

    def _invalidate(self) -> None:
        self.preview_result = None
        self.commit_result = None

    def add_files(self, files: Iterable[MarkdownSource]) -> AddFilesResult:
        sources = list(files)
        markdown = [f for f in sources if is_markdown_name(f.name)]
        skipped = tuple(f.name for f in sources if not is_markdown_name(f.name))
        if skipped:
            logger.warning("only .md files are supported; skipped %s", ", ".join(skipped))
        if not markdown:
            return AddFilesResult(added=0, rows=0, errors=0, skipped=skipped)

        parsed = parse_files(markdown, self.next_row_index)
        new_entries = [UploadEntry.from_parsed(r) for r in parsed.rows]
        new_entries += [UploadEntry.from_parsed(e) for e in parsed.errors]
        self.entries.extend(sorted(new_entries, key=lambda e: e.row_index))
        self._invalidate()
        return AddFilesResult(
            added=len(new_entries),
            rows=len(parsed.rows),
            errors=len(parsed.errors),
            skipped=skipped,
        )

    def remove_entry(self, source_id: str) -> bool:
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.source_id != source_id]
        removed = len(self.entries) != before
        if removed:
            self._invalidate()
        return removed

    def select_product(self, product_id: str) -> None:
        self.product_id = product_id
        self._invalidate()

    def reset(self) -> None:
        self.product_id = None
        self.entries = []
        self._invalidate()

    # -- preflight / commit ----------------------------------------------

    def _require_ready(self) -> str:
        if not self.product_id:
            raise SessionError("select a product before importing")
        if not self.valid_rows:
            raise SessionError("no valid templates to import")
        return self.product_id

    def run_preflight(self, store: TemplateStore) -> PreviewResult:
        product_id = self._require_ready()
        self.preview_result = preview(self.valid_rows, product_id, store)
        self.commit_result = None
        return self.preview_result

    def run_commit(self, store: TemplateStore, mode: CommitMode = CommitMode.PARTIAL) -> CommitResult:
        product_id = self._require_ready()
        self.commit_result = commit(
            self.valid_rows, product_id, store, mode=mode, dry_run=self.preview_result
        )
        return self.commit_result

    def merged_preview_rows(self) -> list[PreviewRow]:
        """Local parse errors and preflight rows in one row_index-ordered list."""
        if self.preview_result is None:
            return []
        local = [PreviewRow.from_local_error(e) for e in self.local_errors]
        return sorted([*local, *self.preview_result.rows], key=lambda r: r.row_index)

    @property
    def preflight_error_count(self) -> int:
        server = self.preview_result.errors if self.preview_result is not None else 0
        return server + len(self.local_errors)

    @property
    def needs_confirmation(self) -> bool:
        """Preflight found both creatable and failing rows: ask before partial commit."""
        if self.preview_result is None:
            return False
        return self.preview_result.valid_rows > 0 and self.preflight_error_count > 0

    def retry_failed_only(self) -> int:
        """Keep only entries whose last commit action was "error".

        Returns the number of entries kept; 0 leaves the session untouched.
        """
        if self.commit_result is None:
            return 0
        failed_rows = retry_subset(self.valid_rows, self.commit_result)
        if not failed_rows:
            return 0
        keep = {r.source_id for r in failed_rows}
        self.entries = [e for e in self.entries if e.source_id in keep]
        self._invalidate()
        return len(self.entries)
