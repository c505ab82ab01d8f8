from __future__ import annotations

import logging
from collections.abc import Iterable

from ..markdown.front_matter import FrontMatterError, extract_front_matter, parse_restricted_yaml
from ..markdown.reader import FileReadError, MarkdownSource
from ..models.import_row import (
    BatchParseResult,
    ImportRow,
    LocalParseError,
    ParsedFile,
    ParseStage,
    build_source_id,
)
from .normalizer import normalize_row
from .progress import ProgressTracker

"""Batch file parser.

Drives front matter extraction, restricted YAML evaluation and row
normalization over uploaded files. Each file yields exactly one ImportRow
or one LocalParseError; a failing file never affects the others.
Files are read sequentially so that row_index assignment is deterministic.
"""

__all__ = [
    "parse_file",
    "parse_files",
]

logger = logging.getLogger(__name__)

READ_FAILED = "Could not read file contents."
EMPTY_FILE = "Markdown file is empty."


def _local_error(
    source_id: str, file_name: str, row_index: int, messages: list[str], stage: ParseStage
) -> LocalParseError:
    return LocalParseError(
        source_id=source_id,
        file_name=file_name,
        row_index=row_index,
        messages=tuple(messages),
        stage=stage,
    )


def parse_file(source: MarkdownSource, row_index: int) -> ParsedFile:
    """Parse one markdown source into an ImportRow or a LocalParseError.

    Stages short-circuit in order: read -> empty check -> front matter ->
    YAML -> deprecated keys -> schema.
    """
    file_name = source.name
    source_id = build_source_id(file_name, source.size, source.last_modified, row_index)

    try:
        content = source.read_text()
    except FileReadError as e:
        logger.debug("read failed file=%s err=%s", file_name, e)
        return _local_error(source_id, file_name, row_index, [READ_FAILED], ParseStage.READ)

    if not content.strip():
        return _local_error(source_id, file_name, row_index, [EMPTY_FILE], ParseStage.EMPTY)

    front_matter = extract_front_matter(content)
    if isinstance(front_matter, FrontMatterError):
        return _local_error(
            source_id, file_name, row_index, [front_matter.error], ParseStage.FRONT_MATTER
        )

    parsed = parse_restricted_yaml(front_matter.metadata)
    if parsed.errors:
        return _local_error(source_id, file_name, row_index, parsed.errors, ParseStage.METADATA)

    return normalize_row(source_id, file_name, row_index, parsed.data, front_matter.body)


def parse_files(files: Iterable[MarkdownSource], start_row_index: int = 1) -> BatchParseResult:
    """Parse `files` in order, numbering rows from `start_row_index`.

    Callers continuing a session pass the next free index so that rows from
    repeated uploads never collide; source_id remains the stable identity.
    """
    if start_row_index < 1:
        raise ValueError(f"start_row_index must be positive: {start_row_index}")

    sources = list(files)
    rows: list[ImportRow] = []
    errors: list[LocalParseError] = []

    with ProgressTracker(len(sources), description="Parsing files") as progress:
        for offset, source in enumerate(sources):
            progress.start(source.name)
            parsed = parse_file(source, start_row_index + offset)
            if isinstance(parsed, ImportRow):
                rows.append(parsed)
            else:
                errors.append(parsed)
                logger.debug(
                    "local parse error file=%s row=%d stage=%s",
                    parsed.file_name,
                    parsed.row_index,
                    parsed.stage.value,
                )
            progress.finish(valid=len(rows), errors=len(errors))

    return BatchParseResult(rows=tuple(rows), errors=tuple(errors))
