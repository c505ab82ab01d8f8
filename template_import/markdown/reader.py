from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

"""Read-file-to-text capability used by the batch parser.

The parser core only needs a name, a size, a modification stamp and the
decoded text. Local files and in-memory uploads both satisfy the
MarkdownSource protocol, so tests can feed strings directly.
"""

__all__ = [
    "FileReadError",
    "ProcessingError",
    "MarkdownSource",
    "LocalMarkdownFile",
    "InMemoryMarkdownFile",
    "is_markdown_name",
    "scan_markdown_files",
]

MARKDOWN_SUFFIX = ".md"


class FileReadError(Exception):
    """Raised when a source cannot produce its text content."""


@runtime_checkable
class MarkdownSource(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def size(self) -> int: ...

    @property
    def last_modified(self) -> int: ...

    def read_text(self) -> str: ...


def is_markdown_name(name: str) -> bool:
    return name.lower().endswith(MARKDOWN_SUFFIX)


class LocalMarkdownFile:
    """A markdown file on disk. Size / mtime are taken once at construction."""

    # utf-8-sig: 先頭 BOM (Windows エディタ保存) を除去
    def __init__(self, path: Path, encoding: str = "utf-8-sig") -> None:
        self.path = Path(path)
        self.encoding = encoding
        try:
            stat = self.path.stat()
        except OSError:
            self._size = 0
            self._last_modified = 0
        else:
            self._size = stat.st_size
            # epoch milliseconds (browser の File.lastModified と同じ単位)
            self._last_modified = int(stat.st_mtime * 1000)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self._size

    @property
    def last_modified(self) -> int:
        return self._last_modified

    def read_text(self) -> str:
        try:
            return self.path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(f"failed to read {self.path}: {e}") from e

    def __repr__(self) -> str:  # pragma: no cover (trivial)
        return f"LocalMarkdownFile({str(self.path)!r})"


@dataclass(frozen=True)
class InMemoryMarkdownFile:
    """Uploaded content already held in memory."""
    name: str
    content: str
    last_modified: int = 0

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))

    def read_text(self) -> str:
        return self.content


class ProcessingError(Exception):
    """Fatal error that prevents a run from starting (bad directory etc.)."""


def scan_markdown_files(directory: Path) -> list[Path]:
    """Scan directory for .md files (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        found = [p for p in directory.iterdir() if p.is_file() and is_markdown_name(p.name)]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(found, key=lambda p: p.name)
