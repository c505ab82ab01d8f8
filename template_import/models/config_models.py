from __future__ import annotations

from dataclasses import dataclass, field

from .import_result import CommitMode

"""Config dataclasses for the markdown template importer.

Populated by template_import.config.loader after schema validation.
"""

__all__ = [
    "DatabaseConfig",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    source_directory: str  # .md ファイルを探すディレクトリ
    product_id: str  # バッチ全体に紐付ける product (ファイル側では指定不可)
    commit_mode: CommitMode = CommitMode.PARTIAL
    start_row_index: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
