"""Domain models for the markdown template importer.

This package contains the value objects passed between the parser, the
preflight evaluator and the commit executor.
"""

from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .import_result import (
    CommitAction,
    CommitMode,
    CommitResult,
    CommitRow,
    PreviewAction,
    PreviewResult,
    PreviewRow,
)
from .import_row import BatchParseResult, ImportRow, LocalParseError, ParseStage, build_source_id
from .processing_result import ImportRunResult
from .template import BODY_MAX_LENGTH, TITLE_MAX_LENGTH, TemplateCategory, TemplateStatus

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Parse models
    "ImportRow",
    "LocalParseError",
    "ParseStage",
    "BatchParseResult",
    "build_source_id",
    # Result models
    "PreviewAction",
    "PreviewRow",
    "PreviewResult",
    "CommitAction",
    "CommitMode",
    "CommitRow",
    "CommitResult",
    # Run result
    "ImportRunResult",
    # Logging
    "ErrorRecord",
    # Template vocabulary
    "TemplateCategory",
    "TemplateStatus",
    "TITLE_MAX_LENGTH",
    "BODY_MAX_LENGTH",
]
