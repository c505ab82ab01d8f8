"""Markdown template import pipeline for the CRM template library.

Typical library use::

    from template_import import InMemoryMarkdownFile, parse_files, preview, commit

    parsed = parse_files([InMemoryMarkdownFile("intro.md", text)])
    dry_run = preview(parsed.rows, product_id, store)
    result = commit(parsed.rows, product_id, store, dry_run=dry_run)
"""

from .markdown.front_matter import extract_front_matter, parse_restricted_yaml
from .markdown.reader import InMemoryMarkdownFile, LocalMarkdownFile
from .models.import_result import CommitMode
from .services.batch_parser import parse_files
from .services.commit import commit, retry_subset
from .services.preflight import preview
from .services.session import ImportSession

__version__ = "0.1.0"

__all__ = [
    "extract_front_matter",
    "parse_restricted_yaml",
    "InMemoryMarkdownFile",
    "LocalMarkdownFile",
    "CommitMode",
    "parse_files",
    "preview",
    "commit",
    "retry_subset",
    "ImportSession",
]
