"""Import pipeline services: parsing, preflight, commit and session workflow."""

from .batch_parser import parse_file, parse_files
from .commit import commit, retry_subset
from .preflight import preview
from .session import ImportSession, SessionError

__all__ = [
    "parse_file",
    "parse_files",
    "preview",
    "commit",
    "retry_subset",
    "ImportSession",
    "SessionError",
]
