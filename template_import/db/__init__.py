"""Record store implementations for template imports."""

from .template_store import (
    DuplicateMatch,
    InMemoryTemplateStore,
    TemplateCreate,
    TemplateStore,
    TemplateStoreError,
)

__all__ = [
    "DuplicateMatch",
    "InMemoryTemplateStore",
    "TemplateCreate",
    "TemplateStore",
    "TemplateStoreError",
]
