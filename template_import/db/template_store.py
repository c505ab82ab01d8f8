from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import Protocol

"""Record store collaborator used by preflight and commit.

The import core depends only on this shape:

- find_duplicate(product_id, title)  -> existing match or None
- create_template(fields)            -> new record id
- resolve_product_ids(product_id)    -> product ids to attach ([] = unknown)
- transaction()                      -> all-or-nothing block

InMemoryTemplateStore backs tests and the CLI mock mode;
PostgresTemplateStore (postgres_store.py) talks to the CRM database.
"""

__all__ = [
    "TemplateStoreError",
    "DuplicateMatch",
    "TemplateCreate",
    "StoredTemplate",
    "TemplateStore",
    "InMemoryTemplateStore",
    "title_key",
]


class TemplateStoreError(Exception):
    """Unexpected store failure (connection, constraint, driver error)."""


def title_key(title: str) -> str:
    """Comparison key for duplicate detection (trimmed, case-insensitive)."""
    return " ".join(title.split()).casefold()


@dataclass(frozen=True)
class DuplicateMatch:
    template_id: str
    title: str


@dataclass(frozen=True)
class TemplateCreate:
    title: str
    category: str
    status: str
    body: str
    product_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class StoredTemplate:
    template_id: str
    title: str
    category: str
    status: str
    body: str
    product_ids: tuple[str, ...] = ()


class TemplateStore(Protocol):
    def find_duplicate(self, product_id: str, title: str) -> DuplicateMatch | None: ...

    def create_template(self, fields: TemplateCreate) -> str: ...

    def resolve_product_ids(self, product_id: str) -> list[str]: ...

    def transaction(self) -> AbstractContextManager[None]: ...


@dataclass
class InMemoryTemplateStore:
    """Dict-backed store.

    products=None accepts any product id; otherwise only listed ids resolve.
    """
    products: set[str] | None = None
    templates: list[StoredTemplate] = field(default_factory=list)
    _next_id: int = 1

    @classmethod
    def with_products(cls, product_ids: Iterable[str]) -> InMemoryTemplateStore:
        return cls(products=set(product_ids))

    def find_duplicate(self, product_id: str, title: str) -> DuplicateMatch | None:
        key = title_key(title)
        for tpl in self.templates:
            if product_id in tpl.product_ids and title_key(tpl.title) == key:
                return DuplicateMatch(template_id=tpl.template_id, title=tpl.title)
        return None

    def create_template(self, fields: TemplateCreate) -> str:
        template_id = f"template-{self._next_id}"
        self._next_id += 1
        self.templates.append(
            StoredTemplate(
                template_id=template_id,
                title=fields.title,
                category=fields.category,
                status=fields.status,
                body=fields.body,
                product_ids=fields.product_ids,
            )
        )
        return template_id

    def resolve_product_ids(self, product_id: str) -> list[str]:
        if not product_id:
            return []
        if self.products is None or product_id in self.products:
            return [product_id]
        return []

    def add_existing(self, title: str, product_id: str, category: str = "content") -> str:
        """Seed a pre-existing template (tests / concurrent-change simulation)."""
        return self.create_template(
            TemplateCreate(
                title=title,
                category=category,
                status="draft",
                body="existing",
                product_ids=(product_id,),
            )
        )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = list(self.templates)
        next_id = self._next_id
        try:
            yield
        except Exception:
            self.templates = snapshot
            self._next_id = next_id
            raise
