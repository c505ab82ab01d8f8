from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

from .template_store import DuplicateMatch, TemplateCreate, TemplateStoreError, title_key

"""PostgreSQL implementation of the template record store.

Tables used (CRM schema):

    templates(id uuid pk, title text, category template_category,
              status template_status, body text, ...)
    template_products(template_id uuid, product_id uuid)
    products(id uuid pk, ...)

The store works on a psycopg2 cursor owned by the caller. The connection is
expected to run with autocommit enabled; transaction() issues explicit
BEGIN / COMMIT / ROLLBACK on the cursor.
"""

__all__ = [
    "PostgresTemplateStore",
]

logger = logging.getLogger(__name__)

_FIND_DUPLICATE_SQL = (
    "SELECT t.id, t.title FROM templates t "
    "JOIN template_products tp ON tp.template_id = t.id "
    # title_key() と同じ正規化 (trim + 連続空白を 1 つに + 小文字化)
    "WHERE tp.product_id = %s "
    r"AND lower(regexp_replace(btrim(t.title), '\s+', ' ', 'g')) = %s "
    "LIMIT 1"
)
_RESOLVE_PRODUCT_SQL = "SELECT id FROM products WHERE id = %s"
_INSERT_TEMPLATE_SQL = (
    "INSERT INTO templates (title, category, status, body) "
    "VALUES (%s, %s, %s, %s) RETURNING id"
)
_INSERT_PRODUCT_LINKS_SQL = "INSERT INTO template_products (template_id, product_id) VALUES %s"


class PostgresTemplateStore:
    def __init__(self, cursor: Any, page_size: int = 100) -> None:
        self.cursor = cursor
        self.page_size = page_size

    def _execute(self, sql: str, params: tuple[Any, ...] | None = None) -> None:
        try:
            if params is None:
                self.cursor.execute(sql)
            else:
                self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise TemplateStoreError(str(e).strip()) from e

    def find_duplicate(self, product_id: str, title: str) -> DuplicateMatch | None:
        self._execute(_FIND_DUPLICATE_SQL, (product_id, title_key(title)))
        row = self.cursor.fetchone()
        if row is None:
            return None
        return DuplicateMatch(template_id=str(row[0]), title=row[1])

    def resolve_product_ids(self, product_id: str) -> list[str]:
        if not product_id:
            return []
        self._execute(_RESOLVE_PRODUCT_SQL, (product_id,))
        return [str(r[0]) for r in self.cursor.fetchall()]

    def create_template(self, fields: TemplateCreate) -> str:
        self._execute(
            _INSERT_TEMPLATE_SQL,
            (fields.title, fields.category, fields.status, fields.body),
        )
        row = self.cursor.fetchone()
        if row is None:
            raise TemplateStoreError("insert into templates returned no id")
        template_id = str(row[0])

        if fields.product_ids:
            links = [(template_id, pid) for pid in fields.product_ids]
            try:
                execute_values(self.cursor, _INSERT_PRODUCT_LINKS_SQL, links, page_size=self.page_size)
            except psycopg2.Error as e:
                raise TemplateStoreError(str(e).strip()) from e

        logger.debug("created template id=%s title=%s", template_id, fields.title)
        return template_id

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._execute("BEGIN")
        try:
            yield
        except Exception:
            try:
                self.cursor.execute("ROLLBACK")
            except psycopg2.Error:  # pragma: no cover
                logger.warning("rollback failed", exc_info=True)
            raise
        self._execute("COMMIT")
