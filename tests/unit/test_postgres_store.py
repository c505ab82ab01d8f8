from __future__ import annotations

import psycopg2
import pytest

from template_import.db.postgres_store import PostgresTemplateStore
from template_import.db.template_store import TemplateCreate, TemplateStoreError


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[tuple[str, tuple | None]] = []
        self.one: list[tuple | None] = []
        self.all: list[tuple] = []
        self.fail_on: str | None = None

    def execute(self, sql, params=None):
        if self.fail_on and self.fail_on in sql:
            raise psycopg2.Error("boom")
        self.queries.append((sql, params))

    def fetchone(self):
        return self.one.pop(0) if self.one else None

    def fetchall(self):
        return self.all


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import template_import.db.postgres_store as ps
    calls = []

    def fake_execute_values(cursor, sql, rows, page_size=1000, template=None):
        calls.append((sql, list(rows), page_size))
    monkeypatch.setattr(ps, "execute_values", fake_execute_values)
    return calls


def test_find_duplicate():
    cur = DummyCursor()
    cur.one = [("uuid-1", "Welcome")]
    store = PostgresTemplateStore(cur)
    match = store.find_duplicate("p1", "welcome")
    assert match is not None
    assert (match.template_id, match.title) == ("uuid-1", "Welcome")
    sql, params = cur.queries[0]
    assert "regexp_replace(btrim(t.title)" in sql
    assert params == ("p1", "welcome")
    assert store.find_duplicate("p1", "other") is None


def test_resolve_product_ids():
    cur = DummyCursor()
    cur.all = [("p1",)]
    store = PostgresTemplateStore(cur)
    assert store.resolve_product_ids("p1") == ["p1"]
    assert store.resolve_product_ids("") == []
    assert len(cur.queries) == 1


def test_create_template_links_products(patch_execute_values):
    cur = DummyCursor()
    cur.one = [("uuid-9",)]
    store = PostgresTemplateStore(cur, page_size=50)
    template_id = store.create_template(
        TemplateCreate(title="T", category="offer", status="draft", body="b", product_ids=("p1",))
    )
    assert template_id == "uuid-9"
    assert cur.queries[0][1] == ("T", "offer", "draft", "b")
    sql, rows, page_size = patch_execute_values[0]
    assert "template_products" in sql
    assert rows == [("uuid-9", "p1")]
    assert page_size == 50


def test_create_template_without_returning_id():
    store = PostgresTemplateStore(DummyCursor())
    with pytest.raises(TemplateStoreError):
        store.create_template(TemplateCreate(title="T", category="offer", status="draft", body="b"))


def test_driver_errors_are_wrapped():
    cur = DummyCursor()
    cur.fail_on = "INSERT INTO templates"
    store = PostgresTemplateStore(cur)
    with pytest.raises(TemplateStoreError, match="boom"):
        store.create_template(TemplateCreate(title="T", category="offer", status="draft", body="b"))


def test_transaction_commit_and_rollback():
    cur = DummyCursor()
    store = PostgresTemplateStore(cur)
    with store.transaction():
        pass
    assert [q for q, _ in cur.queries] == ["BEGIN", "COMMIT"]

    cur.queries.clear()
    with pytest.raises(TemplateStoreError):
        with store.transaction():
            raise TemplateStoreError("fail")
    assert [q for q, _ in cur.queries] == ["BEGIN", "ROLLBACK"]


def test_find_duplicate_uses_title_key_normalization():
    cur = DummyCursor()
    store = PostgresTemplateStore(cur)
    store.find_duplicate("p1", "  Hello   WORLD ")
    sql, params = cur.queries[0]
    # in-memory store と同じ比較キー
    assert params == ("p1", "hello world")
    assert r"'\s+', ' ', 'g'" in sql
