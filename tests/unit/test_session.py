from __future__ import annotations

import pytest

from template_import.db.template_store import InMemoryTemplateStore
from template_import.models.import_result import CommitAction, CommitMode, PreviewAction
from template_import.services.session import ImportSession, SessionError


@pytest.fixture()
def session() -> ImportSession:
    return ImportSession(product_id="product-1")


def test_add_files_numbers_rows_across_uploads(session: ImportSession, md_file, template_text):
    first = session.add_files([md_file("a.md", template_text(title="A")), md_file("b.md", "")])
    second = session.add_files([md_file("c.md", template_text(title="C"))])

    assert (first.added, first.rows, first.errors) == (2, 1, 1)
    assert (second.added, second.rows, second.errors) == (1, 1, 0)
    assert [e.row_index for e in session.entries] == [1, 2, 3]
    assert session.next_row_index == 4
    assert [r.title for r in session.valid_rows] == ["A", "C"]
    assert [e.file_name for e in session.local_errors] == ["b.md"]


def test_non_markdown_files_are_skipped(session: ImportSession, md_file):
    result = session.add_files([md_file("notes.txt"), md_file("ok.md")])
    assert result.skipped == ("notes.txt",)
    assert result.added == 1
    assert session.entries[0].file_name == "ok.md"


def test_preflight_requires_product_and_rows(md_file):
    s = ImportSession()
    store = InMemoryTemplateStore()
    s.add_files([md_file("a.md")])
    with pytest.raises(SessionError, match="select a product"):
        s.run_preflight(store)

    empty = ImportSession(product_id="product-1")
    empty.add_files([md_file("bad.md", "no front matter")])
    with pytest.raises(SessionError, match="no valid templates"):
        empty.run_preflight(store)


def test_merged_preview_includes_local_errors(session: ImportSession, md_file, template_text, store):
    store.add_existing("Taken", "product-1")
    session.add_files(
        [
            md_file("a.md", template_text(title="Fresh")),
            md_file("b.md", "---\ntitle: X\n"),
            md_file("c.md", template_text(title="Taken")),
        ]
    )
    session.run_preflight(store)

    merged = session.merged_preview_rows()
    assert [r.row_index for r in merged] == [1, 2, 3]
    assert [r.action for r in merged] == [PreviewAction.CREATE, PreviewAction.ERROR, PreviewAction.ERROR]
    assert (merged[1].title, merged[1].category, merged[1].status) == ("-", "-", "-")
    assert session.preflight_error_count == 2
    assert session.needs_confirmation is True


def test_changes_invalidate_results(session: ImportSession, md_file, template_text, store):
    session.add_files([md_file("a.md", template_text(title="A"))])
    session.run_preflight(store)
    assert session.preview_result is not None

    session.add_files([md_file("b.md", template_text(title="B"))])
    assert session.preview_result is None

    session.run_preflight(store)
    session.select_product("product-2")
    assert session.preview_result is None


def test_remove_entry(session: ImportSession, md_file):
    session.add_files([md_file("a.md"), md_file("b.md", "")])
    target = session.entries[1].source_id
    assert session.remove_entry(target) is True
    assert session.remove_entry(target) is False
    assert len(session.entries) == 1


def test_retry_failed_only_keeps_failed_entries(session: ImportSession, md_file, template_text, store):
    store.add_existing("Taken", "product-1")
    session.add_files(
        [md_file("a.md", template_text(title="Fresh")), md_file("b.md", template_text(title="Taken"))]
    )
    result = session.run_commit(store, CommitMode.PARTIAL)
    assert [r.action for r in result.rows] == [CommitAction.CREATED, CommitAction.ERROR]

    kept = session.retry_failed_only()
    assert kept == 1
    assert [e.file_name for e in session.entries] == ["b.md"]
    assert session.commit_result is None
    # 元の row_index / source_id は維持
    assert session.entries[0].row_index == 2


def test_retry_failed_only_without_failures(session: ImportSession, md_file, store):
    session.add_files([md_file("a.md")])
    assert session.retry_failed_only() == 0
    session.run_commit(store)
    assert session.retry_failed_only() == 0
    assert len(session.entries) == 1


def test_reset(session: ImportSession, md_file):
    session.add_files([md_file("a.md")])
    session.reset()
    assert session.entries == []
    assert session.product_id is None
    assert session.next_row_index == 1
