from __future__ import annotations

from pathlib import Path

import pytest

from template_import.markdown.front_matter import CLOSING_DELIMITER_MISSING, OPENING_DELIMITER_MISSING
from template_import.markdown.reader import FileReadError
from template_import.models.import_row import ImportRow, LocalParseError, ParseStage
from template_import.services.batch_parser import EMPTY_FILE, READ_FAILED, parse_file, parse_files


class UnreadableFile:
    name = "broken.md"
    size = 12
    last_modified = 1700000000000

    def read_text(self) -> str:
        raise FileReadError("permission denied")


def test_minimal_valid_file(md_file):
    result = parse_files([md_file("reactivation.md")])
    assert result.errors == ()
    assert len(result.rows) == 1
    row = result.rows[0]
    assert row.title == "Reactivation email"
    assert row.category == "warm_outreach"
    assert row.status == "approved"
    assert row.body.strip() == "Hi {{first_name}}, we noticed you paused."
    assert row.row_index == 1
    assert row.file_name == "reactivation.md"


def test_source_id_is_deterministic(md_file):
    f = md_file("a.md", last_modified=1234)
    first = parse_file(f, 3)
    second = parse_file(f, 3)
    assert first.source_id == second.source_id == f"a.md:{f.size}:1234:3"


def test_missing_closing_delimiter_yields_error_only(md_file):
    result = parse_files([md_file("x.md", "---\ntitle: X\n")])
    assert result.rows == ()
    assert len(result.errors) == 1
    err = result.errors[0]
    assert err.stage is ParseStage.FRONT_MATTER
    assert err.messages == (CLOSING_DELIMITER_MISSING,)


def test_missing_opening_delimiter(md_file):
    parsed = parse_file(md_file("x.md", "title: X\n---\nbody"), 1)
    assert isinstance(parsed, LocalParseError)
    assert parsed.messages == (OPENING_DELIMITER_MISSING,)


def test_empty_file(md_file):
    parsed = parse_file(md_file("empty.md", "  \n\n"), 1)
    assert isinstance(parsed, LocalParseError)
    assert parsed.stage is ParseStage.EMPTY
    assert parsed.messages == (EMPTY_FILE,)


def test_unreadable_file_does_not_stop_batch(md_file):
    result = parse_files([UnreadableFile(), md_file("ok.md")])
    assert [r.file_name for r in result.rows] == ["ok.md"]
    assert len(result.errors) == 1
    assert result.errors[0].messages == (READ_FAILED,)
    assert result.errors[0].stage is ParseStage.READ
    assert result.errors[0].row_index == 1
    assert result.rows[0].row_index == 2


def test_yaml_errors_are_reported_per_line(md_file):
    content = "---\ntitle: A\n  bad indent\nno colon here\n---\nbody"
    parsed = parse_file(md_file("y.md", content), 1)
    assert isinstance(parsed, LocalParseError)
    assert parsed.stage is ParseStage.METADATA
    assert parsed.messages == ("Line 2: unexpected indentation", "Line 3: expected key: value")


def test_every_file_lands_in_exactly_one_bucket(md_file, template_text):
    files = [
        md_file("1.md"),
        md_file("2.md", ""),
        md_file("3.md", template_text(title="Other", category="offer", status=None)),
        md_file("4.md", "---\nlinked_product_ids: [p]\ntitle: T\ncategory: offer\n---\nbody"),
        md_file("5.md", template_text(category="newsletter")),
        md_file("6.md", "no front matter"),
    ]
    result = parse_files(files, start_row_index=10)

    row_ids = {r.source_id for r in result.rows}
    error_ids = {e.source_id for e in result.errors}
    assert not row_ids & error_ids
    assert len(row_ids | error_ids) == len(files) == result.total_files
    assert sorted(r.row_index for r in [*result.rows, *result.errors]) == list(range(10, 16))
    assert [r.file_name for r in result.rows] == ["1.md", "3.md"]
    assert all(isinstance(r, ImportRow) for r in result.rows)


def test_start_row_index_must_be_positive(md_file):
    with pytest.raises(ValueError):
        parse_files([md_file()], start_row_index=0)


def test_local_files(tmp_path: Path, template_text):
    from template_import.markdown.reader import LocalMarkdownFile

    p = tmp_path / "welcome.md"
    p.write_text(template_text(title="Welcome"), encoding="utf-8")
    src = LocalMarkdownFile(p)
    parsed = parse_file(src, 1)
    assert isinstance(parsed, ImportRow)
    assert parsed.title == "Welcome"
    assert parsed.source_id.startswith(f"welcome.md:{p.stat().st_size}:")


def test_local_file_with_bom_is_parsed(tmp_path: Path):
    from template_import.markdown.reader import LocalMarkdownFile

    p = tmp_path / "win.md"
    p.write_bytes("---\r\ntitle: A\r\ncategory: offer\r\n---\r\nBody\r\n".encode("utf-8-sig"))
    result = parse_files([LocalMarkdownFile(p)])
    assert result.errors == ()
    assert len(result.rows) == 1
    assert result.rows[0].title == "A"
    assert result.rows[0].body == "Body\n"
