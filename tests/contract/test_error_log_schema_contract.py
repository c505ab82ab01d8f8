from __future__ import annotations

import json
from pathlib import Path

from template_import.cli import main as cli_main

"""Error log contract: JSON Lines under logs/, one record per rejected row."""

KEYS = {"timestamp", "file", "source_id", "row", "error_type", "message"}


def _records(workdir: Path) -> list[dict]:
    files = sorted((workdir / "logs").glob("errors-*.log"))
    assert len(files) == 1
    return [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]


def test_local_and_commit_errors_are_logged(temp_workdir, write_config, write_markdown, template_text, mock_db):
    write_markdown("a.md", template_text(title="Same"))
    write_markdown("b.md", template_text(title="Same"))
    write_markdown("c.md", "")
    write_markdown("d.md", "---\nlinked_product_ids: [p]\ntitle: T\ncategory: offer\n---\nbody")

    assert cli_main([]) == 2

    records = _records(temp_workdir)
    assert all(set(r.keys()) == KEYS for r in records)
    by_file = {r["file"]: r for r in records}
    assert set(by_file) == {"b.md", "c.md", "d.md"}
    assert by_file["b.md"]["error_type"] == "COMMIT_ERROR"
    assert by_file["b.md"]["message"] == "Duplicate title within this import batch (row 1)."
    assert by_file["c.md"]["error_type"] == "EMPTY_ERROR"
    assert by_file["c.md"]["row"] == 3
    assert by_file["d.md"]["error_type"] == "DEPRECATED_KEYS_ERROR"


def test_dry_run_logs_preflight_errors(temp_workdir, write_config, write_markdown, template_text, mock_db):
    write_markdown("a.md", template_text(title="Same"))
    write_markdown("b.md", template_text(title="Same"))

    assert cli_main(["--dry-run"]) == 2

    records = _records(temp_workdir)
    assert [r["error_type"] for r in records] == ["PREFLIGHT_ERROR"]
    assert records[0]["source_id"].startswith("b.md:")
    assert records[0]["row"] == 2


def test_no_log_file_when_everything_succeeds(temp_workdir, write_config, write_markdown, template_text, mock_db):
    write_markdown("a.md", template_text(title="A"))
    assert cli_main([]) == 0
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []
