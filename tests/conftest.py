# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from template_import.db.template_store import InMemoryTemplateStore
from template_import.logging.init import reset_logging
from template_import.markdown.reader import InMemoryMarkdownFile

VALID_TEMPLATE = """---
title: "Reactivation email"
category: warm_outreach
status: approved
---
Hi {{first_name}}, we noticed you paused.
"""


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
product_id: product-1
commit_mode: partial
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def mock_db(monkeypatch):
    # CLI を DB 無しで実行する
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def make_template(
    title: str = "Reactivation email",
    category: str = "warm_outreach",
    status: str | None = "approved",
    body: str = "Hi {{first_name}}, we noticed you paused.\n",
) -> str:
    lines = ["---", f'title: "{title}"', f"category: {category}"]
    if status is not None:
        lines.append(f"status: {status}")
    lines.append("---")
    return "\n".join(lines) + "\n" + body


@pytest.fixture()
def md_file():
    """Factory for in-memory uploads."""
    def _make(name: str = "template.md", content: str = VALID_TEMPLATE, last_modified: int = 0):
        return InMemoryMarkdownFile(name=name, content=content, last_modified=last_modified)
    return _make


@pytest.fixture()
def write_markdown(temp_workdir: Path):
    def _write(name: str, content: str) -> Path:
        path = temp_workdir / "data" / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore.with_products(["product-1", "product-2"])


@pytest.fixture()
def template_text():
    return make_template
