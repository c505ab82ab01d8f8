from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

"""Front matter extraction and restricted YAML evaluation.

Only a deliberately small YAML subset is accepted:

    key: scalar
    key: "quoted scalar"
    key: [inline, "array, with quotes", items]
    key:
      - block
      - list

Anchors, nesting, multi-document streams etc. are rejected as
"expected key: value". Diagnostics are collected for every line instead of
stopping at the first problem so that authors can fix a file in one pass.
"""

__all__ = [
    "FrontMatter",
    "FrontMatterError",
    "YamlParseResult",
    "extract_front_matter",
    "parse_restricted_yaml",
    "canonical_key",
    "normalize_line_endings",
    "unquote_scalar",
    "split_inline_array",
    "DEPRECATED_PRODUCT_KEYS",
]

DELIMITER = "---"

OPENING_DELIMITER_MISSING = "Missing YAML front matter opening delimiter (---)."
CLOSING_DELIMITER_MISSING = "Missing YAML front matter closing delimiter (---)."

_KEY_LINE = re.compile(r"^([A-Za-z_][A-Za-z0-9_-]*)\s*:\s*(.*)$")
_LIST_INDENT = "  "
_LIST_MARKER = "- "

# 旧形式の product 指定キー (全て canonical 名へ寄せる)
_KEY_ALIASES: dict[str, str] = {
    "linkedproductids": "linked_product_ids",
    "linked_product_id": "linked_product_ids",
    "product_ids": "linked_product_ids",
    "linkedproductnames": "linked_product_names",
    "linked_product_name": "linked_product_names",
    "product_names": "linked_product_names",
}

DEPRECATED_PRODUCT_KEYS: tuple[str, ...] = ("linked_product_ids", "linked_product_names")


@dataclass(frozen=True)
class FrontMatter:
    metadata: str  # delimiter 間の生テキスト
    body: str  # closing delimiter 以降 (未加工)


@dataclass(frozen=True)
class FrontMatterError:
    error: str


@dataclass(frozen=True)
class YamlParseResult:
    data: dict[str, Any]
    errors: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class _Diagnostics:
    """Accumulator threaded through the line scan."""
    messages: list[str] = field(default_factory=list)

    def add(self, line_index: int, message: str) -> None:
        self.messages.append(f"Line {line_index + 1}: {message}")


def normalize_line_endings(value: str) -> str:
    return value.replace("\r\n", "\n").replace("\r", "\n")


def unquote_scalar(value: str) -> str:
    """Trim and strip one matching pair of surrounding quotes."""
    trimmed = value.strip()
    if len(trimmed) >= 2:
        first, last = trimmed[0], trimmed[-1]
        if first == last and first in ("'", '"'):
            return trimmed[1:-1]
    return trimmed


def split_inline_array(value: str) -> list[str]:
    """Split the inside of `[...]` on commas that are not inside quotes."""
    items: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for char in value:
        if quote is None and char in ("'", '"'):
            quote = char
        elif quote is not None and char == quote:
            quote = None
        elif quote is None and char == ",":
            items.append(unquote_scalar("".join(current)))
            current = []
            continue
        current.append(char)

    tail = "".join(current)
    if tail.strip():
        items.append(unquote_scalar(tail))

    return [item for item in items if item.strip()]


def canonical_key(raw_key: str) -> str:
    normalized = raw_key.strip().lower().replace("-", "_")
    return _KEY_ALIASES.get(normalized, normalized)


def extract_front_matter(content: str) -> FrontMatter | FrontMatterError:
    """Split `content` into the raw metadata block and the body.

    The content must start with a `---` line; the next line whose stripped
    text is `---` closes the block. The body keeps its whitespace.
    """
    normalized = normalize_line_endings(content)
    if not normalized.startswith(DELIMITER + "\n"):
        return FrontMatterError(OPENING_DELIMITER_MISSING)

    lines = normalized.split("\n")
    closing_index = None
    for idx in range(1, len(lines)):
        if lines[idx].strip() == DELIMITER:
            closing_index = idx
            break

    if closing_index is None:
        return FrontMatterError(CLOSING_DELIMITER_MISSING)

    return FrontMatter(
        metadata="\n".join(lines[1:closing_index]),
        body="\n".join(lines[closing_index + 1:]),
    )


def _parse_block_list(
    lines: list[str], start: int, diagnostics: _Diagnostics
) -> tuple[list[str], int]:
    """Collect `  - item` lines starting at `start`; return (items, next index)."""
    items: list[str] = []
    cursor = start
    while cursor < len(lines):
        raw = lines[cursor]
        stripped = raw.strip()

        if not stripped:
            cursor += 1
            continue

        if not raw.startswith(_LIST_INDENT):
            break

        if not stripped.startswith(_LIST_MARKER):
            diagnostics.add(cursor, "expected list item with '- '")
            cursor += 1
            continue

        item = unquote_scalar(stripped[len(_LIST_MARKER):])
        if item:
            items.append(item)
        else:
            diagnostics.add(cursor, "list item cannot be empty")
        cursor += 1

    return items, cursor


def parse_restricted_yaml(text: str) -> YamlParseResult:
    """Evaluate the restricted YAML subset line by line.

    Errors never stop the scan; every offending line is reported as
    "Line N: ..." where N is the 1-based line within the metadata block.
    """
    data: dict[str, Any] = {}
    diagnostics = _Diagnostics()
    lines = normalize_line_endings(text).split("\n")

    index = 0
    while index < len(lines):
        raw = lines[index]
        stripped = raw.strip()

        if not stripped or stripped.startswith("#"):
            index += 1
            continue

        if raw[0].isspace():
            diagnostics.add(index, "unexpected indentation")
            index += 1
            continue

        match = _KEY_LINE.match(raw)
        if match is None:
            diagnostics.add(index, "expected key: value")
            index += 1
            continue

        key = canonical_key(match.group(1))
        remainder = match.group(2).strip()

        if remainder:
            if remainder.startswith("[") and remainder.endswith("]"):
                inner = remainder[1:-1].strip()
                data[key] = split_inline_array(inner) if inner else []
            else:
                data[key] = unquote_scalar(remainder)
            index += 1
            continue

        # `key:` 単独行 -> block list header
        data[key], index = _parse_block_list(lines, index + 1, diagnostics)

    return YamlParseResult(data=data, errors=diagnostics.messages)
