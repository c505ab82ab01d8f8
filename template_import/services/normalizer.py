from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from ..markdown.front_matter import DEPRECATED_PRODUCT_KEYS, canonical_key
from ..models.import_row import ImportRow, LocalParseError, ParseStage
from ..models.template import (
    BODY_MAX_LENGTH,
    DEFAULT_STATUS,
    TITLE_MAX_LENGTH,
    TemplateCategory,
    TemplateStatus,
)

"""Row normalizer / validator.

Maps parsed front matter + body into the canonical ImportRow shape.

- metadata keys are re-canonicalized, category / status lowercased
- deprecated product keys reject the row outright (product association is
  chosen once per import batch, never per file)
- title / category / status / body are validated against ROW_SCHEMA and
  every violation is reported, one message per field
"""

__all__ = [
    "ROW_SCHEMA",
    "normalize_metadata",
    "find_deprecated_keys",
    "deprecated_keys_message",
    "validate_row_fields",
    "normalize_row",
]

ROW_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "title": {"type": "string", "minLength": 1, "maxLength": TITLE_MAX_LENGTH},
        "category": {"type": "string", "enum": TemplateCategory.values()},
        "status": {"type": "string", "enum": TemplateStatus.values()},
        # pattern は re.search 扱い -> 空白以外が 1 文字でもあれば OK
        "body": {"type": "string", "maxLength": BODY_MAX_LENGTH, "pattern": r"\S"},
        "row_index": {"type": "integer", "minimum": 1},
        "source_id": {"type": "string", "pattern": r"\S"},
        "file_name": {"type": "string", "pattern": r"\S"},
    },
    "required": ["title", "category", "status", "body"],
}

_VALIDATOR = Draft202012Validator(ROW_SCHEMA)

_FIELD_ORDER = ("title", "category", "status", "body", "row_index", "source_id", "file_name")
_VALIDATOR_RANK = {"required": 0, "type": 1, "minLength": 2, "pattern": 2, "maxLength": 3, "enum": 4}

_MESSAGES: dict[tuple[str, str], str] = {
    ("title", "required"): "Template title is required",
    ("title", "minLength"): "Template title is required",
    ("title", "maxLength"): f"Template title must be at most {TITLE_MAX_LENGTH} characters",
    ("category", "required"): "Template category is required",
    ("category", "enum"): "Invalid category, expected one of: " + ", ".join(TemplateCategory.values()),
    ("status", "enum"): "Invalid status, expected one of: " + ", ".join(TemplateStatus.values()),
    ("body", "required"): "Template body is required",
    ("body", "pattern"): "Template body is required",
    ("body", "maxLength"): f"Template body must be at most {BODY_MAX_LENGTH} characters",
    ("row_index", "minimum"): "Row index must be a positive integer",
    ("source_id", "pattern"): "Source id is required",
    ("file_name", "pattern"): "File name is required",
}


def normalize_metadata(raw: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in raw.items():
        normalized[canonical_key(key)] = value

    for key in ("category", "status"):
        value = normalized.get(key)
        if isinstance(value, str):
            normalized[key] = value.strip().lower()

    return normalized


def find_deprecated_keys(metadata: dict[str, Any]) -> list[str]:
    return [key for key in DEPRECATED_PRODUCT_KEYS if key in metadata]


def deprecated_keys_message(keys: list[str]) -> str:
    return (
        f"Deprecated metadata keys are not allowed: {', '.join(keys)}. "
        "Select a product for the import batch instead."
    )


def _error_field(error: ValidationError) -> str:
    if error.path:
        return str(error.path[0])
    return "<root>"


def _render(field: str, error: ValidationError) -> str:
    if error.validator == "required":
        return _MESSAGES.get((field, "required"), f"{field} is required")
    if error.validator == "type":
        return f"expected {error.validator_value}"
    return _MESSAGES.get((field, str(error.validator)), error.message)


def validate_row_fields(fields: dict[str, Any]) -> list[str]:
    """Validate a flat row mapping; return every problem as "<field>: <message>".

    Title is trimmed and status defaults to draft before validation. Unknown
    keys are ignored. At most one message is reported per field.
    """
    candidate = dict(fields)
    if isinstance(candidate.get("title"), str):
        candidate["title"] = candidate["title"].strip()
    if candidate.get("status") is None:
        candidate["status"] = DEFAULT_STATUS.value

    by_field: dict[str, tuple[int, str]] = {}
    for error in _VALIDATOR.iter_errors(candidate):
        if error.validator == "required":
            # required は親オブジェクト単位で報告される -> 欠落キーを自前で特定
            instance = error.instance if isinstance(error.instance, dict) else {}
            missing = [name for name in error.validator_value if name not in instance]
        else:
            missing = [_error_field(error)]
        for field in missing:
            rank = _VALIDATOR_RANK.get(str(error.validator), 9)
            current = by_field.get(field)
            if current is None or rank < current[0]:
                by_field[field] = (rank, _render(field, error))

    def order(field: str) -> int:
        return _FIELD_ORDER.index(field) if field in _FIELD_ORDER else len(_FIELD_ORDER)

    return [f"{field}: {by_field[field][1]}" for field in sorted(by_field, key=order)]


def normalize_row(
    source_id: str,
    file_name: str,
    row_index: int,
    raw_metadata: dict[str, Any],
    body: str,
) -> ImportRow | LocalParseError:
    """Build an ImportRow from parsed metadata, or the LocalParseError explaining why not."""
    metadata = normalize_metadata(raw_metadata)

    deprecated = find_deprecated_keys(metadata)
    if deprecated:
        return LocalParseError(
            source_id=source_id,
            file_name=file_name,
            row_index=row_index,
            messages=(deprecated_keys_message(deprecated),),
            stage=ParseStage.DEPRECATED_KEYS,
        )

    fields = {
        "row_index": row_index,
        "source_id": source_id,
        "file_name": file_name,
        "title": metadata.get("title"),
        "category": metadata.get("category"),
        "status": metadata.get("status"),
        "body": body,
    }
    # None は「未指定」扱い (required 判定させる)
    fields = {k: v for k, v in fields.items() if v is not None}

    messages = validate_row_fields(fields)
    if messages:
        return LocalParseError(
            source_id=source_id,
            file_name=file_name,
            row_index=row_index,
            messages=tuple(messages),
            stage=ParseStage.SCHEMA,
        )

    return ImportRow(
        row_index=row_index,
        source_id=source_id,
        file_name=file_name,
        title=fields["title"].strip(),
        category=fields["category"],
        status=fields.get("status", DEFAULT_STATUS.value),
        body=body,
    )
