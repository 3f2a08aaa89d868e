"""Loading items from JSON, CSV and plain-text files."""

import csv
import io
import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .embeddings.prepare import combine_text_for_embedding
from .models import Item

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("text", "title", "description", "content")
CATEGORY_FIELDS = ("category", "label", "class")
# never folded into derived metadata
RESERVED_FIELDS = frozenset(TEXT_FIELDS + CATEGORY_FIELDS + ("id", "embedding", "metadata"))
MIN_TEXT_LENGTH = 3
MIN_LINE_LENGTH = 10
DEFAULT_TEXT_CATEGORY = "General"
MAX_FILE_SIZE_MB = 50


def _parse_embedding(value: Any) -> list[float] | None:
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if not isinstance(value, list):
        return None
    try:
        return [float(v) for v in value] or None
    except (TypeError, ValueError):
        return None


def _parse_metadata(value: Any) -> dict[str, Any] | None:
    if not value:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {"raw": value}
        return parsed if isinstance(parsed, dict) else {"raw": value}
    return None


def _extra_fields(record: dict[str, Any]) -> dict[str, Any]:
    return {
        k: v for k, v in record.items()
        if k not in RESERVED_FIELDS and v is not None and v != ""
    }


def _first(record: dict[str, Any], names: Iterable[str]) -> Any:
    """First non-blank value, returned as stored."""
    for name in names:
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None


def _record_id(record: dict[str, Any], index: int) -> str:
    value = record.get("id")
    if value is None or not str(value).strip():
        return f"item_{index + 1}"
    return str(value)


def item_from_record(record: dict[str, Any], index: int) -> Item:
    """Turn one JSON object or CSV row into an :class:`Item`.

    A malformed embedding is dropped; malformed metadata is kept as
    ``{"raw": ...}``. Raises ``ValueError`` when the record has no text.
    """
    text = _first(record, TEXT_FIELDS) or ""
    category = _first(record, CATEGORY_FIELDS)
    metadata = _parse_metadata(record.get("metadata"))
    if metadata is None:
        metadata = _extra_fields(record)

    return Item(
        id=_record_id(record, index),
        text=str(text),
        category=str(category) if category is not None else None,
        embedding=_parse_embedding(record.get("embedding")),
        metadata=metadata,
    )


def items_from_records(records: Iterable[dict[str, Any]]) -> list[Item]:
    """Convert records, skipping the ones without usable text."""
    items = []
    skipped = 0
    for index, record in enumerate(records):
        try:
            item = item_from_record(record, index)
        except ValueError as e:
            logger.debug(f"Skipping record {index + 1}: {e}")
            skipped += 1
            continue
        if len(item.text.strip()) < MIN_TEXT_LENGTH:
            skipped += 1
            continue
        items.append(item)

    if skipped:
        logger.warning(f"Skipped {skipped} record(s) without usable text")
    return items


def items_from_json_text(content: str) -> list[Item]:
    data = json.loads(content)
    if not isinstance(data, list):
        raise ValueError("JSON data must be an array of objects")
    return items_from_records(r for r in data if isinstance(r, dict))


def items_from_csv_text(content: str) -> list[Item]:
    """Parse CSV with a header row; ``embedding`` and ``metadata`` columns hold JSON."""
    reader = csv.DictReader(io.StringIO(content))
    rows = [row for row in reader if any((v or "").strip() for v in row.values() if isinstance(v, str))]
    return items_from_records(rows)


def items_from_text(content: str, source: str = "txt_upload") -> list[Item]:
    """One item per line; ``# Heading`` lines set the category of the lines below."""
    items = []
    category = DEFAULT_TEXT_CATEGORY
    for line_number, line in enumerate(content.splitlines(), 1):
        stripped = line.strip()
        if stripped.startswith("#"):
            category = stripped.lstrip("#").strip() or DEFAULT_TEXT_CATEGORY
            continue
        if len(stripped) < MIN_LINE_LENGTH:
            continue
        items.append(Item(
            id=f"txt_{line_number}",
            text=stripped,
            category=category,
            metadata={"line_number": line_number, "source": source},
        ))
    return items


def load_items(path: str | Path) -> list[Item]:
    """Load items from ``.json``, ``.csv`` or any other (plain text) file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Data file not found: {path}")

    size_mb = path.stat().st_size / (1024 * 1024)
    if size_mb > MAX_FILE_SIZE_MB:
        raise ValueError(f"File size ({size_mb:.1f}MB) exceeds limit of {MAX_FILE_SIZE_MB}MB")

    content = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".json":
        items = items_from_json_text(content)
    elif suffix == ".csv":
        items = items_from_csv_text(content)
    else:
        items = items_from_text(content, source=path.name)

    logger.info(f"Loaded {len(items)} item(s) from {path}")
    return items


def dataset_stats(items: list[Item]) -> dict[str, Any]:
    """Counts, categories and embedding dimensions of a loaded dataset."""
    if not items:
        return {
            "total_items": 0,
            "with_embeddings": 0,
            "categories": [],
            "average_text_length": 0,
            "embedding_dimensions": 0,
        }

    embedded = [item for item in items if item.has_embedding]
    total_length = sum(len(combine_text_for_embedding(item)) for item in items)
    return {
        "total_items": len(items),
        "with_embeddings": len(embedded),
        "categories": sorted({item.category for item in items if item.category}),
        "average_text_length": round(total_length / len(items)),
        "embedding_dimensions": len(embedded[0].embedding) if embedded else 0,
    }
