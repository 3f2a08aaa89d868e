"""Writing items and graphs out as JSON or CSV."""

import csv
import io
import json
from collections.abc import Sequence

from .ingest import items_from_csv_text
from .models import GraphData, Item

__all__ = ["export_csv", "export_items", "export_json", "graph_to_json", "items_from_csv_text"]


def _exportable(items: Sequence[Item], embedded_only: bool) -> list[Item]:
    if embedded_only:
        return [item for item in items if item.has_embedding]
    return list(items)


def export_json(
    items: Sequence[Item],
    include_embeddings: bool = True,
    embedded_only: bool | None = None,
) -> str:
    """JSON array of items.

    With embeddings included, only embedded items are exported unless
    ``embedded_only`` says otherwise.
    """
    if embedded_only is None:
        embedded_only = include_embeddings
    records = []
    for item in _exportable(items, embedded_only):
        record = item.to_dict()
        if not include_embeddings:
            record.pop("embedding")
        records.append(record)
    return json.dumps(records, indent=2)


def export_csv(
    items: Sequence[Item],
    include_embeddings: bool = True,
    embedded_only: bool | None = None,
) -> str:
    """CSV with ``id,text,category[,embedding],metadata``; the last columns are JSON."""
    if embedded_only is None:
        embedded_only = include_embeddings
    headers = ["id", "text", "category"]
    if include_embeddings:
        headers.append("embedding")
    headers.append("metadata")

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for item in _exportable(items, embedded_only):
        row = [item.id, item.text, item.category or ""]
        if include_embeddings:
            row.append(json.dumps(item.embedding or []))
        row.append(json.dumps(item.metadata or {}))
        writer.writerow(row)
    return buffer.getvalue()


def export_items(
    items: Sequence[Item],
    format: str = "json",
    include_embeddings: bool = True,
    embedded_only: bool | None = None,
) -> str:
    if format == "json":
        return export_json(items, include_embeddings, embedded_only)
    elif format == "csv":
        return export_csv(items, include_embeddings, embedded_only)
    else:
        raise ValueError(f"Unknown export format: {format}")


def graph_to_json(graph: GraphData, include_embeddings: bool = False) -> str:
    """Nodes and links in the shape force-directed layouts consume."""
    data = graph.to_dict()
    if not include_embeddings:
        for node in data["nodes"]:
            node.pop("embedding", None)
    return json.dumps(data, indent=2)
