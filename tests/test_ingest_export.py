"""Tests for loading and exporting items."""

import json
import tempfile
from pathlib import Path

import pytest

from simgraph.export import export_csv, export_items, export_json, graph_to_json, items_from_csv_text
from simgraph.graph import GraphService
from simgraph.ingest import dataset_stats, item_from_record, items_from_json_text, items_from_records, load_items
from simgraph.models import ConnectionOptions, Item


def _write(suffix, content):
    f = tempfile.NamedTemporaryFile(suffix=suffix, mode="w", delete=False)
    f.write(content)
    f.close()
    return Path(f.name)


def test_item_from_record_defaults():
    item = item_from_record({"title": "A headline", "label": "World", "views": 3}, 4)
    assert item.id == "item_5"
    assert item.text == "A headline"
    assert item.category == "World"
    assert item.metadata == {"views": 3}
    assert item.embedding is None


def test_item_from_record_json_strings():
    item = item_from_record(
        {"id": "x", "text": "hello there", "embedding": "[1, 2]", "metadata": "not json"},
        0,
    )
    assert item.embedding == [1.0, 2.0]
    assert item.metadata == {"raw": "not json"}

    broken = item_from_record({"id": "y", "text": "hello there", "embedding": "[1, oops"}, 0)
    assert broken.embedding is None


def test_items_from_records_skips_short_text():
    items = items_from_records([
        {"id": "a", "text": "ok text"},
        {"id": "b", "text": "no"},
        {"id": "c", "text": "   "},
    ])
    assert [i.id for i in items] == ["a"]


def test_load_json():
    path = _write(".json", json.dumps([
        {"id": "a", "text": "cats are great", "embedding": [1, 0]},
        {"id": "b", "text": "dogs are great", "category": "Pets"},
    ]))
    items = load_items(path)
    assert [i.id for i in items] == ["a", "b"]
    assert items[0].has_embedding
    assert items[1].category == "Pets"


def test_load_json_requires_array():
    path = _write(".json", json.dumps({"id": "a"}))
    with pytest.raises(ValueError):
        load_items(path)


def test_load_csv():
    path = _write(".csv", 'id,text,category,embedding\na,"cats, mostly",Pets,"[1, 0]"\n,untitled row,,\n')
    items = load_items(path)
    assert items[0].text == "cats, mostly"
    assert items[0].embedding == [1.0, 0.0]
    assert items[1].id == "item_2"
    assert items[1].category is None


def test_load_text_headings():
    path = _write(".txt", "first line without heading\n# Science\nshort\nrockets go to space\n\n# Sports\nthe match ended late\n")
    items = load_items(path)
    assert [(i.text, i.category) for i in items] == [
        ("first line without heading", "General"),
        ("rockets go to space", "Science"),
        ("the match ended late", "Sports"),
    ]
    assert items[1].metadata["line_number"] == 4


def test_load_missing_file():
    with pytest.raises(FileNotFoundError):
        load_items("/nonexistent/data.json")


def test_dataset_stats():
    items = [
        Item(id="a", text="cats", category="Pets", embedding=[1.0, 0.0, 0.0]),
        Item(id="b", text="dogs", category="Pets"),
    ]
    stats = dataset_stats(items)
    assert stats["total_items"] == 2
    assert stats["with_embeddings"] == 1
    assert stats["categories"] == ["Pets"]
    assert stats["embedding_dimensions"] == 3
    assert dataset_stats([])["total_items"] == 0


def test_export_json_only_embedded_by_default():
    items = [
        Item(id="a", text="cats", embedding=[1.0, 0.0]),
        Item(id="b", text="dogs"),
    ]
    assert [r["id"] for r in json.loads(export_json(items))] == ["a"]

    records = json.loads(export_json(items, include_embeddings=False))
    assert [r["id"] for r in records] == ["a", "b"]
    assert "embedding" not in records[0]


def test_export_csv_and_back():
    items = [
        Item(id="a", text='say "hi", friend', category="Chat", embedding=[0.5, 0.25], metadata={"n": 1}),
        Item(id="0", text="  padded text  "),
    ]
    text = export_csv(items, embedded_only=False)
    assert text.splitlines()[0] == '"id","text","category","embedding","metadata"'

    loaded = items_from_csv_text(text)
    assert [i.id for i in loaded] == ["a", "0"]
    assert loaded[0].text == 'say "hi", friend'
    assert loaded[1].text == "  padded text  "
    assert loaded[1].category is None
    assert loaded[0].embedding == [0.5, 0.25]
    assert loaded[0].metadata == {"n": 1}
    assert loaded[1].embedding is None


def test_export_csv_without_embeddings():
    text = export_csv([Item(id="a", text="cats")], include_embeddings=False)
    assert text.splitlines()[0] == '"id","text","category","metadata"'
    assert len(text.splitlines()) == 2


def test_export_unknown_format():
    with pytest.raises(ValueError):
        export_items([], "xml")


def test_graph_to_json():
    items = [
        Item(id="a", text="cats are great", embedding=[1.0, 0.0]),
        Item(id="b", text="dogs are great", embedding=[0.9, 0.1]),
    ]
    graph = GraphService().generate_graph(items, "threshold", ConnectionOptions(threshold=0.5))
    data = json.loads(graph_to_json(graph))
    assert [n["id"] for n in data["nodes"]] == ["a", "b"]
    assert "embedding" not in data["nodes"][0]
    assert {"size", "color"} <= set(data["nodes"][0])
    assert data["links"][0]["source"] == "a"


def test_item_dict_round_trip():
    item = Item(id="a", text="cats", category="Pets", embedding=[1.0, 0.5], metadata={"n": 1})
    assert Item.from_dict(item.to_dict()) == item
    padded = Item(id="0", text="  padded text  ", metadata={"n": 0})
    assert Item.from_dict(padded.to_dict()) == padded
    assert items_from_json_text(export_json([padded], include_embeddings=False)) == [padded]
    with pytest.raises(ValueError):
        Item(id="", text="no id")
