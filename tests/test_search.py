"""Tests for search strategies and dispatch."""

import pytest

from simgraph.errors import UnknownStrategy
from simgraph.models import Item, MatchType, SearchOptions
from simgraph.search import (
    CategorySearchStrategy,
    FuzzySearchStrategy,
    SearchStrategy,
    TextSearchStrategy,
    default_search_registry,
)


def _items():
    return [
        Item(id="a", text="cats are great", category="Pets", metadata={"title": "Feline friends"}),
        Item(id="b", text="dogs are great", category="Pets"),
        Item(id="c", text="space travel", category="Science", metadata={"source": "nasa report"}),
        Item(id="d", text="Catalog of great telescopes", category="Science"),
    ]


def test_text_exact_match_first():
    results = TextSearchStrategy().search(_items(), "cats are great")
    assert results[0].item.id == "a"
    assert results[0].match_type == MatchType.EXACT
    assert results[0].score == 1.0


def test_text_exact_match_wins_over_other_field_hits():
    items = [
        Item(id="a", text="cats are great", metadata={"note": "great"}),
        Item(id="b", text="cats are great fun", category="cats"),
    ]
    results = TextSearchStrategy().search(items, "cats are great")
    assert results[0].item.id == "a"
    assert results[0].score == 1.0
    assert results[1].score < 1.0


def test_text_partial_matches_ranked():
    results = TextSearchStrategy().search(_items(), "great")
    ids = [r.item.id for r in results]
    assert set(ids) == {"a", "b", "d"}
    assert all(0 < r.score <= 1 for r in results)
    assert results == sorted(results, key=lambda r: r.score, reverse=True)


def test_text_highlights():
    results = TextSearchStrategy().search(_items(), "travel")
    assert results[0].item.id == "c"
    assert any("travel" in h for h in results[0].highlights)


def test_text_metadata_and_fields():
    results = TextSearchStrategy().search(_items(), "nasa")
    assert [r.item.id for r in results] == ["c"]
    assert results[0].score < 1.0

    only_text = SearchOptions(search_fields={"text"})
    assert TextSearchStrategy().search(_items(), "nasa", only_text) == []


def test_text_case_sensitivity():
    assert TextSearchStrategy().search(_items(), "CATS")
    assert TextSearchStrategy().search(_items(), "CATS", SearchOptions(case_sensitive=True)) == []


def test_blank_query_returns_nothing():
    registry = default_search_registry()
    for name in registry.names():
        assert registry.search(name, _items(), "   ") == []


def test_max_results_respected():
    items = [Item(id=f"i{n}", text=f"great item number {n}") for n in range(20)]
    registry = default_search_registry()
    for name in ("text", "fuzzy", "category"):
        results = registry.search(name, items, "great", SearchOptions(max_results=3))
        assert len(results) <= 3


def test_search_options_validation():
    with pytest.raises(ValueError):
        SearchOptions(max_results=0)
    with pytest.raises(ValueError):
        SearchOptions(search_fields={"title"})


def test_fuzzy_tolerates_typos():
    results = FuzzySearchStrategy().search(_items(), "spase travel")
    assert results[0].item.id == "c"
    assert results[0].score > 0.8


def test_fuzzy_similarity_scores():
    assert FuzzySearchStrategy.similarity("Space", "space") == 1.0
    assert FuzzySearchStrategy.similarity("space", "space travel") == 0.8
    assert FuzzySearchStrategy.similarity("abc", "xyz") == 0.0


def test_category_search():
    results = CategorySearchStrategy().search(_items(), "science")
    assert {r.item.id for r in results} == {"c", "d"}
    assert all(r.score == 1.0 and r.match_type == MatchType.EXACT for r in results)

    partial = CategorySearchStrategy().search(_items(), "sci")
    assert all(r.score == 0.8 for r in partial)


def test_category_falls_back_to_text():
    results = CategorySearchStrategy().search(_items(), "dogs")
    assert [r.item.id for r in results] == ["b"]
    assert results[0].score == 0.6


def test_semantic_placeholder_returns_empty():
    assert default_search_registry().search("semantic", _items(), "cats") == []


def test_unknown_search_strategy():
    with pytest.raises(UnknownStrategy):
        default_search_registry().search("psychic", _items(), "cats")


class _Broken(SearchStrategy):
    name = "broken"
    description = "Always fails"

    def score(self, nodes, query, options):
        raise RuntimeError("boom")


def test_search_multiple_isolates_failures():
    registry = default_search_registry()
    registry.register(_Broken())
    results = registry.search_multiple(["text", "broken", "missing"], _items(), "cats")
    assert results["broken"] == []
    assert results["missing"] == []
    assert results["text"][0].item.id == "a"
