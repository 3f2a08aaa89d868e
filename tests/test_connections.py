"""Tests for connection strategies and their registry."""

import numpy as np
import pytest

from simgraph.connections import (
    AdaptiveStrategy,
    CategoryStrategy,
    CommunityStrategy,
    LinkSet,
    TemporalStrategy,
    ThresholdStrategy,
    TopKStrategy,
    default_connection_registry,
    neighbor_lists,
)
from simgraph.connections.advanced import parse_timestamp
from simgraph.errors import UnknownStrategy
from simgraph.models import ConnectionOptions, Item
from simgraph.similarity import ExhaustivePairs, cosine_similarity


def _abc():
    return [
        Item(id="a", text="cats are great", embedding=[1.0, 0.0]),
        Item(id="b", text="dogs are great", embedding=[0.9, 0.1]),
        Item(id="c", text="space travel", embedding=[0.0, 1.0]),
    ]


def _clusters():
    return [
        Item(id="a1", text="alpha one", category="A", embedding=[1.0, 0.0, 0.0]),
        Item(id="a2", text="alpha two", category="A", embedding=[0.95, 0.05, 0.0]),
        Item(id="a3", text="alpha three", category="A", embedding=[0.9, 0.1, 0.0]),
        Item(id="b1", text="beta one", category="B", embedding=[0.0, 1.0, 0.0]),
        Item(id="b2", text="beta two", category="B", embedding=[0.05, 0.95, 0.0]),
        Item(id="b3", text="beta three", category="B", embedding=[0.1, 0.9, 0.0]),
    ]


def _random_items(n=25, dim=8, seed=7):
    rng = np.random.default_rng(seed)
    categories = ["World", "Sports", None]
    return [
        Item(
            id=f"n{i}",
            text=f"node number {i}",
            category=categories[i % 3],
            embedding=rng.normal(size=dim).tolist(),
            metadata={"timestamp": 1_700_000_000 + i * 3600},
        )
        for i in range(n)
    ]


def _pairs(links):
    return {frozenset((link.source, link.target)) for link in links}


def test_threshold_end_to_end():
    links = ThresholdStrategy().generate(_abc(), ConnectionOptions(threshold=0.5))
    assert len(links) == 1
    link = links[0]
    assert {link.source, link.target} == {"a", "b"}
    assert link.similarity == pytest.approx(0.9938, abs=1e-4)
    assert link.distance == pytest.approx(30 + (1 - link.similarity) * 120)
    assert all("c" not in (l.source, l.target) for l in links)


def test_no_self_links_or_duplicates_for_any_strategy():
    registry = default_connection_registry()
    items = _random_items()
    options = ConnectionOptions(threshold=0.2, time_window=4 * 3600)
    for name in registry.names():
        links = registry.generate(name, items, options)
        keys = [frozenset((l.source, l.target)) for l in links]
        assert all(l.source != l.target for l in links), name
        assert len(keys) == len(set(keys)), name


def test_top_k_per_node_contribution():
    items = _random_items()
    k = 3
    pairs = ExhaustivePairs().pairs(items)
    candidates = neighbor_lists(pairs)
    links = TopKStrategy(k).generate(items, pairs=pairs)
    linked = _pairs(links)

    assert len(links) <= k * len(items)
    for item in items:
        for other, _ in candidates.get(item.id, [])[:k]:
            assert frozenset((item.id, other)) in linked


def test_top_k_can_exceed_k_links_per_node():
    # every other node picks the hub as its best match
    hub = Item(id="hub", text="center node", embedding=[1.0, 1.0])
    spokes = [
        Item(id=f"s{i}", text=f"spoke {i}", embedding=[1.0, 1.0 + 0.3 * (i + 1) * (-1) ** i])
        for i in range(4)
    ]
    links = TopKStrategy(1).generate([hub] + spokes)
    hub_links = [l for l in links if "hub" in (l.source, l.target)]
    assert len(hub_links) > 1


def test_threshold_subset_property():
    items = _random_items()
    pairs = ExhaustivePairs().pairs(items)
    strategy = ThresholdStrategy()
    high = _pairs(strategy.generate(items, ConnectionOptions(threshold=0.5), pairs))
    low = _pairs(strategy.generate(items, ConnectionOptions(threshold=0.2), pairs))
    assert high <= low


def test_adaptive_link_count_tiers():
    options = ConnectionOptions()
    assert AdaptiveStrategy.link_count(0.8, options) == 3
    assert AdaptiveStrategy.link_count(0.6, options) == 5
    assert AdaptiveStrategy.link_count(0.2, options) == 7

    custom = ConnectionOptions.from_mapping({"adaptive_tiers": [[0.9, 1]], "adaptive_fallback_count": 2})
    assert AdaptiveStrategy.link_count(0.95, custom) == 1
    assert AdaptiveStrategy.link_count(0.5, custom) == 2


def test_adaptive_respects_floor():
    links = AdaptiveStrategy().generate(_clusters())
    assert links
    # the floor is at least adaptive_min_threshold
    assert all(l.similarity > 0.3 for l in links)


def test_category_prefers_same_category():
    options = ConnectionOptions(same_category_links=2, cross_category_links=0)
    items = _clusters()
    category = {i.id: i.category for i in items}
    links = CategoryStrategy().generate(items, options)
    assert links
    assert all(category[l.source] == category[l.target] for l in links)


def test_category_adds_cross_links():
    options = ConnectionOptions(same_category_links=0, cross_category_links=1)
    items = _clusters()
    category = {i.id: i.category for i in items}
    links = CategoryStrategy().generate(items, options)
    assert links
    assert all(category[l.source] != category[l.target] for l in links)


def test_temporal_window_and_cosine_similarity():
    items = [
        Item(id="t1", text="first event", embedding=[1.0, 0.1], metadata={"timestamp": "2024-01-01T00:00:00Z"}),
        Item(id="t2", text="second event", embedding=[0.9, 0.2], metadata={"created_at": "2024-01-01T01:00:00Z"}),
        Item(id="t3", text="much later", embedding=[1.0, 0.1], metadata={"date": "2024-01-03T00:00:00Z"}),
        Item(id="t4", text="no time at all", embedding=[1.0, 0.1]),
    ]
    links = TemporalStrategy().generate(items)
    assert len(links) == 1
    link = links[0]
    assert {link.source, link.target} == {"t1", "t2"}
    assert link.similarity == pytest.approx(cosine_similarity([1.0, 0.1], [0.9, 0.2]))
    assert link.distance == pytest.approx(50 + (1 - link.similarity) * 100)


def test_temporal_skips_dissimilar_neighbors_in_time():
    items = [
        Item(id="a", text="first event", embedding=[1.0, 0.0], metadata={"timestamp": 1_700_000_000}),
        Item(id="b", text="second event", embedding=[-1.0, 0.01], metadata={"timestamp": 1_700_000_010}),
    ]
    assert TemporalStrategy().generate(items) == []


def test_community_links_within_clusters():
    links = CommunityStrategy().generate(_clusters())
    category = {i.id: i.category for i in _clusters()}
    assert len(links) == 6
    assert all(category[l.source] == category[l.target] for l in links)
    assert all(l.distance == pytest.approx(40 + (1 - l.similarity) * 80) for l in links)


def test_community_bridge_between_clusters():
    options = ConnectionOptions(bridge_threshold=0.1)
    links = CommunityStrategy().generate(_clusters(), options)
    bridges = [l for l in links if l.source[0] != l.target[0]]
    assert len(bridges) == 1
    assert {bridges[0].source, bridges[0].target} == {"a3", "b3"}
    assert bridges[0].distance == pytest.approx(100 + (1 - bridges[0].similarity) * 50)


def test_unembedded_items_are_skipped():
    items = _abc() + [Item(id="x", text="no vector here")]
    links = ThresholdStrategy().generate(items, ConnectionOptions(threshold=0.0))
    assert all("x" not in (l.source, l.target) for l in links)
    assert TopKStrategy(3).generate([_abc()[0]]) == []


def test_link_set_dedupes():
    links = LinkSet()
    assert links.add("a", "b", 0.9)
    assert not links.add("b", "a", 0.9)
    assert not links.add("a", "a", 1.0)
    assert len(links) == 1
    assert links.has("b", "a")


def test_registry_unknown_strategy():
    registry = default_connection_registry()
    with pytest.raises(UnknownStrategy) as exc:
        registry.get("nope")
    assert "nope" in str(exc.value)
    assert "threshold" in str(exc.value)


def test_registry_names():
    names = default_connection_registry().names()
    for name in ("top3", "top5", "top10", "threshold", "adaptive", "category_based", "temporal", "community"):
        assert name in names


def test_options_from_mapping_aliases():
    options = ConnectionOptions.from_mapping({"minSimilarity": 0.1, "maxConnections": 3, "foo": 1})
    assert options.noise_floor == 0.1
    assert options.max_connections == 3
    assert options.extra == {"foo": 1}
    assert options.merged(threshold=0.9, max_connections=None).max_connections == 3


def test_parse_timestamp():
    assert parse_timestamp(1_700_000_000) == 1_700_000_000
    assert parse_timestamp(1_700_000_000_000) == 1_700_000_000
    assert parse_timestamp("1700000000") == 1_700_000_000
    assert parse_timestamp("1970-01-01T00:01:00Z") == 60
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
