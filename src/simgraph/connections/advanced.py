"""Extension strategies: temporal proximity and greedy communities."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from itertools import combinations
from typing import Any

from ..models import ConnectionOptions, Item, SimilarPair, pair_key
from .base import ConnectionStrategy, LinkSet

logger = logging.getLogger(__name__)

TIME_FIELDS = ("timestamp", "created_at", "date", "time")


def parse_timestamp(value: Any) -> float | None:
    """Seconds since the epoch, or None if ``value`` is not a time.

    Accepts datetimes, ISO-8601 strings and epoch numbers. Epoch values above
    1e11 are read as milliseconds.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)):
        return value / 1000.0 if abs(value) > 1e11 else float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            number = None
        if number is not None:
            return parse_timestamp(number)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def extract_timestamp(node: Item) -> float | None:
    """First metadata time field that parses."""
    for name in TIME_FIELDS:
        stamp = parse_timestamp(node.metadata.get(name))
        if stamp is not None:
            return stamp
    return None


class TemporalStrategy(ConnectionStrategy):
    """Connect nodes that are close in time and in content.

    Candidates later in time within ``time_window`` seconds are ranked by
    ``temporal_weight * (1 - dt / window) + (1 - temporal_weight) * cosine``;
    the best ``max_connections`` per node are linked. Only pairs the pair
    enumeration reports are candidates. The stored similarity is the plain
    cosine similarity, the blend only ranks.
    """

    name = "temporal"
    description = "Connect nodes by temporal proximity"
    base_distance = 50.0
    distance_spread = 100.0

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        similarities = {pair_key(s, t): sim for s, t, sim in pairs}
        timed = [(stamp, node) for node in nodes if (stamp := extract_timestamp(node)) is not None]
        timed.sort(key=lambda entry: entry[0])
        if len(timed) < len(nodes):
            logger.debug(f"{len(nodes) - len(timed)} node(s) have no usable timestamp")

        window = options.time_window
        weight = options.temporal_weight
        links = LinkSet()

        for i, (stamp, node) in enumerate(timed):
            ranked: list[tuple[float, str, float]] = []
            for other_stamp, other in timed[i + 1:]:
                gap = other_stamp - stamp
                if gap > window:
                    break
                similarity = similarities.get(pair_key(node.id, other.id))
                if similarity is None:
                    continue
                proximity = 1 - gap / window if window > 0 else 1.0
                ranked.append((weight * proximity + (1 - weight) * similarity, other.id, similarity))

            ranked.sort(key=lambda r: r[0], reverse=True)
            for _, other_id, similarity in ranked[:options.max_connections]:
                links.add(node.id, other_id, similarity, self.base_distance, self.distance_spread)
        return links


class CommunityStrategy(ConnectionStrategy):
    """Greedy similarity communities, densely linked inside and bridged between.

    Each unassigned node seeds a community and absorbs up to
    ``community_seed_neighbors`` unassigned nodes above
    ``community_threshold``. Communities smaller than ``min_community_size``
    are dropped.
    """

    name = "community"
    description = "Connect nodes based on detected communities"

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        similarity = {pair_key(s, t): sim for s, t, sim in pairs}

        def lookup(a: str, b: str) -> float:
            return similarity.get(pair_key(a, b), 0.0)

        communities = [
            c for c in self.detect_communities(nodes, lookup, options)
            if len(c) >= options.min_community_size
        ]

        links = LinkSet()
        for community in communities:
            for a, b in combinations(community, 2):
                sim = lookup(a, b)
                if sim > options.within_community_threshold:
                    links.add(a, b, sim, 40.0, 80.0)

        for first, second in combinations(communities, 2):
            best: tuple[str, str, float] | None = None
            for a in first:
                for b in second:
                    sim = lookup(a, b)
                    if best is None or sim > best[2]:
                        best = (a, b, sim)
            if best and best[2] > options.bridge_threshold:
                links.add(best[0], best[1], best[2], 100.0, 50.0)
        return links

    @staticmethod
    def detect_communities(nodes: list[Item], lookup, options: ConnectionOptions) -> list[list[str]]:
        assigned: set[str] = set()
        communities: list[list[str]] = []

        for node in nodes:
            if node.id in assigned:
                continue
            assigned.add(node.id)
            community = [node.id]

            candidates = [
                (lookup(node.id, other.id), other.id)
                for other in nodes
                if other.id not in assigned
            ]
            candidates = [c for c in candidates if c[0] > options.community_threshold]
            candidates.sort(key=lambda c: c[0], reverse=True)

            for _, other_id in candidates[:options.community_seed_neighbors]:
                community.append(other_id)
                assigned.add(other_id)
            communities.append(community)
        return communities
