"""Cosine similarity and pairwise similarity enumeration."""

import asyncio
import logging
from collections import Counter
from collections.abc import Iterator, Sequence
from typing import Protocol

import numpy as np

from .errors import DimensionMismatch
from .models import Item, SimilarPair

logger = logging.getLogger(__name__)

NOISE_FLOOR = 0.05


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Normalized dot product of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatch: if the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape:
        raise DimensionMismatch(va.shape[0], vb.shape[0])

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))


def embedded_nodes(nodes: Sequence[Item]) -> list[Item]:
    """Nodes whose embedding has the dominant vector length.

    Nodes without an embedding, or with an embedding of another length, are
    left out rather than treated as an error.
    """
    with_embedding = [n for n in nodes if n.embedding]
    if not with_embedding:
        return []

    lengths = Counter(len(n.embedding) for n in with_embedding)
    # most_common keeps first-seen order on ties
    dimension = lengths.most_common(1)[0][0]
    members = [n for n in with_embedding if len(n.embedding) == dimension]

    excluded = len(nodes) - len(members)
    if excluded:
        logger.debug(f"Excluded {excluded} item(s) without a {dimension}-dimensional embedding")
    return members


def _normalized_matrix(nodes: Sequence[Item]) -> np.ndarray:
    matrix = np.asarray([n.embedding for n in nodes], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    # zero vectors stay zero so every similarity against them is 0
    norms[norms == 0] = 1.0
    return matrix / norms


def sort_pairs(pairs: list[SimilarPair]) -> list[SimilarPair]:
    """Descending by similarity; equal similarities keep enumeration order."""
    return sorted(pairs, key=lambda p: p.similarity, reverse=True)


class PairEnumerator(Protocol):
    """Produces the candidate pairs every connection strategy starts from."""

    def pairs(self, nodes: Sequence[Item], noise_floor: float = NOISE_FLOOR) -> list[SimilarPair]:
        ...


class ExhaustivePairs:
    """All unordered pairs above the noise floor, computed in row blocks."""

    def __init__(self, block_size: int = 256):
        self.block_size = max(1, block_size)

    def _blocks(self, nodes: Sequence[Item], noise_floor: float) -> Iterator[list[SimilarPair]]:
        members = embedded_nodes(nodes)
        if len(members) < 2:
            return

        ids = [m.id for m in members]
        matrix = _normalized_matrix(members)
        n = len(members)

        for start in range(0, n, self.block_size):
            block = np.clip(matrix[start:start + self.block_size] @ matrix.T, -1.0, 1.0)
            found: list[SimilarPair] = []
            for offset, row in enumerate(block):
                i = start + offset
                for j in np.nonzero(row[i + 1:] > noise_floor)[0] + i + 1:
                    found.append(SimilarPair(ids[i], ids[j], float(row[j])))
            yield found

    def pairs(self, nodes: Sequence[Item], noise_floor: float = NOISE_FLOOR) -> list[SimilarPair]:
        found: list[SimilarPair] = []
        for block in self._blocks(nodes, noise_floor):
            found.extend(block)
        return sort_pairs(found)

    async def apairs(self, nodes: Sequence[Item], noise_floor: float = NOISE_FLOOR) -> list[SimilarPair]:
        """Same result as :meth:`pairs`, handing control back to the event loop between blocks."""
        found: list[SimilarPair] = []
        for block in self._blocks(nodes, noise_floor):
            found.extend(block)
            await asyncio.sleep(0)
        return sort_pairs(found)


class NeighborPairs:
    """Candidate pairs limited to each node's nearest neighbors.

    Uses scikit-learn's ``NearestNeighbors`` to avoid scoring every pair. The
    similarity stored on each pair is still the exact cosine similarity.
    """

    def __init__(self, n_neighbors: int = 15):
        self.n_neighbors = n_neighbors

    def pairs(self, nodes: Sequence[Item], noise_floor: float = NOISE_FLOOR) -> list[SimilarPair]:
        from sklearn.neighbors import NearestNeighbors

        members = embedded_nodes(nodes)
        if len(members) < 2:
            return []

        ids = [m.id for m in members]
        matrix = np.asarray([m.embedding for m in members], dtype=np.float64)
        k = min(self.n_neighbors + 1, len(members))

        index = NearestNeighbors(n_neighbors=k, metric="cosine").fit(matrix)
        _, neighbors = index.kneighbors(matrix)

        seen: set[tuple[int, int]] = set()
        found: list[SimilarPair] = []
        for i, row in enumerate(neighbors):
            for j in row:
                j = int(j)
                if j == i:
                    continue
                a, b = (i, j) if i < j else (j, i)
                if (a, b) in seen:
                    continue
                seen.add((a, b))
                similarity = cosine_similarity(matrix[a], matrix[b])
                if similarity > noise_floor:
                    found.append(SimilarPair(ids[a], ids[b], similarity))

        position = {node_id: i for i, node_id in enumerate(ids)}
        found.sort(key=lambda p: (position[p.source], position[p.target]))
        return sort_pairs(found)


def get_pair_enumerator(config: dict | None = None) -> PairEnumerator:
    """Factory: pick the enumeration backend named in config."""
    cfg = (config or {}).get("similarity", {})
    backend = cfg.get("enumerator", "exhaustive")

    if backend == "exhaustive":
        return ExhaustivePairs(block_size=cfg.get("block_size", 256))
    elif backend == "neighbors":
        return NeighborPairs(n_neighbors=cfg.get("n_neighbors", 15))
    else:
        raise ValueError(f"Unknown similarity enumerator: {backend}")
