"""Search strategies: text, fuzzy, category and a semantic placeholder."""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence

from rapidfuzz.distance import Levenshtein

from ..models import Item, MatchType, SearchOptions, SearchResult

logger = logging.getLogger(__name__)

FUZZY_THRESHOLD = 0.3
METADATA_WEIGHT = 0.7


def _normalize(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _snippet(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def rank(results: list[SearchResult], max_results: int) -> list[SearchResult]:
    """Highest score first, capped at ``max_results``."""
    return sorted(results, key=lambda r: r.score, reverse=True)[:max_results]


class SearchStrategy(ABC):
    """Ranks nodes against a free-text query."""

    name: str = ""
    description: str = ""

    def search(
        self,
        nodes: Sequence[Item],
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        if not query or not query.strip():
            return []
        return rank(self.score(nodes, query.strip(), options), options.max_results)

    @abstractmethod
    def score(self, nodes: Sequence[Item], query: str, options: SearchOptions) -> list[SearchResult]:
        """Unordered matches for a non-blank query."""


class TextSearchStrategy(SearchStrategy):
    """Exact and partial term matching with highlight snippets.

    Per query term the text field earns 1.0 for an exact match, 0.8 on a word
    boundary, 0.6 as a prefix and 0.4 anywhere, averaged over terms. Category
    hits score 1.0, metadata hits 0.5 per string field and term, weighted by
    0.7. The final score is ``0.7 * max + 0.3 * mean`` over the fields that
    matched, except that a query equal to the whole text always scores 1.0.
    """

    name = "text"
    description = "Search by text content with highlighting"

    def score(self, nodes: Sequence[Item], query: str, options: SearchOptions) -> list[SearchResult]:
        case_sensitive = options.case_sensitive
        normalized_query = _normalize(query, case_sensitive)
        terms = normalized_query.split()
        fields = options.search_fields
        results = []

        for node in nodes:
            scores: list[float] = []
            highlights: list[str] = []
            whole_text = False

            if "text" in fields:
                score, found = self.score_text(node.text, terms, case_sensitive)
                whole_text = self.is_whole_text(node.text, terms, case_sensitive)
                if score > 0:
                    scores.append(score)
                    highlights.extend(found)

            if "category" in fields and node.category:
                category = _normalize(node.category, case_sensitive)
                if any(term in category for term in terms):
                    scores.append(1.0)
                    highlights.append(node.category)

            if "metadata" in fields and node.metadata:
                score, found = self.score_metadata(node.metadata, terms, case_sensitive)
                if score > 0:
                    scores.append(score * METADATA_WEIGHT)
                    highlights.extend(found)

            if not scores:
                continue

            if whole_text:
                final = 1.0
            else:
                final = 0.7 * max(scores) + 0.3 * (sum(scores) / len(scores))
            text = _normalize(node.text, case_sensitive)
            exact = all(term in text for term in terms)
            results.append(SearchResult(
                item=node,
                score=min(1.0, max(0.0, final)),
                match_type=MatchType.EXACT if exact else MatchType.PARTIAL,
                matched_text=", ".join(highlights),
                highlights=tuple(highlights),
            ))
        return results

    @staticmethod
    def is_whole_text(text: str, terms: list[str], case_sensitive: bool) -> bool:
        return " ".join(_normalize(text, case_sensitive).split()) == " ".join(terms)

    @staticmethod
    def score_text(
        text: str,
        terms: list[str],
        case_sensitive: bool,
    ) -> tuple[float, list[str]]:
        normalized = _normalize(text, case_sensitive)
        if TextSearchStrategy.is_whole_text(text, terms, case_sensitive):
            return 1.0, [text]

        total = 0.0
        highlights = []
        for term in terms:
            index = normalized.find(term)
            if index < 0:
                continue
            if normalized == term:
                total += 1.0
            elif re.search(rf"\b{re.escape(term)}\b", normalized):
                total += 0.8
            elif normalized.startswith(term):
                total += 0.6
            else:
                total += 0.4

            start = max(0, index - 20)
            end = min(len(text), index + len(term) + 20)
            highlights.append(text[start:end])

        return total / len(terms), highlights

    @staticmethod
    def score_metadata(metadata: dict, terms: list[str], case_sensitive: bool) -> tuple[float, list[str]]:
        score = 0.0
        highlights = []
        for key, value in metadata.items():
            if not isinstance(value, str):
                continue
            normalized = _normalize(value, case_sensitive)
            for term in terms:
                if term in normalized:
                    score += 0.5
                    highlights.append(f"{key}: {value}")
        return (score / len(terms) if highlights else 0.0), highlights


class FuzzySearchStrategy(SearchStrategy):
    """Typo-tolerant matching by normalized Levenshtein distance."""

    name = "fuzzy"
    description = "Fuzzy text matching with typo tolerance"

    def score(self, nodes: Sequence[Item], query: str, options: SearchOptions) -> list[SearchResult]:
        results = []
        for node in nodes:
            best = 0.0
            best_match = ""
            highlights: list[str] = []

            for value, highlight in self._fields(node, options):
                score = self.similarity(query, value, options.case_sensitive)
                if score > best:
                    best = score
                    best_match = value
                    highlights.append(highlight)

            if best > FUZZY_THRESHOLD:
                results.append(SearchResult(
                    item=node,
                    score=best,
                    match_type=MatchType.EXACT if best > 0.8 else MatchType.PARTIAL,
                    matched_text=best_match,
                    highlights=tuple(highlights),
                ))
        return results

    @staticmethod
    def _fields(node: Item, options: SearchOptions):
        if "text" in options.search_fields:
            yield node.text, _snippet(node.text)
        if "category" in options.search_fields and node.category:
            yield node.category, node.category
        if "metadata" in options.search_fields:
            for key, value in node.metadata.items():
                if isinstance(value, str) and value:
                    yield value, f"{key}: {value}"

    @staticmethod
    def similarity(query: str, text: str, case_sensitive: bool = False) -> float:
        q = _normalize(query, case_sensitive)
        t = _normalize(text, case_sensitive)
        if q == t:
            return 1.0
        if q in t:
            return 0.8
        return max(0.0, 1.0 - Levenshtein.normalized_distance(q, t))


class CategorySearchStrategy(SearchStrategy):
    """Category first; falls back to a text substring match."""

    name = "category"
    description = "Search primarily by category with fallback to text"

    def score(self, nodes: Sequence[Item], query: str, options: SearchOptions) -> list[SearchResult]:
        normalized_query = _normalize(query, options.case_sensitive)
        results = []

        for node in nodes:
            score = 0.0
            match_type = MatchType.PARTIAL
            highlights: list[str] = []

            if node.category:
                category = _normalize(node.category, options.case_sensitive)
                if category == normalized_query:
                    score = 1.0
                    match_type = MatchType.EXACT
                    highlights.append(node.category)
                elif normalized_query in category:
                    score = 0.8
                    highlights.append(node.category)

            if score == 0 and normalized_query in _normalize(node.text, options.case_sensitive):
                score = 0.6
                highlights.append(_snippet(node.text))

            if score > 0:
                results.append(SearchResult(
                    item=node,
                    score=score,
                    match_type=match_type,
                    matched_text=", ".join(highlights),
                    highlights=tuple(highlights),
                ))
        return results


class SemanticSearchStrategy(SearchStrategy):
    """Placeholder for embedding-based search; always returns no results.

    A real implementation would embed the query and keep nodes whose cosine
    similarity to it reaches ``options.semantic_threshold``.
    """

    name = "semantic"
    description = "Semantic search using embeddings (requires embedding service)"

    def score(self, nodes: Sequence[Item], query: str, options: SearchOptions) -> list[SearchResult]:
        logger.warning("Semantic search is not implemented; returning no results")
        return []
