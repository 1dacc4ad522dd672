"""
FuzzyMatcher — rank a value universe against loosely extracted queries.

Algorithm:
1. Score every candidate against each query (0 = perfect, 1 = no match)
2. Keep scores <= threshold
3. Merge per-query results by candidate index, keeping the lowest score
4. Sort by (score, index) and keep entries within `distance_from_best` of the best
5. Cap at `max_items` and map indexes back to candidate strings

Scoring keeps the bitap-style semantics of threshold / location / distance:
the partial-ratio alignment of the query inside the candidate gives the
similarity, and the alignment's offset from `location` is a proximity penalty.
"""

from __future__ import annotations

import logging
from typing import Iterable

from rapidfuzz import fuzz
from rapidfuzz.utils import default_process

from shared.models import FuzzyCandidate
from shared.settings import ResolverSettings

logger = logging.getLogger(__name__)


def merge_matches(
    matches: Iterable[FuzzyCandidate], new_matches: Iterable[FuzzyCandidate]
) -> list[FuzzyCandidate]:
    """Union of two result sets by index; an index in both keeps the lower score."""
    merged: dict[int, FuzzyCandidate] = {}
    for match in [*matches, *new_matches]:
        current = merged.get(match.index)
        if current is None or match.score < current.score:
            merged[match.index] = match
    return sorted(merged.values(), key=lambda m: m.index)


class FuzzyMatcher:
    """Configured once from settings and shared read-only across calls."""

    def __init__(
        self,
        threshold: float = 0.6,
        location: int = 0,
        distance: int = 100,
        distance_from_best: float = 0.5,
        max_items: int = 10,
    ):
        self.threshold = threshold
        self.location = location
        self.distance = distance
        self.distance_from_best = distance_from_best
        self.max_items = max_items

    @classmethod
    def from_settings(cls, settings: ResolverSettings) -> "FuzzyMatcher":
        return cls(
            threshold=settings.fuzzy_match_threshold,
            location=settings.fuzzy_match_location,
            distance=settings.fuzzy_match_distance,
            distance_from_best=settings.fuzzy_match_distance_from_best,
            max_items=settings.fuzzy_match_max_items,
        )

    def score(self, query: str, candidate: str) -> float | None:
        """Score in [0, 1], or None when either side is empty after case folding."""
        processed_query = default_process(query)
        processed_candidate = default_process(candidate)
        if not processed_query or not processed_candidate:
            return None

        alignment = fuzz.partial_ratio_alignment(processed_query, processed_candidate)
        if alignment is None:
            return 1.0

        value = 1.0 - alignment.score / 100.0
        if self.distance > 0:
            value += abs(alignment.dest_start - self.location) / self.distance
        return min(1.0, max(0.0, value))

    def search(self, query: str, candidates: list[str]) -> list[FuzzyCandidate]:
        """All candidates within threshold for one query, in index order."""
        results: list[FuzzyCandidate] = []
        for index, candidate in enumerate(candidates):
            if not isinstance(candidate, str):
                continue
            score = self.score(query, candidate)
            if score is not None and score <= self.threshold:
                results.append(FuzzyCandidate(index=index, value=candidate, score=score))
        return results

    def rank(self, matches: list[FuzzyCandidate]) -> list[FuzzyCandidate]:
        ordered = sorted(matches, key=lambda m: (m.score, m.index))
        if not ordered:
            return []
        best = ordered[0].score
        kept = [m for m in ordered if m.score - best <= self.distance_from_best]
        return kept[: self.max_items]

    def match(self, queries: list[str], candidates: list[str]) -> list[str]:
        """Best candidate strings for the queries; empty inputs give []."""
        if not queries or not candidates:
            return []

        merged: list[FuzzyCandidate] = []
        for query in queries:
            if not isinstance(query, str):
                continue
            found = self.search(query, candidates)
            logger.debug("Fuzzy matches for '%s' against %s: %s", query, candidates, found)
            merged = merge_matches(merged, found)

        best = [m.value for m in self.rank(merged)]
        logger.debug("Best fuzzy matches for %s against %s: %s", queries, candidates, best)
        return best
