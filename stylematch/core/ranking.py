"""
Ranking of scored candidates.

Turns MatchCandidates into the final ordered result list:

1. drop candidates with zero coverage (and, if configured, below min_score)
2. sort by final_score desc, coverage desc, indexed_at desc, media_id asc
3. optionally thin out near-duplicate distances (diversity pass)
4. truncate to max_results, clamped to [1, max_results_limit]
5. attach matching tags (display only)
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from stylematch.database.models import MatchCandidate
from stylematch.utils.config import SearchConfig
from stylematch.utils.logger import get_logger

logger = get_logger(__name__)

DIVERSITY_MIN_KEEP = 3
DIVERSITY_MIN_CANDIDATES = 5


def extract_matching_tags(query_tags: Optional[Sequence[str]], candidate_tags: Sequence[str]) -> List[str]:
    """
    Case-insensitive, whitespace-trimmed intersection of two tag lists.

    Order and spelling follow the query tags; duplicates are dropped.

    Example:
        >>> extract_matching_tags(["Curly ", "fade"], ["curly", "braids"])
        ['Curly']
    """
    if not query_tags or not candidate_tags:
        return []

    candidate_keys = {tag.strip().lower() for tag in candidate_tags if isinstance(tag, str)}
    seen = set()
    matches: List[str] = []
    for tag in query_tags:
        if not isinstance(tag, str):
            continue
        key = tag.strip().lower()
        if key and key in candidate_keys and key not in seen:
            seen.add(key)
            matches.append(tag.strip())
    return matches


def sort_key(candidate: MatchCandidate) -> Tuple[float, int, float, str]:
    """Deterministic ranking key; smaller sorts first."""
    return (
        -candidate.final_score,
        -candidate.coverage,
        -candidate.indexed_at.timestamp(),
        candidate.media_id,
    )


class _Ranked:
    """Heap entry ordered so the worst candidate sits at the heap root."""

    __slots__ = ("key", "candidate")

    def __init__(self, candidate: MatchCandidate):
        self.key = sort_key(candidate)
        self.candidate = candidate

    def __lt__(self, other: "_Ranked") -> bool:
        # Inverted: heapq keeps the smallest at the root, we want the worst there
        return self.key > other.key


class TopKAccumulator:
    """
    Bounded best-K set filled while candidates are scanned.

    ``total`` counts every qualifying candidate offered, including those
    that fell out of the best-K set.
    """

    def __init__(self, k: int, min_score: float = 0.0):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self.min_score = min_score
        self.total = 0
        self._heap: List[_Ranked] = []

    def qualifies(self, candidate: MatchCandidate) -> bool:
        return candidate.coverage > 0 and candidate.final_score >= self.min_score

    def add(self, candidate: MatchCandidate) -> None:
        if not self.qualifies(candidate):
            return
        self.total += 1
        entry = _Ranked(candidate)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
        elif self._heap[0] < entry:
            heapq.heapreplace(self._heap, entry)

    def extend(self, candidates: Iterable[MatchCandidate]) -> None:
        for candidate in candidates:
            self.add(candidate)

    def results(self) -> List[MatchCandidate]:
        """Best candidates in ranking order."""
        return [entry.candidate for entry in sorted(self._heap, key=lambda e: e.key)]

    def __len__(self) -> int:
        return len(self._heap)


@dataclass
class RankedResult:
    """Ordered matches plus the qualifying count before truncation."""

    matches: List[MatchCandidate] = field(default_factory=list)
    total_matches: int = 0


class RankingEngine:
    """
    Orders, filters and truncates scored candidates.

    Example:
        >>> engine = RankingEngine(config.search)
        >>> ranked = engine.rank(candidates, max_results=5, query_tags=["curly"])
        >>> ranked.matches[0].final_score
        100.0
    """

    def __init__(self, config: Optional[SearchConfig] = None):
        self.config = config or SearchConfig()

    def clamp_max_results(self, max_results: Optional[int]) -> int:
        """Bound a caller's max_results to [1, max_results_limit]."""
        if max_results is None:
            max_results = self.config.default_max_results
        return max(1, min(int(max_results), self.config.max_results_limit))

    def accumulator(self, max_results: Optional[int] = None) -> TopKAccumulator:
        """Accumulator sized for a request.

        With the diversity pass on, extra candidates are kept so thinning
        still leaves a full page where possible.
        """
        k = self.clamp_max_results(max_results)
        if self.config.diversity_boost:
            k = min(k * 3, self.config.max_results_limit * 3)
        return TopKAccumulator(k, min_score=self.config.min_score)

    def rank(
        self,
        candidates: Iterable[MatchCandidate],
        max_results: Optional[int] = None,
        query_tags: Optional[Sequence[str]] = None,
    ) -> RankedResult:
        """
        Rank a complete candidate collection.

        Args:
            candidates: Scored candidates.
            max_results: Requested result count (clamped).
            query_tags: Tags of the query, for matching_tags.

        Returns:
            RankedResult with ordered matches and the qualifying total.
        """
        accumulator = self.accumulator(max_results)
        accumulator.extend(candidates)
        return self.finalize(accumulator, max_results, query_tags)

    def finalize(
        self,
        accumulator: TopKAccumulator,
        max_results: Optional[int] = None,
        query_tags: Optional[Sequence[str]] = None,
    ) -> RankedResult:
        """Turn a filled accumulator into the final result list."""
        limit = self.clamp_max_results(max_results)
        ordered = accumulator.results()

        if self.config.diversity_boost:
            ordered = self.diversify(ordered, self.config.diversity_threshold)

        matches = [
            candidate.model_copy(
                update={"matching_tags": extract_matching_tags(query_tags, candidate.tags)}
            )
            for candidate in ordered[:limit]
        ]

        logger.debug(f"Ranked {accumulator.total} qualifying candidates, returning {len(matches)}")
        return RankedResult(matches=matches, total_matches=accumulator.total)

    @staticmethod
    def diversify(
        ordered: Sequence[MatchCandidate],
        threshold: float,
        min_keep: int = DIVERSITY_MIN_KEEP,
    ) -> List[MatchCandidate]:
        """
        Drop near-duplicates from an ordered list.

        Lists of ``DIVERSITY_MIN_CANDIDATES`` or fewer are returned unchanged.
        Otherwise the top match is always kept, and a later candidate is
        admitted while fewer than ``min_keep`` are admitted, or when its
        weighted distance differs by more than ``threshold`` from every
        admitted candidate.
        """
        if len(ordered) <= DIVERSITY_MIN_CANDIDATES:
            return list(ordered)

        selected = [ordered[0]]
        for candidate in ordered[1:]:
            distinct = all(
                abs(candidate.weighted_distance - kept.weighted_distance) > threshold
                for kept in selected
            )
            if distinct or len(selected) < min_keep:
                selected.append(candidate)
        return selected
