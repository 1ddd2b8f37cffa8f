"""
Weighted multi-vector matcher.

Scores one candidate record against a query vector set:

    d_slot = cosine distance, for each slot present on both sides
    W      = sum of profile weights over those comparable slots
    D      = sum((w_slot / W) * d_slot)
    score  = clamp(100 * (1 - D / 2), 0, 100)

Slots missing on either side are left out and the remaining weights are
renormalized, so a candidate is never penalized just for lacking a slot,
and never rewarded for it either.

Example:
    >>> from stylematch.core.scoring import WeightedMultiVectorMatcher, resolve_weights
    >>> matcher = WeightedMultiVectorMatcher(resolve_weights("balanced"))
    >>> candidate = matcher.score(query_vectors, record)
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from itertools import islice
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional

from stylematch.database.models import MatchCandidate, MediaEmbeddingRecord, QueryVectorSet
from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import EmbeddingDimensionError
from stylematch.utils.logger import get_logger
from stylematch.utils.performance import PerformanceMonitor, get_performance_monitor

from .similarity import MAX_DISTANCE, cosine_distance, distance_to_score
from .weights import WeightProfile

if TYPE_CHECKING:
    from stylematch.core.ranking import TopKAccumulator

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 256


@dataclass
class ScanResult:
    """Outcome of scoring a stream of candidate records."""

    candidates: List[MatchCandidate] = field(default_factory=list)
    scanned: int = 0
    skipped: int = 0
    deadline_exceeded: bool = False


class WeightedMultiVectorMatcher:
    """
    Stateless scorer for query/record pairs under one weight profile.

    The profile is the only shared input and is immutable, so one matcher
    can score candidates from several threads at once.

    Attributes:
        profile: Weight profile of the current search mode.
        score_precision: Decimals kept in ``final_score``.
    """

    def __init__(
        self,
        profile: WeightProfile,
        score_precision: int = 2,
        batch_size: int = DEFAULT_BATCH_SIZE,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        """
        Initialize the matcher.

        Args:
            profile: Weight profile used for every candidate.
            score_precision: Decimals kept in final scores.
            batch_size: Candidates scored between deadline checks.
            monitor: Performance monitor; defaults to the process-wide one.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.profile = profile
        self.score_precision = score_precision
        self.batch_size = batch_size
        self.monitor = monitor or get_performance_monitor()

    def slot_distances(
        self,
        query: QueryVectorSet,
        record: MediaEmbeddingRecord,
    ) -> Dict[VectorSlot, float]:
        """
        Cosine distance for each slot comparable between query and record.

        A slot is comparable when both sides hold a vector with non-zero norm.

        Raises:
            EmbeddingDimensionError: If both sides hold a slot with different lengths.
        """
        distances: Dict[VectorSlot, float] = {}
        for slot in VectorSlot:
            q_vec = query.vector(slot)
            c_vec = record.vector(slot)
            if q_vec is None or c_vec is None:
                continue

            if q_vec.shape != c_vec.shape:
                raise EmbeddingDimensionError(
                    f"{slot.value} dimension mismatch for {record.media_id}: "
                    f"query {q_vec.shape[0]}, candidate {c_vec.shape[0]}",
                    slot=slot.value,
                    expected=q_vec.shape[0],
                    actual=c_vec.shape[0],
                )

            distance = cosine_distance(q_vec, c_vec)
            if distance is not None:
                distances[slot] = distance
        return distances

    def score(
        self,
        query: QueryVectorSet,
        record: MediaEmbeddingRecord,
    ) -> Optional[MatchCandidate]:
        """
        Score one candidate.

        Args:
            query: Query vector set.
            record: Candidate record.

        Returns:
            MatchCandidate, or None if no slot with positive weight is
            comparable.

        Raises:
            EmbeddingDimensionError: If a shared slot has mismatched dimensions.
        """
        distances = self.slot_distances(query, record)

        total_weight = math.fsum(self.profile.weight(slot) for slot in distances)
        if total_weight <= 0:
            return None

        weighted = math.fsum(
            (self.profile.weight(slot) / total_weight) * d for slot, d in distances.items()
        )
        weighted = min(MAX_DISTANCE, max(0.0, weighted))

        return MatchCandidate(
            media_id=record.media_id,
            service_id=record.service_id,
            provider_id=record.provider_id,
            distances=distances,
            coverage=len(distances),
            weighted_distance=weighted,
            final_score=distance_to_score(weighted, self.score_precision),
            tags=list(record.tags),
            category=record.category,
            indexed_at=record.indexed_at,
        )

    def score_many(
        self,
        query: QueryVectorSet,
        records: Iterable[MediaEmbeddingRecord],
        deadline: Optional[float] = None,
        accumulator: Optional[TopKAccumulator] = None,
    ) -> ScanResult:
        """
        Score a stream of records in batches.

        The deadline is checked between batches, so a slow scan stops with
        whatever was scored so far instead of failing. Records whose slot
        dimensions disagree with the query are logged and skipped.

        Args:
            query: Query vector set.
            records: Candidate records (any iterable, consumed lazily).
            deadline: Absolute ``time.monotonic()`` value to stop at.
            accumulator: When given, candidates are pushed into it instead
                of being collected in the result.

        Returns:
            ScanResult with collected candidates and scan counters.
        """
        result = ScanResult()

        for batch in self._batches(records):
            if deadline is not None and time.monotonic() >= deadline:
                result.deadline_exceeded = True
                logger.warning(
                    f"Match deadline exceeded after {result.scanned} candidates; "
                    f"returning best results so far"
                )
                break

            with self.monitor.measure("score_batch", items_count=len(batch)):
                for record in batch:
                    result.scanned += 1
                    try:
                        candidate = self.score(query, record)
                    except EmbeddingDimensionError as e:
                        result.skipped += 1
                        logger.warning(f"Skipping candidate: {e}")
                        continue

                    if candidate is None:
                        continue
                    if accumulator is not None:
                        accumulator.add(candidate)
                    else:
                        result.candidates.append(candidate)

        logger.debug(
            f"Scored {result.scanned} candidates "
            f"({result.skipped} skipped, deadline_exceeded={result.deadline_exceeded})"
        )
        return result

    def _batches(self, records: Iterable[MediaEmbeddingRecord]) -> Iterator[List[MediaEmbeddingRecord]]:
        iterator = iter(records)
        while True:
            batch = list(islice(iterator, self.batch_size))
            if not batch:
                return
            yield batch

    def __repr__(self) -> str:
        return f"WeightedMultiVectorMatcher(profile={self.profile.as_dict()})"
