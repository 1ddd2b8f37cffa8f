# Match Inspiration Use Case
"""
Use case for finding service media that match an analyzed inspiration.

Scores stored records against the query vector set with the weight profile
of the requested search mode and ranks the results.
"""
import logging
import time
from typing import Iterable, Optional, Sequence

from stylematch.core.ranking import RankingEngine
from stylematch.core.scoring.weighted_scorer import WeightedMultiVectorMatcher
from stylematch.core.scoring.weights import CANONICAL_PROFILES, resolve_mode
from stylematch.database.models import MatchResponse, MediaEmbeddingRecord, QueryVectorSet
from stylematch.domain.interfaces.repository_interface import VectorRecordStore
from stylematch.utils.config import SearchConfig
from stylematch.utils.exceptions import InvalidQueryError
from stylematch.utils.logger import log_execution_time
from stylematch.utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)


class MatchInspirationUseCase:
    """
    Use case for ranking stored media against a query vector set.

    This use case:
    1. Resolves the search mode into a weight profile
    2. Streams candidates from the record store (or its ANN prefilter)
    3. Scores them in batches under an optional deadline
    4. Ranks, truncates and attaches matching tags
    """

    def __init__(
        self,
        store: VectorRecordStore,
        config: Optional[SearchConfig] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        """
        Initialize the use case.

        Args:
            store: Vector record store holding indexed media.
            config: Search configuration.
            monitor: Optional performance monitor for scoring batches.
        """
        self.store = store
        self.config = config or SearchConfig()
        self.monitor = monitor
        self.ranking = RankingEngine(self.config)

    def execute(
        self,
        query_vectors: QueryVectorSet,
        tags: Optional[Sequence[str]] = None,
        search_mode: Optional[str] = None,
        max_results: Optional[int] = None,
        provider_id: Optional[str] = None,
    ) -> MatchResponse:
        """
        Find the best matching media.

        Args:
            query_vectors: Vectors from AnalyzeInspirationUseCase.
            tags: Query tags, used for matching_tags only.
            search_mode: balanced, visual, style, semantic or color. None
                uses the configured default; unknown tokens fall back to
                balanced.
            max_results: Number of matches wanted (clamped).
            provider_id: Restrict candidates to one provider.

        Returns:
            MatchResponse. No qualifying candidate gives total_matches=0.

        Raises:
            InvalidQueryError: If the query vector set is empty.
        """
        if query_vectors is None or query_vectors.is_empty:
            raise InvalidQueryError("Query vector set is empty")

        mode = resolve_mode(search_mode if search_mode is not None else self.config.default_search_mode)
        matcher = WeightedMultiVectorMatcher(
            CANONICAL_PROFILES[mode],
            score_precision=self.config.score_precision,
            batch_size=self.config.scan_batch_size,
            monitor=self.monitor,
        )

        deadline = None
        if self.config.deadline_seconds is not None:
            deadline = time.monotonic() + self.config.deadline_seconds

        accumulator = self.ranking.accumulator(max_results)
        with log_execution_time(logger, f"match ({mode.value})"):
            scan = matcher.score_many(
                query_vectors,
                self._candidates(query_vectors, provider_id),
                deadline=deadline,
                accumulator=accumulator,
            )
            ranked = self.ranking.finalize(accumulator, max_results, tags)

        logger.info(
            f"Matched {ranked.total_matches}/{scan.scanned} candidates in {mode.value} mode"
            + (" (deadline exceeded)" if scan.deadline_exceeded else "")
        )

        return MatchResponse(
            matches=ranked.matches,
            total_matches=ranked.total_matches,
            search_mode=mode.value,
            deadline_exceeded=scan.deadline_exceeded,
            scanned=scan.scanned,
        )

    def _candidates(
        self,
        query_vectors: QueryVectorSet,
        provider_id: Optional[str],
    ) -> Iterable[MediaEmbeddingRecord]:
        """Full scan, or the store's ANN prefilter when configured and available."""
        k = self.config.ann_candidates
        if k > 0 and query_vectors.hybrid is not None and self.store.supports_nearest:
            logger.debug(f"Using ANN prefilter with k={k}")
            return self.store.nearest(query_vectors.hybrid, k, provider_id)
        return self.store.candidates_for(provider_id)
