"""Unit tests for the weighted multi-vector matcher."""

import time

import numpy as np
import pytest

from stylematch.core.ranking import RankingEngine
from stylematch.core.scoring import WeightedMultiVectorMatcher
from stylematch.core.scoring.weights import SearchMode, resolve_weights
from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import EmbeddingDimensionError

from conftest import IMAGE_DIM, TEXT_DIM


def _matcher(mode: str = "balanced", **kwargs) -> WeightedMultiVectorMatcher:
    return WeightedMultiVectorMatcher(resolve_weights(mode), **kwargs)


class TestScoring:
    """Test single candidate scoring."""

    @pytest.mark.parametrize("mode", list(SearchMode))
    def test_identical_vectors_score_100_in_every_mode(self, mode, full_vectors, make_record, query_from):
        query = query_from(full_vectors)
        record = make_record(**full_vectors)

        candidate = _matcher(mode.value).score(query, record)

        assert candidate.final_score == 100.0
        assert candidate.coverage == 5
        assert candidate.weighted_distance == pytest.approx(0.0, abs=1e-9)

    def test_missing_slots_are_not_penalized(self, full_vectors, make_record, query_from):
        """Exact match on visual/style/hybrid stays at 100 without semantic and color."""
        query = query_from(full_vectors)
        record = make_record(
            visual=full_vectors["visual"],
            style=full_vectors["style"],
            hybrid=full_vectors["hybrid"],
        )

        candidate = _matcher("semantic").score(query, record)

        assert candidate.coverage == 3
        assert candidate.final_score == 100.0
        assert set(candidate.distances) == {VectorSlot.VISUAL, VectorSlot.STYLE, VectorSlot.HYBRID}

    def test_weights_renormalize_over_comparable_slots(self, basis, make_record, query_from):
        # visual identical, style orthogonal; balanced weights 0.2/0.2 -> D = 0.5
        query = query_from({"visual": basis(IMAGE_DIM, 0), "style": basis(IMAGE_DIM, 0)})
        record = make_record(visual=basis(IMAGE_DIM, 0), style=basis(IMAGE_DIM, 1))

        candidate = _matcher().score(query, record)

        assert candidate.coverage == 2
        assert candidate.weighted_distance == pytest.approx(0.5)
        assert candidate.final_score == 75.0

    def test_no_common_slot_returns_none(self, basis, make_record, query_from):
        query = query_from({"visual": basis(IMAGE_DIM, 0), "semantic": basis(TEXT_DIM, 0)})
        record = make_record(style=basis(IMAGE_DIM, 0))

        assert _matcher().score(query, record) is None

    def test_zero_weight_slots_only_returns_none(self, basis, make_record, query_from):
        from stylematch.core.scoring.weights import WeightProfile

        profile = WeightProfile.from_mapping({"color": 1.0})
        query = query_from({"visual": basis(IMAGE_DIM, 0)})
        record = make_record(visual=basis(IMAGE_DIM, 0))

        assert WeightedMultiVectorMatcher(profile).score(query, record) is None

    def test_zero_norm_slot_is_not_comparable(self, basis, make_record, query_from):
        query = query_from({"visual": basis(IMAGE_DIM, 0), "semantic": np.zeros(TEXT_DIM)})
        record = make_record(visual=basis(IMAGE_DIM, 0), semantic=basis(TEXT_DIM, 1))

        candidate = _matcher().score(query, record)

        assert candidate.coverage == 1
        assert VectorSlot.SEMANTIC not in candidate.distances

    def test_dimension_mismatch_raises(self, basis, make_record, query_from):
        query = query_from({"visual": basis(IMAGE_DIM, 0)})
        record = make_record(visual=basis(IMAGE_DIM + 2, 0))

        with pytest.raises(EmbeddingDimensionError):
            _matcher().score(query, record)

    def test_score_and_coverage_bounds(self, make_record, query_from):
        rng = np.random.default_rng(7)
        matcher = _matcher()
        for i in range(25):
            query = query_from({
                "visual": rng.standard_normal(IMAGE_DIM),
                "semantic": rng.standard_normal(TEXT_DIM),
            })
            record = make_record(
                media_id=f"m{i}",
                visual=rng.standard_normal(IMAGE_DIM),
                semantic=rng.standard_normal(TEXT_DIM),
            )
            candidate = matcher.score(query, record)
            assert 0.0 <= candidate.final_score <= 100.0
            assert 1 <= candidate.coverage <= 5


class TestSearchModes:
    """Test that search modes change the ranking."""

    def test_visual_and_semantic_modes_reorder(self, basis, make_record, query_from):
        query = query_from({
            "visual": basis(IMAGE_DIM, 0),
            "style": basis(IMAGE_DIM, 0),
            "hybrid": basis(IMAGE_DIM, 0),
            "semantic": basis(TEXT_DIM, 0),
        })
        visually_close = make_record(
            media_id="A",
            visual=basis(IMAGE_DIM, 0),
            style=basis(IMAGE_DIM, 0),
            hybrid=basis(IMAGE_DIM, 0),
            semantic=basis(TEXT_DIM, 1),
        )
        semantically_close = make_record(
            media_id="B",
            visual=basis(IMAGE_DIM, 1),
            style=basis(IMAGE_DIM, 1),
            hybrid=basis(IMAGE_DIM, 1),
            semantic=basis(TEXT_DIM, 0),
        )
        engine = RankingEngine()

        def order(mode):
            matcher = _matcher(mode)
            candidates = [matcher.score(query, r) for r in (visually_close, semantically_close)]
            return [c.media_id for c in engine.rank(candidates).matches]

        assert order("visual") == ["A", "B"]
        assert order("semantic") == ["B", "A"]


class TestScoreMany:
    """Test batched scanning."""

    def test_collects_and_skips_mismatched(self, basis, make_record, query_from):
        query = query_from({"visual": basis(IMAGE_DIM, 0)})
        records = [
            make_record(media_id="ok-1", visual=basis(IMAGE_DIM, 0)),
            make_record(media_id="bad", visual=basis(IMAGE_DIM + 1, 0)),
            make_record(media_id="none", style=basis(IMAGE_DIM, 0)),
            make_record(media_id="ok-2", visual=basis(IMAGE_DIM, 1)),
        ]

        scan = _matcher(batch_size=2).score_many(query, iter(records))

        assert scan.scanned == 4
        assert scan.skipped == 1
        assert [c.media_id for c in scan.candidates] == ["ok-1", "ok-2"]
        assert not scan.deadline_exceeded

    def test_expired_deadline_stops_scan(self, basis, make_record, query_from):
        query = query_from({"visual": basis(IMAGE_DIM, 0)})
        records = [make_record(media_id=f"m{i}", visual=basis(IMAGE_DIM, 0)) for i in range(5)]

        scan = _matcher().score_many(query, records, deadline=time.monotonic() - 1)

        assert scan.deadline_exceeded
        assert scan.scanned == 0
        assert scan.candidates == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            _matcher(batch_size=0)
