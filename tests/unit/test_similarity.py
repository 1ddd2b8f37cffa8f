"""Unit tests for cosine distance and vector helpers."""

import numpy as np
import pytest

from stylematch.core.scoring.similarity import (
    cosine_distance,
    cosine_similarity,
    distance_to_score,
    is_valid_vector,
    l2_normalize,
    mean_normalized,
)


class TestCosine:
    """Test cosine similarity and distance."""

    def test_identical_vectors(self):
        vec = np.array([0.3, -1.2, 4.0, 0.01], dtype=np.float32)
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)
        assert cosine_distance(vec, vec) == pytest.approx(0.0, abs=1e-12)

    def test_orthogonal_and_opposite(self):
        a = np.array([1.0, 0.0])
        assert cosine_distance(a, np.array([0.0, 1.0])) == pytest.approx(1.0)
        assert cosine_distance(a, -a) == pytest.approx(2.0)

    def test_scale_invariant(self):
        a = np.array([1.0, 2.0, 3.0])
        assert cosine_distance(a, a * 7.5) == pytest.approx(0.0, abs=1e-12)

    def test_zero_norm_is_not_comparable(self):
        """A zero vector is never a perfect match."""
        a = np.array([1.0, 0.0, 0.0])
        assert cosine_similarity(a, np.zeros(3)) is None
        assert cosine_distance(np.zeros(3), a) is None

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError):
            cosine_similarity(np.ones(3), np.ones(4))


class TestScore:
    """Test distance to score mapping."""

    @pytest.mark.parametrize(
        "distance, expected",
        [(0.0, 100.0), (0.5, 75.0), (1.0, 50.0), (2.0, 0.0)],
    )
    def test_mapping(self, distance, expected):
        assert distance_to_score(distance) == expected

    def test_clamped(self):
        assert distance_to_score(-0.1) == 100.0
        assert distance_to_score(2.5) == 0.0

    def test_precision(self):
        assert distance_to_score(1 / 3, precision=1) == 83.3


class TestNormalization:
    """Test normalization and hybrid averaging."""

    def test_l2_normalize(self):
        result = l2_normalize([3.0, 4.0])
        np.testing.assert_allclose(result, [0.6, 0.8], rtol=1e-6)
        assert result.dtype == np.float32

    def test_l2_normalize_zero(self):
        assert l2_normalize(np.zeros(4)) is None

    def test_mean_of_identical_vectors_is_normalized_input(self):
        """Averaging identical inputs does not drift."""
        v = np.array([2.0, -1.0, 0.5, 3.0], dtype=np.float32)
        hybrid = mean_normalized([v, v.copy()])
        np.testing.assert_allclose(hybrid, v / np.linalg.norm(v), rtol=1e-6)

    def test_mean_skips_missing(self):
        v = np.array([0.0, 5.0])
        np.testing.assert_allclose(mean_normalized([v, None]), [0.0, 1.0])

    def test_mean_of_nothing(self):
        assert mean_normalized([None, None]) is None

    def test_mean_of_opposites_has_no_direction(self):
        v = np.array([1.0, 1.0])
        assert mean_normalized([v, -v]) is None

    def test_mean_dimension_mismatch(self):
        with pytest.raises(ValueError):
            mean_normalized([np.ones(2), np.ones(3)])


class TestValidity:
    """Test vector validity checks."""

    def test_valid(self):
        assert is_valid_vector([0.1, 0.2])

    @pytest.mark.parametrize(
        "vec",
        [None, [], [[1.0, 2.0]], [np.nan, 1.0], [np.inf, 0.0]],
    )
    def test_invalid(self, vec):
        assert not is_valid_vector(vec)
