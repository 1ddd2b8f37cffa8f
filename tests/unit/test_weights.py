"""Unit tests for search-mode weight profiles."""

import math

import pytest

from stylematch.core.scoring.weights import (
    CANONICAL_PROFILES,
    SearchMode,
    WeightProfile,
    resolve_mode,
    resolve_weights,
)
from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import ConfigValidationError


class TestCanonicalProfiles:
    """Test the five canonical profiles."""

    @pytest.mark.parametrize("mode", list(SearchMode))
    def test_profiles_sum_to_one(self, mode):
        profile = resolve_weights(mode.value)
        assert math.isclose(profile.total, 1.0, abs_tol=1e-9)
        assert all(w >= 0 for w in profile.to_tuple())

    def test_balanced_table(self):
        assert CANONICAL_PROFILES[SearchMode.BALANCED].to_tuple() == (0.20, 0.20, 0.10, 0.10, 0.40)

    def test_mode_biases_its_slot(self):
        assert resolve_weights("visual").weight(VectorSlot.VISUAL) == 0.50
        assert resolve_weights("style").weight(VectorSlot.STYLE) == 0.50
        assert resolve_weights("semantic").weight(VectorSlot.SEMANTIC) == 0.55
        assert resolve_weights("color").weight(VectorSlot.COLOR) == 0.55

    def test_profiles_are_immutable(self):
        profile = resolve_weights("balanced")
        with pytest.raises(AttributeError):
            profile.visual = 1.0


class TestModeResolution:
    """Test parsing of search mode tokens."""

    def test_case_insensitive(self):
        assert resolve_mode("  Visual ") is SearchMode.VISUAL

    def test_unknown_falls_back_to_balanced(self):
        assert resolve_mode("sparkly") is SearchMode.BALANCED
        assert resolve_weights("sparkly") is CANONICAL_PROFILES[SearchMode.BALANCED]

    def test_none_is_balanced(self):
        assert resolve_mode(None) is SearchMode.BALANCED

    def test_enum_passthrough(self):
        assert SearchMode.parse(SearchMode.COLOR) is SearchMode.COLOR


class TestCustomProfiles:
    """Test ad hoc profile construction."""

    def test_from_mapping_renormalizes(self):
        profile = WeightProfile.from_mapping({"visual": 3, "hybrid": 1})
        assert profile.visual == pytest.approx(0.75)
        assert profile.hybrid == pytest.approx(0.25)
        assert profile.semantic == 0.0
        assert math.isclose(profile.total, 1.0)

    def test_from_mapping_accepts_slots(self):
        profile = WeightProfile.from_mapping({VectorSlot.COLOR: 2.0})
        assert profile.color == 1.0

    def test_negative_weight_rejected(self):
        with pytest.raises(ConfigValidationError):
            WeightProfile.from_mapping({"visual": -1, "style": 2})

    def test_unknown_slot_rejected(self):
        with pytest.raises(ConfigValidationError):
            WeightProfile.from_mapping({"texture": 1})

    def test_all_zero_rejected(self):
        with pytest.raises(ConfigValidationError):
            WeightProfile.from_mapping({"visual": 0, "style": 0})

    def test_direct_construction_must_sum_to_one(self):
        with pytest.raises(ConfigValidationError):
            WeightProfile(visual=0.5, style=0.5, semantic=0.5, color=0.0, hybrid=0.0)
