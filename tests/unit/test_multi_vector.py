"""Unit tests for multi-vector generation."""

import asyncio

import numpy as np
import pytest

from stylematch.core.multi_vector import GenerationContext, MultiVectorGenerator
from stylematch.core.scoring.similarity import mean_normalized
from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import ImageProcessingError

CONTEXT = GenerationContext(
    tags=["curly", "glossy"],
    description="Defined curls",
    category="hair",
    title="Curl refresh",
    dominant_colors=["#000000"],
)


def _generate(provider, test_config, image, context=CONTEXT):
    generator = MultiVectorGenerator(provider, test_config.provider, test_config.context)
    return asyncio.run(generator.generate(image, context))


class TestGeneration:
    """Test the happy path."""

    def test_all_slots_generated(self, fake_provider, test_config, sample_image_bytes):
        result = _generate(fake_provider, test_config, sample_image_bytes)

        assert result.usable
        assert result.failures == {}
        assert set(result.succeeded) == set(VectorSlot)
        assert result.slots[VectorSlot.VISUAL].vector.shape == (8,)
        assert result.slots[VectorSlot.SEMANTIC].vector.shape == (4,)
        assert sorted(fake_provider.calls) == ["image", "multimodal", "text", "text"]

    def test_hybrid_is_normalized_mean(self, fake_provider, test_config, sample_image_bytes):
        result = _generate(fake_provider, test_config, sample_image_bytes)

        expected = mean_normalized([
            result.slots[VectorSlot.VISUAL].vector,
            result.slots[VectorSlot.STYLE].vector,
        ])
        np.testing.assert_allclose(result.slots[VectorSlot.HYBRID].vector, expected, rtol=1e-6)
        assert np.linalg.norm(result.slots[VectorSlot.HYBRID].vector) == pytest.approx(1.0, abs=1e-6)

    def test_hybrid_of_identical_inputs(self, provider_factory, test_config, sample_image_bytes):
        v = np.array([3.0, 1.0, 0.0, 0.0, 2.0, 0.0, 0.0, 1.0], dtype=np.float32)

        class SameVectorProvider(provider_factory):
            async def embed_image(self, image_bytes):
                return v.copy()

            async def embed_multimodal(self, image_bytes, text):
                return v.copy()

        result = _generate(SameVectorProvider(), test_config, sample_image_bytes)

        np.testing.assert_allclose(
            result.slots[VectorSlot.HYBRID].vector, v / np.linalg.norm(v), rtol=1e-6
        )

    def test_query_and_record_conversion(self, fake_provider, test_config, sample_image_bytes):
        result = _generate(fake_provider, test_config, sample_image_bytes)

        query = result.to_query()
        record = result.to_record("m1", "s1", "p1", tags=["curly"], category="hair")

        assert query.present_slots == list(VectorSlot)
        assert record.media_id == "m1"
        np.testing.assert_array_equal(record.visual, query.visual)


class TestPartialFailure:
    """Test that slot failures are isolated."""

    def test_style_failure_keeps_other_slots(self, provider_factory, test_config, sample_image_bytes):
        provider = provider_factory(fail={"multimodal"})
        result = _generate(provider, test_config, sample_image_bytes)

        assert result.usable
        assert set(result.failures) == {VectorSlot.STYLE}
        np.testing.assert_allclose(
            result.slots[VectorSlot.HYBRID].vector,
            mean_normalized([result.slots[VectorSlot.VISUAL].vector]),
            rtol=1e-6,
        )

    def test_timeout_is_a_slot_failure(self, provider_factory, test_config, sample_image_bytes):
        provider = provider_factory(hang={"text"})
        result = _generate(provider, test_config, sample_image_bytes)

        assert set(result.failures) == {VectorSlot.SEMANTIC, VectorSlot.COLOR}
        assert result.failures[VectorSlot.SEMANTIC].context["cause"] == "timeout"
        assert result.slots[VectorSlot.VISUAL].ok

    def test_wrong_dimension_is_rejected_not_reshaped(self, provider_factory, test_config, sample_image_bytes):
        provider = provider_factory(wrong_dimension={"image"})
        result = _generate(provider, test_config, sample_image_bytes)

        assert not result.slots[VectorSlot.VISUAL].ok
        assert result.failures[VectorSlot.VISUAL].context["cause"] == "dimension"
        assert result.slots[VectorSlot.STYLE].ok

    def test_both_sources_failing_is_not_usable(self, provider_factory, test_config, sample_image_bytes):
        provider = provider_factory(fail={"image", "multimodal"})
        result = _generate(provider, test_config, sample_image_bytes)

        assert not result.usable
        assert VectorSlot.HYBRID in result.failures
        assert result.slots[VectorSlot.SEMANTIC].ok

    def test_missing_context_still_embeds_style(self, fake_provider, test_config, sample_image_bytes):
        result = _generate(fake_provider, test_config, sample_image_bytes, GenerationContext())

        assert set(result.succeeded) == {VectorSlot.VISUAL, VectorSlot.STYLE, VectorSlot.HYBRID}
        assert result.failures[VectorSlot.SEMANTIC].context["cause"] == "no_context"
        assert result.failures[VectorSlot.COLOR].context["cause"] == "no_context"
        assert sorted(fake_provider.calls) == ["image", "multimodal"]

        expected = mean_normalized([
            result.slots[VectorSlot.VISUAL].vector,
            result.slots[VectorSlot.STYLE].vector,
        ])
        np.testing.assert_allclose(result.slots[VectorSlot.HYBRID].vector, expected, rtol=1e-6)


class TestInputValidation:
    """Test image loading errors."""

    def test_missing_image_raises(self, fake_provider, test_config, tmp_path):
        with pytest.raises(ImageProcessingError):
            _generate(fake_provider, test_config, tmp_path / "missing.jpg")

    def test_oversized_image_raises(self, fake_provider, test_config):
        test_config.provider.max_image_mb = 0.001
        with pytest.raises(ImageProcessingError):
            _generate(fake_provider, test_config, b"x" * 2048)

    def test_expected_dimensions(self, fake_provider, test_config):
        generator = MultiVectorGenerator(fake_provider, test_config.provider)
        dims = generator.expected_dimensions
        assert dims[VectorSlot.HYBRID] == 8
        assert dims[VectorSlot.COLOR] == 4
