"""Pytest fixtures and configuration for StyleMatch tests."""

import asyncio
import hashlib
import io
from typing import Iterable, Optional

import numpy as np
import pytest
from PIL import Image

from stylematch.database.memory_store import InMemoryRecordStore
from stylematch.database.models import MediaEmbeddingRecord, QueryVectorSet
from stylematch.domain.entities.media_item import ImageAnalysis
from stylematch.domain.interfaces.provider_interface import EmbeddingProvider, ImageAnalyzer
from stylematch.utils.config import AppConfig, ContextConfig, DatabaseConfig, ProviderConfig, SearchConfig
from stylematch.utils.exceptions import EmbeddingProviderError

IMAGE_DIM = 8
TEXT_DIM = 4


def _seeded_vector(key: bytes, dim: int) -> np.ndarray:
    """Deterministic unit vector derived from ``key``."""
    seed = int.from_bytes(hashlib.sha256(key).digest()[:8], "little")
    vec = np.random.default_rng(seed).standard_normal(dim)
    return (vec / np.linalg.norm(vec)).astype(np.float32)


def unit(dim: int, index: int) -> np.ndarray:
    """Basis vector ``e_index`` of length ``dim``."""
    vec = np.zeros(dim, dtype=np.float32)
    vec[index] = 1.0
    return vec


class FakeEmbeddingProvider(EmbeddingProvider):
    """In-process provider returning deterministic vectors.

    Calls listed in ``fail`` raise a retriable provider error, calls listed
    in ``hang`` sleep past any reasonable timeout, and calls listed in
    ``wrong_dimension`` return a vector one element too long.
    """

    def __init__(
        self,
        image_dim: int = IMAGE_DIM,
        text_dim: int = TEXT_DIM,
        fail: Iterable[str] = (),
        hang: Iterable[str] = (),
        wrong_dimension: Iterable[str] = (),
    ):
        self._image_dim = image_dim
        self._text_dim = text_dim
        self.fail = set(fail)
        self.hang = set(hang)
        self.wrong_dimension = set(wrong_dimension)
        self.calls = []
        self.closed = False

    @property
    def image_dimension(self) -> int:
        return self._image_dim

    @property
    def text_dimension(self) -> int:
        return self._text_dim

    async def _respond(self, kind: str, key: bytes, dim: int) -> np.ndarray:
        self.calls.append(kind)
        if kind in self.hang:
            await asyncio.sleep(10)
        if kind in self.fail:
            raise EmbeddingProviderError(f"{kind} unavailable", status_code=503)
        if kind in self.wrong_dimension:
            dim += 1
        return _seeded_vector(key, dim)

    async def embed_image(self, image_bytes: bytes) -> np.ndarray:
        return await self._respond("image", image_bytes, self._image_dim)

    async def embed_text(self, text: str) -> np.ndarray:
        return await self._respond("text", text.encode("utf-8"), self._text_dim)

    async def embed_multimodal(self, image_bytes: bytes, text: str) -> np.ndarray:
        return await self._respond("multimodal", image_bytes + text.encode("utf-8"), self._image_dim)

    async def close(self) -> None:
        self.closed = True


class FakeImageAnalyzer(ImageAnalyzer):
    """Analyzer returning a fixed analysis, or raising when ``error`` is set."""

    def __init__(self, analysis: Optional[ImageAnalysis] = None, error: Optional[Exception] = None):
        self.analysis = analysis or ImageAnalysis()
        self.error = error

    async def analyze(self, image_bytes: bytes) -> ImageAnalysis:
        if self.error is not None:
            raise self.error
        return ImageAnalysis(
            tags=list(self.analysis.tags),
            description=self.analysis.description,
            dominant_colors=list(self.analysis.dominant_colors),
        )


@pytest.fixture
def test_config() -> AppConfig:
    """Provide test-specific configuration with the in-memory store."""
    return AppConfig(
        provider=ProviderConfig(
            project_id="test-project",
            access_token="test-token",
            slot_timeout_seconds=0.5,
            retry_base_delay=0.0,
        ),
        context=ContextConfig(),
        search=SearchConfig(default_max_results=10, scan_batch_size=4),
        database=DatabaseConfig(backend="memory"),
        log_level="DEBUG",
    )


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def sample_image() -> Image.Image:
    """Create a sample RGB image for testing."""
    return Image.new("RGB", (64, 64), color=(200, 30, 30))


@pytest.fixture
def sample_image_bytes(sample_image) -> bytes:
    """PNG-encoded sample image."""
    buffer = io.BytesIO()
    sample_image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def two_tone_image_bytes() -> bytes:
    """PNG with a black left half and a gold right half."""
    img = Image.new("RGB", (64, 64), color=(0, 0, 0))
    img.paste((212, 175, 55), (32, 0, 64, 64))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_record():
    """Factory for MediaEmbeddingRecords with sensible ids."""

    def _make(media_id: str = "media-1", provider_id: str = "provider-1", **kwargs) -> MediaEmbeddingRecord:
        kwargs.setdefault("service_id", f"service-{media_id}")
        return MediaEmbeddingRecord(media_id=media_id, provider_id=provider_id, **kwargs)

    return _make


@pytest.fixture
def full_vectors() -> dict:
    """One vector per slot, image space of IMAGE_DIM and text space of TEXT_DIM."""
    visual = _seeded_vector(b"visual", IMAGE_DIM)
    style = _seeded_vector(b"style", IMAGE_DIM)
    hybrid = (visual.astype(np.float64) + style) / 2
    hybrid = (hybrid / np.linalg.norm(hybrid)).astype(np.float32)
    return {
        "visual": visual,
        "style": style,
        "semantic": _seeded_vector(b"semantic", TEXT_DIM),
        "color": _seeded_vector(b"color", TEXT_DIM),
        "hybrid": hybrid,
    }


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def query_from():
    """Build a QueryVectorSet from a slot -> vector dict."""

    def _query(vectors: dict) -> QueryVectorSet:
        return QueryVectorSet(**vectors)

    return _query


@pytest.fixture
def provider_factory():
    """The FakeEmbeddingProvider class, for tests that configure failures."""
    return FakeEmbeddingProvider


@pytest.fixture
def analyzer_factory():
    return FakeImageAnalyzer


@pytest.fixture
def basis():
    """Basis vector factory: ``basis(dim, index)``."""
    return unit
