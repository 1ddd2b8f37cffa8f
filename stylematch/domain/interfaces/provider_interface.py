"""
Abstract interfaces for the embedding provider and the image analyzer.
"""

from abc import ABC, abstractmethod

import numpy as np

from stylematch.domain.entities.media_item import ImageAnalysis


class EmbeddingProvider(ABC):
    """
    Abstract base class for multimodal embedding providers.

    Image and multimodal embeddings live in one space of
    ``image_dimension``; text embeddings live in a space of
    ``text_dimension``. Implementations raise ``EmbeddingProviderError``
    (or a subclass) on failure and never return padded or synthesized
    vectors.
    """

    @abstractmethod
    async def embed_image(self, image_bytes: bytes) -> np.ndarray:
        """
        Embed an image.

        Args:
            image_bytes: Encoded image.

        Returns:
            1-D float32 vector of length ``image_dimension``.
        """
        pass

    @abstractmethod
    async def embed_text(self, text: str) -> np.ndarray:
        """
        Embed a text.

        Args:
            text: Input text, at most the provider's text limit.

        Returns:
            1-D float32 vector of length ``text_dimension``.
        """
        pass

    @abstractmethod
    async def embed_multimodal(self, image_bytes: bytes, text: str) -> np.ndarray:
        """
        Embed an image conditioned on a context text.

        Returns:
            1-D float32 vector of length ``image_dimension``.
        """
        pass

    @property
    @abstractmethod
    def image_dimension(self) -> int:
        """Return the image/multimodal embedding dimension."""
        pass

    @property
    @abstractmethod
    def text_dimension(self) -> int:
        """Return the text embedding dimension."""
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None


class ImageAnalyzer(ABC):
    """Detects tags, a description and dominant colors in an image."""

    @abstractmethod
    async def analyze(self, image_bytes: bytes) -> ImageAnalysis:
        """
        Analyze an image.

        Args:
            image_bytes: Encoded image.

        Returns:
            ImageAnalysis with tags in detection order.
        """
        pass
