"""
Vertex AI multimodal embedding provider.

Calls the ``multimodalembedding`` predict endpoint over REST with aiohttp.
Image and multimodal requests return ``imageEmbedding``; text requests
return ``textEmbedding``. Rate-limit and transient server errors are
retried with exponential backoff. Each attempt has its own timeout, shorter
than the slot budget, so a timed-out attempt can still be retried.
"""

import asyncio
import base64
import os
from typing import Any, Dict, List, Optional

import aiohttp
import numpy as np

from stylematch.domain.interfaces.provider_interface import EmbeddingProvider
from stylematch.utils.config import ProviderConfig
from stylematch.utils.exceptions import (
    EmbeddingProviderError,
    ImageProcessingError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from stylematch.utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_ENV_VAR = "STYLEMATCH_VERTEX_TOKEN"
ENDPOINT_TEMPLATE = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)


class VertexEmbeddingProvider(EmbeddingProvider):
    """
    Embedding provider backed by Vertex AI ``multimodalembedding@001``.

    Attributes:
        config: Provider configuration (project, region, dimensions, retries).
        endpoint: Fully-qualified predict URL.

    Example:
        >>> async with VertexEmbeddingProvider(config.provider) as provider:
        ...     vector = await provider.embed_image(image_bytes)
        >>> vector.shape
        (1408,)
    """

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the provider.

        Args:
            config: Provider configuration. ``project_id`` is required.
            session: Optional shared aiohttp session. When omitted, one is
                created lazily and closed by ``close()``.

        Raises:
            EmbeddingProviderError: If no project id is configured.
        """
        self.config = config or ProviderConfig()
        if not self.config.project_id:
            raise EmbeddingProviderError("Vertex AI project_id is not configured", code="PROVIDER_CONFIG")

        self.endpoint = ENDPOINT_TEMPLATE.format(
            location=self.config.location,
            project=self.config.project_id,
            model=self.config.model,
        )
        self._session = session
        self._owns_session = session is None

        logger.info(
            f"VertexEmbeddingProvider ready: model={self.config.model}, "
            f"image_dim={self.image_dimension}, text_dim={self.text_dimension}"
        )

    @property
    def image_dimension(self) -> int:
        return self.config.image_dimension

    @property
    def text_dimension(self) -> int:
        return self.config.text_dimension

    async def __aenter__(self) -> "VertexEmbeddingProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the aiohttp session if this provider created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed Vertex AI session")
        if self._owns_session:
            self._session = None

    # ============================================================================
    # Embedding calls
    # ============================================================================

    async def embed_image(self, image_bytes: bytes) -> np.ndarray:
        instance = {"image": {"bytesBase64Encoded": self._encode_image(image_bytes)}}
        return await self._predict(instance, self.image_dimension, "imageEmbedding")

    async def embed_text(self, text: str) -> np.ndarray:
        if not text or not text.strip():
            raise EmbeddingProviderError("Cannot embed empty text", code="PROVIDER_INPUT")
        return await self._predict({"text": text}, self.text_dimension, "textEmbedding")

    async def embed_multimodal(self, image_bytes: bytes, text: str) -> np.ndarray:
        instance: Dict[str, Any] = {"image": {"bytesBase64Encoded": self._encode_image(image_bytes)}}
        if text and text.strip():
            instance["text"] = text
        return await self._predict(instance, self.image_dimension, "imageEmbedding")

    # ============================================================================
    # Transport
    # ============================================================================

    def _encode_image(self, image_bytes: bytes) -> str:
        if not image_bytes:
            raise ImageProcessingError("Image is empty")
        limit = int(self.config.max_image_mb * 1024 * 1024)
        if len(image_bytes) > limit:
            raise ImageProcessingError(
                f"Image is {len(image_bytes) / (1024 * 1024):.1f}MB, "
                f"limit is {self.config.max_image_mb:g}MB"
            )
        return base64.b64encode(image_bytes).decode("ascii")

    def _token(self) -> str:
        token = self.config.access_token or os.environ.get(TOKEN_ENV_VAR)
        if not token:
            raise EmbeddingProviderError(
                f"No Vertex AI access token (set provider.access_token or {TOKEN_ENV_VAR})",
                code="PROVIDER_AUTH",
            )
        return token

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def _predict(self, instance: Dict[str, Any], dimension: int, field: str) -> np.ndarray:
        """POST one instance, retrying retriable failures with backoff."""
        body = {"instances": [instance], "parameters": {"dimension": dimension}}
        attempts = self.config.max_retries

        for attempt in range(1, attempts + 1):
            try:
                payload = await self._post(body)
                return self._parse(payload, field)
            except EmbeddingProviderError as e:
                if not e.retriable or attempt == attempts:
                    raise
                delay = self.config.retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Vertex AI {field} request failed (attempt {attempt}/{attempts}), "
                    f"retrying in {delay:.1f}s: {e.message}"
                )
                await asyncio.sleep(delay)

        raise EmbeddingProviderError("Vertex AI request was not attempted")

    async def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Content-Type": "application/json; charset=utf-8",
        }
        session = self._get_session()
        try:
            async with session.post(
                self.endpoint,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            ) as response:
                if response.status != 200:
                    detail = (await response.text())[:500]
                    raise EmbeddingProviderError(
                        f"Vertex AI returned HTTP {response.status}: {detail}",
                        status_code=response.status,
                    )
                try:
                    return await response.json()
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise ProviderResponseError(f"Vertex AI response is not JSON: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Vertex AI request timed out after {self.config.request_timeout:.1f}s",
                timeout=self.config.request_timeout,
            ) from e
        except aiohttp.ClientError as e:
            raise EmbeddingProviderError(f"Vertex AI request failed: {e}") from e

    @staticmethod
    def _parse(payload: Dict[str, Any], field: str) -> np.ndarray:
        predictions: List[Dict[str, Any]] = payload.get("predictions") or []
        if not predictions:
            raise ProviderResponseError("Vertex AI response has no predictions")

        values = predictions[0].get(field)
        if not values:
            raise ProviderResponseError(f"Vertex AI response has no {field}")

        try:
            return np.asarray(values, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise ProviderResponseError(f"Vertex AI {field} is not numeric: {e}") from e
