"""
Multi-vector generation for one image.

Produces up to five vectors per image:

- visual: provider image embedding of the raw image
- style: provider multimodal embedding of the image plus the style context
- semantic: provider text embedding of title, description, category and tags
- color: provider text embedding of the color/mood description
- hybrid: L2-normalized mean of visual and style, computed locally

The four provider calls run concurrently, each under its own timeout. A
failing slot is recorded in its SlotResult and never cancels the others.
The style call is always made, with the bare image when there is no
context; the text slots are skipped when their text is empty.
Failed slots stay absent: vectors are never padded, truncated or
synthesized.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import numpy as np

from stylematch.database.models import MediaEmbeddingRecord, QueryVectorSet, SlotResult
from stylematch.domain.entities.embedding import SOURCE_SLOTS, VectorSlot
from stylematch.domain.interfaces.provider_interface import EmbeddingProvider
from stylematch.utils.config import ContextConfig, ProviderConfig
from stylematch.utils.exceptions import AppException, SlotGenerationError
from stylematch.utils.image_utils import ImageRef, load_image_bytes
from stylematch.utils.logger import get_logger

from .context_fusion import ContextFusionBuilder, FusedContext
from .scoring.similarity import is_valid_vector, mean_normalized

logger = get_logger(__name__)

PROVIDER_SLOTS = (VectorSlot.VISUAL, VectorSlot.STYLE, VectorSlot.SEMANTIC, VectorSlot.COLOR)


@dataclass
class GenerationContext:
    """Descriptive inputs for one image."""

    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    category: Optional[str] = None
    title: Optional[str] = None
    dominant_colors: List[str] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Per-slot outcome of one generation run."""

    slots: Dict[VectorSlot, SlotResult]
    context: FusedContext

    @property
    def usable(self) -> bool:
        """True when visual or style succeeded."""
        return any(self.slots[slot].ok for slot in SOURCE_SLOTS if slot in self.slots)

    @property
    def failures(self) -> Dict[VectorSlot, SlotGenerationError]:
        return {
            slot: result.error
            for slot, result in self.slots.items()
            if result.error is not None
        }

    @property
    def succeeded(self) -> List[VectorSlot]:
        return [slot for slot, result in self.slots.items() if result.ok]

    def vectors(self) -> Dict[str, np.ndarray]:
        """Successful vectors keyed by slot name."""
        return {slot.value: result.vector for slot, result in self.slots.items() if result.ok}

    def to_query(self) -> QueryVectorSet:
        return QueryVectorSet(**self.vectors())

    def to_record(
        self,
        media_id: str,
        service_id: str,
        provider_id: str,
        tags: Sequence[str] = (),
        description: Optional[str] = None,
        category: Optional[str] = None,
        indexed_at: Optional[datetime] = None,
    ) -> MediaEmbeddingRecord:
        extra = {"indexed_at": indexed_at} if indexed_at is not None else {}
        return MediaEmbeddingRecord(
            media_id=media_id,
            service_id=service_id,
            provider_id=provider_id,
            tags=list(tags),
            description=description,
            category=category,
            **extra,
            **self.vectors(),
        )


class MultiVectorGenerator:
    """
    Generates the five slot vectors for an image through an EmbeddingProvider.

    Example:
        >>> generator = MultiVectorGenerator(provider, config.provider, config.context)
        >>> result = await generator.generate(image_bytes, GenerationContext(tags=["curly"]))
        >>> result.usable
        True
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        provider_config: Optional[ProviderConfig] = None,
        context_config: Optional[ContextConfig] = None,
    ):
        """
        Args:
            provider: Embedding provider used for the four remote slots.
            provider_config: Timeouts and image limits.
            context_config: Context fusion limits.
        """
        self.provider = provider
        self.provider_config = provider_config or ProviderConfig()
        self.context_builder = ContextFusionBuilder(context_config)

    @property
    def expected_dimensions(self) -> Dict[VectorSlot, int]:
        image_dim = self.provider.image_dimension
        text_dim = self.provider.text_dimension
        return {
            slot: image_dim if slot.is_image_space else text_dim
            for slot in VectorSlot
        }

    async def generate(
        self,
        image: ImageRef,
        context: Optional[GenerationContext] = None,
    ) -> GenerationResult:
        """
        Generate all slot vectors for one image.

        Args:
            image: Raw bytes, path or PIL image.
            context: Tags, description, category, title and colors.

        Returns:
            GenerationResult with one SlotResult per slot.

        Raises:
            ImageProcessingError: If the image cannot be loaded or exceeds
                the size limit, since no slot could succeed.
        """
        context = context or GenerationContext()
        image_bytes = load_image_bytes(image, self.provider_config.max_image_mb)
        fused = self.context_builder.build(
            context.category,
            context.tags,
            description=context.description,
            dominant_colors=context.dominant_colors,
            title=context.title,
        )

        calls: Dict[VectorSlot, Optional[Callable[[], Awaitable[np.ndarray]]]] = {
            VectorSlot.VISUAL: lambda: self.provider.embed_image(image_bytes),
            VectorSlot.STYLE: lambda: self.provider.embed_multimodal(image_bytes, fused.style_text),
            VectorSlot.SEMANTIC: (
                (lambda: self.provider.embed_text(fused.semantic_text))
                if fused.semantic_text else None
            ),
            VectorSlot.COLOR: (
                (lambda: self.provider.embed_text(fused.color_text))
                if fused.color_text else None
            ),
        }

        results = await asyncio.gather(*(self._run_slot(slot, calls[slot]) for slot in PROVIDER_SLOTS))
        slots: Dict[VectorSlot, SlotResult] = {result.slot: result for result in results}
        slots[VectorSlot.HYBRID] = self._derive_hybrid(slots)

        for slot, error in GenerationResult(slots, fused).failures.items():
            logger.warning(f"Slot {slot.value} failed: {error.message}")

        ok = [slot.value for slot, result in slots.items() if result.ok]
        logger.debug(f"Generated slots: {', '.join(ok) or 'none'}")
        return GenerationResult(slots=slots, context=fused)

    async def _run_slot(
        self,
        slot: VectorSlot,
        call: Optional[Callable[[], Awaitable[np.ndarray]]],
    ) -> SlotResult:
        if call is None:
            return SlotResult(
                slot=slot,
                error=SlotGenerationError(
                    f"no {slot.value} context", slot=slot.value, cause="no_context"
                ),
            )

        timeout = self.provider_config.slot_timeout_seconds
        start = time.perf_counter()
        try:
            raw = await asyncio.wait_for(call(), timeout=timeout)
            vector = self._validate(slot, raw)
        except asyncio.TimeoutError:
            error = SlotGenerationError(
                f"{slot.value} embedding timed out after {timeout:g}s",
                slot=slot.value,
                cause="timeout",
            )
        except SlotGenerationError as e:
            error = e
        except AppException as e:
            error = SlotGenerationError(
                f"{slot.value} embedding failed: {e.message}",
                slot=slot.value,
                cause=e.code,
                context={"slot": slot.value, "cause": e.code, **e.context},
            )
        except Exception as e:
            error = SlotGenerationError(
                f"{slot.value} embedding failed: {e}",
                slot=slot.value,
                cause=type(e).__name__,
            )
        else:
            return SlotResult(slot=slot, vector=vector, elapsed_seconds=time.perf_counter() - start)

        return SlotResult(slot=slot, error=error, elapsed_seconds=time.perf_counter() - start)

    def _validate(self, slot: VectorSlot, raw) -> np.ndarray:
        """Check a provider vector's shape and content; never reshape it."""
        if raw is None:
            raise SlotGenerationError(f"{slot.value} embedding missing", slot=slot.value, cause="empty")

        vector = np.asarray(raw, dtype=np.float32)
        expected = self.expected_dimensions[slot]
        if vector.shape != (expected,):
            raise SlotGenerationError(
                f"{slot.value} embedding has shape {vector.shape}, expected ({expected},)",
                slot=slot.value,
                cause="dimension",
            )
        if not is_valid_vector(vector):
            raise SlotGenerationError(
                f"{slot.value} embedding contains non-finite values",
                slot=slot.value,
                cause="non_finite",
            )
        if not np.any(vector):
            raise SlotGenerationError(
                f"{slot.value} embedding is a zero vector",
                slot=slot.value,
                cause="zero_norm",
            )
        return vector

    @staticmethod
    def _derive_hybrid(slots: Dict[VectorSlot, SlotResult]) -> SlotResult:
        sources = [slots[slot].vector for slot in SOURCE_SLOTS if slots[slot].ok]
        hybrid = mean_normalized(sources) if sources else None
        if hybrid is None:
            return SlotResult(
                slot=VectorSlot.HYBRID,
                error=SlotGenerationError(
                    "hybrid needs a visual or style vector",
                    slot=VectorSlot.HYBRID.value,
                    cause="no_source",
                ),
            )
        return SlotResult(slot=VectorSlot.HYBRID, vector=hybrid)
