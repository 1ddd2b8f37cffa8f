# Index Media Use Case
"""
Use case for indexing one service media item.

Generates all slot vectors for the item's image and replaces its stored
record in a single write.
"""
import logging
from typing import Optional

from stylematch.core.context_fusion import dedupe_tags
from stylematch.core.multi_vector import GenerationContext, MultiVectorGenerator
from stylematch.database.models import IndexOutcome
from stylematch.domain.entities.media_item import MediaItem
from stylematch.domain.interfaces.provider_interface import ImageAnalyzer
from stylematch.domain.interfaces.repository_interface import VectorRecordStore
from stylematch.utils.image_utils import load_image_bytes

from .analyze_inspiration import describe_image

logger = logging.getLogger(__name__)

STATUS_INDEXED = "indexed"
STATUS_PARTIAL = "partial"
STATUS_UNUSABLE = "unusable"


class IndexMediaUseCase:
    """
    Use case for (re)processing a media item into a stored record.

    An item whose visual and style vectors both fail is unusable: its
    previous record is removed so it drops out of matching until it is
    processed again.
    """

    def __init__(
        self,
        generator: MultiVectorGenerator,
        store: VectorRecordStore,
        analyzer: Optional[ImageAnalyzer] = None,
    ):
        """
        Initialize the use case.

        Args:
            generator: Multi-vector generator bound to an embedding provider.
            store: Record store receiving the result.
            analyzer: Optional tag/color detector run before generation.
        """
        self.generator = generator
        self.store = store
        self.analyzer = analyzer

    async def execute(self, item: MediaItem) -> IndexOutcome:
        """
        Index one media item.

        Args:
            item: The media item with its image and descriptive fields.

        Returns:
            IndexOutcome with status indexed, partial or unusable.

        Raises:
            ImageProcessingError: If the image cannot be loaded or is too large.
            VectorStoreError: If the store write fails.
        """
        image_bytes = load_image_bytes(item.image, self.generator.provider_config.max_image_mb)

        tags = dedupe_tags(item.tags)
        description = item.description
        colors = list(item.dominant_colors)
        if self.analyzer is not None or not colors:
            analysis = await describe_image(image_bytes, self.analyzer)
            tags = dedupe_tags(tags + analysis.tags)
            description = description or analysis.description
            colors = colors or analysis.dominant_colors

        result = await self.generator.generate(
            image_bytes,
            GenerationContext(
                tags=tags,
                description=description,
                category=item.category,
                title=item.title,
                dominant_colors=colors,
            ),
        )

        record = result.to_record(
            media_id=item.media_id,
            service_id=item.service_id,
            provider_id=item.provider_id,
            tags=tags,
            description=description,
            category=item.category,
        )
        stored = self.store.put(record)

        failures = {slot: error.message for slot, error in result.failures.items()}
        if not stored:
            status = STATUS_UNUSABLE
        elif failures:
            status = STATUS_PARTIAL
        else:
            status = STATUS_INDEXED

        logger.info(f"Indexed {item.media_id}: {status} ({len(record.present_slots)} slots)")
        return IndexOutcome(
            media_id=item.media_id,
            status=status,
            stored_slots=record.present_slots if stored else [],
            failures=failures,
        )
