# Analyze Inspiration Use Case
"""
Use case for analyzing a client's inspiration image.

Detects tags and colors, then generates the query vector set used by
MatchInspirationUseCase.
"""
import logging
from typing import Optional

from stylematch.core.context_fusion import dedupe_tags
from stylematch.core.multi_vector import GenerationContext, MultiVectorGenerator
from stylematch.database.models import AnalysisResult
from stylematch.domain.entities.media_item import ImageAnalysis
from stylematch.domain.interfaces.provider_interface import ImageAnalyzer
from stylematch.utils.config import ContextConfig
from stylematch.utils.exceptions import ImageProcessingError, TotalAnalysisFailure
from stylematch.utils.image_utils import ImageRef, extract_dominant_colors, load_image_bytes

logger = logging.getLogger(__name__)


async def describe_image(image_bytes: bytes, analyzer: Optional[ImageAnalyzer] = None) -> ImageAnalysis:
    """
    Run the image analyzer, falling back to local color extraction.

    Without an analyzer, or when it fails, tags are empty and dominant
    colors come from Pillow. An analyzer result without colors is completed
    the same way.
    """
    analysis = ImageAnalysis()
    if analyzer is not None:
        try:
            analysis = await analyzer.analyze(image_bytes)
        except Exception as e:
            logger.warning(f"Image analyzer failed, using local color extraction: {e}")
            analysis = ImageAnalysis()

    if not analysis.dominant_colors:
        try:
            analysis.dominant_colors = extract_dominant_colors(image_bytes)
        except ImageProcessingError as e:
            logger.warning(f"Dominant color extraction failed: {e}")

    return analysis


class AnalyzeInspirationUseCase:
    """
    Use case for turning an uploaded image into a query vector set.

    This use case:
    1. Detects tags, description and dominant colors
    2. Merges the client's notes with the top detected tags
    3. Generates the multi-vector query set
    4. Fails loudly when neither visual nor style could be produced
    """

    def __init__(
        self,
        generator: MultiVectorGenerator,
        analyzer: Optional[ImageAnalyzer] = None,
        context_config: Optional[ContextConfig] = None,
    ):
        """
        Initialize the use case.

        Args:
            generator: Multi-vector generator bound to an embedding provider.
            analyzer: Optional tag/color detector.
            context_config: Limits for the tags merged into the context.
        """
        self.generator = generator
        self.analyzer = analyzer
        self.context_config = context_config or ContextConfig()

    async def execute(
        self,
        image: ImageRef,
        notes: Optional[str] = None,
        category: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Analyze an inspiration image.

        Args:
            image: Raw bytes, path or PIL image.
            notes: Free-text notes from the client.
            category: Optional service category hint.

        Returns:
            AnalysisResult with tags, colors, query vectors and slot failures.

        Raises:
            ImageProcessingError: If the image cannot be loaded or is too large.
            TotalAnalysisFailure: If both visual and style generation failed.
        """
        image_bytes = load_image_bytes(image, self.generator.provider_config.max_image_mb)
        analysis = await describe_image(image_bytes, self.analyzer)

        top_tags = dedupe_tags(analysis.tags, limit=self.context_config.analysis_top_tags)
        description = ". ".join(
            part.strip() for part in (notes, analysis.description) if part and part.strip()
        ) or None

        result = await self.generator.generate(
            image_bytes,
            GenerationContext(
                tags=top_tags,
                description=description,
                category=category,
                dominant_colors=analysis.dominant_colors,
            ),
        )

        if not result.usable:
            failed = [slot.value for slot in result.failures]
            logger.error(f"Analysis failed, no visual or style vector (failed slots: {failed})")
            raise TotalAnalysisFailure(failed_slots=failed)

        failures = {slot: error.message for slot, error in result.failures.items()}
        logger.info(
            f"Analyzed inspiration: {len(analysis.tags)} tags, "
            f"slots={[slot.value for slot in result.succeeded]}"
        )

        return AnalysisResult(
            tags=analysis.tags,
            description=analysis.description,
            dominant_colors=analysis.dominant_colors,
            query_vectors=result.to_query(),
            failures=failures,
        )
