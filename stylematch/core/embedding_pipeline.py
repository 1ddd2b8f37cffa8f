"""End-to-end indexing pipeline for service media.

This module orchestrates the flow from a JSON-lines manifest of media items
to the record store: manifest entries → multi-vector generation → store.
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field
from tqdm import tqdm

from stylematch.database import create_record_store
from stylematch.domain.entities.media_item import MediaItem
from stylematch.domain.interfaces.provider_interface import EmbeddingProvider, ImageAnalyzer
from stylematch.domain.interfaces.repository_interface import VectorRecordStore
from stylematch.utils import get_logger, load_config, log_exception, log_execution_time, set_log_level
from stylematch.utils.config import AppConfig
from stylematch.utils.performance import get_performance_monitor

from .multi_vector import MultiVectorGenerator
from .use_cases.index_media import STATUS_INDEXED, STATUS_PARTIAL, IndexMediaUseCase

logger = get_logger(__name__)

DEFAULT_RATE_LIMIT_DELAY = 0.5


class PipelineStats(BaseModel):
    """Statistics container for pipeline processing results."""

    total_items: int = Field(..., ge=0, description="Manifest entries discovered")
    processed_items: int = Field(0, ge=0, description="Indexed with every slot")
    partial_items: int = Field(0, ge=0, description="Indexed with some slots missing")
    unusable_items: int = Field(0, ge=0, description="No visual or style vector, not stored")
    failed_items: int = Field(0, ge=0, description="Errors during processing")
    failed_ids: list[str] = Field(default_factory=list, description="IDs of failed items")
    duration_seconds: float = Field(0.0, ge=0.0, description="Total processing time")


class IndexingPipeline:
    """Stateful orchestrator for manifest indexing."""

    def __init__(
        self,
        config: AppConfig,
        provider: Optional[EmbeddingProvider] = None,
        store: Optional[VectorRecordStore] = None,
        analyzer: Optional[ImageAnalyzer] = None,
    ):
        """Initialize pipeline with a provider and a record store.

        Args:
            config: Application configuration
            provider: Embedding provider (Vertex AI when None)
            store: Record store (built from config.database when None)
            analyzer: Optional tag/color detector
        """
        logger.info("Initializing IndexingPipeline")
        self.config = config

        if provider is None:
            from stylematch.infrastructure.providers import VertexEmbeddingProvider

            provider = VertexEmbeddingProvider(config.provider)
        self.provider = provider

        self.generator = MultiVectorGenerator(provider, config.provider, config.context)
        self.store = store or create_record_store(
            config.database, dimensions=self.generator.expected_dimensions
        )
        self.use_case = IndexMediaUseCase(self.generator, self.store, analyzer=analyzer)

        logger.info(f"Pipeline initialized: store count={self.store.count()}")

    @staticmethod
    def load_manifest(manifest_path: Path) -> Tuple[List[MediaItem], List[str]]:
        """Read a JSON-lines manifest.

        Relative image paths resolve against the manifest's directory.
        Blank lines are ignored.

        Args:
            manifest_path: Path to the .jsonl manifest

        Returns:
            Tuple of (valid items, identifiers of invalid entries)

        Raises:
            FileNotFoundError: If the manifest doesn't exist
        """
        manifest_path = Path(manifest_path)
        if not manifest_path.exists():
            raise FileNotFoundError(f"Manifest not found: {manifest_path}")

        items: List[MediaItem] = []
        invalid: List[str] = []
        with open(manifest_path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                    items.append(MediaItem.from_dict(data, base_dir=manifest_path.parent))
                except (ValueError, TypeError, AttributeError) as e:
                    entry_id = f"line {line_no}"
                    logger.warning(f"Skipping invalid manifest entry at {entry_id}: {e}")
                    invalid.append(entry_id)

        logger.info(f"Loaded {len(items)} items from {manifest_path} ({len(invalid)} invalid)")
        return items, invalid

    async def process_items(
        self,
        items: Sequence[MediaItem],
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
    ) -> PipelineStats:
        """Index items one after the other.

        Args:
            items: Media items to (re)index
            rate_limit_delay: Pause between items in seconds

        Returns:
            PipelineStats with per-status counts
        """
        start_time = time.time()
        stats = PipelineStats(total_items=len(items))
        monitor = get_performance_monitor()

        for index, item in enumerate(tqdm(items, desc="Indexing media", unit="item")):
            try:
                with monitor.measure("index_item", items_count=1):
                    outcome = await self.use_case.execute(item)
            except Exception as e:
                log_exception(logger, f"index {item.media_id}", e)
                stats.failed_items += 1
                stats.failed_ids.append(item.media_id)
            else:
                if outcome.status == STATUS_INDEXED:
                    stats.processed_items += 1
                elif outcome.status == STATUS_PARTIAL:
                    stats.partial_items += 1
                else:
                    stats.unusable_items += 1

            if rate_limit_delay > 0 and index < len(items) - 1:
                await asyncio.sleep(rate_limit_delay)

        stats.duration_seconds = time.time() - start_time
        logger.info(
            f"Indexing complete: {stats.processed_items} indexed, {stats.partial_items} partial, "
            f"{stats.unusable_items} unusable, {stats.failed_items} failed "
            f"in {stats.duration_seconds:.2f}s"
        )
        return stats

    def process_manifest(
        self,
        manifest_path: Path,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
    ) -> PipelineStats:
        """Index every entry of a manifest.

        Invalid manifest entries are reported as failures.
        """
        items, invalid = self.load_manifest(manifest_path)

        with log_execution_time(logger, "manifest indexing"):
            stats = asyncio.run(self._run(items, rate_limit_delay))

        stats.total_items += len(invalid)
        stats.failed_items += len(invalid)
        stats.failed_ids.extend(invalid)
        return stats

    async def _run(self, items: Sequence[MediaItem], rate_limit_delay: float) -> PipelineStats:
        try:
            return await self.process_items(items, rate_limit_delay)
        finally:
            await self.provider.close()


def _print_stats_table(stats: PipelineStats) -> None:
    """Print formatted statistics table.

    Args:
        stats: Result of a pipeline run
    """
    print("\n" + "=" * 80)
    print("INDEXING PIPELINE RESULTS")
    print("=" * 80)
    print(f"  Total items:      {stats.total_items}")
    print(f"  Indexed:          {stats.processed_items}")
    print(f"  Partial:          {stats.partial_items}")
    print(f"  Unusable:         {stats.unusable_items}")
    print(f"  Failed:           {stats.failed_items}")
    print(f"  Duration:         {stats.duration_seconds:.2f}s")
    if stats.failed_ids:
        print(f"  Failed IDs:       {', '.join(stats.failed_ids[:10])}")
        if len(stats.failed_ids) > 10:
            print(f"                    ... and {len(stats.failed_ids) - 10} more")
    print("=" * 80 + "\n")


def main() -> None:
    """CLI entry point for the indexing pipeline."""
    parser = argparse.ArgumentParser(
        description="Generate multi-vector embeddings for service media and store them"
    )

    parser.add_argument(
        "--manifest",
        type=Path,
        required=True,
        help="JSON-lines file with one media item per line"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: STYLEMATCH_CONFIG or config/config.yaml)"
    )

    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_RATE_LIMIT_DELAY,
        help=f"Pause between items in seconds (default: {DEFAULT_RATE_LIMIT_DELAY})"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Clear the record store before processing (DANGEROUS)"
    )

    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable performance profiling and print detailed metrics"
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
        set_log_level(logger, config.log_level)
        pipeline = IndexingPipeline(config)

        if args.profile:
            monitor = get_performance_monitor()
            monitor.enable()
            logger.info("Performance profiling enabled")

        if args.force:
            response = input(
                "WARNING: This will delete ALL stored records. "
                "Type 'yes' to confirm: "
            )
            if response.lower() == "yes":
                logger.warning("Clearing record store")
                pipeline.store.clear()
                logger.info("Record store cleared")
            else:
                logger.info("Clear cancelled")
                return

        stats = pipeline.process_manifest(args.manifest, rate_limit_delay=args.delay)
        _print_stats_table(stats)

        if args.profile:
            get_performance_monitor().print_report()

        sys.exit(1 if stats.failed_items > 0 else 0)

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        sys.exit(1)

    except Exception as e:
        log_exception(logger, "pipeline execution", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
