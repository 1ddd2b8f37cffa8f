"""Database module for multi-vector record storage and retrieval."""

from typing import Dict, Optional

from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.config import DatabaseConfig

from .models import (
    AnalysisResult,
    IndexOutcome,
    MatchCandidate,
    MatchResponse,
    MediaEmbeddingRecord,
    QueryVectorSet,
    SlotResult,
)
from .memory_store import InMemoryRecordStore
from .vector_store import ChromaRecordStore


def create_record_store(
    config: DatabaseConfig,
    dimensions: Optional[Dict[VectorSlot, int]] = None,
):
    """Build the record store selected by ``config.backend``."""
    if config.backend == "chroma":
        return ChromaRecordStore(config, dimensions=dimensions)
    return InMemoryRecordStore(dimensions=dimensions)


__all__ = [
    # Models
    "AnalysisResult",
    "IndexOutcome",
    "MatchCandidate",
    "MatchResponse",
    "MediaEmbeddingRecord",
    "QueryVectorSet",
    "SlotResult",
    # Stores
    "InMemoryRecordStore",
    "ChromaRecordStore",
    "create_record_store",
]
