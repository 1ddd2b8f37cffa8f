"""Pydantic data models for multi-vector records and match results.

This module defines type-safe models for media embedding records, query
vector sets, per-slot generation results and ranked match candidates, plus
the helpers that convert records to and from ChromaDB rows.
"""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stylematch.domain.entities.embedding import SOURCE_SLOTS, VectorSlot
from stylematch.utils.exceptions import SlotGenerationError


HYBRID_TOLERANCE = 1e-4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotVectors(BaseModel):
    """Five optional slot vectors shared by records and queries."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    visual: Optional[np.ndarray] = Field(default=None, description="Raw image embedding")
    style: Optional[np.ndarray] = Field(default=None, description="Image + style context embedding")
    semantic: Optional[np.ndarray] = Field(default=None, description="Text-only embedding")
    color: Optional[np.ndarray] = Field(default=None, description="Color/mood text embedding")
    hybrid: Optional[np.ndarray] = Field(default=None, description="Normalized mean of visual and style")

    @field_validator('visual', 'style', 'semantic', 'color', 'hybrid', mode='before')
    @classmethod
    def validate_vector(cls, v: Any) -> Optional[np.ndarray]:
        """Validate a vector is 1D, non-empty and finite; store it read-only float32."""
        if v is None:
            return v

        arr = np.array(v, dtype=np.float32)
        if arr.ndim != 1:
            raise ValueError(f"Embedding must be 1D, got shape {arr.shape}")
        if arr.size == 0:
            raise ValueError("Embedding must not be empty")
        if not np.all(np.isfinite(arr)):
            raise ValueError("Embedding contains NaN or infinite values")

        arr.setflags(write=False)
        return arr

    @model_validator(mode='after')
    def validate_hybrid(self) -> 'SlotVectors':
        """Hybrid must be the normalized mean of whichever of visual and style exist."""
        if self.hybrid is None:
            return self
        if not self.usable:
            raise ValueError("hybrid vector requires a visual or style vector")

        from stylematch.core.scoring.similarity import mean_normalized

        expected = mean_normalized(self.vector(slot) for slot in SOURCE_SLOTS)
        if expected is None:
            raise ValueError("hybrid vector has a zero-norm source")
        if self.hybrid.shape != expected.shape:
            raise ValueError(
                f"hybrid shape {self.hybrid.shape} does not match its sources {expected.shape}"
            )
        if not np.allclose(self.hybrid, expected, atol=HYBRID_TOLERANCE):
            raise ValueError("hybrid vector is not the normalized mean of visual and style")
        return self

    def vector(self, slot: VectorSlot) -> Optional[np.ndarray]:
        """Return the vector stored in ``slot``."""
        return getattr(self, VectorSlot(slot).value)

    def vectors(self) -> Dict[VectorSlot, np.ndarray]:
        """Return present vectors keyed by slot, in slot order."""
        return {slot: vec for slot in VectorSlot if (vec := self.vector(slot)) is not None}

    @property
    def present_slots(self) -> List[VectorSlot]:
        return list(self.vectors())

    @property
    def usable(self) -> bool:
        """True when visual or style is present."""
        return any(self.vector(slot) is not None for slot in SOURCE_SLOTS)

    @property
    def is_empty(self) -> bool:
        return not self.vectors()


class QueryVectorSet(SlotVectors):
    """Vectors generated for an uploaded inspiration image. Never persisted."""


class MediaEmbeddingRecord(SlotVectors):
    """Stored multi-vector record for one service media item."""

    media_id: str = Field(..., min_length=1, description="Media item identifier")
    service_id: str = Field(..., min_length=1, description="Owning service identifier")
    provider_id: str = Field(..., min_length=1, description="Owning provider identifier")
    tags: List[str] = Field(default_factory=list, description="Detected tags in detection order")
    description: Optional[str] = Field(default=None, description="Detected or written description")
    category: Optional[str] = Field(default=None, description="Service category")
    indexed_at: datetime = Field(default_factory=_utcnow, description="When the vectors were generated")

    @field_validator('indexed_at')
    @classmethod
    def validate_indexed_at(cls, v: datetime) -> datetime:
        """Store timestamps as timezone-aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class SlotResult(BaseModel):
    """Outcome of generating one vector slot."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    slot: VectorSlot
    vector: Optional[np.ndarray] = None
    error: Optional[SlotGenerationError] = None
    elapsed_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def ok(self) -> bool:
        return self.vector is not None and self.error is None


class MatchCandidate(BaseModel):
    """A scored media record."""

    media_id: str
    service_id: str
    provider_id: str
    distances: Dict[VectorSlot, float] = Field(default_factory=dict, description="Per comparable slot")
    coverage: int = Field(..., ge=0, le=len(VectorSlot), description="Number of comparable slots")
    weighted_distance: float = Field(..., ge=0.0, le=2.0)
    final_score: float = Field(..., ge=0.0, le=100.0)
    matching_tags: List[str] = Field(default_factory=list, description="Display only")
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    indexed_at: datetime = Field(default_factory=_utcnow)


class MatchResponse(BaseModel):
    """Ranked matches for one query."""

    matches: List[MatchCandidate] = Field(default_factory=list)
    total_matches: int = Field(default=0, ge=0, description="Qualifying candidates before truncation")
    search_mode: str = "balanced"
    deadline_exceeded: bool = False
    scanned: int = Field(default=0, ge=0, description="Records examined")


class AnalysisResult(BaseModel):
    """Tags, colors and query vectors produced for an inspiration upload."""

    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    dominant_colors: List[str] = Field(default_factory=list)
    query_vectors: QueryVectorSet
    failures: Dict[VectorSlot, str] = Field(default_factory=dict, description="Failed slot -> reason")

    @property
    def partial(self) -> bool:
        return bool(self.failures)


class IndexOutcome(BaseModel):
    """Result of indexing one media item."""

    media_id: str
    status: str = Field(..., description="indexed, partial or unusable")
    stored_slots: List[VectorSlot] = Field(default_factory=list)
    failures: Dict[VectorSlot, str] = Field(default_factory=dict)


# ============================================
# ChromaDB conversion helpers
# ============================================


def encode_vector(vec: np.ndarray) -> str:
    """Encode a float32 vector as base64 little-endian bytes."""
    return base64.b64encode(np.asarray(vec, dtype='<f4').tobytes()).decode('ascii')


def decode_vector(data: str) -> np.ndarray:
    """Decode a vector produced by ``encode_vector``."""
    return np.frombuffer(base64.b64decode(data), dtype='<f4').astype(np.float32)


def record_to_document(record: MediaEmbeddingRecord) -> str:
    """Serialize all slot vectors of a record into one JSON document."""
    return json.dumps({slot.value: encode_vector(vec) for slot, vec in record.vectors().items()})


def record_to_metadata(record: MediaEmbeddingRecord) -> dict:
    """Extract metadata dict for ChromaDB storage (excluding vectors).

    ChromaDB metadata values must be scalars, so tags are stored as JSON.
    """
    return {
        'service_id': record.service_id,
        'provider_id': record.provider_id,
        'tags': json.dumps(record.tags),
        'description': record.description or '',
        'category': record.category or '',
        'indexed_at': record.indexed_at.isoformat(),
    }


def record_from_chroma(media_id: str, document: str, metadata: dict) -> MediaEmbeddingRecord:
    """Rebuild a record from a ChromaDB document and metadata."""
    vectors = {slot: decode_vector(data) for slot, data in json.loads(document).items()}
    return MediaEmbeddingRecord(
        media_id=media_id,
        service_id=metadata['service_id'],
        provider_id=metadata['provider_id'],
        tags=json.loads(metadata.get('tags') or '[]'),
        description=metadata.get('description') or None,
        category=metadata.get('category') or None,
        indexed_at=datetime.fromisoformat(metadata['indexed_at']),
        **vectors,
    )
