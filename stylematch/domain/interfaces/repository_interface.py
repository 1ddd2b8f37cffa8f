"""
Abstract interface for vector record stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

import numpy as np

from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.exceptions import EmbeddingDimensionError
from stylematch.utils.logger import get_logger

if TYPE_CHECKING:
    from stylematch.database.models import MediaEmbeddingRecord

logger = get_logger(__name__)


class VectorRecordStore(ABC):
    """
    Abstract base class for multi-vector record stores.

    One record per media id holds all five slot vectors. Writes replace the
    whole record; readers never observe a mix of old and new slots.

    Each slot has one dimension per store: either configured up front or
    pinned by the first record that carries the slot. Implementations keep
    it in a ``dimensions`` dict.
    """

    dimensions: Dict[VectorSlot, int]

    @abstractmethod
    def put(self, record: MediaEmbeddingRecord) -> bool:
        """
        Store or replace the record for ``record.media_id``.

        An unusable record (neither visual nor style) is not stored; any
        previous record for the same media id is removed instead.

        Args:
            record: The record to store.

        Returns:
            True if the record was stored, False if it was unusable.
        """
        pass

    @abstractmethod
    def get(self, media_id: str) -> Optional[MediaEmbeddingRecord]:
        """
        Retrieve a record by media id.

        Returns:
            The record if found, None otherwise.
        """
        pass

    @abstractmethod
    def delete(self, media_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if not found.
        """
        pass

    @abstractmethod
    def candidates_for(self, provider_id: Optional[str] = None) -> Iterator[MediaEmbeddingRecord]:
        """
        Iterate over every usable record, optionally for one provider.

        Args:
            provider_id: Restrict candidates to this provider.

        Yields:
            MediaEmbeddingRecord objects.
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Return the total number of stored records."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored record."""
        pass

    def nearest(
        self,
        query_vector: np.ndarray,
        k: int,
        provider_id: Optional[str] = None,
    ) -> List[MediaEmbeddingRecord]:
        """
        Approximate nearest records by hybrid vector.

        Stores without an ANN index raise NotImplementedError; callers fall
        back to ``candidates_for``.
        """
        raise NotImplementedError(f"{type(self).__name__} has no nearest-neighbour index")

    @property
    def supports_nearest(self) -> bool:
        """True when ``nearest`` is implemented."""
        return type(self).nearest is not VectorRecordStore.nearest

    def validate_dimensions(self, record: MediaEmbeddingRecord) -> None:
        """
        Check every present slot against the store's dimensions.

        ``self.dimensions`` holds the configured lengths plus the length of
        every slot pinned by an earlier ``put``.

        Raises:
            EmbeddingDimensionError: If a slot vector has the wrong length.
        """
        for slot, vec in record.vectors().items():
            expected = self.dimensions.get(slot)
            if expected is not None and vec.shape[0] != expected:
                raise EmbeddingDimensionError(
                    f"{slot.value} embedding shape mismatch for {record.media_id}: "
                    f"expected ({expected},), got {vec.shape}",
                    slot=slot.value,
                    expected=expected,
                    actual=vec.shape[0],
                )

    def pin_dimensions(self, record: MediaEmbeddingRecord) -> None:
        """Fix the length of every slot not yet known from ``record``."""
        for slot, vec in record.vectors().items():
            if slot not in self.dimensions:
                self.dimensions[slot] = vec.shape[0]
                logger.debug(f"Pinned {slot.value} dimension to {vec.shape[0]}")
