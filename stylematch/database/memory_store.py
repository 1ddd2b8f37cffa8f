"""In-process vector record store.

Records are immutable; ``put`` swaps the whole record under a lock, so a
concurrent reader sees either the old record or the new one, never a mix.
"""

import threading
from typing import Dict, Iterator, List, Optional

from stylematch.domain.entities.embedding import VectorSlot
from stylematch.domain.interfaces.repository_interface import VectorRecordStore
from stylematch.utils import get_logger

from .models import MediaEmbeddingRecord

logger = get_logger(__name__)


class InMemoryRecordStore(VectorRecordStore):
    """Dictionary-backed store, used for tests and small catalogues."""

    def __init__(self, dimensions: Optional[Dict[VectorSlot, int]] = None):
        """
        Args:
            dimensions: Expected length per slot. Slots left out are pinned
                by the first record that carries them.
        """
        self._configured_dimensions = dict(dimensions or {})
        self.dimensions = dict(self._configured_dimensions)
        self._records: Dict[str, MediaEmbeddingRecord] = {}
        self._lock = threading.Lock()

    def put(self, record: MediaEmbeddingRecord) -> bool:
        if not record.usable:
            with self._lock:
                removed = self._records.pop(record.media_id, None)
            logger.warning(
                f"Record {record.media_id} has neither visual nor style vector; "
                f"{'removed previous record' if removed else 'not stored'}"
            )
            return False

        with self._lock:
            self.validate_dimensions(record)
            self.pin_dimensions(record)
            self._records[record.media_id] = record
        logger.debug(f"Stored record {record.media_id} ({len(record.present_slots)} slots)")
        return True

    def get(self, media_id: str) -> Optional[MediaEmbeddingRecord]:
        with self._lock:
            return self._records.get(media_id)

    def delete(self, media_id: str) -> bool:
        with self._lock:
            return self._records.pop(media_id, None) is not None

    def candidates_for(self, provider_id: Optional[str] = None) -> Iterator[MediaEmbeddingRecord]:
        # Snapshot so writers never block a scan
        with self._lock:
            snapshot: List[MediaEmbeddingRecord] = list(self._records.values())

        for record in snapshot:
            if provider_id is None or record.provider_id == provider_id:
                yield record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Remove every record."""
        with self._lock:
            self._records.clear()
            self.dimensions = dict(self._configured_dimensions)
