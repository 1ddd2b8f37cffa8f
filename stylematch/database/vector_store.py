"""ChromaDB-backed vector record store.

This module keeps every media record in a single ChromaDB collection:

- id: the media id
- embedding: the hybrid vector, indexed with HNSW (cosine) for the
  optional nearest-neighbour prefilter
- document: JSON holding all five slot vectors
- metadata: service/provider ids, tags, description, category, indexed_at

A record is one row, so replacing it is a single ``upsert`` and readers
never see slots from two different processing runs.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional

import chromadb
import numpy as np
from chromadb.config import Settings

from stylematch.core.scoring.similarity import mean_normalized
from stylematch.domain.entities.embedding import SOURCE_SLOTS, VectorSlot
from stylematch.domain.interfaces.repository_interface import VectorRecordStore
from stylematch.utils import get_logger, log_exception, log_execution_time
from stylematch.utils.config import DatabaseConfig
from stylematch.utils.exceptions import VectorStoreError

from .models import (
    MediaEmbeddingRecord,
    record_from_chroma,
    record_to_document,
    record_to_metadata,
)

logger = get_logger(__name__)


class ChromaRecordStore(VectorRecordStore):
    """Persistent multi-vector store on a ChromaDB collection."""

    def __init__(
        self,
        config: DatabaseConfig,
        dimensions: Optional[Dict[VectorSlot, int]] = None,
    ):
        """Initialize the store and open (or create) its collection.

        Args:
            config: Database configuration
            dimensions: Expected length per slot. Slots left out are pinned
                by the first stored record that carries them.

        Raises:
            VectorStoreError: If the client or collection cannot be opened
        """
        self.config = config
        self._configured_dimensions = dict(dimensions or {})
        self.dimensions = dict(self._configured_dimensions)
        self.collection_name = config.collection_name

        persist_dir = Path(config.persist_directory)
        persist_dir.mkdir(parents=True, exist_ok=True)

        try:
            self.client = chromadb.PersistentClient(
                path=str(persist_dir),
                settings=Settings(
                    anonymized_telemetry=False,
                    allow_reset=True
                )
            )
            self.collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"}
            )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to open ChromaDB collection: {e}",
                collection_name=self.collection_name,
            ) from e

        self._pin_from_existing()

        logger.info(
            f"Collection initialized: {self.collection_name} "
            f"({self.collection.count()} records) at {persist_dir}"
        )

    def put(self, record: MediaEmbeddingRecord) -> bool:
        """Store or replace a record with one upsert.

        Raises:
            EmbeddingDimensionError: If a slot has the wrong dimension
            VectorStoreError: If the write fails
        """
        if not record.usable:
            removed = self.delete(record.media_id)
            logger.warning(
                f"Record {record.media_id} has neither visual nor style vector; "
                f"{'removed previous record' if removed else 'not stored'}"
            )
            return False

        self.validate_dimensions(record)
        index_vector = self._index_vector(record)

        try:
            self.collection.upsert(
                ids=[record.media_id],
                embeddings=[index_vector.tolist()],
                documents=[record_to_document(record)],
                metadatas=[record_to_metadata(record)],
            )
        except Exception as e:
            log_exception(logger, f"upsert record {record.media_id}", e)
            raise VectorStoreError(
                f"Failed to store record {record.media_id}: {e}",
                collection_name=self.collection_name,
            ) from e

        self.pin_dimensions(record)
        logger.debug(f"Stored record {record.media_id} ({len(record.present_slots)} slots)")
        return True

    def get(self, media_id: str) -> Optional[MediaEmbeddingRecord]:
        try:
            data = self.collection.get(ids=[media_id], include=['documents', 'metadatas'])
        except Exception as e:
            log_exception(logger, f"get record {media_id}", e)
            raise VectorStoreError(f"Failed to retrieve record: {e}") from e

        records = self._rows_to_records(data)
        return records[0] if records else None

    def delete(self, media_id: str) -> bool:
        try:
            existing = self.collection.get(ids=[media_id], include=[])
            if not existing['ids']:
                return False
            self.collection.delete(ids=[media_id])
        except Exception as e:
            log_exception(logger, f"delete record {media_id}", e)
            raise VectorStoreError(f"Failed to delete record: {e}") from e

        logger.debug(f"Deleted record {media_id}")
        return True

    def candidates_for(self, provider_id: Optional[str] = None) -> Iterator[MediaEmbeddingRecord]:
        """Iterate over stored records page by page."""
        where = {"provider_id": provider_id} if provider_id is not None else None
        page_size = self.config.page_size
        offset = 0

        while True:
            try:
                data = self.collection.get(
                    where=where,
                    limit=page_size,
                    offset=offset,
                    include=['documents', 'metadatas'],
                )
            except Exception as e:
                log_exception(logger, f"scan page at offset {offset}", e)
                raise VectorStoreError(f"Failed to scan records: {e}") from e

            if not data['ids']:
                return

            yield from self._rows_to_records(data)

            if len(data['ids']) < page_size:
                return
            offset += len(data['ids'])

    def nearest(
        self,
        query_vector: np.ndarray,
        k: int,
        provider_id: Optional[str] = None,
    ) -> List[MediaEmbeddingRecord]:
        """Approximate nearest records by hybrid vector (HNSW, cosine)."""
        total = self.collection.count()
        if total == 0 or k <= 0:
            return []

        where = {"provider_id": provider_id} if provider_id is not None else None
        with log_execution_time(logger, f"ANN prefilter k={k}"):
            try:
                data = self.collection.query(
                    query_embeddings=[np.asarray(query_vector, dtype=np.float32).tolist()],
                    n_results=min(k, total),
                    where=where,
                    include=['documents', 'metadatas'],
                )
            except Exception as e:
                log_exception(logger, "ANN prefilter", e)
                raise VectorStoreError(f"Nearest-neighbour query failed: {e}") from e

        return self._rows_to_records({
            'ids': data['ids'][0],
            'documents': data['documents'][0],
            'metadatas': data['metadatas'][0],
        })

    def count(self) -> int:
        return self.collection.count()

    def clear(self) -> None:
        """Delete and recreate the collection.

        WARNING: This deletes all stored records!
        """
        logger.warning(f"Clearing all records from {self.collection_name}")
        try:
            self.client.delete_collection(self.collection_name)
            self.collection = self.client.create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"}
            )
        except Exception as e:
            log_exception(logger, "clear vector store", e)
            raise VectorStoreError(f"Failed to clear vector store: {e}") from e
        self.dimensions = dict(self._configured_dimensions)

    def _pin_from_existing(self) -> None:
        """Pin slot dimensions from a stored record of a reopened collection."""
        if self.collection.count() == 0:
            return
        try:
            data = self.collection.get(limit=1, include=['documents', 'metadatas'])
        except Exception as e:
            raise VectorStoreError(
                f"Failed to read existing records: {e}",
                collection_name=self.collection_name,
            ) from e
        for record in self._rows_to_records(data):
            self.pin_dimensions(record)

    @staticmethod
    def _index_vector(record: MediaEmbeddingRecord) -> np.ndarray:
        """Vector indexed for ANN: the hybrid, or its derivation when absent."""
        if record.hybrid is not None:
            return record.hybrid
        derived = mean_normalized(record.vector(slot) for slot in SOURCE_SLOTS)
        if derived is None:
            raise VectorStoreError(f"Record {record.media_id} has no indexable vector")
        return derived

    def _rows_to_records(self, data: dict) -> List[MediaEmbeddingRecord]:
        records = []
        for media_id, document, metadata in zip(data['ids'], data['documents'], data['metadatas']):
            try:
                records.append(record_from_chroma(media_id, document, metadata))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable record {media_id}: {e}")
        return records
