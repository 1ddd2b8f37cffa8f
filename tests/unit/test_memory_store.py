"""Unit tests for the in-memory record store."""

import pytest

from stylematch.database import InMemoryRecordStore, create_record_store
from stylematch.domain.entities.embedding import VectorSlot
from stylematch.utils.config import DatabaseConfig
from stylematch.utils.exceptions import EmbeddingDimensionError

from conftest import IMAGE_DIM, TEXT_DIM


class TestRecordStore:
    """Test CRUD behaviour."""

    def test_put_and_get(self, memory_store, make_record, full_vectors):
        record = make_record(**full_vectors)
        assert memory_store.put(record) is True
        assert memory_store.get("media-1") is record
        assert memory_store.count() == 1

    def test_put_replaces_whole_record(self, memory_store, make_record, full_vectors):
        memory_store.put(make_record(**full_vectors))
        memory_store.put(make_record(visual=full_vectors["visual"]))

        stored = memory_store.get("media-1")
        assert stored.present_slots == [VectorSlot.VISUAL]
        assert memory_store.count() == 1

    def test_unusable_record_removes_previous(self, memory_store, make_record, full_vectors):
        memory_store.put(make_record(**full_vectors))

        assert memory_store.put(make_record(semantic=full_vectors["semantic"])) is False
        assert memory_store.get("media-1") is None

    def test_delete(self, memory_store, make_record, full_vectors):
        memory_store.put(make_record(**full_vectors))
        assert memory_store.delete("media-1") is True
        assert memory_store.delete("media-1") is False

    def test_candidates_filtered_by_provider(self, memory_store, make_record, full_vectors):
        memory_store.put(make_record("a", provider_id="p1", **full_vectors))
        memory_store.put(make_record("b", provider_id="p2", **full_vectors))
        memory_store.put(make_record("c", provider_id="p1", **full_vectors))

        assert sorted(r.media_id for r in memory_store.candidates_for("p1")) == ["a", "c"]
        assert memory_store.count() == 3
        assert len(list(memory_store.candidates_for())) == 3

    def test_clear(self, memory_store, make_record, full_vectors):
        memory_store.put(make_record(**full_vectors))
        memory_store.clear()
        assert memory_store.count() == 0

    def test_no_ann_index(self, memory_store):
        assert memory_store.supports_nearest is False


class TestDimensionValidation:
    """Test per-slot dimension checks."""

    def test_wrong_dimension_rejected(self, make_record, full_vectors):
        store = InMemoryRecordStore(dimensions={VectorSlot.VISUAL: IMAGE_DIM, VectorSlot.SEMANTIC: TEXT_DIM + 1})

        with pytest.raises(EmbeddingDimensionError):
            store.put(make_record(**full_vectors))
        assert store.count() == 0

    def test_first_record_pins_dimensions(self, memory_store, make_record, basis):
        memory_store.put(make_record("m1", visual=basis(IMAGE_DIM, 0)))

        with pytest.raises(EmbeddingDimensionError) as exc_info:
            memory_store.put(make_record("m2", visual=basis(IMAGE_DIM + 3, 0)))

        assert exc_info.value.context["expected_dim"] == IMAGE_DIM
        assert memory_store.dimensions[VectorSlot.VISUAL] == IMAGE_DIM
        assert memory_store.count() == 1

    def test_unseen_slot_pinned_later(self, memory_store, make_record, basis):
        memory_store.put(make_record("m1", visual=basis(IMAGE_DIM, 0)))
        memory_store.put(make_record("m2", visual=basis(IMAGE_DIM, 1), semantic=basis(TEXT_DIM, 0)))

        with pytest.raises(EmbeddingDimensionError):
            memory_store.put(make_record("m3", visual=basis(IMAGE_DIM, 2), semantic=basis(TEXT_DIM + 1, 0)))
        assert memory_store.count() == 2

    def test_clear_releases_pinned_dimensions(self, memory_store, make_record, basis):
        memory_store.put(make_record("m1", visual=basis(IMAGE_DIM, 0)))
        memory_store.clear()

        assert memory_store.put(make_record("m2", visual=basis(IMAGE_DIM + 3, 0))) is True


class TestFactory:
    """Test backend selection."""

    def test_memory_backend(self):
        assert isinstance(create_record_store(DatabaseConfig(backend="memory")), InMemoryRecordStore)
