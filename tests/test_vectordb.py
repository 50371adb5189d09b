"""Tests for the ChromaDB-backed append-only chunk store."""

from __future__ import annotations

import threading

import pytest


def _chunks(source: str, n: int, page: int = 1):
    from smartdocs.ingestion.schemas import Chunk

    return [Chunk(text=f"{source} chunk number {i}", source=source, page=page) for i in range(n)]


def _vectors(n: int, dim: int = 3):
    return [[float(i + 1)] + [0.5] * (dim - 1) for i in range(n)]


class TestAppendAndRead:
    def test_empty_store(self, store):
        snap = store.read_all()
        assert store.count() == 0
        assert snap.chunks == [] and snap.embeddings == []
        assert store.dimension is None

    def test_aligned_read_back(self, store):
        chunks, vectors = _chunks("a.pdf", 3), _vectors(3)
        stored = store.append_all(chunks, vectors)

        assert [s.sequence_index for s in stored] == [0, 1, 2]
        snap = store.read_all()
        assert [c.text for c in snap.chunks] == [c.text for c in chunks]
        assert snap.embeddings == vectors  # exactly representable in float32
        assert len(snap.chunks) == len(snap.embeddings) == store.count() == 3
        assert store.dimension == 3

    def test_sequence_indices_increase_across_appends(self, store):
        store.append_all(_chunks("a.pdf", 2), _vectors(2))
        store.append_all(_chunks("b.pdf", 3), _vectors(3))
        store.append_all(_chunks("c.pdf", 1), _vectors(1))

        snap = store.read_all()
        assert [c.sequence_index for c in snap.chunks] == list(range(6))
        assert [c.source for c in snap.chunks] == ["a.pdf"] * 2 + ["b.pdf"] * 3 + ["c.pdf"]

    def test_length_mismatch_writes_nothing(self, store):
        from smartdocs.ingestion.errors import LengthMismatch

        with pytest.raises(LengthMismatch):
            store.append_all(_chunks("a.pdf", 3), _vectors(2))
        assert store.count() == 0

    def test_dimension_mismatch_against_store(self, store):
        from smartdocs.ingestion.errors import DimensionMismatch

        store.append_all(_chunks("a.pdf", 1), _vectors(1, dim=3))
        with pytest.raises(DimensionMismatch):
            store.append_all(_chunks("b.pdf", 1), _vectors(1, dim=4))
        assert store.count() == 1

    def test_dimension_mismatch_within_batch(self, store):
        from smartdocs.ingestion.errors import DimensionMismatch

        with pytest.raises(DimensionMismatch):
            store.append_all(_chunks("a.pdf", 2), [[1.0, 0.0], [1.0, 0.0, 0.0]])
        assert store.count() == 0

    def test_persisted_fingerprints_are_skipped(self, store):
        chunks = _chunks("a.pdf", 2)
        store.append_all(chunks, _vectors(2))
        again = store.append_all(chunks + _chunks("b.pdf", 1), _vectors(3))

        assert [s.source for s in again] == ["b.pdf"]
        assert again[0].sequence_index == 2
        assert store.count() == 3

    def test_known_fingerprints(self, store):
        chunks = _chunks("a.pdf", 2)
        store.append_all(chunks[:1], _vectors(1))
        known = store.known_fingerprints([c.fingerprint for c in chunks])
        assert known == {chunks[0].fingerprint}


class TestLifecycle:
    def test_reopen_keeps_data_and_numbering(self, tmp_path):
        from smartdocs.ingestion.vectordb import ChunkVectorStore

        first = ChunkVectorStore(tmp_path / "db", "docs")
        first.append_all(_chunks("a.pdf", 2), _vectors(2))

        second = ChunkVectorStore(tmp_path / "db", "docs")
        assert second.count() == 2
        assert second.dimension == 3
        stored = second.append_all(_chunks("b.pdf", 1), _vectors(1))
        assert stored[0].sequence_index == 2

    def test_reset(self, store):
        store.append_all(_chunks("a.pdf", 2), _vectors(2))
        store.reset()
        assert store.count() == 0
        assert store.read_all().chunks == []

        stored = store.append_all(_chunks("b.pdf", 1), _vectors(1, dim=5))
        assert stored[0].sequence_index == 2  # never reused
        assert store.dimension == 5

    def test_reset_numbering_survives_restart(self, tmp_path):
        from smartdocs.ingestion.vectordb import ChunkVectorStore

        first = ChunkVectorStore(tmp_path / "db", "docs")
        first.append_all(_chunks("a.pdf", 3), _vectors(3))
        first.reset()

        second = ChunkVectorStore(tmp_path / "db", "docs")
        assert second.count() == 0
        stored = second.append_all(_chunks("b.pdf", 1), _vectors(1))
        assert stored[0].sequence_index == 3

    def test_failed_add_is_store_unavailable(self, store):
        from smartdocs.ingestion.errors import StoreUnavailable

        from conftest import FailingAddCollection

        store.append_all(_chunks("a.pdf", 1), _vectors(1))
        store._collection = FailingAddCollection(store._collection)

        with pytest.raises(StoreUnavailable) as err:
            store.append_all(_chunks("b.pdf", 2), _vectors(2))
        assert err.value.public_message == "Vector store unavailable"
        assert store.count() == 1
        assert [c.source for c in store.read_all().chunks] == ["a.pdf"]


class TestConcurrency:
    def test_parallel_appends_never_share_indices(self, store):
        errors: list[Exception] = []

        def worker(name: str) -> None:
            try:
                for batch in range(3):
                    store.append_all(_chunks(f"{name}-{batch}.pdf", 4), _vectors(4))
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(f"t{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        snap = store.read_all()
        indices = [c.sequence_index for c in snap.chunks]
        assert indices == list(range(48))
        assert len(snap.embeddings) == 48
        # every batch of four landed contiguously
        for start in range(0, 48, 4):
            assert len({c.source for c in snap.chunks[start : start + 4]}) == 1
