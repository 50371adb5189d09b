"""Tests for cosine top-k ranking, the retrieval service and context building."""

from __future__ import annotations

import asyncio

import pytest

from conftest import letter_vector


class TestCosine:
    def test_identical_and_orthogonal(self):
        from smartdocs.ingestion.retriever import cosine_similarity

        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_vectors_do_not_raise(self):
        from smartdocs.ingestion.retriever import cosine_scores, cosine_similarity

        assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0
        assert list(cosine_scores([0.0, 0.0], [[1.0, 1.0], [0.0, 0.0]])) == [0.0, 0.0]

    def test_ragged_vectors_use_common_prefix(self):
        from smartdocs.ingestion.retriever import cosine_scores

        scores = cosine_scores([1.0, 0.0, 5.0], [[1.0, 0.0], [0.0, 1.0, 0.0]])
        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == pytest.approx(0.0)


class TestTopK:
    def test_ranked_best_first(self):
        from smartdocs.ingestion.retriever import cosine_scores, top_k

        vectors = [[0.0, 1.0], [1.0, 0.1], [1.0, 1.0], [1.0, 0.0]]
        result = top_k([1.0, 0.0], vectors, 3)
        assert result == [3, 1, 2]
        scores = cosine_scores([1.0, 0.0], [vectors[i] for i in result])
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_ties_keep_insertion_order(self):
        from smartdocs.ingestion.retriever import top_k

        vectors = [[0.0, 1.0], [1.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 0.0]]
        assert top_k([1.0, 0.0], vectors, 5) == [1, 3, 4, 0, 2]

    def test_k_larger_than_store(self):
        from smartdocs.ingestion.retriever import top_k

        assert sorted(top_k([1.0], [[1.0], [2.0]], 10)) == [0, 1]

    def test_empty_store(self):
        from smartdocs.ingestion.retriever import top_k

        assert top_k([1.0, 2.0], [], 4) == []

    def test_all_zero_query(self):
        from smartdocs.ingestion.retriever import top_k

        assert top_k([0.0, 0.0], [[1.0, 0.0], [0.0, 1.0]], 2) == [0, 1]

    def test_k_must_be_positive(self):
        from smartdocs.ingestion.retriever import top_k

        with pytest.raises(ValueError):
            top_k([1.0], [[1.0]], 0)


class TestRetrievalService:
    def _fill(self, store, texts):
        from smartdocs.ingestion.schemas import Chunk

        chunks = [Chunk(text=t, source="notes.pdf", page=i + 1) for i, t in enumerate(texts)]
        store.append_all(chunks, [letter_vector(t) for t in texts])

    def test_empty_store_returns_nothing(self, store, embedder):
        from smartdocs.services.retrieval import RetrievalService

        result = asyncio.run(RetrievalService(store, embedder).search("anything", 4))
        assert result.empty
        assert result.citations == []
        assert embedder.calls == []  # no provider call for an empty store

    def test_k_above_count_returns_all_ranked(self, store, embedder):
        from smartdocs.services.retrieval import RetrievalService

        self._fill(store, ["zzzz zzz", "aaaa bbb"])
        result = asyncio.run(RetrievalService(store, embedder).search("aab", 4))

        assert result.indices == [1, 0]
        assert [c.page for c in result.citations] == [2, 1]
        assert result.citations[0].score >= result.citations[1].score
        assert result.citations[0].sequence_index == 1
        assert len(embedder.calls) == 1

    def test_dimension_mismatch_is_raised(self, store, embedder):
        from smartdocs.ingestion.errors import DimensionMismatch
        from smartdocs.ingestion.schemas import Chunk
        from smartdocs.services.retrieval import RetrievalService

        store.append_all([Chunk(text="short", source="a.pdf", page=1)], [[1.0, 0.0, 0.0]])
        with pytest.raises(DimensionMismatch):
            asyncio.run(RetrievalService(store, embedder).search("query", 2))


class TestBuildContext:
    def _citations(self, n, length=100):
        from smartdocs.ingestion.schemas import Citation

        return [
            Citation(source="a.pdf", page=i + 1, text=str(i) * length, sequence_index=i)
            for i in range(n)
        ]

    def test_format(self):
        from smartdocs.services.retrieval import build_context

        ctx = build_context(self._citations(2, length=3))
        assert ctx == "[a.pdf p.1] 000\n---\n[a.pdf p.2] 111"

    def test_never_cuts_inside_a_chunk(self):
        from smartdocs.services.retrieval import build_context

        citations = self._citations(5)
        ctx = build_context(citations, max_chars=250)
        blocks = ctx.split("\n---\n")
        assert len(blocks) == 2
        assert len(ctx) <= 250
        assert all(b.endswith(c.text) for b, c in zip(blocks, citations))

    def test_first_chunk_always_kept(self):
        from smartdocs.services.retrieval import build_context

        ctx = build_context(self._citations(1, length=500), max_chars=50)
        assert ctx.endswith("0" * 500)
