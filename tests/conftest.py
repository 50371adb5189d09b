"""Shared fixtures: a deterministic embedder, in-memory extractors, real PDFs."""

from __future__ import annotations

import string

import pytest

from smartdocs.ingestion.embeddings import Embedder
from smartdocs.ingestion.errors import EmbeddingProviderError
from smartdocs.ingestion.pdf_parser import TextExtractor


class LetterEmbedder(Embedder):
    """Letter-frequency vectors (26 dims): similar wording → similar vectors.

    ``fail_on_call`` makes the n-th provider call (1-based) raise.
    """

    def __init__(self, batch_size: int = 64, fail_on_call: int | None = None) -> None:
        super().__init__("letters", batch_size)
        self.calls: list[list[str]] = []
        self.fail_on_call = fail_on_call

    def _embed(self, texts, *, is_query):
        self.calls.append(list(texts))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise EmbeddingProviderError("rate limited", status_code=429)
        return [letter_vector(t) for t in texts]


def letter_vector(text: str) -> list[float]:
    low = text.lower()
    return [float(low.count(ch)) for ch in string.ascii_lowercase]


class PlainTextExtractor(TextExtractor):
    """Treats the upload bytes as UTF-8 text (no PDF parsing)."""

    name = "plain"

    def _extract(self, data: bytes) -> str:
        return data.decode("utf-8")


class FailingAddCollection:
    """Wraps a Chroma collection; the *fail_on_call*-th ``add`` raises."""

    def __init__(self, inner, fail_on_call: int = 1):
        self._inner = inner
        self._fail_on_call = fail_on_call
        self.add_calls = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def add(self, **kwargs):
        self.add_calls += 1
        if self.add_calls >= self._fail_on_call:
            raise RuntimeError("disk I/O error at /var/lib/chroma")
        return self._inner.add(**kwargs)


def make_pdf(pages: list[str]) -> bytes:
    """Build a real PDF with one short text line per page."""
    import fitz  # PyMuPDF

    doc = fitz.open()
    try:
        for text in pages:
            page = doc.new_page()
            page.insert_text((72, 72), text, fontsize=11)
        return doc.tobytes()
    finally:
        doc.close()


def alphabet_text(n: int) -> str:
    """*n* characters without whitespace, so normalisation keeps the length."""
    return "".join(string.ascii_lowercase[i % 26] for i in range(n))


@pytest.fixture
def embedder() -> LetterEmbedder:
    return LetterEmbedder()


@pytest.fixture
def store(tmp_path):
    from smartdocs.ingestion.vectordb import ChunkVectorStore

    return ChunkVectorStore(tmp_path / "chroma", "test_chunks")


@pytest.fixture
def plain_settings(tmp_path):
    from smartdocs.ingestion.config import IngestSettings

    return IngestSettings(chroma_dir=tmp_path / "chroma", collection_name="test_chunks")
