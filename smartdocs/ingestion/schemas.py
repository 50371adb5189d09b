"""
Pydantic models for every artifact that flows through the ingestion pipeline.

  - UploadedPdf   – raw buffer handed over by the upload boundary
  - Chunk         – normalised text window tagged with source + pseudo-page
  - StoredChunk   – a Chunk after append, carrying its ``sequence_index``
  - StoreSnapshot – aligned chunks + vectors read back from the store
  - Citation      – what the answer collaborator receives per retrieved chunk
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from smartdocs.ingestion.dedup import fingerprint


class UploadedPdf(BaseModel):
    """One uploaded file as received at the upload boundary."""

    filename: str
    data: bytes = Field(repr=False)
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.data)


class Chunk(BaseModel):
    """A bounded, overlapping window of a pseudo-page's normalised text."""

    text: str = Field(..., min_length=1)
    source: str
    page: int = Field(..., ge=1)

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.source, self.page, self.text)


class StoredChunk(Chunk):
    """A chunk as persisted; ``sequence_index`` joins it to its vector."""

    sequence_index: int = Field(..., ge=0)


class StoreSnapshot(BaseModel):
    """Consistent read of the whole store, ascending ``sequence_index``."""

    chunks: list[StoredChunk] = Field(default_factory=list)
    embeddings: list[list[float]] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chunks)


class Citation(BaseModel):
    """How to cite back to the original source."""

    source: str
    page: int
    text: str
    sequence_index: int
    score: float = 0.0

    def __str__(self) -> str:
        return f"{self.source} p.{self.page}"
