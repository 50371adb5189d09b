"""Query path: embed the question once, rank every stored vector, cite."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from smartdocs.ingestion.embeddings import Embedder
from smartdocs.ingestion.errors import DimensionMismatch
from smartdocs.ingestion.retriever import cosine_scores, top_k
from smartdocs.ingestion.schemas import Citation
from smartdocs.ingestion.vectordb import ChunkVectorStore

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """Top-k indices into the store snapshot plus their citations."""

    indices: list[int] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.indices


class RetrievalService:
    """Binds one store to the embedder that filled it."""

    def __init__(self, store: ChunkVectorStore, embedder: Embedder) -> None:
        self.store = store
        self.embedder = embedder

    async def search(self, question: str, k: int = 4) -> RetrievalResult:
        """Return the *k* chunks most similar to *question*.

        An empty result means nothing has been ingested yet.
        """
        snapshot = await asyncio.to_thread(self.store.read_all)
        if not snapshot.chunks:
            logger.info("Search on empty store – nothing ingested yet.")
            return RetrievalResult()

        query = await asyncio.to_thread(self.embedder.embed_query, question)
        stored_dim = len(snapshot.embeddings[0])
        if len(query) != stored_dim:
            raise DimensionMismatch(
                f"Query vector has {len(query)} dims, stored vectors have {stored_dim}; "
                "was the store built with a different embedding model?"
            )

        indices = top_k(query, snapshot.embeddings, k)
        scores = cosine_scores(query, [snapshot.embeddings[i] for i in indices])
        citations = [
            Citation(
                source=snapshot.chunks[i].source,
                page=snapshot.chunks[i].page,
                text=snapshot.chunks[i].text,
                sequence_index=snapshot.chunks[i].sequence_index,
                score=float(score),
            )
            for i, score in zip(indices, scores)
        ]
        logger.info("Retrieved %d of %d chunks for query.", len(indices), len(snapshot.chunks))
        return RetrievalResult(indices=indices, citations=citations)


def build_context(citations: list[Citation], max_chars: int = 8000) -> str:
    """Join cited chunks as ``[source p.N] text`` blocks within *max_chars*.

    Whole chunks only: a chunk that would overflow the budget and every
    chunk after it are left out. The first chunk is always kept.
    """
    sep = "\n---\n"
    parts: list[str] = []
    used = 0
    for c in citations:
        block = f"[{c}] {c.text}"
        extra = len(block) + (len(sep) if parts else 0)
        if parts and used + extra > max_chars:
            break
        parts.append(block)
        used += extra
    return sep.join(parts)
