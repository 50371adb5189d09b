"""
Sliding-window text chunking.

Each pseudo-page is whitespace-normalised and cut into windows of
``chunk_size`` characters with stride ``chunk_size - overlap``. The last
window of a page ends exactly at the end of the text, so a page of length
``L > C`` yields ``ceil((L - O) / (C - O))`` chunks and a shorter page yields
one. Boundaries depend only on the inputs, which keeps fingerprints stable
across re-ingestion.
"""

from __future__ import annotations

import logging
import re

from smartdocs.ingestion.config import ingest_settings
from smartdocs.ingestion.schemas import Chunk

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WS.sub(" ", text).strip()


def chunk_page(
    text: str,
    source: str,
    page: int,
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> list[Chunk]:
    """Split one pseudo-page into overlapping chunks."""
    size = chunk_size if chunk_size is not None else ingest_settings.chunk_size
    overlap = overlap if overlap is not None else ingest_settings.chunk_overlap
    if not 0 < overlap < size:
        raise ValueError(f"Need 0 < overlap < chunk_size, got overlap={overlap}, chunk_size={size}")

    clean = normalize_whitespace(text)
    if not clean:
        return []

    step = size - overlap
    chunks: list[Chunk] = []
    start = 0
    while True:
        chunks.append(Chunk(text=clean[start : start + size], source=source, page=page))
        if start + size >= len(clean):
            break
        start += step

    logger.debug("%s p.%d: %d chars → %d chunks.", source, page, len(clean), len(chunks))
    return chunks
