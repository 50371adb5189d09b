"""
End-to-end ingestion orchestrator.

Wires together: PDF text extraction → pseudo-page split → chunking →
deduplication → batched embedding → vector store append.

Designed for:
- Per-file isolation: a broken or non-PDF upload is reported and skipped,
  the rest of the request carries on.
- Idempotent re-ingestion: chunk fingerprints already in the store are
  dropped before anything is embedded.
- Bounded provider load: chunks of the whole request are collected first,
  then embedded and appended ``embed_batch`` at a time. Each batch is a
  unit; a failure leaves earlier batches persisted and nothing of its own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from smartdocs.ingestion.chunker import chunk_page
from smartdocs.ingestion.config import IngestSettings, ingest_settings
from smartdocs.ingestion.dedup import Deduplicator
from smartdocs.ingestion.embeddings import Embedder, iter_batches
from smartdocs.ingestion.errors import ExtractionError, NoReadableText, UnsupportedFormat
from smartdocs.ingestion.pdf_parser import DEFAULT_EXTRACTORS, TextExtractor, extract_pages
from smartdocs.ingestion.schemas import Chunk, UploadedPdf
from smartdocs.ingestion.vectordb import ChunkVectorStore

logger = logging.getLogger(__name__)


@dataclass
class FileReport:
    """Outcome for one uploaded file."""

    filename: str
    status: str = "ok"  # "ok" | "empty" | "too_large" | "unsupported" | "failed"
    strategy: str = ""
    pages: int = 0
    chunks: int = 0
    error: str = ""


@dataclass
class IngestionReport:
    """Counters for a single ingestion request."""

    files: list[FileReport] = field(default_factory=list)
    chunks_extracted: int = 0
    duplicates: int = 0
    added: int = 0
    batches: int = 0
    elapsed_seconds: float = 0.0


class IngestionPipeline:
    """Runs one ingestion request against a store with a shared embedder."""

    def __init__(
        self,
        store: ChunkVectorStore,
        embedder: Embedder,
        settings: IngestSettings = ingest_settings,
        extractors: Sequence[TextExtractor] = DEFAULT_EXTRACTORS,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.settings = settings
        self.extractors = tuple(extractors)

    async def ingest(self, files: Sequence[UploadedPdf]) -> IngestionReport:
        """Ingest *files* in the order given.

        Raises:
            NoReadableText: no file contributed a single chunk.
            EmbeddingProviderError / StoreUnavailable: the remaining batches
                are abandoned; batches already appended stay.
        """
        t0 = time.time()
        report = IngestionReport()

        chunks: list[Chunk] = []
        for upload in files:
            file_report, file_chunks = await self._chunk_file(upload)
            report.files.append(file_report)
            chunks.extend(file_chunks)

        report.chunks_extracted = len(chunks)
        if not chunks:
            raise NoReadableText(f"No readable text in {len(files)} file(s)")

        known = await asyncio.to_thread(self.store.known_fingerprints, [c.fingerprint for c in chunks])
        dedup = Deduplicator(known)
        fresh = [c for c in chunks if not dedup.is_duplicate(c)]
        report.duplicates = dedup.dropped
        if report.duplicates:
            logger.info("Dropped %d duplicate chunk(s) of %d.", report.duplicates, len(chunks))

        for batch in iter_batches(fresh, self.settings.embed_batch):
            vectors = await asyncio.to_thread(self.embedder.embed_batch, [c.text for c in batch])
            stored = await asyncio.to_thread(self.store.append_all, batch, vectors)
            report.batches += 1
            report.added += len(stored)
            report.duplicates += len(batch) - len(stored)
            logger.debug("Batch %d: %d chunks appended.", report.batches, len(stored))

        report.elapsed_seconds = time.time() - t0
        logger.info(
            "Ingestion complete: %d files, %d chunks extracted, %d duplicates, "
            "%d stored in %d batches (%.1fs).",
            len(files),
            report.chunks_extracted,
            report.duplicates,
            report.added,
            report.batches,
            report.elapsed_seconds,
        )
        return report

    async def _chunk_file(self, upload: UploadedPdf) -> tuple[FileReport, list[Chunk]]:
        """Extract and chunk one upload; failures are recorded, not raised."""
        file_report = FileReport(filename=upload.filename)

        if upload.size > self.settings.max_file_bytes:
            logger.warning("Skipping too-large file %s (%d bytes).", upload.filename, upload.size)
            file_report.status = "too_large"
            return file_report, []

        try:
            parsed = await asyncio.to_thread(
                extract_pages,
                upload.data,
                upload.filename,
                upload.content_type,
                extractors=self.extractors,
                max_pages=self.settings.max_pseudo_pages,
            )
        except UnsupportedFormat as exc:
            logger.warning("Rejected non-PDF %s: %s", upload.filename, exc)
            file_report.status, file_report.error = "unsupported", exc.public_message
            return file_report, []
        except ExtractionError as exc:
            logger.warning("Extraction failed for %s: %s", upload.filename, exc)
            file_report.status, file_report.error = "failed", exc.public_message
            return file_report, []

        file_report.filename = parsed.source
        file_report.strategy = parsed.strategy
        file_report.pages = len(parsed.pages)
        if not parsed.pages:
            logger.warning("Empty text after parsing: %s", parsed.source)
            file_report.status = "empty"
            return file_report, []

        chunks: list[Chunk] = []
        for page_number, page_text in enumerate(parsed.pages, 1):
            chunks.extend(
                chunk_page(
                    page_text,
                    parsed.source,
                    page_number,
                    self.settings.chunk_size,
                    self.settings.chunk_overlap,
                )
            )
        file_report.chunks = len(chunks)
        logger.info("  %s: %d pseudo-pages → %d chunks.", parsed.source, len(parsed.pages), len(chunks))
        return file_report, chunks
