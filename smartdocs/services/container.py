"""Long-lived service objects, built once per process and injected."""

from __future__ import annotations

from dataclasses import dataclass

from smartdocs.ingestion.config import IngestSettings, ingest_settings
from smartdocs.ingestion.embeddings import Embedder, build_embedder
from smartdocs.ingestion.pipeline import IngestionPipeline
from smartdocs.ingestion.vectordb import ChunkVectorStore
from smartdocs.services.retrieval import RetrievalService


@dataclass
class Services:
    store: ChunkVectorStore
    embedder: Embedder
    pipeline: IngestionPipeline
    retrieval: RetrievalService


def build_services(
    settings: IngestSettings = ingest_settings,
    *,
    store: ChunkVectorStore | None = None,
    embedder: Embedder | None = None,
) -> Services:
    store = store or ChunkVectorStore(settings.chroma_dir, settings.collection_name)
    embedder = embedder or build_embedder(settings)
    return Services(
        store=store,
        embedder=embedder,
        pipeline=IngestionPipeline(store, embedder, settings),
        retrieval=RetrievalService(store, embedder),
    )
