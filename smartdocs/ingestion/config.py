"""
Ingestion pipeline configuration.

All values can be overridden via environment variables prefixed with
``INGEST_`` (e.g. ``INGEST_CHUNK_SIZE=1000``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

_BASE = Path(__file__).resolve().parent.parent.parent


class IngestSettings(BaseSettings):
    """Tuneable knobs for every pipeline stage."""

    # ── Paths ────────────────────────────────────────────────────────────
    chroma_dir: Path = _BASE / "storage" / "chroma_db"
    collection_name: str = "smartdocs_chunks"

    # ── Upload limits ────────────────────────────────────────────────────
    max_file_bytes: int = 25 * 1024 * 1024  # 25 MiB per file
    max_pseudo_pages: int = 120  # blank-line blocks kept per file

    # ── Chunking ─────────────────────────────────────────────────────────
    chunk_size: int = 800  # characters
    chunk_overlap: int = 200

    # ── Embeddings ───────────────────────────────────────────────────────
    embedding_provider: Literal["sentence-transformers", "jina"] = "sentence-transformers"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embed_batch: int = 64  # chunks per provider call / per store append
    jina_model: str = "jina-embeddings-v3"
    jina_api_key: str = ""
    jina_base_url: str = "https://api.jina.ai/v1"
    embedding_timeout: float = 30.0  # seconds

    model_config = {
        "env_prefix": "INGEST_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


ingest_settings = IngestSettings()
