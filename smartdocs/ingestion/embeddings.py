"""
Embedding providers.

Two interchangeable backends share the ``Embedder`` interface:

- ``SentenceTransformerEmbedder`` – local sentence-transformers model
  (default ``all-MiniLM-L6-v2``, 384-dim), loaded lazily on first use.
- ``JinaEmbedder`` – Jina AI's hosted embeddings API over HTTP.

Both split their input into provider calls of at most ``batch_size`` texts
and validate what comes back: one vector per input, all of one length.
One instance is built at start-up (``build_embedder``) and shared by the
ingestion pipeline and the query path, so stored and query vectors always
come from the same model.
"""

from __future__ import annotations

import logging
import threading
import warnings
from abc import ABC, abstractmethod
from typing import Iterator, Sequence, TypeVar

import httpx

from smartdocs.ingestion.config import IngestSettings, ingest_settings
from smartdocs.ingestion.errors import DimensionMismatch, EmbeddingProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def iter_batches(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most *size* items."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield items[i : i + size]


class Embedder(ABC):
    """Turns text into fixed-length vectors."""

    def __init__(self, model_name: str, batch_size: int = 64) -> None:
        self.model_name = model_name
        self.batch_size = batch_size

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed document texts, one provider call per ``batch_size`` slice."""
        vectors: list[list[float]] = []
        for batch in iter_batches(list(texts), self.batch_size):
            out = self._embed(list(batch), is_query=False)
            vectors.extend(self._validate(batch, out))
        if vectors:
            _check_dimensions(vectors)
        return vectors

    def embed_query(self, text: str) -> list[float]:
        out = self._embed([text], is_query=True)
        return self._validate([text], out)[0]

    def _validate(self, batch: Sequence[str], vectors: list[list[float]]) -> list[list[float]]:
        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"{self.model_name} returned {len(vectors)} vectors for {len(batch)} inputs"
            )
        _check_dimensions(vectors)
        return vectors

    @abstractmethod
    def _embed(self, texts: list[str], *, is_query: bool) -> list[list[float]]:
        """One provider call; ``len(texts) <= batch_size``."""


def _check_dimensions(vectors: Sequence[Sequence[float]]) -> None:
    dims = {len(v) for v in vectors}
    if len(dims) > 1:
        raise DimensionMismatch(f"Provider returned mixed dimensionalities: {sorted(dims)}")


# ═══════════════════════════════════════════════════════════════════════════
# Local: sentence-transformers
# ═══════════════════════════════════════════════════════════════════════════

class SentenceTransformerEmbedder(Embedder):
    """Local sentence-transformers model with normalised output."""

    def __init__(self, model_name: str, batch_size: int = 64, device: str | None = None) -> None:
        super().__init__(model_name, batch_size)
        self._device = device
        self._model = None
        self._load_lock = threading.Lock()

    def _get_model(self):
        """Lazy-load the sentence-transformer model, once per instance."""
        if self._model is not None:
            return self._model
        with self._load_lock:
            if self._model is None:
                self._model = self._load_model()
        return self._model

    def _load_model(self):
        from sentence_transformers import SentenceTransformer

        device = self._device or ("mps" if _mps_available() else "cpu")
        logger.info("Loading embedding model '%s' on %s …", self.model_name, device)
        try:
            model = SentenceTransformer(self.model_name, device=device)
        except Exception as exc:
            raise EmbeddingProviderError(f"Cannot load model '{self.model_name}': {exc}") from exc
        # Clip over-long inputs at the tokenizer instead of failing on them.
        model.max_seq_length = model.max_seq_length or 512
        model.tokenizer.model_max_length = model.max_seq_length
        logger.info(
            "Embedding model loaded (dim=%d, max_seq=%d).",
            model.get_sentence_embedding_dimension(),
            model.max_seq_length,
        )
        return model

    def _embed(self, texts: list[str], *, is_query: bool) -> list[list[float]]:
        model = self._get_model()
        try:
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", message=".*pin_memory.*")
                warnings.filterwarnings("ignore", message=".*Token indices sequence length.*")
                embs = model.encode(
                    texts,
                    batch_size=self.batch_size,
                    show_progress_bar=False,
                    normalize_embeddings=True,
                )
        except Exception as exc:
            raise EmbeddingProviderError(f"{self.model_name} failed to encode: {exc}") from exc
        return embs.tolist()


def _mps_available() -> bool:
    try:
        import torch
        return torch.backends.mps.is_available()
    except (ImportError, AttributeError):
        return False


# ═══════════════════════════════════════════════════════════════════════════
# Remote: Jina AI embeddings API
# ═══════════════════════════════════════════════════════════════════════════

class JinaEmbedder(Embedder):
    """Hosted embeddings via ``POST {base_url}/embeddings``.

    Passages are sent with ``task=retrieval.passage`` and questions with
    ``task=retrieval.query``; the API returns one ``{index, embedding}`` item
    per input.
    """

    def __init__(
        self,
        model_name: str,
        api_key: str,
        *,
        base_url: str = "https://api.jina.ai/v1",
        batch_size: int = 64,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(model_name, batch_size)
        if not api_key and client is None:
            raise ValueError("JinaEmbedder needs an API key (INGEST_JINA_API_KEY).")
        self._client = client or httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )

    def _embed(self, texts: list[str], *, is_query: bool) -> list[list[float]]:
        payload = {
            "model": self.model_name,
            "input": texts,
            "task": "retrieval.query" if is_query else "retrieval.passage",
        }
        try:
            response = self._client.post("/embeddings", json=payload)
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError(f"Request to Jina failed: {exc}") from exc

        if response.is_error:
            raise EmbeddingProviderError(_error_message(response), status_code=response.status_code)

        try:
            items = response.json()["data"]
            ordered = sorted(items, key=lambda item: item["index"])
            return [[float(x) for x in item["embedding"]] for item in ordered]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingProviderError(
                f"Malformed Jina response: {exc}", status_code=response.status_code
            ) from exc

    def close(self) -> None:
        self._client.close()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body)[:200]
    return str(body)[:200]


def build_embedder(settings: IngestSettings = ingest_settings) -> Embedder:
    """Construct the configured embedder (call once per process)."""
    if settings.embedding_provider == "jina":
        return JinaEmbedder(
            settings.jina_model,
            settings.jina_api_key,
            base_url=settings.jina_base_url,
            batch_size=settings.embed_batch,
            timeout=settings.embedding_timeout,
        )
    return SentenceTransformerEmbedder(settings.embedding_model, batch_size=settings.embed_batch)
