"""
ChromaDB-backed append-only chunk store.

Layout
------
One collection (default l2 space, vectors stored as given). Each record is
one chunk *and* its vector:

- id        – zero-padded ``sequence_index``
- document  – chunk text
- metadata  – ``source``, ``page``, ``sequence_index``, ``fingerprint``
- embedding – the chunk's vector

Because chunk and vector live in the same row, the positional alignment of
``read_all`` can't drift. Appends, reads and resets are serialised by one
lock so concurrent appends never share sequence numbers and a reader sees
either the state before an append or the state after it.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Iterable, Sequence

import chromadb
from chromadb.config import Settings as ChromaSettings

os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

from smartdocs.ingestion.config import ingest_settings
from smartdocs.ingestion.errors import DimensionMismatch, LengthMismatch, StoreUnavailable
from smartdocs.ingestion.schemas import Chunk, StoredChunk, StoreSnapshot

logger = logging.getLogger(__name__)

_ID_WIDTH = 12
_IN_FILTER_MAX = 500  # fingerprints per ``$in`` lookup
_SEQUENCE_FLOOR = "sequence_floor"  # collection metadata: first index after a reset


def _record_id(sequence_index: int) -> str:
    return str(sequence_index).zfill(_ID_WIDTH)


class ChunkVectorStore:
    """Persistent, append-only collection of (chunk, vector) pairs."""

    def __init__(
        self,
        chroma_dir: Path | None = None,
        collection_name: str | None = None,
    ) -> None:
        self._dir = Path(chroma_dir or ingest_settings.chroma_dir)
        self._name = collection_name or ingest_settings.collection_name
        self._lock = threading.Lock()
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(
                path=str(self._dir),
                settings=ChromaSettings(anonymized_telemetry=False),
            )
            self._collection = self._open_collection()
            self._next_index, self._dimension = self._scan()
        except Exception as exc:
            raise StoreUnavailable(f"Cannot open ChromaDB at {self._dir}: {exc}") from exc

        logger.info(
            "ChromaDB collection '%s': %d chunks (next sequence index %d).",
            self._name,
            self.count(),
            self._next_index,
        )

    def _open_collection(self, sequence_floor: int | None = None):
        # Default l2 space keeps stored vectors exact; cosine space normalises them.
        if sequence_floor is None:
            return self._client.get_or_create_collection(name=self._name)
        return self._client.get_or_create_collection(
            name=self._name,
            metadata={_SEQUENCE_FLOOR: sequence_floor},
        )

    def _scan(self) -> tuple[int, int | None]:
        """Recover the next sequence index and vector dimension after a restart."""
        res = self._collection.get(include=["metadatas"])
        metas = res.get("metadatas") or []
        floor = int((self._collection.metadata or {}).get(_SEQUENCE_FLOOR, 0))
        next_index = max(
            max((int(m["sequence_index"]) for m in metas), default=-1) + 1,
            floor,
        )

        dimension = None
        if metas:
            first = self._collection.get(limit=1, include=["embeddings"])
            embs = first.get("embeddings")
            if embs is not None and len(embs):
                dimension = len(embs[0])
        return next_index, dimension

    # ── Write ─────────────────────────────────────────────────────────
    def append_all(
        self,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
    ) -> list[StoredChunk]:
        """Persist chunks with their vectors; return what was actually stored.

        Pairs whose fingerprint is already persisted are skipped.
        """
        if len(chunks) != len(vectors):
            raise LengthMismatch(f"{len(chunks)} chunks but {len(vectors)} vectors")
        if not chunks:
            return []
        dims = {len(v) for v in vectors}
        if len(dims) != 1:
            raise DimensionMismatch(f"Mixed vector dimensionalities in one append: {sorted(dims)}")
        dim = dims.pop()

        with self._lock:
            if self._dimension is not None and dim != self._dimension:
                raise DimensionMismatch(f"Store holds {self._dimension}-dim vectors, got {dim}")

            known = self._known_fingerprints([c.fingerprint for c in chunks])
            stored: list[StoredChunk] = []
            rows: list[list[float]] = []
            for chunk, vec in zip(chunks, vectors):
                fp = chunk.fingerprint
                if fp in known:
                    continue
                known.add(fp)
                stored.append(
                    StoredChunk(
                        text=chunk.text,
                        source=chunk.source,
                        page=chunk.page,
                        sequence_index=self._next_index + len(stored),
                    )
                )
                rows.append([float(x) for x in vec])

            if not stored:
                return []
            try:
                self._collection.add(
                    ids=[_record_id(s.sequence_index) for s in stored],
                    documents=[s.text for s in stored],
                    metadatas=[_to_metadata(s) for s in stored],
                    embeddings=rows,
                )
            except Exception as exc:
                raise StoreUnavailable(f"Append to '{self._name}' failed: {exc}") from exc

            self._next_index += len(stored)
            self._dimension = dim

        logger.debug(
            "Appended %d chunks (sequence %d–%d).",
            len(stored),
            stored[0].sequence_index,
            stored[-1].sequence_index,
        )
        return stored

    def reset(self) -> None:
        """Drop every chunk. Sequence numbering keeps increasing, across restarts too."""
        with self._lock:
            try:
                self._client.delete_collection(self._name)
                self._collection = self._open_collection(sequence_floor=self._next_index)
            except Exception as exc:
                raise StoreUnavailable(f"Reset of '{self._name}' failed: {exc}") from exc
            self._dimension = None
        logger.info("ChromaDB collection '%s' reset.", self._name)

    # ── Read ──────────────────────────────────────────────────────────
    def read_all(self) -> StoreSnapshot:
        """Every chunk and vector, aligned, ascending ``sequence_index``."""
        with self._lock:
            try:
                res = self._collection.get(include=["documents", "metadatas", "embeddings"])
            except Exception as exc:
                raise StoreUnavailable(f"Read of '{self._name}' failed: {exc}") from exc

        docs = res.get("documents") or []
        metas = res.get("metadatas") or []
        embs = res.get("embeddings")
        if embs is None:
            embs = []

        rows = sorted(zip(metas, docs, embs), key=lambda r: int(r[0]["sequence_index"]))
        snapshot = StoreSnapshot()
        for meta, doc, emb in rows:
            snapshot.chunks.append(
                StoredChunk(
                    text=doc,
                    source=str(meta["source"]),
                    page=int(meta["page"]),
                    sequence_index=int(meta["sequence_index"]),
                )
            )
            snapshot.embeddings.append([float(x) for x in emb])
        return snapshot

    def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as exc:
            raise StoreUnavailable(f"Count of '{self._name}' failed: {exc}") from exc

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def known_fingerprints(self, fingerprints: Iterable[str]) -> set[str]:
        """Subset of *fingerprints* that is already persisted."""
        with self._lock:
            return self._known_fingerprints(fingerprints)

    def _known_fingerprints(self, fingerprints: Iterable[str]) -> set[str]:
        wanted = list(dict.fromkeys(fingerprints))
        found: set[str] = set()
        try:
            for i in range(0, len(wanted), _IN_FILTER_MAX):
                res = self._collection.get(
                    where={"fingerprint": {"$in": wanted[i : i + _IN_FILTER_MAX]}},
                    include=["metadatas"],
                )
                found.update(str(m["fingerprint"]) for m in res.get("metadatas") or [])
        except Exception as exc:
            raise StoreUnavailable(f"Fingerprint lookup in '{self._name}' failed: {exc}") from exc
        return found


def _to_metadata(chunk: StoredChunk) -> dict[str, Any]:
    # ChromaDB metadata values must be str | int | float | bool
    return {
        "source": chunk.source,
        "page": chunk.page,
        "sequence_index": chunk.sequence_index,
        "fingerprint": chunk.fingerprint,
    }
