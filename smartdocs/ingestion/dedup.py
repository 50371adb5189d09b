"""
Chunk fingerprinting and duplicate suppression.

A fingerprint is the SHA-256 of ``source``, ``page`` and ``text`` joined by
the ASCII unit separator. Normalised chunk text never contains control
characters, so the joined form is unambiguous.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from smartdocs.ingestion.schemas import Chunk

logger = logging.getLogger(__name__)

_SEP = "\x1f"


def fingerprint(source: str, page: int, text: str) -> str:
    payload = _SEP.join((source, str(page), text))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class Deduplicator:
    """Remembers every fingerprint seen during one ingestion request.

    Seed it with the fingerprints already persisted so re-uploads of the
    same document contribute nothing.
    """

    def __init__(self, known: Iterable[str] = ()) -> None:
        self._seen: set[str] = set(known)
        self.dropped = 0

    def is_duplicate(self, chunk: Chunk) -> bool:
        fp = chunk.fingerprint
        if fp in self._seen:
            self.dropped += 1
            logger.debug("Duplicate chunk dropped: %s p.%d", chunk.source, chunk.page)
            return True
        self._seen.add(fp)
        return False

    def __len__(self) -> int:
        return len(self._seen)
