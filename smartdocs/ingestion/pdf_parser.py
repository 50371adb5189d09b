"""
PDF text extraction with a fixed-priority fallback chain.

Strategy chain
--------------
1. **pdfminer.six** – ``high_level.extract_text`` over the whole buffer,
   returns one string. Cheap and covers the common case.
2. **PyMuPDF** (fitz) – opens the document, walks pages in order.
3. **pdfplumber** – same page walk with a different parser underneath.

The first strategy that returns without raising wins. Every strategy returns
a typed ``ExtractedText`` instead of raising, so the chain never has to
inspect library internals. The extracted text is then split on blank lines
into "pseudo-pages", which stand in for real page numbers in citations.
"""

from __future__ import annotations

import io
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Sequence

from smartdocs.ingestion.chunker import normalize_whitespace
from smartdocs.ingestion.config import ingest_settings
from smartdocs.ingestion.errors import ExtractionFailed, ExtractionUnavailable, UnsupportedFormat

logger = logging.getLogger(__name__)

_BLANK_LINES = re.compile(r"\n\s*\n")


class FailureReason(str, Enum):
    UNAVAILABLE = "unavailable"  # library missing / cannot open documents
    FAILED = "failed"  # library raised on this document


@dataclass
class ExtractedText:
    """Outcome of one extraction strategy."""

    strategy: str
    text: str = ""
    failure: FailureReason | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class ParsedPdf:
    """Pseudo-pages extracted from one file."""

    source: str
    strategy: str
    pages: list[str] = field(default_factory=list)
    dropped_pages: int = 0  # blocks beyond ``max_pseudo_pages``


# ═══════════════════════════════════════════════════════════════════════════
# Strategies
# ═══════════════════════════════════════════════════════════════════════════

class TextExtractor(ABC):
    """One way of turning PDF bytes into text."""

    name: str = ""

    def extract(self, data: bytes) -> ExtractedText:
        try:
            text = self._extract(data)
        except ImportError as exc:
            return ExtractedText(self.name, failure=FailureReason.UNAVAILABLE, detail=str(exc))
        except Exception as exc:
            logger.debug("Extractor '%s' raised: %r", self.name, exc)
            return ExtractedText(
                self.name,
                failure=FailureReason.FAILED,
                detail=f"{type(exc).__name__}: {exc}",
            )
        return ExtractedText(self.name, text=text or "")

    @abstractmethod
    def _extract(self, data: bytes) -> str:
        """Return the document text; raise on failure."""


class PdfMinerExtractor(TextExtractor):
    """Whole-buffer extraction via pdfminer.six."""

    name = "pdfminer"

    def _extract(self, data: bytes) -> str:
        from pdfminer.high_level import extract_text

        with io.BytesIO(data) as fh:
            return extract_text(fh)


class PyMuPDFExtractor(TextExtractor):
    """Page-by-page extraction via PyMuPDF."""

    name = "pymupdf"

    def _extract(self, data: bytes) -> str:
        import fitz  # PyMuPDF

        with fitz.open(stream=data, filetype="pdf") as doc:
            parts = [page.get_text() for page in doc]
        return "\n\n".join(parts)


class PdfPlumberExtractor(TextExtractor):
    """Page-by-page extraction via pdfplumber."""

    name = "pdfplumber"

    def _extract(self, data: bytes) -> str:
        import pdfplumber

        parts: list[str] = []
        with io.BytesIO(data) as fh, pdfplumber.open(fh) as pdf:
            for page in pdf.pages:
                parts.append(page.extract_text() or "")
        return "\n\n".join(parts)


DEFAULT_EXTRACTORS: tuple[TextExtractor, ...] = (
    PdfMinerExtractor(),
    PyMuPDFExtractor(),
    PdfPlumberExtractor(),
)


# ═══════════════════════════════════════════════════════════════════════════
# Chain
# ═══════════════════════════════════════════════════════════════════════════

def ensure_pdf(filename: str, content_type: str | None = None) -> None:
    """Raise ``UnsupportedFormat`` unless the MIME type or the extension says PDF."""
    mime_ok = bool(content_type) and "pdf" in content_type.lower()
    ext_ok = filename.lower().endswith(".pdf")
    if not (mime_ok or ext_ok):
        raise UnsupportedFormat(f"{filename!r} ({content_type or 'no content type'}) is not a PDF")


def extract_text(
    data: bytes,
    extractors: Sequence[TextExtractor] = DEFAULT_EXTRACTORS,
) -> ExtractedText:
    """Run the strategies in order and return the first success."""
    outcomes: list[ExtractedText] = []
    for extractor in extractors:
        result = extractor.extract(data)
        if result.ok:
            if outcomes:
                logger.info("Extraction fell back to '%s'.", result.strategy)
            return result
        logger.debug("Extractor '%s' %s: %s", result.strategy, result.failure.value, result.detail)
        outcomes.append(result)

    summary = "; ".join(f"{o.strategy}: {o.detail}" for o in outcomes)
    if all(o.failure is FailureReason.UNAVAILABLE for o in outcomes):
        raise ExtractionUnavailable(f"No extraction backend available ({summary})")
    raise ExtractionFailed(f"All extraction strategies failed ({summary})")


def split_pseudo_pages(text: str, max_pages: int | None = None) -> tuple[list[str], int]:
    """Split on blank lines; return (kept blocks, number of dropped blocks)."""
    limit = max_pages if max_pages is not None else ingest_settings.max_pseudo_pages
    blocks = [b for b in (normalize_whitespace(p) for p in _BLANK_LINES.split(text)) if b]
    return blocks[:limit], max(0, len(blocks) - limit)


def extract_pages(
    data: bytes,
    filename: str,
    content_type: str | None = None,
    *,
    extractors: Sequence[TextExtractor] = DEFAULT_EXTRACTORS,
    max_pages: int | None = None,
) -> ParsedPdf:
    """Validate, extract and split one uploaded PDF.

    Returns a ``ParsedPdf`` with no pages when the document has no text.
    """
    ensure_pdf(filename, content_type)
    source = PurePath(filename.replace("\\", "/")).name
    result = extract_text(data, extractors)
    pages, dropped = split_pseudo_pages(result.text, max_pages)
    if dropped:
        logger.info("%s: kept %d pseudo-pages, dropped %d.", source, len(pages), dropped)
    logger.info("Parsed %d pseudo-pages from %s (%s).", len(pages), source, result.strategy)
    return ParsedPdf(source=source, strategy=result.strategy, pages=pages, dropped_pages=dropped)
