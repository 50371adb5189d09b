"""
Error taxonomy for ingestion and retrieval.

Every error carries a ``public_message`` that is safe to return to API
callers; the full ``str(exc)`` (which may include provider payloads or
file names) is only meant for logs.
"""

from __future__ import annotations


class SmartDocsError(Exception):
    """Base class for every error raised by the ingestion/retrieval core."""

    public_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


# ── Per-file extraction errors (recoverable) ─────────────────────────────

class UnsupportedFormat(SmartDocsError):
    """Neither the declared MIME type nor the file extension says PDF."""

    public_message = "Unsupported file format (PDF only)"


class ExtractionError(SmartDocsError):
    """No extraction strategy produced text for a file."""

    public_message = "Could not extract text from PDF"


class ExtractionUnavailable(ExtractionError):
    """None of the configured PDF libraries could be loaded."""

    public_message = "No PDF extraction backend available"


class ExtractionFailed(ExtractionError):
    """Every available extraction strategy raised on this document."""


# ── Request-level errors ─────────────────────────────────────────────────

class NoReadableText(SmartDocsError):
    """An ingestion request produced zero chunks across all its files."""

    public_message = "No readable text extracted"


class EmbeddingProviderError(SmartDocsError):
    """The embedding provider returned a non-success response."""

    public_message = "Embedding provider error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        prefix = f"[{status_code}] " if status_code is not None else ""
        super().__init__(f"{prefix}{message}")


class StoreUnavailable(SmartDocsError):
    """The vector store backend could not be reached or written."""

    public_message = "Vector store unavailable"


class AnswerGenerationError(SmartDocsError):
    """The answer-generating LLM call failed."""

    public_message = "Answer generation failed"


# ── Contract violations (never coerced) ──────────────────────────────────

class LengthMismatch(SmartDocsError):
    """Chunks and vectors passed to an append differ in length."""


class DimensionMismatch(SmartDocsError):
    """Vectors of different dimensionality were mixed."""
