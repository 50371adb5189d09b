"""
Keyword recall@k over a handful of canned questions.

A case passes when any of its ``must_include`` keywords occurs
(case-insensitively) in the text of the top-k retrieved chunks. Edit
``SAMPLE_CASES`` to match the documents you ingest.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic import BaseModel, Field

from smartdocs.services.retrieval import RetrievalService

logger = logging.getLogger(__name__)


class EvalCase(BaseModel):
    question: str
    must_include: list[str] = Field(default_factory=list)


class RetrievedRef(BaseModel):
    source: str
    page: int


class EvalResult(BaseModel):
    question: str
    retrieved: list[RetrievedRef]
    passed: bool


class EvalReport(BaseModel):
    k: int
    total: int
    passed: int
    recall_at_k: float
    results: list[EvalResult]


SAMPLE_CASES: list[EvalCase] = [
    EvalCase(question="What is the document about?", must_include=["about", "purpose", "summary"]),
    EvalCase(question="Who is the issuer or organization?", must_include=["company", "organization", "issuer"]),
    EvalCase(question="List key dates mentioned.", must_include=["date", "202", "20"]),
]


async def evaluate(
    retrieval: RetrievalService,
    cases: Sequence[EvalCase] = SAMPLE_CASES,
    k: int = 4,
) -> EvalReport:
    """Run every case through retrieval and score keyword hits."""
    results: list[EvalResult] = []
    hits = 0
    for case in cases:
        found = await retrieval.search(case.question, k)
        context = " ".join(c.text.lower() for c in found.citations)
        passed = any(word.lower() in context for word in case.must_include)
        hits += passed
        results.append(
            EvalResult(
                question=case.question,
                retrieved=[RetrievedRef(source=c.source, page=c.page) for c in found.citations],
                passed=passed,
            )
        )

    total = len(cases)
    recall = hits / total if total else 0.0
    logger.info("Retrieval eval: %d/%d passed (recall@%d = %.2f).", hits, total, k, recall)
    return EvalReport(k=k, total=total, passed=hits, recall_at_k=recall, results=results)
