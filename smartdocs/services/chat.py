"""Chat: retrieve grounding chunks for a question and let the LLM answer."""

from __future__ import annotations

import asyncio
import logging

from smartdocs.config import settings
from smartdocs.services import llm
from smartdocs.services.retrieval import RetrievalService, build_context

logger = logging.getLogger(__name__)

NO_DOCUMENTS_ANSWER = "No documents ingested yet. Please upload PDFs first."

SYSTEM_PROMPT = """\
You are a helpful assistant that answers questions using ONLY the provided
context. Each excerpt starts with its citation in square brackets; cite the
excerpts you rely on. If the answer is not in the context, say you're unsure
and suggest what to upload.
"""


async def answer(question: str, retrieval: RetrievalService, k: int | None = None) -> dict:
    """Retrieve → build context → ask the LLM.

    Returns a dict with ``answer`` and ``citations`` (``idx``, ``source``,
    ``page``, ``text`` per retrieved chunk, best first).
    """
    result = await retrieval.search(question, k or settings.top_k)
    if result.empty:
        return {"answer": NO_DOCUMENTS_ANSWER, "citations": []}

    context = build_context(result.citations, settings.max_context_chars)
    user_prompt = f"Question: {question}\n\nGiven the following context (with citations):\n\n{context}"
    user_prompt = user_prompt[: settings.max_prompt_chars]

    reply = await asyncio.to_thread(llm.chat, SYSTEM_PROMPT, user_prompt)
    logger.info("Answered with %d citations.", len(result.citations))
    return {
        "answer": reply,
        "citations": [
            {"idx": i, "source": c.source, "page": c.page, "text": c.text}
            for i, c in enumerate(result.citations)
        ],
    }
