"""Thin wrapper around an OpenAI-compatible chat-completion API (OpenRouter)."""

from __future__ import annotations

import logging

from openai import OpenAI as _HTTPClient
from openai import OpenAIError

from smartdocs.config import settings
from smartdocs.ingestion.errors import AnswerGenerationError

logger = logging.getLogger(__name__)

_client: _HTTPClient | None = None


def _get_client() -> _HTTPClient:
    global _client
    if _client is None:
        _client = _HTTPClient(
            base_url=settings.openrouter_base_url,
            api_key=settings.openrouter_api_key or "unused",
            default_headers={
                "HTTP-Referer": settings.site_url,
                "X-Title": settings.app_title,
            },
        )
    return _client


def chat(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int = 1024,
) -> str:
    """Send a chat completion request and return the assistant's reply."""
    client = _get_client()
    try:
        response = client.chat.completions.create(
            model=model or settings.llm_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=settings.llm_temperature if temperature is None else temperature,
            max_tokens=max_tokens,
        )
    except OpenAIError as exc:
        raise AnswerGenerationError(f"LLM request failed: {exc}") from exc

    if not response.choices:
        return "No answer"
    content = response.choices[0].message.content or ""
    logger.debug("LLM response (%d chars): %s…", len(content), content[:120])
    return content.strip() or "No answer"
