"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration – values are read from `.env` or the environment."""

    # LLM (any OpenAI-compatible endpoint, OpenRouter by default)
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: str = ""
    llm_model: str = "google/gemma-2-9b-it:free"
    llm_temperature: float = 0.2
    site_url: str = "http://localhost:8000"
    app_title: str = "SmartDocs RAG"

    # Retrieval / prompt budget
    top_k: int = 4
    max_context_chars: int = 8000
    max_prompt_chars: int = 10000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
