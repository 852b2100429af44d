"""
Application configuration using Pydantic Settings.

Environment-based infrastructure switching is controlled by the ENVIRONMENT variable.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # LLM Configuration
    # ===========================================
    # LLM Provider: "gemini-api" | "litellm" | "disabled"
    # - gemini-api: Gemini API (API Key)
    # - litellm: LiteLLM (Bedrock, OpenAI, etc. with optional custom endpoint)
    # - disabled: no generator; summaries are not produced and topics use keywords
    LLM_PROVIDER: Literal["gemini-api", "litellm", "disabled"] = "gemini-api"

    # Gemini model name used for topic extraction and profile extraction
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Model used for session summaries (falls back to the provider default when empty)
    SUMMARY_MODEL: str = ""

    # Google API Key (for gemini-api provider and gemini embeddings)
    GOOGLE_API_KEY: str = ""

    # LiteLLM model identifier (for litellm provider)
    LITELLM_MODEL: str = "openai/gpt-4o-mini"

    # LiteLLM custom endpoint (optional, for proxy servers)
    LITELLM_API_BASE: str = ""

    # LiteLLM custom API key (optional, for custom endpoints)
    LITELLM_API_KEY: str = ""

    # ===========================================
    # Embeddings
    # ===========================================
    # "sentence-transformers" (local model) | "gemini" | "litellm"
    EMBEDDING_PROVIDER: Literal["sentence-transformers", "gemini", "litellm"] = (
        "sentence-transformers"
    )
    # Local model for the sentence-transformers provider; its size fixes the dimension
    SENTENCE_TRANSFORMER_MODEL: str = "all-MiniLM-L6-v2"
    # Remote model and output size for the gemini / litellm providers
    EMBEDDING_MODEL: str = "text-embedding-004"
    EMBEDDING_DIMENSIONS: int = 768

    # ===========================================
    # Vector Store (Qdrant)
    # ===========================================
    # Empty URL runs an in-process Qdrant (":memory:")
    VECTOR_STORE_URL: str = ""
    VECTOR_STORE_API_KEY: str = ""
    VECTOR_COLLECTION: str = "hybrid_memory"
    VECTOR_UPSERT_CHUNK_SIZE: int = 100
    VECTOR_QUERY_TIMEOUT_SECONDS: float = 10.0

    # ===========================================
    # Session Lifecycle
    # ===========================================
    SESSION_TIMEOUT_MINUTES: int = 30
    SUMMARIZATION_AGE_MINUTES: int = 10
    SUMMARIZATION_INTERVAL_MINUTES: int = 10
    SESSION_RETENTION_DAYS: int = 7
    LOCAL_SEARCH_WINDOW: int = 50
    PROFILE_EXTRACTION_EVERY_N_TURNS: int = 3

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
