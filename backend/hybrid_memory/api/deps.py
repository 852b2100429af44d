"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from hybrid_memory.core.config import Settings, get_settings
from hybrid_memory.interfaces.embedding_provider import IEmbeddingProvider
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.interfaces.vector_store import IVectorStore
from hybrid_memory.services.memory_runtime import MemoryRuntime


# ===========================================
# Provider Dependencies
# ===========================================


@lru_cache()
def get_llm_provider() -> Optional[ILLMProvider]:
    """
    Get LLM provider instance based on LLM_PROVIDER setting.

    Supports:
    - gemini-api: Gemini API (API Key)
    - litellm: LiteLLM (Bedrock, OpenAI, etc. with optional custom endpoint)
    - disabled: no provider; summaries are skipped, topics use keywords
    """
    settings = get_settings()

    if settings.LLM_PROVIDER == "gemini-api":
        from hybrid_memory.infrastructure.local.gemini_api_provider import GeminiAPIProvider
        return GeminiAPIProvider(settings.GEMINI_MODEL)

    elif settings.LLM_PROVIDER == "litellm":
        from hybrid_memory.infrastructure.local.litellm_provider import LiteLLMProvider
        return LiteLLMProvider(settings.LITELLM_MODEL)

    elif settings.LLM_PROVIDER == "disabled":
        return None

    else:
        raise ValueError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")


@lru_cache()
def get_summary_llm_provider() -> Optional[ILLMProvider]:
    """LLM provider for session summaries (SUMMARY_MODEL overrides the model)."""
    provider = get_llm_provider()
    settings = get_settings()
    if provider is None or not settings.SUMMARY_MODEL:
        return provider
    return provider.with_model(settings.SUMMARY_MODEL)


@lru_cache()
def get_embedding_provider() -> IEmbeddingProvider:
    """
    Get embedding provider instance based on EMBEDDING_PROVIDER setting.

    Supports:
    - sentence-transformers: local model (SENTENCE_TRANSFORMER_MODEL), no API key
    - gemini: Gemini API embeddings (GOOGLE_API_KEY)
    - litellm: any embedding model LiteLLM can reach
    """
    settings = get_settings()

    if settings.EMBEDDING_PROVIDER == "sentence-transformers":
        from hybrid_memory.infrastructure.local.embedding_providers import (
            SentenceTransformerEmbeddingProvider,
        )
        return SentenceTransformerEmbeddingProvider(settings.SENTENCE_TRANSFORMER_MODEL)

    elif settings.EMBEDDING_PROVIDER == "gemini":
        from hybrid_memory.infrastructure.local.embedding_providers import GeminiEmbeddingProvider
        return GeminiEmbeddingProvider(settings.EMBEDDING_MODEL, settings.EMBEDDING_DIMENSIONS)

    elif settings.EMBEDDING_PROVIDER == "litellm":
        from hybrid_memory.infrastructure.local.embedding_providers import LiteLLMEmbeddingProvider
        return LiteLLMEmbeddingProvider(settings.EMBEDDING_MODEL, settings.EMBEDDING_DIMENSIONS)

    else:
        raise ValueError(f"Unknown EMBEDDING_PROVIDER: {settings.EMBEDDING_PROVIDER}")


@lru_cache()
def get_vector_store() -> IVectorStore:
    """Get vector store instance (remote Qdrant, or in-process when no URL is set)."""
    settings = get_settings()
    from hybrid_memory.infrastructure.qdrant.vector_store import QdrantVectorStore

    return QdrantVectorStore(
        collection_name=settings.VECTOR_COLLECTION,
        dimensions=get_embedding_provider().dimensions,
        url=settings.VECTOR_STORE_URL or None,
        api_key=settings.VECTOR_STORE_API_KEY or None,
    )


# ===========================================
# Runtime Dependency
# ===========================================


@lru_cache()
def get_memory_runtime() -> MemoryRuntime:
    """Get the process-wide memory runtime."""
    return MemoryRuntime(
        embedding_provider=get_embedding_provider(),
        vector_store=get_vector_store(),
        llm_provider=get_llm_provider(),
        summary_llm_provider=get_summary_llm_provider(),
        settings=get_settings(),
    )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

AppSettings = Annotated[Settings, Depends(get_settings)]
Runtime = Annotated[MemoryRuntime, Depends(get_memory_runtime)]
