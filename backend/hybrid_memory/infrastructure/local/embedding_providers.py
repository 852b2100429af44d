"""
Embedding providers.

- SentenceTransformerEmbeddingProvider: local sentence-transformers model (default)
- GeminiEmbeddingProvider: Gemini API embeddings (API Key)
- LiteLLMEmbeddingProvider: any embedding model LiteLLM can reach
"""

import asyncio
from typing import Any, Optional

import litellm
from sentence_transformers import SentenceTransformer

from hybrid_memory.core.config import get_settings
from hybrid_memory.core.exceptions import ConfigurationError, VectorStoreError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.embedding_provider import IEmbeddingProvider


class GeminiEmbeddingProvider(IEmbeddingProvider):
    """Gemini API embeddings (text-embedding-004 by default)."""

    def __init__(
        self,
        model_name: str,
        dimensions: int,
        api_key: Optional[str] = None,
    ):
        self._model_name = model_name
        self._dimensions = dimensions
        self._api_key = api_key or get_settings().GOOGLE_API_KEY

        if not self._api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required for Gemini embeddings")

        from google import genai

        self._client = genai.Client(api_key=self._api_key)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        from google.genai.types import EmbedContentConfig

        try:
            response = await self._client.aio.models.embed_content(
                model=self._model_name,
                contents=text,
                config=EmbedContentConfig(output_dimensionality=self._dimensions),
            )
        except Exception as e:
            logger.error(f"Gemini embedding failed: {e}")
            raise VectorStoreError(f"Embedding failed: {e}") from e

        if not response.embeddings:
            raise VectorStoreError("Embedding response was empty")
        return list(response.embeddings[0].values)


class LiteLLMEmbeddingProvider(IEmbeddingProvider):
    """Embeddings through LiteLLM (OpenAI, Bedrock, custom proxies)."""

    def __init__(
        self,
        model_name: str,
        dimensions: int,
        api_base: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        settings = get_settings()
        self._model_name = model_name
        self._dimensions = dimensions
        self._api_base = api_base or settings.LITELLM_API_BASE or None
        self._api_key = api_key or settings.LITELLM_API_KEY or None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        kwargs: dict[str, Any] = {"model": self._model_name, "input": [text]}
        if self._api_base:
            kwargs["api_base"] = self._api_base
        if self._api_key:
            kwargs["api_key"] = self._api_key

        try:
            response = await litellm.aembedding(**kwargs)
        except Exception as e:
            logger.error(f"LiteLLM embedding failed ({self._model_name}): {e}")
            raise VectorStoreError(f"Embedding failed: {e}") from e

        return list(response.data[0]["embedding"])


class SentenceTransformerEmbeddingProvider(IEmbeddingProvider):
    """
    Local sentence-transformers model (all-MiniLM-L6-v2 by default).

    Runs on the machine, no API key. encode() is CPU bound, so it runs in
    a worker thread to keep the event loop free.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: Optional[str] = None):
        try:
            self._model = SentenceTransformer(model_name, device=device)
        except Exception as e:
            raise ConfigurationError(f"Failed to load embedding model {model_name}: {e}") from e

        dimensions = self._model.get_sentence_embedding_dimension()
        if not dimensions:
            raise ConfigurationError(f"Embedding model {model_name} has no fixed dimension")
        self._model_name = model_name
        self._dimensions = int(dimensions)
        logger.info(f"Loaded embedding model {model_name} ({self._dimensions} dimensions)")

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            vectors = await asyncio.to_thread(
                self._model.encode, texts, normalize_embeddings=True
            )
        except Exception as e:
            logger.error(f"Local embedding failed ({self._model_name}): {e}")
            raise VectorStoreError(f"Embedding failed: {e}") from e

        return [[float(v) for v in vector] for vector in vectors]
