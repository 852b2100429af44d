"""
Embedding provider interface.

Turns text into dense vectors for the long-term memory store.
Implementations: local sentence-transformers, Gemini API, LiteLLM
"""

from abc import ABC, abstractmethod


class IEmbeddingProvider(ABC):
    """Abstract interface for text embedding providers."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector returned by embed()."""
        pass

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            VectorStoreError: If the embedding call fails
        """
        pass

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts; default implementation embeds one by one."""
        return [await self.embed(text) for text in texts]
