"""
Vector store interface.

Durable long-term memory backing store. Metadata filters are flat
equality matches on payload keys.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from hybrid_memory.models.memory import VectorMatch, VectorRecord


class IVectorStore(ABC):
    """Abstract interface for vector store operations."""

    @abstractmethod
    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        """Insert or replace a single vector."""
        pass

    @abstractmethod
    async def upsert_batch(self, records: list[VectorRecord], chunk_size: int = 100) -> int:
        """
        Insert or replace many vectors, chunked.

        Returns:
            Number of records written
        """
        pass

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int,
        filter: Optional[dict[str, Any]] = None,
        threshold: Optional[float] = None,
    ) -> list[VectorMatch]:
        """
        Return up to top_k nearest matches, best first.

        Matches scoring below threshold are dropped.
        """
        pass

    @abstractmethod
    async def delete_one(self, id: str) -> None:
        pass

    @abstractmethod
    async def delete_many(self, filter: dict[str, Any]) -> None:
        """Delete every vector whose metadata matches the filter."""
        pass

    @abstractmethod
    async def describe_stats(self) -> dict[str, Any]:
        """Return backend statistics (total vector count, dimensions, ...)."""
        pass

    @abstractmethod
    async def scroll(self, filter: dict[str, Any], limit: int) -> list[VectorMatch]:
        """List up to limit stored vectors matching the filter, unordered (score 0)."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
