"""
Long-term memory service.

Facade over the embedding provider and the vector store: embeds MemoryItems,
upserts them with their metadata, and turns raw matches back into
SearchResults. Every failure surfaces as VectorStoreError.
"""

from typing import Any, Optional

from hybrid_memory.core.exceptions import VectorStoreError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.embedding_provider import IEmbeddingProvider
from hybrid_memory.interfaces.vector_store import IVectorStore
from hybrid_memory.models.enums import MemoryType
from hybrid_memory.models.memory import (
    MemoryItem,
    MemoryMetadata,
    SearchResult,
    VectorMatch,
    VectorRecord,
)
from hybrid_memory.utils.datetime_utils import Clock, SystemClock

CONTENT_KEY = "content"
_MEMORY_TYPES = {t.value for t in MemoryType}


def _wrap(action: str, error: Exception) -> VectorStoreError:
    if isinstance(error, VectorStoreError):
        return error
    return VectorStoreError(f"Failed to {action}: {error}")


class LongTermMemoryService:
    """Embeds and stores memories; semantic search with chat-scoped filters."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStore,
        upsert_chunk_size: int = 100,
        clock: Optional[Clock] = None,
    ):
        self._embedder = embedding_provider
        self._store = vector_store
        self._chunk_size = upsert_chunk_size
        self._clock = clock or SystemClock()

    @staticmethod
    def _payload(item: MemoryItem) -> dict[str, Any]:
        payload = item.metadata.to_payload()
        payload[CONTENT_KEY] = item.content
        return payload

    def _to_result(self, match: VectorMatch) -> SearchResult:
        payload = dict(match.metadata)
        content = payload.pop(CONTENT_KEY, "") or ""
        if not payload.get("timestamp"):
            payload["timestamp"] = self._clock.now_ms()
        if payload.get("type") not in _MEMORY_TYPES:
            payload["type"] = MemoryType.NOTE.value
        return SearchResult(
            id=match.id,
            content=content,
            score=match.score,
            metadata=MemoryMetadata.model_validate(payload),
        )

    async def store_memory(self, item: MemoryItem) -> None:
        """Embed and upsert a single memory."""
        try:
            vector = await self._embedder.embed(item.content)
            await self._store.upsert(item.id, vector, self._payload(item))
        except Exception as e:
            logger.error(f"Error storing memory {item.id}: {e}")
            raise _wrap("store memory", e) from e
        logger.info(f"Memory stored with ID: {item.id}")

    async def store_memories(self, items: list[MemoryItem]) -> int:
        """Embed and upsert many memories in chunks. Returns the count stored."""
        if not items:
            return 0
        try:
            records = [
                VectorRecord(
                    id=item.id,
                    vector=await self._embedder.embed(item.content),
                    metadata=self._payload(item),
                )
                for item in items
            ]
            stored = await self._store.upsert_batch(records, chunk_size=self._chunk_size)
        except Exception as e:
            logger.error(f"Error storing {len(items)} memories: {e}")
            raise _wrap("store memories", e) from e
        logger.info(f"{stored} memories stored successfully")
        return stored

    @staticmethod
    def build_search_filter(
        user_id: Optional[str] = None,
        chat_id: Optional[str] = None,
        is_new_chat: bool = False,
        base: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Scope a search.

        - New chat: every chat of the user, to discover cross-chat context
        - Existing chat: only that chat
        - Otherwise: every chat of the user
        """
        search_filter = dict(base or {})
        if not user_id:
            return search_filter
        search_filter["user_id"] = user_id
        if chat_id and not is_new_chat:
            search_filter["chat_id"] = chat_id
        return search_filter

    async def search_memories(
        self,
        query: str,
        top_k: int = 5,
        threshold: float = 0.7,
        user_id: Optional[str] = None,
        chat_id: Optional[str] = None,
        is_new_chat: bool = False,
        filter: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        """
        Semantic search, best match first.

        Raises:
            VectorStoreError: If embedding or the query fails
        """
        search_filter = self.build_search_filter(user_id, chat_id, is_new_chat, filter)
        try:
            vector = await self._embedder.embed(query)
            matches = await self._store.query(
                vector, top_k=top_k, filter=search_filter or None, threshold=threshold
            )
        except Exception as e:
            logger.error(f"Error searching memories: {e}")
            raise _wrap("search memories", e) from e

        results = [self._to_result(m) for m in matches if m.score >= threshold]
        logger.info(f"Found {len(results)} relevant memories for query: \"{query[:50]}\"")
        return results

    async def list_memories(self, filter: dict[str, Any], limit: int = 200) -> list[SearchResult]:
        """Stored memories matching a metadata filter, without ranking."""
        try:
            matches = await self._store.scroll(filter, limit)
        except Exception as e:
            raise _wrap("list memories", e) from e
        return [self._to_result(m) for m in matches]

    async def delete_memory(self, memory_id: str) -> None:
        try:
            await self._store.delete_one(memory_id)
        except Exception as e:
            logger.error(f"Error deleting memory {memory_id}: {e}")
            raise _wrap("delete memory", e) from e
        logger.info(f"Memory deleted: {memory_id}")

    async def delete_memories(self, filter: dict[str, Any]) -> None:
        try:
            await self._store.delete_many(filter)
        except Exception as e:
            logger.error(f"Error deleting memories by {filter}: {e}")
            raise _wrap("delete memories", e) from e
        logger.info(f"Memories deleted based on filter: {filter}")

    async def get_memory_stats(self) -> dict[str, int]:
        try:
            stats = await self._store.describe_stats()
        except Exception as e:
            raise _wrap("read memory stats", e) from e
        return {
            "total_vectors": int(stats.get("total_vector_count", 0)),
            "index_dimension": int(stats.get("dimension", 0)),
        }
