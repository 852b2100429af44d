"""
Qdrant-backed vector store.

Runs against a remote Qdrant server when VECTOR_STORE_URL is set, otherwise
against an in-process instance (":memory:"). Memory ids are arbitrary
strings, so each is mapped to a deterministic UUID and kept in the payload
under "memory_id".
"""

import asyncio
import uuid
from typing import Any, Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from hybrid_memory.core.exceptions import VectorStoreError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.vector_store import IVectorStore
from hybrid_memory.models.memory import VectorMatch, VectorRecord

MEMORY_ID_KEY = "memory_id"
INDEXED_KEYS = ("user_id", "chat_id", "type", "session_id")


def point_id_for(memory_id: str) -> str:
    """Deterministic Qdrant point id for a memory id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, memory_id))


def build_filter(filter: Optional[dict[str, Any]]) -> Optional[Filter]:
    """Translate a flat equality dict into a Qdrant filter."""
    if not filter:
        return None
    return Filter(
        must=[
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in filter.items()
        ]
    )


class QdrantVectorStore(IVectorStore):
    """IVectorStore implementation on qdrant-client's async API."""

    def __init__(
        self,
        collection_name: str,
        dimensions: int,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[AsyncQdrantClient] = None,
    ):
        self._collection = collection_name
        self._dimensions = dimensions
        self._remote = bool(url)
        if client is not None:
            self._client = client
        elif url:
            self._client = AsyncQdrantClient(url=url, api_key=api_key or None)
        else:
            self._client = AsyncQdrantClient(location=":memory:")
        self._ready = False
        self._lock = asyncio.Lock()

    async def _ensure_collection(self) -> None:
        if self._ready:
            return
        async with self._lock:
            if self._ready:
                return
            try:
                if not await self._client.collection_exists(self._collection):
                    await self._client.create_collection(
                        collection_name=self._collection,
                        vectors_config=VectorParams(
                            size=self._dimensions, distance=Distance.COSINE
                        ),
                    )
                    logger.info(
                        f"Created vector collection '{self._collection}' "
                        f"({self._dimensions} dims, cosine)"
                    )
                    if self._remote:
                        for key in INDEXED_KEYS:
                            await self._client.create_payload_index(
                                collection_name=self._collection,
                                field_name=key,
                                field_schema=PayloadSchemaType.KEYWORD,
                            )
            except Exception as e:
                raise VectorStoreError(f"Failed to prepare collection: {e}") from e
            self._ready = True

    def _point(self, id: str, vector: list[float], metadata: dict[str, Any]) -> PointStruct:
        if len(vector) != self._dimensions:
            raise VectorStoreError(
                f"Dimension mismatch: collection expects {self._dimensions}, got {len(vector)}",
                details={"id": id},
            )
        payload = dict(metadata)
        payload[MEMORY_ID_KEY] = id
        return PointStruct(id=point_id_for(id), vector=vector, payload=payload)

    @staticmethod
    def _to_match(point: Any) -> VectorMatch:
        payload = dict(point.payload or {})
        memory_id = payload.pop(MEMORY_ID_KEY, str(point.id))
        score = getattr(point, "score", None) or 0.0
        return VectorMatch(id=memory_id, score=float(score), metadata=payload)

    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        await self._ensure_collection()
        point = self._point(id, vector, metadata)
        try:
            await self._client.upsert(collection_name=self._collection, points=[point])
        except Exception as e:
            raise VectorStoreError(f"Failed to upsert {id}: {e}") from e

    async def upsert_batch(self, records: list[VectorRecord], chunk_size: int = 100) -> int:
        if not records:
            return 0
        await self._ensure_collection()
        points = [self._point(r.id, r.vector, r.metadata) for r in records]
        try:
            for start in range(0, len(points), chunk_size):
                await self._client.upsert(
                    collection_name=self._collection,
                    points=points[start : start + chunk_size],
                )
        except Exception as e:
            raise VectorStoreError(f"Failed to upsert batch: {e}") from e
        return len(points)

    async def query(
        self,
        vector: list[float],
        top_k: int,
        filter: Optional[dict[str, Any]] = None,
        threshold: Optional[float] = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        await self._ensure_collection()
        try:
            response = await self._client.query_points(
                collection_name=self._collection,
                query=vector,
                query_filter=build_filter(filter),
                limit=top_k,
                score_threshold=threshold,
                with_payload=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Vector query failed: {e}") from e
        return [self._to_match(point) for point in response.points]

    async def scroll(self, filter: dict[str, Any], limit: int) -> list[VectorMatch]:
        await self._ensure_collection()
        try:
            points, _next = await self._client.scroll(
                collection_name=self._collection,
                scroll_filter=build_filter(filter),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise VectorStoreError(f"Vector scroll failed: {e}") from e
        return [self._to_match(point) for point in points]

    async def delete_one(self, id: str) -> None:
        await self._ensure_collection()
        try:
            await self._client.delete(
                collection_name=self._collection,
                points_selector=PointIdsList(points=[point_id_for(id)]),
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to delete {id}: {e}") from e

    async def delete_many(self, filter: dict[str, Any]) -> None:
        if not filter:
            raise VectorStoreError("Refusing to delete with an empty filter")
        await self._ensure_collection()
        try:
            await self._client.delete(
                collection_name=self._collection,
                points_selector=FilterSelector(filter=build_filter(filter)),
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to delete by filter: {e}") from e

    async def describe_stats(self) -> dict[str, Any]:
        await self._ensure_collection()
        try:
            result = await self._client.count(collection_name=self._collection, exact=True)
        except Exception as e:
            raise VectorStoreError(f"Failed to read collection stats: {e}") from e
        return {
            "collection": self._collection,
            "total_vector_count": result.count,
            "dimension": self._dimensions,
        }

    async def close(self) -> None:
        await self._client.close()
