"""
Long-term memory and hybrid search models.

MemoryItem is the unit written to the vector store; HybridMemoryResult is
what the orchestrator hands back to callers.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from hybrid_memory.models.conversation import Turn
from hybrid_memory.models.enums import MemoryType, ResultType


class MemoryMetadata(BaseModel):
    """Metadata stored alongside each vector."""

    timestamp: int
    type: MemoryType = MemoryType.NOTE
    source: Optional[str] = None
    user_id: Optional[str] = None
    chat_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    session_id: Optional[str] = None
    turn_count: Optional[int] = None
    timespan_start: Optional[int] = None
    timespan_end: Optional[int] = None
    is_first_message: Optional[bool] = None
    turn_id: Optional[str] = None
    role: Optional[str] = None
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    has_image: Optional[bool] = None

    def to_payload(self) -> dict[str, Any]:
        """Flatten to a vector-store payload, dropping unset fields."""
        return self.model_dump(mode="json", exclude_none=True)


class MemoryItem(BaseModel):
    """A piece of text destined for the vector store."""

    id: str
    content: str
    metadata: MemoryMetadata


class SearchResult(MemoryItem):
    """A vector-store match with its similarity score."""

    score: float = Field(..., description="Similarity score (0-1)")


class VectorRecord(BaseModel):
    """Embedded item ready for upsert."""

    id: str
    vector: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorMatch(BaseModel):
    """Raw match returned by a vector store query."""

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class MemorySearchOptions(BaseModel):
    """Knobs for a hybrid memory search."""

    max_local_results: int = Field(5, ge=0)
    max_long_term_results: int = Field(3, ge=0)
    threshold: float = Field(0.3, ge=0.0, le=1.0, description="Minimum long-term similarity")
    include_local_summaries: bool = True
    skip_vector_search_if_local_found: bool = True
    min_local_results_for_skip: int = Field(2, ge=0)
    chat_id: Optional[str] = Field(None, description="Restrict long-term search to one chat")
    is_new_chat: bool = False
    timeout_seconds: Optional[float] = Field(None, gt=0)


class SkipDecision(BaseModel):
    """Outcome of the cost optimization policy."""

    skip: bool
    reason: str


class ResultCount(BaseModel):
    local: int
    long_term: int


class OptimizationInfo(BaseModel):
    """Records whether the vector search was skipped, for observability."""

    skipped_vector_search: bool
    reason: str
    cost_savings: bool


class HybridMemoryResult(BaseModel):
    """Merged context from local turns, summaries and long-term memories."""

    type: ResultType
    local_results: list[Turn] = Field(default_factory=list)
    long_term_results: list[SearchResult] = Field(default_factory=list)
    combined_context: str
    result_count: ResultCount
    optimization: OptimizationInfo


class StoredChatMessage(BaseModel):
    """Chat message restored from the vector store."""

    id: str
    chat_id: str
    user_id: str
    role: str
    content: str
    timestamp: int
    turn_id: str
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    has_image: Optional[bool] = None


class StoredChat(BaseModel):
    """Chat rebuilt from the vector store."""

    chat_id: str
    user_id: str
    title: str
    messages: list[StoredChatMessage] = Field(default_factory=list)
    created_at: int
    updated_at: int
