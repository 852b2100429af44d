"""Pydantic models (schemas) for the application."""

from hybrid_memory.models.enums import (
    MemoryType,
    MessageRole,
    ResultType,
    SearchScenario,
    SessionState,
    TopicSource,
)
from hybrid_memory.models.conversation import ImageAttachment, Session, Summary, Timespan, Turn
from hybrid_memory.models.memory import (
    HybridMemoryResult,
    MemoryItem,
    MemoryMetadata,
    MemorySearchOptions,
    OptimizationInfo,
    ResultCount,
    SearchResult,
    SkipDecision,
    StoredChat,
    StoredChatMessage,
    VectorMatch,
    VectorRecord,
)
from hybrid_memory.models.profile import ProfileExtractionResult, ProfileFields, UserProfile

__all__ = [
    # Enums
    "MemoryType",
    "MessageRole",
    "ResultType",
    "SearchScenario",
    "SessionState",
    "TopicSource",
    # Conversation
    "ImageAttachment",
    "Session",
    "Summary",
    "Timespan",
    "Turn",
    # Memory
    "HybridMemoryResult",
    "MemoryItem",
    "MemoryMetadata",
    "MemorySearchOptions",
    "OptimizationInfo",
    "ResultCount",
    "SearchResult",
    "SkipDecision",
    "StoredChat",
    "StoredChatMessage",
    "VectorMatch",
    "VectorRecord",
    # Profile
    "ProfileExtractionResult",
    "ProfileFields",
    "UserProfile",
]
