"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class SessionState(str, Enum):
    """
    Summarization lifecycle of a conversation session.

    OPEN = Receiving turns, or idle for less than the summarization age
    ELIGIBLE = Idle long enough to be summarized on the next tick
    SUMMARIZING = Summary pipeline currently running
    SUMMARIZED = Terminal; summary stored and uploaded
    """

    OPEN = "OPEN"
    ELIGIBLE = "ELIGIBLE"
    SUMMARIZING = "SUMMARIZING"
    SUMMARIZED = "SUMMARIZED"


class MemoryType(str, Enum):
    """Kind of record written to the vector store."""

    CONVERSATION = "conversation"
    DOCUMENT = "document"
    NOTE = "note"
    CONVERSATION_SUMMARY = "conversation_summary"


class ResultType(str, Enum):
    """Which memory tiers contributed to a hybrid search result."""

    LOCAL = "local"
    LONG_TERM = "long-term"
    HYBRID = "hybrid"


class SearchScenario(str, Enum):
    """Preset trade-offs between vector-search cost and recall."""

    COST_OPTIMIZED = "cost-optimized"
    BALANCED = "balanced"
    COMPREHENSIVE = "comprehensive"


class TopicSource(str, Enum):
    """Kind of text topics are extracted from."""

    CONVERSATION = "conversation"
    DOCUMENT = "document"


class MessageRole(str, Enum):
    """Role of a stored chat message."""

    USER = "user"
    ASSISTANT = "assistant"
