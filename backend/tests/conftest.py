"""
Shared pytest fixtures.

The environment is pinned before any application import so the cached
settings never pick up a developer's .env values.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["LLM_PROVIDER"] = "disabled"
os.environ["EMBEDDING_PROVIDER"] = "sentence-transformers"
os.environ["VECTOR_STORE_URL"] = ""

from unittest.mock import AsyncMock

import pytest

from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.services.long_term_memory_service import LongTermMemoryService
from hybrid_memory.services.session_store import SessionStore
from hybrid_memory.services.summary_store import SummaryStore
from hybrid_memory.utils.datetime_utils import ManualClock


@pytest.fixture
def clock():
    """Manual clock starting at a fixed instant."""
    return ManualClock()


@pytest.fixture
def session_store(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def summary_store():
    return SummaryStore()


@pytest.fixture
def mock_llm():
    """LLM provider whose generate() is an AsyncMock."""
    llm = AsyncMock(spec=ILLMProvider)
    llm.generate.return_value = "programming, web-development"
    return llm


@pytest.fixture
def mock_long_term():
    """LongTermMemoryService with every coroutine mocked."""
    service = AsyncMock(spec=LongTermMemoryService)
    service.search_memories.return_value = []
    service.store_memories.side_effect = lambda items: len(items)
    return service
