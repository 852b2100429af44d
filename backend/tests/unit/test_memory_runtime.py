"""
Unit tests for MemoryRuntime wiring and background task handling.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from hybrid_memory.core.exceptions import ValidationError
from hybrid_memory.interfaces.vector_store import IVectorStore
from hybrid_memory.services.memory_runtime import MemoryRuntime
from tests.fakes import HashingEmbeddingProvider

PROFILE_JSON = '{"name": "Mia", "interests": ["chess"]}'


@pytest.fixture
def vector_store():
    store = AsyncMock(spec=IVectorStore)
    store.query.return_value = []
    store.scroll.return_value = []
    store.upsert_batch.side_effect = lambda records, chunk_size=100: len(records)
    return store


@pytest.fixture
def runtime(clock, vector_store, mock_llm):
    mock_llm.generate.return_value = PROFILE_JSON
    return MemoryRuntime(
        embedding_provider=HashingEmbeddingProvider(64),
        vector_store=vector_store,
        llm_provider=mock_llm,
        clock=clock,
    )


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, runtime, vector_store):
        await runtime.start()
        assert runtime.started is True
        # Periodic tick is disabled under tests
        assert runtime.scheduler.is_running is False

        await runtime.stop()

        assert runtime.started is False
        vector_store.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_cancels_background_tasks(self, runtime):
        task = runtime.spawn(asyncio.sleep(60), name="slow")
        assert runtime.pending_tasks == 1

        await runtime.stop()

        assert task.cancelled()
        assert runtime.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_failed_background_task_is_contained(self, runtime):
        async def boom():
            raise RuntimeError("extractor crashed")

        runtime.spawn(boom(), name="boom")
        await runtime.wait_for_background_tasks()

        assert runtime.pending_tasks == 0


class TestOperations:
    @pytest.mark.asyncio
    async def test_every_third_turn_updates_profile(self, runtime, mock_llm):
        for i in range(3):
            await runtime.add_turn("user-1", f"prompt {i}", "answer", chat_id="chat-1")
        await runtime.wait_for_background_tasks()

        profile = runtime.get_user_profile("user-1")
        assert profile is not None
        assert profile.name == "Mia"
        assert "The user's name is Mia." in runtime.get_profile_context("user-1")
        mock_llm.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upload_chat_turns_defaults_to_local_turns(
        self, clock, runtime, vector_store
    ):
        await runtime.add_turn("user-1", "first", "a", chat_id="chat-1")
        clock.advance(1000)
        await runtime.add_turn("user-1", "second", "b", chat_id="chat-1")
        await runtime.add_turn("user-1", "other chat", "c", chat_id="chat-2")

        stored = await runtime.upload_chat_turns("user-1", "chat-1")

        assert stored == 4
        assert [t.user_prompt for t in runtime.chat_turns("user-1", "chat-1")] == [
            "first",
            "second",
        ]
        assert await runtime.upload_chat_turns("user-1", "chat-1") == 0

    @pytest.mark.asyncio
    async def test_delete_user_data_drops_profile(self, runtime, vector_store):
        for i in range(3):
            await runtime.add_turn("user-1", f"prompt {i}", "answer")
        await runtime.wait_for_background_tasks()

        await runtime.delete_user_data("user-1")

        vector_store.delete_many.assert_awaited_once_with({"user_id": "user-1"})
        assert runtime.get_user_profile("user-1") is None

    @pytest.mark.asyncio
    async def test_delete_user_data_drops_local_memory(self, clock, runtime, vector_store):
        await runtime.add_turn("user-1", "hello", "hi", chat_id="chat-1")
        await runtime.add_turn("user-2", "hey", "yo", chat_id="chat-2")
        await runtime.upload_chat_turns("user-1", "chat-1")
        await runtime.persist_chat_now("user-1", "chat-1")
        clock.advance_minutes(11)

        await runtime.delete_user_data("user-1")

        assert runtime.session_store.sessions_for_user("user-1") == []
        assert runtime.summary_store.for_user("user-1") == []
        assert runtime.upload_tracker.uploaded_count("chat-1") == 0
        assert len(runtime.session_store.sessions_for_user("user-2")) == 1

        vector_store.upsert.reset_mock()
        result = await runtime.run_summarization_tick()
        assert result.eligible == 1
        assert vector_store.upsert.await_count == 1
        assert all(
            call.args[2]["user_id"] == "user-2" for call in vector_store.upsert.await_args_list
        )

    @pytest.mark.asyncio
    async def test_blank_search_query_is_rejected(self, runtime):
        with pytest.raises(ValidationError):
            await runtime.search("user-1", "   ")

    @pytest.mark.asyncio
    async def test_reset_upload_tracking(self, runtime):
        await runtime.add_turn("user-1", "hello", "hi", chat_id="chat-1")
        assert await runtime.upload_chat_turns("user-1", "chat-1") == 2

        runtime.reset_upload_tracking("chat-1")

        assert await runtime.upload_chat_turns("user-1", "chat-1") == 2

    @pytest.mark.asyncio
    async def test_persist_chat_now(self, runtime, vector_store, mock_llm):
        await runtime.add_turn("user-1", "hello", "hi", chat_id="chat-1")
        mock_llm.generate.return_value = "User said hello."

        summary = await runtime.persist_chat_now("user-1", "chat-1")

        assert summary.summary == "User said hello."
        vector_store.upsert.assert_awaited_once()
        assert runtime.summary_store.get(summary.session_id) == summary

    @pytest.mark.asyncio
    async def test_debug_info(self, runtime):
        await runtime.add_turn("user-1", "hello", "hi")

        info = runtime.debug_info("user-1")

        assert info["user_specific"]["total_turns"] == 1
        assert info["upload_stats"] == {"total_chats_tracked": 0, "total_turns_tracked": 0}
        assert info["scheduler"] == {"running": False, "last_tick": None}
        assert info["background_tasks"] == 0

    @pytest.mark.asyncio
    async def test_debug_info_without_user(self, runtime):
        await runtime.add_turn("user-1", "hello", "hi")

        info = runtime.debug_info()

        assert info["total_conversations"] == 1
        assert info["user_specific"] is None
        assert info["background_tasks"] == 0
