"""
Integration tests for the memory API.

Runs the FastAPI app in-process with an in-memory Qdrant, offline hashing
embeddings and a mocked LLM.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from hybrid_memory.api.deps import get_memory_runtime
from hybrid_memory.core.exceptions import LLMError
from hybrid_memory.infrastructure.qdrant.vector_store import QdrantVectorStore
from hybrid_memory.services.memory_runtime import MemoryRuntime
from main import create_app
from tests.fakes import HashingEmbeddingProvider

DIMENSIONS = 64


@pytest.fixture
async def runtime(clock, mock_llm):
    memory_runtime = MemoryRuntime(
        embedding_provider=HashingEmbeddingProvider(DIMENSIONS),
        vector_store=QdrantVectorStore("api_test_memories", DIMENSIONS),
        llm_provider=mock_llm,
        clock=clock,
    )
    yield memory_runtime
    await memory_runtime.stop()


@pytest.fixture
async def client(runtime):
    app = create_app()
    app.dependency_overrides[get_memory_runtime] = lambda: runtime
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


async def _add_turn(client, prompt, response="ok", chat_id="chat-1", user_id="user-1"):
    resp = await client.post(
        "/api/memory/turns",
        json={
            "user_id": user_id,
            "user_prompt": prompt,
            "ai_response": response,
            "chat_id": chat_id,
        },
    )
    assert resp.status_code == 201
    return resp.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["memory_runtime_started"] is False


class TestTurnsAndSearch:
    @pytest.mark.asyncio
    async def test_add_turn(self, client, clock):
        turn = await _add_turn(client, "tell me about quantum physics", "It is odd")

        assert turn["user_id"] == "user-1"
        assert turn["chat_id"] == "chat-1"
        assert turn["timestamp"] == clock.now_ms()
        assert turn["id"].startswith("turn_")

    @pytest.mark.asyncio
    async def test_add_turn_requires_user(self, client):
        resp = await client.post(
            "/api/memory/turns",
            json={"user_id": "", "user_prompt": "hi", "ai_response": "hello"},
        )

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_search_local_skip(self, client):
        await _add_turn(client, "python decorators")
        await _add_turn(client, "python generators")

        resp = await client.post(
            "/api/memory/search", json={"user_id": "user-1", "query": "python"}
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["type"] == "local"
        assert data["result_count"] == {"local": 2, "long_term": 0}
        assert data["optimization"]["skipped_vector_search"] is True
        assert data["combined_context"].startswith("RECENT CONVERSATIONS (2):")

    @pytest.mark.asyncio
    async def test_search_with_scenario_queries_vector_store(self, client):
        await _add_turn(client, "python decorators")
        await _add_turn(client, "python generators")

        resp = await client.post(
            "/api/memory/search",
            json={"user_id": "user-1", "query": "python", "scenario": "comprehensive"},
        )

        data = resp.json()
        assert data["optimization"]["skipped_vector_search"] is False
        assert data["optimization"]["reason"] == "Optimization disabled"

    @pytest.mark.asyncio
    async def test_search_with_explicit_options(self, client):
        await _add_turn(client, "python decorators")

        resp = await client.post(
            "/api/memory/search",
            json={
                "user_id": "user-1",
                "query": "python",
                "options": {"max_local_results": 0, "include_local_summaries": False},
            },
        )

        data = resp.json()
        assert data["result_count"]["local"] == 0
        assert data["combined_context"] == "No relevant conversation history found."

    @pytest.mark.asyncio
    async def test_recent_context(self, client):
        await _add_turn(client, "first question", "first answer")

        resp = await client.get("/api/memory/recent-context/user-1", params={"max_turns": 5})

        assert resp.status_code == 200
        assert resp.json()["context"].startswith("Recent conversation history (1 exchanges):")

    @pytest.mark.asyncio
    async def test_debug_info(self, client):
        await _add_turn(client, "hello")

        resp = await client.get("/api/memory/debug/user-1")

        assert resp.status_code == 200
        assert resp.json()["user_specific"]["total_turns"] == 1

    @pytest.mark.asyncio
    async def test_global_debug_info(self, client):
        await _add_turn(client, "hello")
        await _add_turn(client, "hey", user_id="user-2")

        resp = await client.get("/api/memory/debug")

        assert resp.status_code == 200
        data = resp.json()
        assert data["total_conversations"] == 2
        assert data["user_specific"] is None

    @pytest.mark.asyncio
    async def test_blank_query_is_bad_request(self, client):
        resp = await client.post(
            "/api/memory/search", json={"user_id": "user-1", "query": "  "}
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Search query must not be empty"


class TestPersistence:
    @pytest.mark.asyncio
    async def test_persist_then_recall_from_new_chat(self, client, mock_llm):
        await _add_turn(client, "tell me about quantum physics", "It is odd")
        mock_llm.generate.return_value = "User asked about quantum physics."

        resp = await client.post(
            "/api/memory/persist", json={"user_id": "user-1", "chat_id": "chat-1"}
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["persisted"] is True
        assert data["summary"]["turn_count"] == 1

        search = await client.post(
            "/api/memory/search",
            json={
                "user_id": "user-1",
                "query": "quantum physics",
                "scenario": "comprehensive",
                "chat_id": "chat-2",
                "is_new_chat": True,
            },
        )
        result = search.json()
        assert result["result_count"]["long_term"] == 1
        assert result["type"] == "hybrid"
        assert result["long_term_results"][0]["metadata"]["type"] == "conversation_summary"

    @pytest.mark.asyncio
    async def test_persist_without_session(self, client):
        resp = await client.post(
            "/api/memory/persist", json={"user_id": "user-1", "chat_id": "chat-1"}
        )

        assert resp.status_code == 200
        assert resp.json() == {"persisted": False, "summary": None}

    @pytest.mark.asyncio
    async def test_persist_llm_failure_is_bad_gateway(self, client, mock_llm):
        await _add_turn(client, "hello")
        mock_llm.generate.side_effect = LLMError("model unavailable")

        resp = await client.post(
            "/api/memory/persist", json={"user_id": "user-1", "chat_id": "chat-1"}
        )

        assert resp.status_code == 502
        assert resp.json()["detail"] == "model unavailable"

    @pytest.mark.asyncio
    async def test_run_summarization(self, client, clock, mock_llm):
        await _add_turn(client, "hello")
        clock.advance_minutes(11)
        mock_llm.generate.return_value = "A greeting."

        resp = await client.post("/api/memory/summarization/run")

        assert resp.status_code == 200
        assert resp.json() == {"eligible": 1, "summarized": 1, "failed": 0, "evicted": 0}


class TestChats:
    @pytest.mark.asyncio
    async def test_upload_list_get_delete(self, client):
        await _add_turn(client, "How do I center a div?", "Use flexbox")
        await _add_turn(client, "And vertically?", "align-items")

        upload = await client.post("/api/memory/chats/chat-1/upload", json={"user_id": "user-1"})
        assert upload.status_code == 200
        assert upload.json() == {"chat_id": "chat-1", "stored_messages": 4}

        again = await client.post("/api/memory/chats/chat-1/upload", json={"user_id": "user-1"})
        assert again.json()["stored_messages"] == 0

        chats = (await client.get("/api/memory/users/user-1/chats")).json()
        assert len(chats) == 1
        assert chats[0]["title"] == "How do I center a div?"
        assert len(chats[0]["messages"]) == 4

        chat = await client.get("/api/memory/users/user-1/chats/chat-1")
        assert chat.status_code == 200
        assert {m["role"] for m in chat.json()["messages"]} == {"user", "assistant"}

        deleted = await client.delete("/api/memory/chats/chat-1", params={"user_id": "user-1"})
        assert deleted.status_code == 204

        missing = await client.get("/api/memory/users/user-1/chats/chat-1")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_reset_upload_tracking_allows_resend(self, client):
        await _add_turn(client, "How do I center a div?", "Use flexbox")
        await client.post("/api/memory/chats/chat-1/upload", json={"user_id": "user-1"})

        reset = await client.delete("/api/memory/chats/chat-1/upload-tracking")
        assert reset.status_code == 204

        again = await client.post("/api/memory/chats/chat-1/upload", json={"user_id": "user-1"})
        assert again.json()["stored_messages"] == 2

    @pytest.mark.asyncio
    async def test_delete_user(self, client):
        await _add_turn(client, "remember me")
        await client.post("/api/memory/chats/chat-1/upload", json={"user_id": "user-1"})

        resp = await client.delete("/api/memory/users/user-1")

        assert resp.status_code == 204
        assert (await client.get("/api/memory/users/user-1/chats")).json() == []
        debug = (await client.get("/api/memory/debug/user-1")).json()
        assert debug["user_specific"]["total_turns"] == 0


class TestProfile:
    @pytest.mark.asyncio
    async def test_unknown_profile(self, client):
        resp = await client.get("/api/memory/profile/user-1")

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_profile_after_three_turns(self, client, runtime, mock_llm):
        mock_llm.generate.return_value = '{"name": "Mia", "role": "Designer"}'
        for prompt in ("hi, I'm Mia", "I work as a designer", "thanks"):
            await _add_turn(client, prompt)
        await runtime.wait_for_background_tasks()

        resp = await client.get("/api/memory/profile/user-1")

        assert resp.status_code == 200
        data = resp.json()
        assert data["profile"]["name"] == "Mia"
        assert "They work as a Designer." in data["context"]
