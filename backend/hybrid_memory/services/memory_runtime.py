"""
Memory runtime.

Process-level owner of the hybrid memory subsystem: builds the stores and
services, runs the summarization scheduler, and tracks fire-and-forget
background tasks (profile extraction) so they can be cancelled on shutdown.
Callers (the API layer, tests) talk to this object only.
"""

import asyncio
from typing import Any, Coroutine, Optional

from hybrid_memory.core.config import Settings, get_settings
from hybrid_memory.core.exceptions import ValidationError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.embedding_provider import IEmbeddingProvider
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.interfaces.vector_store import IVectorStore
from hybrid_memory.models.conversation import ImageAttachment, Summary, Turn
from hybrid_memory.models.memory import HybridMemoryResult, MemorySearchOptions, StoredChat
from hybrid_memory.models.profile import UserProfile
from hybrid_memory.services.conversation_upload_service import ConversationUploadService
from hybrid_memory.services.hybrid_memory_service import HybridMemoryService
from hybrid_memory.services.long_term_memory_service import LongTermMemoryService
from hybrid_memory.services.session_store import SessionStore
from hybrid_memory.services.summarization_scheduler import (
    SummarizationScheduler,
    SummarizationTickResult,
)
from hybrid_memory.services.summary_store import SummaryStore
from hybrid_memory.services.topic_extractor import TopicExtractor
from hybrid_memory.services.upload_tracker import UploadDeduplicationTracker
from hybrid_memory.services.user_profile_service import UserProfileService
from hybrid_memory.utils.datetime_utils import DAY_MS, MINUTE_MS, Clock, SystemClock


class MemoryRuntime:
    """Wires and runs the hybrid memory services for one process."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStore,
        llm_provider: Optional[ILLMProvider] = None,
        summary_llm_provider: Optional[ILLMProvider] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._vector_store = vector_store
        self._tasks: set[asyncio.Task] = set()
        self._started = False

        s = self._settings
        self.session_store = SessionStore(
            clock=self._clock,
            session_timeout_ms=s.SESSION_TIMEOUT_MINUTES * MINUTE_MS,
            search_window=s.LOCAL_SEARCH_WINDOW,
            profile_every_n_turns=s.PROFILE_EXTRACTION_EVERY_N_TURNS,
        )
        self.summary_store = SummaryStore()
        self.topic_extractor = TopicExtractor(llm_provider)
        self.long_term_memory = LongTermMemoryService(
            embedding_provider,
            vector_store,
            upsert_chunk_size=s.VECTOR_UPSERT_CHUNK_SIZE,
            clock=self._clock,
        )
        self.upload_tracker = UploadDeduplicationTracker()
        self.uploads = ConversationUploadService(self.long_term_memory, self.upload_tracker)
        self.profiles = UserProfileService(llm_provider)
        self.hybrid_memory = HybridMemoryService(
            self.session_store,
            self.summary_store,
            self.long_term_memory,
            clock=self._clock,
            default_timeout_seconds=s.VECTOR_QUERY_TIMEOUT_SECONDS,
        )
        self.scheduler = SummarizationScheduler(
            self.session_store,
            self.summary_store,
            self.topic_extractor,
            self.long_term_memory,
            llm_provider=summary_llm_provider or llm_provider,
            clock=self._clock,
            summarization_age_ms=s.SUMMARIZATION_AGE_MINUTES * MINUTE_MS,
            interval_minutes=s.SUMMARIZATION_INTERVAL_MINUTES,
            retention_ms=s.SESSION_RETENTION_DAYS * DAY_MS,
        )
        self.session_store.set_profile_hook(self._schedule_profile_update)

    # ===========================================
    # Lifecycle
    # ===========================================

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        if self._started:
            return
        await self.scheduler.start()
        self._started = True
        logger.info("Hybrid memory runtime started")

    async def stop(self) -> None:
        """Stop the scheduler, cancel background tasks and close the vector store."""
        await self.scheduler.stop()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        try:
            await self._vector_store.close()
        except Exception as e:
            logger.warning(f"Error closing vector store: {e}")

        self._started = False
        logger.info("Hybrid memory runtime stopped")

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Run a coroutine in the background; failures are logged, never raised."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {task.get_name()} failed: {error}")

    async def wait_for_background_tasks(self) -> None:
        """Wait until every tracked background task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule_profile_update(self, user_id: str, turns: list[Turn]) -> None:
        self.spawn(
            self.profiles.update_from_turns(user_id, turns),
            name=f"profile-extraction:{user_id}",
        )

    # ===========================================
    # Caller-facing operations
    # ===========================================

    async def add_turn(
        self,
        user_id: str,
        user_prompt: str,
        ai_response: str,
        chat_id: Optional[str] = None,
        image: Optional[ImageAttachment] = None,
    ) -> Turn:
        return self.session_store.append_turn(
            user_id, user_prompt, ai_response, chat_id=chat_id, image=image
        )

    async def search(
        self,
        user_id: str,
        query: str,
        options: Optional[MemorySearchOptions] = None,
    ) -> HybridMemoryResult:
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")
        return await self.hybrid_memory.search(user_id, query, options)

    def get_recent_context(self, user_id: str, max_turns: int = 10) -> str:
        return self.hybrid_memory.get_recent_context(user_id, max_turns)

    async def persist_chat_now(self, user_id: str, chat_id: Optional[str]) -> Optional[Summary]:
        return await self.scheduler.persist_now(user_id, chat_id)

    async def run_summarization_tick(self) -> SummarizationTickResult:
        return await self.scheduler.run_tick()

    def debug_info(self, user_id: Optional[str] = None) -> dict:
        """Memory, upload, scheduler and task stats; user_id adds a per-user block."""
        info = self.hybrid_memory.get_memory_debug_info(user_id)
        last_tick = self.scheduler.last_result
        info["upload_stats"] = self.uploads.get_upload_stats()
        info["scheduler"] = {
            "running": self.scheduler.is_running,
            "last_tick": last_tick.model_dump() if last_tick else None,
        }
        info["background_tasks"] = self.pending_tasks
        return info

    def chat_turns(self, user_id: str, chat_id: str) -> list[Turn]:
        """Every locally held turn of a chat, oldest first."""
        turns = [
            turn
            for session in self.session_store.sessions_for_user(user_id)
            if session.chat_id == chat_id
            for turn in session.turns
        ]
        turns.sort(key=lambda t: t.timestamp)
        return turns

    async def upload_chat_turns(
        self,
        user_id: str,
        chat_id: str,
        turns: Optional[list[Turn]] = None,
        force: bool = False,
    ) -> int:
        """Upload the chat's messages; defaults to the turns held locally."""
        if turns is None:
            turns = self.chat_turns(user_id, chat_id)
        return await self.uploads.store_conversation_turns(user_id, chat_id, turns, force=force)

    async def get_user_chats(self, user_id: str, limit: int = 200) -> list[StoredChat]:
        return await self.uploads.get_user_chats(user_id, limit)

    async def get_chat(self, user_id: str, chat_id: str) -> Optional[StoredChat]:
        return await self.uploads.get_chat(user_id, chat_id)

    async def delete_chat(self, user_id: str, chat_id: str) -> None:
        await self.uploads.delete_chat(user_id, chat_id)

    def reset_upload_tracking(self, chat_id: str) -> None:
        """Forget which turns of a chat were uploaded; the next upload sends them all."""
        self.uploads.clear_upload_tracker(chat_id)

    async def delete_user_data(self, user_id: str) -> None:
        """Forget every trace of a user, remote and in process."""
        await self.uploads.delete_user_data(user_id)
        for chat_id in self.session_store.delete_user(user_id):
            if chat_id is not None:
                self.uploads.clear_upload_tracker(chat_id)
        self.summary_store.delete_user(user_id)
        self.profiles.delete_profile(user_id)

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get_profile(user_id)

    def get_profile_context(self, user_id: str) -> str:
        return self.profiles.generate_profile_context(user_id)
