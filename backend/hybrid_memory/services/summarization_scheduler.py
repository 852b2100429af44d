"""
Summarization scheduler.

Periodically promotes idle sessions from short-term memory into long-term
storage: summarize with the LLM, tag with topics, keep the summary locally
and upsert it to the vector store. Uses APScheduler for in-process
scheduling.

Session lifecycle: OPEN -> ELIGIBLE -> SUMMARIZING -> SUMMARIZED. A failed
attempt returns the session to ELIGIBLE and it is retried on the next tick.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import BaseModel

from hybrid_memory.core.config import get_settings
from hybrid_memory.core.exceptions import LLMError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.models.conversation import Session, Summary, Timespan, Turn
from hybrid_memory.models.enums import MemoryType, TopicSource
from hybrid_memory.models.memory import MemoryItem, MemoryMetadata
from hybrid_memory.services.long_term_memory_service import LongTermMemoryService
from hybrid_memory.services.session_store import SessionStore
from hybrid_memory.services.summary_store import SummaryStore
from hybrid_memory.services.topic_extractor import TopicExtractor
from hybrid_memory.utils.datetime_utils import DAY_MS, MINUTE_MS, Clock, SystemClock

SUMMARY_SOURCE = "local_summarization"

SUMMARIZATION_PROMPT = """Please analyze this conversation and provide a comprehensive summary.

Conversation:
{conversation}

Please provide:
1. A detailed summary of the main topics discussed
2. Key information the user shared about themselves
3. Important preferences or requirements mentioned
4. Any technical details or specific requests
5. The overall context and purpose of the conversation

Format as a structured summary that would be useful for future conversations with this user."""


class SummarizationTickResult(BaseModel):
    """Outcome of one scheduler pass."""

    eligible: int = 0
    summarized: int = 0
    failed: int = 0
    evicted: int = 0


def render_conversation(turns: list[Turn]) -> str:
    return "\n\n".join(f"User: {t.user_prompt}\nAI: {t.ai_response}" for t in turns)


def build_summary_memory(summary: Summary, created_at: int) -> MemoryItem:
    """Vector-store record for a session summary."""
    return MemoryItem(
        id=f"summary_{summary.session_id}",
        content=f"Conversation Summary ({summary.turn_count} exchanges): {summary.summary}",
        metadata=MemoryMetadata(
            timestamp=created_at,
            type=MemoryType.CONVERSATION_SUMMARY,
            source=SUMMARY_SOURCE,
            user_id=summary.user_id,
            chat_id=summary.chat_id,
            tags=["conversation-summary", "auto-generated", *summary.key_topics],
            session_id=summary.session_id,
            turn_count=summary.turn_count,
            timespan_start=summary.timespan.start,
            timespan_end=summary.timespan.end,
        ),
    )


class SummarizationScheduler:
    """
    Background summarizer for idle sessions.

    Features:
    - Interval tick (default every 10 minutes)
    - On-demand persistence of a single chat (persist_now)
    - Eviction of long-closed sessions after each tick
    """

    def __init__(
        self,
        session_store: SessionStore,
        summary_store: SummaryStore,
        topic_extractor: TopicExtractor,
        long_term_memory: LongTermMemoryService,
        llm_provider: Optional[ILLMProvider] = None,
        clock: Optional[Clock] = None,
        summarization_age_ms: int = 10 * MINUTE_MS,
        interval_minutes: float = 10,
        retention_ms: int = 7 * DAY_MS,
    ):
        self._sessions = session_store
        self._summaries = summary_store
        self._topics = topic_extractor
        self._long_term = long_term_memory
        self._llm_provider = llm_provider
        self._clock = clock or SystemClock()
        self._summarization_age_ms = summarization_age_ms
        self._interval_minutes = interval_minutes
        self._retention_ms = retention_ms
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._last_result: Optional[SummarizationTickResult] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def last_result(self) -> Optional[SummarizationTickResult]:
        return self._last_result

    async def start(self):
        """Start the periodic tick."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.ENVIRONMENT == "test":
            logger.info("Summarization scheduler disabled in test environment")
            return
        if self._scheduler is not None:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_tick_job,
            IntervalTrigger(minutes=self._interval_minutes),
            id="session_summarization",
            name="Session Summarization",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Summarization scheduler started: every {self._interval_minutes:g} minutes")

    async def stop(self):
        """Stop the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Summarization scheduler stopped")

    async def _run_tick_job(self):
        try:
            await self.run_tick()
        except Exception as e:
            logger.error(f"Error in periodic summarization: {e}")

    async def run_tick(self) -> SummarizationTickResult:
        """
        Summarize every eligible session, then evict expired ones.

        Per-session failures are logged and counted; the session stays
        eligible for the next tick.
        """
        result = SummarizationTickResult()
        eligible = self._sessions.eligible_sessions(self._summarization_age_ms)
        result.eligible = len(eligible)

        if eligible:
            logger.info(f"Summarizing {len(eligible)} conversation sessions...")
        else:
            logger.debug("No conversations ready for summarization")

        for session in eligible:
            try:
                summary = await self.summarize_session(session.session_id)
            except Exception as e:
                result.failed += 1
                logger.error(f"Failed to summarize session {session.session_id}: {e}")
                continue
            if summary is not None:
                result.summarized += 1

        result.evicted = self._sessions.evict_older_than(self._retention_ms)
        self._last_result = result
        return result

    async def summarize_session(self, session_id: str) -> Optional[Summary]:
        """
        Run the summary pipeline for one session.

        Returns None when the session cannot be claimed (already summarized,
        empty, or claimed by a concurrent run).

        Raises:
            LLMError: No generator, generator failure or empty summary
            VectorStoreError: Upsert of the summary failed
        """
        if not self._sessions.begin_summarization(session_id):
            return None

        session = self._sessions.get_session(session_id)
        succeeded = False
        try:
            summary = await self._summarize(session)
            succeeded = True
            return summary
        finally:
            if succeeded:
                self._sessions.mark_summarized(session_id)
                logger.info(f"Summarized session: {session_id}")
            else:
                self._sessions.end_summarization(session_id)

    async def _summarize(self, session: Session) -> Optional[Summary]:
        if self._llm_provider is None:
            raise LLMError("No LLM provider configured for summarization")

        # Snapshot: turns appended later go to a new session
        turns = list(session.turns)
        conversation = render_conversation(turns)

        summary_text = await self._llm_provider.generate(
            SUMMARIZATION_PROMPT.format(conversation=conversation)
        )
        if not summary_text or not summary_text.strip():
            raise LLMError("Failed to generate conversation summary")

        key_topics = await self._topics.extract(conversation, TopicSource.CONVERSATION)
        if self._sessions.get_session(session.session_id) is None:
            # User data was deleted while the generator ran
            logger.info(f"Session {session.session_id} was dropped, discarding its summary")
            return None

        now = self._clock.now_ms()

        summary = Summary(
            session_id=session.session_id,
            user_id=session.user_id,
            chat_id=session.chat_id,
            summary=summary_text.strip(),
            key_topics=key_topics,
            turn_count=len(turns),
            timespan=Timespan(start=session.start_time, end=session.last_activity),
            timestamp=now,
        )
        self._summaries.put(summary)

        await self._long_term.store_memory(build_summary_memory(summary, now))
        logger.info(
            f"Uploaded conversation summary: {session.session_id} ({len(turns)} turns)"
        )
        return summary

    async def persist_now(self, user_id: str, chat_id: Optional[str]) -> Optional[Summary]:
        """
        Summarize and upload the open session of a chat immediately.

        Used when the user leaves a chat. Returns None when there is nothing
        to persist. Unlike the tick, errors propagate to the caller.
        """
        session = self._sessions.find_open_session(user_id, chat_id)
        if session is None:
            logger.info(f"No active session found for chat {chat_id}")
            return None
        if not session.turns:
            logger.info(f"Session {session.session_id} has no turns, skipping persistence")
            return None

        summary = await self.summarize_session(session.session_id)
        if summary is None:
            logger.info(f"Session {session.session_id} is already being summarized")
        else:
            logger.info(f"Chat {chat_id} persisted to long-term memory")
        return summary
