"""
Hybrid memory service.

Combines local turns, local summaries and the long-term vector store into a
single prioritized context blob for an AI request. The vector store is only
queried when the cost optimization policy says local context is not enough,
and a failing or slow vector store never fails the search.
"""

import asyncio
from typing import Optional

from hybrid_memory.core.logger import logger
from hybrid_memory.models.conversation import Summary, Turn
from hybrid_memory.models.enums import ResultType
from hybrid_memory.models.memory import (
    HybridMemoryResult,
    MemorySearchOptions,
    OptimizationInfo,
    ResultCount,
    SearchResult,
)
from hybrid_memory.services.cost_optimization import should_skip_vector_search
from hybrid_memory.services.long_term_memory_service import LongTermMemoryService
from hybrid_memory.services.session_store import SessionStore
from hybrid_memory.services.summary_store import SummaryStore
from hybrid_memory.utils.datetime_utils import Clock, SystemClock, format_time_ago, ms_to_iso

SECTION_SEPARATOR = "\n\n" + "=" * 50 + "\n\n"
NO_CONTEXT = "No relevant conversation history found."
NO_RECENT_CONTEXT = "No recent conversation history available."
MAX_CONTEXT_SUMMARIES = 3
SUMMARY_PREVIEW_CHARS = 300
RECENT_RESPONSE_PREVIEW_CHARS = 200


def _truncate(text: str, length: int) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def determine_result_type(local_results: list[Turn], long_term_results: list[SearchResult]) -> ResultType:
    if local_results and long_term_results:
        return ResultType.HYBRID
    if long_term_results:
        return ResultType.LONG_TERM
    return ResultType.LOCAL


class HybridMemoryService:
    """Smart memory search: local first, long-term only when needed."""

    def __init__(
        self,
        session_store: SessionStore,
        summary_store: SummaryStore,
        long_term_memory: Optional[LongTermMemoryService] = None,
        clock: Optional[Clock] = None,
        default_timeout_seconds: Optional[float] = None,
    ):
        self._sessions = session_store
        self._summaries = summary_store
        self._long_term = long_term_memory
        self._clock = clock or SystemClock()
        self._default_timeout_seconds = default_timeout_seconds

    async def search(
        self,
        user_id: str,
        query: str,
        options: Optional[MemorySearchOptions] = None,
    ) -> HybridMemoryResult:
        """
        Search local and long-term memory for context relevant to query.

        Never raises for vector-store problems: they yield an empty
        long-term result and a logged warning.
        """
        options = options or MemorySearchOptions()
        now = self._clock.now_ms()

        logger.info(f"Hybrid memory search for user: {user_id}, query: \"{query[:50]}\"")

        # 1. Local conversations (fastest)
        local_results = self._sessions.search_turns(user_id, query, options.max_local_results)

        # 2. Local summaries
        local_summaries: list[Summary] = []
        if options.include_local_summaries:
            local_summaries = self._summaries.for_user(user_id)

        logger.info(
            f"Found {len(local_results)} local matches, {len(local_summaries)} local summaries"
        )

        # 3. Cost optimization decision
        decision = should_skip_vector_search(
            query, local_results, local_summaries, options, now_ms=now
        )

        long_term_results: list[SearchResult] = []
        if decision.skip:
            logger.info(f"Skipping vector search - {decision.reason}")
        else:
            logger.info(f"Searching long-term memory - {decision.reason}")
            long_term_results = await self._search_long_term(user_id, query, options)

        result = HybridMemoryResult(
            type=determine_result_type(local_results, long_term_results),
            local_results=local_results,
            long_term_results=long_term_results,
            combined_context=self.create_combined_context(
                local_results, local_summaries, long_term_results, now
            ),
            result_count=ResultCount(local=len(local_results), long_term=len(long_term_results)),
            optimization=OptimizationInfo(
                skipped_vector_search=decision.skip,
                reason=decision.reason,
                cost_savings=decision.skip,
            ),
        )

        logger.info(
            f"Hybrid search complete - Type: {result.type.value}, "
            f"Local: {result.result_count.local}, Long-term: {result.result_count.long_term}"
            + (" (vector search skipped)" if decision.skip else "")
        )
        return result

    async def _search_long_term(
        self,
        user_id: str,
        query: str,
        options: MemorySearchOptions,
    ) -> list[SearchResult]:
        if self._long_term is None or options.max_long_term_results <= 0:
            return []

        timeout = options.timeout_seconds or self._default_timeout_seconds
        lookup = self._long_term.search_memories(
            query,
            top_k=options.max_long_term_results,
            threshold=options.threshold,
            user_id=user_id,
            chat_id=options.chat_id,
            is_new_chat=options.is_new_chat,
        )
        try:
            if timeout:
                results = await asyncio.wait_for(lookup, timeout=timeout)
            else:
                results = await lookup
        except asyncio.TimeoutError:
            logger.warning(f"Long-term memory search timed out after {timeout}s")
            return []
        except Exception as e:
            logger.warning(f"Long-term memory search failed: {e}")
            return []

        logger.info(f"Found {len(results)} long-term memory matches")
        return results

    def create_combined_context(
        self,
        local_results: list[Turn],
        local_summaries: list[Summary],
        long_term_results: list[SearchResult],
        now_ms: Optional[int] = None,
    ) -> str:
        """Render the three memory tiers in priority order."""
        now = now_ms if now_ms is not None else self._clock.now_ms()
        sections: list[str] = []

        if local_results:
            lines = [
                f"{i}. [{format_time_ago(turn.timestamp, now)}] User: {turn.user_prompt}\n"
                f"   AI: {turn.ai_response}"
                for i, turn in enumerate(local_results, start=1)
            ]
            sections.append(f"RECENT CONVERSATIONS ({len(local_results)}):\n" + "\n\n".join(lines))

        if local_summaries:
            shown = local_summaries[:MAX_CONTEXT_SUMMARIES]
            lines = [
                f"{i}. [{format_time_ago(summary.timestamp, now)}] "
                f"{_truncate(summary.summary, SUMMARY_PREVIEW_CHARS)}"
                for i, summary in enumerate(shown, start=1)
            ]
            sections.append(f"CONVERSATION SUMMARIES ({len(shown)}):\n" + "\n\n".join(lines))

        if long_term_results:
            lines = [
                f"{i}. [{format_time_ago(r.metadata.timestamp, now)}, "
                f"{r.score * 100:.1f}% match] {r.content}"
                for i, r in enumerate(long_term_results, start=1)
            ]
            sections.append(
                f"RELEVANT PAST MEMORIES ({len(long_term_results)}):\n" + "\n\n".join(lines)
            )

        if not sections:
            return NO_CONTEXT
        return SECTION_SEPARATOR.join(sections)

    def get_recent_context(self, user_id: str, max_turns: int = 10) -> str:
        """The user's latest turns in chronological order, numbered."""
        recent = self._sessions.recent_turns(user_id, max_turns)
        if not recent:
            return NO_RECENT_CONTEXT

        now = self._clock.now_ms()
        lines = [
            f"{i}. [{format_time_ago(turn.timestamp, now)}] User: {turn.user_prompt}\n"
            f"   AI: {_truncate(turn.ai_response, RECENT_RESPONSE_PREVIEW_CHARS)}"
            for i, turn in enumerate(reversed(recent), start=1)
        ]
        return f"Recent conversation history ({len(recent)} exchanges):\n" + "\n\n".join(lines)

    def get_memory_debug_info(self, user_id: Optional[str] = None) -> dict:
        """Global memory totals, plus a per-user block when user_id is given."""
        session_stats = self._sessions.stats(user_id)
        summary_stats = self._summaries.stats(user_id)

        user_specific = None
        if user_id is not None:
            user_stats = session_stats.get("user", {})
            user_specific = {
                "user_id": user_id,
                "conversations": user_stats.get("sessions", 0),
                "summaries": summary_stats.get("user_summaries", 0),
                "total_turns": user_stats.get("total_turns", 0),
            }

        return {
            "total_conversations": session_stats["total_sessions"],
            "total_summaries": summary_stats["total_summaries"],
            "user_specific": user_specific,
            "open_sessions": session_stats["open_sessions"],
            "summarizing_sessions": session_stats["summarizing_sessions"],
            "hybrid_memory_active": True,
            "last_update": ms_to_iso(self._clock.now_ms()),
        }
