"""
Cost optimization policy for long-term memory lookups.

Decides, before any network call, whether local context is good enough to
skip the vector search. The decision is a pure function of its inputs.
"""

from typing import Optional

from hybrid_memory.models.conversation import Summary, Turn
from hybrid_memory.models.enums import SearchScenario
from hybrid_memory.models.memory import MemorySearchOptions, SkipDecision
from hybrid_memory.utils.datetime_utils import MINUTE_MS, SystemClock

# Short follow-ups that rarely need anything beyond the current conversation
FOLLOW_UP_PATTERNS = (
    "yes",
    "no",
    "ok",
    "okay",
    "thanks",
    "thank you",
    "what about",
    "how about",
    "what if",
    "can you",
    "also",
    "and",
    "but",
    "however",
)

RECENT_CONTINUATION_MS = 2 * MINUTE_MS


def is_simple_follow_up(query: str) -> bool:
    query_lower = query.lower()
    return any(
        query_lower.startswith(pattern) or pattern in query_lower
        for pattern in FOLLOW_UP_PATTERNS
    )


def should_skip_vector_search(
    query: str,
    local_turns: list[Turn],
    local_summaries: list[Summary],
    options: MemorySearchOptions,
    now_ms: Optional[int] = None,
) -> SkipDecision:
    """
    Decide whether the vector search can be skipped.

    Rules, first match wins:
    1. Optimization disabled -> search
    2. turns + summaries >= min_local_results_for_skip -> skip
    3. Follow-up phrasing with at least one local turn -> skip
    4. Most recent local turn younger than 2 minutes -> skip
    5. Otherwise -> search

    Args:
        query: Raw user query
        local_turns: Local matches, newest first
        local_summaries: Local summaries considered for this search
        options: Search options
        now_ms: Current time; defaults to the wall clock

    Returns:
        SkipDecision with a human-readable reason
    """
    if not options.skip_vector_search_if_local_found:
        return SkipDecision(skip=False, reason="Optimization disabled")

    total_local = len(local_turns) + len(local_summaries)
    needed = options.min_local_results_for_skip

    if total_local >= needed:
        return SkipDecision(
            skip=True,
            reason=f"Sufficient local context ({total_local} items, need {needed}+)",
        )

    if local_turns and is_simple_follow_up(query):
        return SkipDecision(skip=True, reason="Simple follow-up with local context available")

    if local_turns:
        if now_ms is None:
            now_ms = SystemClock().now_ms()
        most_recent = max(turn.timestamp for turn in local_turns)
        if now_ms - most_recent < RECENT_CONTINUATION_MS:
            return SkipDecision(
                skip=True, reason="Recent conversation continuation (< 2 minutes)"
            )

    return SkipDecision(
        skip=False,
        reason=f"Insufficient local context ({total_local} items, need {needed}+)",
    )


_SCENARIO_PRESETS: dict[SearchScenario, dict] = {
    SearchScenario.COST_OPTIMIZED: {
        "max_local_results": 3,
        "max_long_term_results": 1,
        "skip_vector_search_if_local_found": True,
        "min_local_results_for_skip": 1,
        "threshold": 0.4,
    },
    SearchScenario.BALANCED: {
        "max_local_results": 3,
        "max_long_term_results": 2,
        "skip_vector_search_if_local_found": True,
        "min_local_results_for_skip": 2,
        "threshold": 0.3,
    },
    SearchScenario.COMPREHENSIVE: {
        "max_local_results": 5,
        "max_long_term_results": 5,
        "skip_vector_search_if_local_found": False,
        "threshold": 0.2,
    },
}


def get_search_config(scenario: SearchScenario = SearchScenario.BALANCED) -> MemorySearchOptions:
    """Search options preset for a cost/recall scenario. Unknown values map to balanced."""
    try:
        scenario = SearchScenario(scenario)
    except ValueError:
        scenario = SearchScenario.BALANCED
    return MemorySearchOptions(**_SCENARIO_PRESETS[scenario])
