"""
Summary store: AI-generated compressions of closed sessions, one per session.
"""

from typing import Optional

from hybrid_memory.models.conversation import Summary


class SummaryStore:
    """In-process map of session id -> Summary. Only user deletion removes summaries."""

    def __init__(self):
        self._summaries: dict[str, Summary] = {}

    def put(self, summary: Summary) -> None:
        self._summaries[summary.session_id] = summary

    def get(self, session_id: str) -> Optional[Summary]:
        return self._summaries.get(session_id)

    def for_user(self, user_id: str) -> list[Summary]:
        """The user's summaries, newest first."""
        return sorted(
            (s for s in self._summaries.values() if s.user_id == user_id),
            key=lambda s: s.timestamp,
            reverse=True,
        )

    def delete_user(self, user_id: str) -> int:
        """Drop every summary of a user. Returns the number removed."""
        doomed = [sid for sid, s in self._summaries.items() if s.user_id == user_id]
        for session_id in doomed:
            del self._summaries[session_id]
        return len(doomed)

    def stats(self, user_id: Optional[str] = None) -> dict:
        result: dict = {"total_summaries": len(self._summaries)}
        if user_id is not None:
            result["user_summaries"] = len(self.for_user(user_id))
        return result
