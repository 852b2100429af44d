"""
Upload deduplication tracker.

Remembers, per chat, which turn ids were already pushed to the vector
store so bulk uploads only send new turns, and which turn opened the chat.
In-memory only; lost on restart.
"""

from typing import Iterable, Optional

from hybrid_memory.core.logger import logger


class UploadDeduplicationTracker:
    """chat id -> set of uploaded turn ids."""

    def __init__(self):
        self._uploaded: dict[str, set[str]] = {}
        # chat id -> id of the first turn ever uploaded for it
        self._first_turn: dict[str, str] = {}

    def pending(self, chat_id: str, turn_ids: Iterable[str]) -> list[str]:
        """Turn ids not yet uploaded for the chat, in the given order."""
        uploaded = self._uploaded.get(chat_id)
        if not uploaded:
            return list(turn_ids)
        return [turn_id for turn_id in turn_ids if turn_id not in uploaded]

    def mark_uploaded(self, chat_id: str, turn_ids: Iterable[str]) -> None:
        """Record uploaded turns, oldest first; the first call fixes the chat's first turn."""
        turn_ids = list(turn_ids)
        if turn_ids and chat_id not in self._first_turn:
            self._first_turn[chat_id] = turn_ids[0]
        self._uploaded.setdefault(chat_id, set()).update(turn_ids)

    def first_turn_id(self, chat_id: str) -> Optional[str]:
        return self._first_turn.get(chat_id)

    def uploaded_count(self, chat_id: str) -> int:
        return len(self._uploaded.get(chat_id, ()))

    def clear(self, chat_id: Optional[str] = None) -> None:
        """Forget one chat, or every chat when chat_id is None."""
        if chat_id is not None:
            self._uploaded.pop(chat_id, None)
            self._first_turn.pop(chat_id, None)
            logger.info(f"Cleared upload tracker for chat: {chat_id}")
        else:
            self._uploaded.clear()
            self._first_turn.clear()
            logger.info("Cleared all upload trackers")

    def stats(self) -> dict[str, int]:
        return {
            "total_chats_tracked": len(self._uploaded),
            "total_turns_tracked": sum(len(ids) for ids in self._uploaded.values()),
        }
