"""
Session store: in-process short-term memory.

Owns every Turn and Session. Turns are grouped into chat-scoped sessions
that stay active while the user keeps talking; an idle session is later
summarized by the SummarizationScheduler and eventually evicted.

All mutations are synchronous, so callers on the event loop never observe
a half-applied change.
"""

import uuid
from typing import Callable, Optional

from hybrid_memory.core.logger import logger
from hybrid_memory.models.conversation import ImageAttachment, Session, Turn
from hybrid_memory.models.enums import SessionState
from hybrid_memory.utils.datetime_utils import DAY_MS, MINUTE_MS, Clock, SystemClock

# Called with (user_id, snapshot of the session's turns)
ProfileHook = Callable[[str, list[Turn]], None]


def _random_suffix() -> str:
    return uuid.uuid4().hex[:9]


def _preview(text: str, length: int = 50) -> str:
    return text[:length] + ("..." if len(text) > length else "")


class SessionStore:
    """Chat-scoped sessions of conversation turns, keyed by session id."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        session_timeout_ms: int = 30 * MINUTE_MS,
        search_window: int = 50,
        profile_every_n_turns: int = 3,
        profile_hook: Optional[ProfileHook] = None,
    ):
        self._clock = clock or SystemClock()
        self._session_timeout_ms = session_timeout_ms
        self._search_window = search_window
        self._profile_every_n_turns = profile_every_n_turns
        self._profile_hook = profile_hook
        self._sessions: dict[str, Session] = {}
        self._summarizing: set[str] = set()
        # turn id -> global insertion sequence, breaks timestamp ties
        self._turn_seq: dict[str, int] = {}
        self._next_seq = 0

    def set_profile_hook(self, hook: Optional[ProfileHook]) -> None:
        self._profile_hook = hook

    # ===========================================
    # Writes
    # ===========================================

    def append_turn(
        self,
        user_id: str,
        user_prompt: str,
        ai_response: str,
        chat_id: Optional[str] = None,
        image: Optional[ImageAttachment] = None,
    ) -> Turn:
        """
        Record a prompt/response exchange in the user's active session.

        Creates the session when none is active for (user_id, chat_id).
        Every Nth turn of a session fires the profile hook with a snapshot
        of the session's turns.
        """
        now = self._clock.now_ms()
        session_id = self.active_session_id(user_id, chat_id)

        turn = Turn(
            id=f"turn_{now}_{_random_suffix()}",
            user_id=user_id,
            chat_id=chat_id,
            user_prompt=user_prompt,
            ai_response=ai_response,
            timestamp=now,
            image_url=image.url if image else None,
            image_prompt=image.prompt if image else None,
            has_image=bool(image and image.url),
        )

        session = self._sessions.get(session_id)
        if session is None:
            session = Session(
                session_id=session_id,
                user_id=user_id,
                chat_id=chat_id,
                start_time=now,
                last_activity=now,
            )
            self._sessions[session_id] = session
            logger.info(
                f"Created session {session_id}" + (f" (chat: {chat_id})" if chat_id else "")
            )

        session.turns.append(turn)
        session.last_activity = max(session.last_activity, now)
        self._turn_seq[turn.id] = self._next_seq
        self._next_seq += 1

        logger.debug(f"Stored turn in {session_id}: \"{_preview(user_prompt)}\"")

        if (
            self._profile_hook is not None
            and self._profile_every_n_turns > 0
            and len(session.turns) % self._profile_every_n_turns == 0
        ):
            try:
                self._profile_hook(user_id, list(session.turns))
            except Exception as e:
                logger.warning(f"Profile hook failed for user {user_id}: {e}")

        return turn

    def mark_summarized(self, session_id: str) -> None:
        """Close a session for good. Idempotent; unknown ids are ignored."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.is_summarized = True
        self._summarizing.discard(session_id)

    def begin_summarization(self, session_id: str) -> bool:
        """
        Claim a session for the summary pipeline.

        Returns False when the session is unknown, empty, already summarized
        or already being summarized. While claimed the session is excluded
        from affinity, so new turns open a fresh session.
        """
        session = self._sessions.get(session_id)
        if session is None or session.is_summarized or not session.turns:
            return False
        if session_id in self._summarizing:
            return False
        self._summarizing.add(session_id)
        return True

    def end_summarization(self, session_id: str) -> None:
        """Release a claim without closing the session (failed attempt)."""
        self._summarizing.discard(session_id)

    def evict_older_than(self, duration_ms: int) -> int:
        """
        Drop summarized sessions idle for longer than duration_ms.

        Open sessions are never evicted. Returns the number removed.
        """
        now = self._clock.now_ms()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.is_summarized and now - session.last_activity > duration_ms
        ]
        for session_id in expired:
            session = self._sessions.pop(session_id)
            for turn in session.turns:
                self._turn_seq.pop(turn.id, None)

        if expired:
            days = duration_ms / DAY_MS
            logger.info(f"Evicted {len(expired)} summarized sessions older than {days:g} days")
        return len(expired)

    def delete_user(self, user_id: str) -> set[Optional[str]]:
        """
        Drop every session of a user, open or not, including claimed ones.

        Returns the chat ids those sessions belonged to.
        """
        doomed = [s for s in self._sessions.values() if s.user_id == user_id]
        for session in doomed:
            del self._sessions[session.session_id]
            self._summarizing.discard(session.session_id)
            for turn in session.turns:
                self._turn_seq.pop(turn.id, None)

        if doomed:
            logger.info(f"Deleted {len(doomed)} sessions of user {user_id}")
        return {s.chat_id for s in doomed}

    # ===========================================
    # Reads
    # ===========================================

    def active_session_id(self, user_id: str, chat_id: Optional[str] = None) -> str:
        """
        Resolve the session a new turn for (user_id, chat_id) belongs to.

        Reuses the most recently active session that is open, not being
        summarized and idle for less than the session timeout. Without a
        chat_id any of the user's sessions qualifies. Otherwise a new id is
        minted; the session itself is created on the first append.
        """
        now = self._clock.now_ms()
        best: Optional[Session] = None
        for session in self._sessions.values():
            if session.user_id != user_id:
                continue
            if chat_id is not None and session.chat_id != chat_id:
                continue
            if not self._is_active(session, now):
                continue
            if best is None or session.last_activity >= best.last_activity:
                best = session

        if best is not None:
            return best.session_id

        if chat_id is not None:
            return f"session_{user_id}_chat_{chat_id}_{now}_{_random_suffix()}"
        return f"session_{user_id}_{now}_{_random_suffix()}"

    def _is_active(self, session: Session, now: int) -> bool:
        return (
            not session.is_summarized
            and session.session_id not in self._summarizing
            and now - session.last_activity < self._session_timeout_ms
        )

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def sessions_for_user(self, user_id: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.user_id == user_id]

    def find_open_session(self, user_id: str, chat_id: Optional[str]) -> Optional[Session]:
        """Most recently active non-summarized session for the chat, regardless of age."""
        best: Optional[Session] = None
        for session in self._sessions.values():
            if session.user_id != user_id or session.chat_id != chat_id:
                continue
            if session.is_summarized:
                continue
            if best is None or session.last_activity >= best.last_activity:
                best = session
        return best

    def state_of(self, session: Session, summarization_age_ms: int) -> SessionState:
        if session.is_summarized:
            return SessionState.SUMMARIZED
        if session.session_id in self._summarizing:
            return SessionState.SUMMARIZING
        if session.turns and self._clock.now_ms() - session.last_activity > summarization_age_ms:
            return SessionState.ELIGIBLE
        return SessionState.OPEN

    def eligible_sessions(self, summarization_age_ms: int) -> list[Session]:
        """Sessions idle longer than summarization_age_ms and ready for a summary."""
        return [
            session
            for session in self._sessions.values()
            if self.state_of(session, summarization_age_ms) == SessionState.ELIGIBLE
        ]

    def recent_turns(self, user_id: str, limit: int = 10) -> list[Turn]:
        """
        All of a user's turns, newest first, truncated to limit.

        Equal timestamps are ordered by insertion, later first.
        """
        if limit <= 0:
            return []
        turns = [t for s in self._sessions.values() if s.user_id == user_id for t in s.turns]
        turns.sort(key=lambda t: (t.timestamp, self._turn_seq.get(t.id, 0)), reverse=True)
        return turns[:limit]

    def search_turns(self, user_id: str, query: str, limit: int = 5) -> list[Turn]:
        """Case-insensitive substring search over the user's most recent turns."""
        query_lower = query.lower()
        matches = [
            turn
            for turn in self.recent_turns(user_id, self._search_window)
            if query_lower in turn.user_prompt.lower() or query_lower in turn.ai_response.lower()
        ]
        return matches[: max(limit, 0)]

    def stats(self, user_id: Optional[str] = None) -> dict:
        sessions = list(self._sessions.values())
        result: dict = {
            "total_sessions": len(sessions),
            "open_sessions": sum(1 for s in sessions if not s.is_summarized),
            "summarizing_sessions": len(self._summarizing),
            "total_turns": sum(len(s.turns) for s in sessions),
        }
        if user_id is not None:
            user_sessions = [s for s in sessions if s.user_id == user_id]
            result["user"] = {
                "user_id": user_id,
                "sessions": len(user_sessions),
                "total_turns": sum(len(s.turns) for s in user_sessions),
            }
        return result
