"""
Conversation upload service.

Stores individual chat messages in the vector store (one record per user
message and one per assistant message), skipping turns that were already
uploaded, and rebuilds chat histories from those records.
"""

from typing import Optional

from hybrid_memory.core.logger import logger
from hybrid_memory.models.conversation import Turn
from hybrid_memory.models.enums import MemoryType, MessageRole
from hybrid_memory.models.memory import (
    MemoryItem,
    MemoryMetadata,
    SearchResult,
    StoredChat,
    StoredChatMessage,
)
from hybrid_memory.services.long_term_memory_service import LongTermMemoryService
from hybrid_memory.services.upload_tracker import UploadDeduplicationTracker

MESSAGE_SOURCE = "chat-message"
TITLE_CHARS = 50
UNTITLED_CHAT = "Untitled Chat"


def message_id(user_id: str, chat_id: str, turn_id: str, role: MessageRole) -> str:
    return f"{user_id}:{chat_id}:{turn_id}:{role.value}"


def chat_title(content: str) -> str:
    return content[:TITLE_CHARS] + ("..." if len(content) > TITLE_CHARS else "")


class ConversationUploadService:
    """Bulk turn upload plus chat history restore and deletion."""

    def __init__(
        self,
        long_term_memory: LongTermMemoryService,
        tracker: Optional[UploadDeduplicationTracker] = None,
    ):
        self._long_term = long_term_memory
        self._tracker = tracker or UploadDeduplicationTracker()

    @property
    def tracker(self) -> UploadDeduplicationTracker:
        return self._tracker

    @staticmethod
    def build_message_items(user_id: str, chat_id: str, turns: list[Turn], first_turn_id: Optional[str]) -> list[MemoryItem]:
        items: list[MemoryItem] = []
        for turn in turns:
            items.append(
                MemoryItem(
                    id=message_id(user_id, chat_id, turn.id, MessageRole.USER),
                    content=turn.user_prompt,
                    metadata=MemoryMetadata(
                        timestamp=turn.timestamp,
                        type=MemoryType.CONVERSATION,
                        source=MESSAGE_SOURCE,
                        user_id=user_id,
                        chat_id=chat_id,
                        turn_id=turn.id,
                        role=MessageRole.USER.value,
                        tags=["user-message", chat_id],
                        is_first_message=turn.id == first_turn_id,
                        image_url=turn.image_url,
                        image_prompt=turn.image_prompt,
                        has_image=turn.has_image,
                    ),
                )
            )
            items.append(
                MemoryItem(
                    id=message_id(user_id, chat_id, turn.id, MessageRole.ASSISTANT),
                    content=turn.ai_response,
                    metadata=MemoryMetadata(
                        timestamp=turn.timestamp,
                        type=MemoryType.CONVERSATION,
                        source=MESSAGE_SOURCE,
                        user_id=user_id,
                        chat_id=chat_id,
                        turn_id=turn.id,
                        role=MessageRole.ASSISTANT.value,
                        tags=["assistant-message", chat_id],
                        image_url=turn.image_url,
                        has_image=turn.has_image,
                    ),
                )
            )
        return items

    async def store_conversation_turns(
        self,
        user_id: str,
        chat_id: str,
        turns: list[Turn],
        force: bool = False,
    ) -> int:
        """
        Upload the chat's turns that were not uploaded before.

        Args:
            user_id: Owner user ID
            chat_id: Chat ID
            turns: Turns of the chat in chronological order
            force: Upload even turns the tracker has already seen

        Returns:
            Number of messages stored (two per uploaded turn)

        Raises:
            VectorStoreError: If the upload fails; nothing is marked uploaded
        """
        if not turns:
            logger.info("No turns to store, skipping upload")
            return 0

        to_upload = turns
        if not force:
            pending = set(self._tracker.pending(chat_id, [t.id for t in turns]))
            to_upload = [t for t in turns if t.id in pending]
            if not to_upload:
                logger.info(f"All turns of chat {chat_id} already uploaded, skipping")
                return 0
            if len(to_upload) < len(turns):
                logger.info(
                    f"Filtered: {len(turns)} total -> {len(to_upload)} new "
                    f"({len(turns) - len(to_upload)} already uploaded)"
                )

        # Local turns may start after evicted ones, so only a chat with no
        # upload history takes its first message from them
        first_turn_id = self._tracker.first_turn_id(chat_id)
        if first_turn_id is None:
            first_turn_id = turns[0].id

        items = self.build_message_items(user_id, chat_id, to_upload, first_turn_id)
        stored = await self._long_term.store_memories(items)
        self._tracker.mark_uploaded(chat_id, [t.id for t in to_upload])

        logger.info(
            f"Stored {stored} messages for chat {chat_id} "
            f"({self._tracker.uploaded_count(chat_id)} turns tracked)"
        )
        return stored

    @staticmethod
    def _to_message(result: SearchResult, user_id: str, chat_id: str) -> StoredChatMessage:
        meta = result.metadata
        return StoredChatMessage(
            id=result.id,
            chat_id=chat_id,
            user_id=user_id,
            role=meta.role or MessageRole.USER.value,
            content=result.content,
            timestamp=meta.timestamp,
            turn_id=meta.turn_id or result.id,
            image_url=meta.image_url,
            image_prompt=meta.image_prompt,
            has_image=meta.has_image,
        )

    @staticmethod
    def _assemble_chat(user_id: str, chat_id: str, records: list[SearchResult]) -> StoredChat:
        messages = sorted(
            (ConversationUploadService._to_message(r, user_id, chat_id) for r in records),
            key=lambda m: m.timestamp,
        )
        first_flagged = next(
            (
                r
                for r in sorted(records, key=lambda r: r.metadata.timestamp)
                if r.metadata.role == MessageRole.USER.value and r.metadata.is_first_message
            ),
            None,
        )
        if first_flagged is not None:
            title = chat_title(first_flagged.content)
        else:
            first_user = next((m for m in messages if m.role == MessageRole.USER.value), None)
            title = chat_title(first_user.content) if first_user else UNTITLED_CHAT

        return StoredChat(
            chat_id=chat_id,
            user_id=user_id,
            title=title,
            messages=messages,
            created_at=messages[0].timestamp,
            updated_at=messages[-1].timestamp,
        )

    async def get_user_chats(self, user_id: str, limit: int = 200) -> list[StoredChat]:
        """
        Rebuild the user's chats from stored messages, oldest chat first.

        Returns an empty list on error.
        """
        try:
            records = await self._long_term.list_memories(
                {"user_id": user_id, "type": MemoryType.CONVERSATION.value}, limit=limit
            )
        except Exception as e:
            logger.error(f"Error retrieving chats for user {user_id}: {e}")
            return []

        by_chat: dict[str, list[SearchResult]] = {}
        for record in records:
            chat_id = record.metadata.chat_id
            if chat_id:
                by_chat.setdefault(chat_id, []).append(record)

        chats = [self._assemble_chat(user_id, chat_id, recs) for chat_id, recs in by_chat.items()]
        chats.sort(key=lambda c: c.created_at)
        logger.info(f"Retrieved {len(chats)} chats with {len(records)} total messages")
        return chats

    async def get_chat(self, user_id: str, chat_id: str, limit: int = 500) -> Optional[StoredChat]:
        """A single chat rebuilt from stored messages; None when missing or on error."""
        try:
            records = await self._long_term.list_memories(
                {
                    "user_id": user_id,
                    "chat_id": chat_id,
                    "type": MemoryType.CONVERSATION.value,
                },
                limit=limit,
            )
        except Exception as e:
            logger.error(f"Error retrieving chat {chat_id}: {e}")
            return None

        if not records:
            logger.info(f"No messages found for chat {chat_id}")
            return None
        return self._assemble_chat(user_id, chat_id, records)

    async def delete_chat(self, user_id: str, chat_id: str) -> None:
        """Delete every record of the chat and forget its upload history."""
        await self._long_term.delete_memories({"user_id": user_id, "chat_id": chat_id})
        self._tracker.clear(chat_id)
        logger.info(f"Deleted chat {chat_id} for user {user_id}")

    async def delete_user_data(self, user_id: str) -> None:
        """Delete ALL long-term records of a user."""
        await self._long_term.delete_memories({"user_id": user_id})
        logger.info(f"Deleted all data for user {user_id}")

    async def get_user_stats(self, user_id: str) -> dict[str, int]:
        chats = await self.get_user_chats(user_id, limit=1000)
        return {
            "total_chats": len(chats),
            "total_messages": sum(len(c.messages) for c in chats),
            "oldest_message": min((c.created_at for c in chats), default=0),
            "newest_message": max((c.updated_at for c in chats), default=0),
        }

    def get_upload_stats(self) -> dict[str, int]:
        return self._tracker.stats()

    def clear_upload_tracker(self, chat_id: Optional[str] = None) -> None:
        self._tracker.clear(chat_id)
