"""
User profile models.

Profiles hold cross-chat facts about a user (name, role, interests, ...)
extracted from conversations in the background.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileFields(BaseModel):
    """Fields the extractor may fill in."""

    name: Optional[str] = None
    role: Optional[str] = None
    interests: Optional[list[str]] = None
    preferences: Optional[list[str]] = None
    background: Optional[str] = None
    conversation_style: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            [
                self.name,
                self.role,
                self.interests,
                self.preferences,
                self.background,
                self.conversation_style,
            ]
        )


class UserProfile(ProfileFields):
    """Persistent profile shared across all of a user's chats."""

    user_id: str
    interests: list[str] = Field(default_factory=list)
    preferences: list[str] = Field(default_factory=list)
    extracted_at: datetime
    last_updated: datetime
    conversation_count: int = Field(1, description="Extractions that contributed to this profile")


class ProfileExtractionResult(BaseModel):
    extracted: bool
    profile: Optional[ProfileFields] = None
    error: Optional[str] = None
