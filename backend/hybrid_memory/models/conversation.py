"""
Conversation models.

Turns are grouped into time-bounded, chat-scoped sessions. Closed sessions
are compressed into summaries.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageAttachment(BaseModel):
    """Image generated or edited during a turn."""

    url: str = Field(..., description="Image URL or base64 data")
    prompt: Optional[str] = Field(None, description="Original image generation prompt")


class Turn(BaseModel):
    """One user prompt / AI response exchange."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Process-wide unique turn ID")
    user_id: str = Field(..., description="Owner user ID")
    chat_id: Optional[str] = Field(None, description="Chat ID (None for legacy ungrouped turns)")
    user_prompt: str
    ai_response: str
    timestamp: int = Field(..., description="Wall-clock epoch milliseconds")
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    has_image: bool = False


class Session(BaseModel):
    """Time-windowed, chat-scoped group of turns summarized as one unit."""

    session_id: str
    user_id: str
    chat_id: Optional[str] = None
    turns: list[Turn] = Field(default_factory=list)
    start_time: int
    last_activity: int
    is_summarized: bool = False


class Timespan(BaseModel):
    """First and last activity of a summarized session."""

    start: int
    end: int


class Summary(BaseModel):
    """AI-generated compression of a closed session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: str
    chat_id: Optional[str] = None
    summary: str
    key_topics: list[str] = Field(default_factory=list)
    turn_count: int
    timespan: Timespan
    timestamp: int = Field(..., description="Creation time (epoch milliseconds)")
