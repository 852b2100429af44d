"""
Memory API endpoints.

Endpoints for recording conversation turns, hybrid memory search, chat
persistence and user profile lookup.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from hybrid_memory.api.deps import Runtime
from hybrid_memory.core.exceptions import (
    HybridMemoryError,
    LLMError,
    NotFoundError,
    ValidationError,
    VectorStoreError,
)
from hybrid_memory.models.conversation import ImageAttachment, Summary, Turn
from hybrid_memory.models.enums import SearchScenario
from hybrid_memory.models.memory import HybridMemoryResult, MemorySearchOptions, StoredChat
from hybrid_memory.models.profile import UserProfile
from hybrid_memory.services.cost_optimization import get_search_config
from hybrid_memory.services.summarization_scheduler import SummarizationTickResult

router = APIRouter()


# ===========================================
# Request / Response Schemas
# ===========================================


class TurnCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    user_prompt: str
    ai_response: str
    chat_id: Optional[str] = None
    image: Optional[ImageAttachment] = None


class SearchRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    query: str
    scenario: Optional[SearchScenario] = Field(
        None, description="Preset options; ignored when options are given"
    )
    options: Optional[MemorySearchOptions] = None
    chat_id: Optional[str] = None
    is_new_chat: Optional[bool] = None


class RecentContextResponse(BaseModel):
    user_id: str
    context: str


class PersistRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    chat_id: Optional[str] = None


class PersistResponse(BaseModel):
    persisted: bool
    summary: Optional[Summary] = None


class UploadRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    force: bool = False


class UploadResponse(BaseModel):
    chat_id: str
    stored_messages: int


class ProfileResponse(BaseModel):
    profile: UserProfile
    context: str


def _http_error(error: HybridMemoryError) -> HTTPException:
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, (LLMError, VectorStoreError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=error.message)


# ===========================================
# Turns & Search
# ===========================================


@router.post("/turns", response_model=Turn, status_code=status.HTTP_201_CREATED)
async def add_turn(request: TurnCreateRequest, runtime: Runtime):
    """Record a prompt/response exchange in short-term memory."""
    return await runtime.add_turn(
        request.user_id,
        request.user_prompt,
        request.ai_response,
        chat_id=request.chat_id,
        image=request.image,
    )


@router.post("/search", response_model=HybridMemoryResult)
async def search_memory(request: SearchRequest, runtime: Runtime):
    """Hybrid search over local turns, summaries and long-term memory."""
    if request.options is not None:
        options = request.options
    elif request.scenario is not None:
        options = get_search_config(request.scenario)
    else:
        options = MemorySearchOptions()

    overrides: dict = {}
    if request.chat_id is not None:
        overrides["chat_id"] = request.chat_id
    if request.is_new_chat is not None:
        overrides["is_new_chat"] = request.is_new_chat
    if overrides:
        options = options.model_copy(update=overrides)

    try:
        return await runtime.search(request.user_id, request.query, options)
    except HybridMemoryError as e:
        raise _http_error(e) from e


@router.get("/recent-context/{user_id}", response_model=RecentContextResponse)
async def get_recent_context(
    user_id: str,
    runtime: Runtime,
    max_turns: int = Query(10, ge=1, le=100),
):
    """The user's latest turns rendered for a prompt."""
    return RecentContextResponse(
        user_id=user_id,
        context=runtime.get_recent_context(user_id, max_turns),
    )


# ===========================================
# Persistence
# ===========================================


@router.post("/persist", response_model=PersistResponse)
async def persist_chat(request: PersistRequest, runtime: Runtime):
    """Summarize and upload a chat's open session now (e.g. on chat switch)."""
    try:
        summary = await runtime.persist_chat_now(request.user_id, request.chat_id)
    except HybridMemoryError as e:
        raise _http_error(e) from e
    return PersistResponse(persisted=summary is not None, summary=summary)


@router.post("/summarization/run", response_model=SummarizationTickResult)
async def run_summarization(runtime: Runtime):
    """Run one summarization pass immediately."""
    return await runtime.run_summarization_tick()


@router.get("/debug")
async def get_global_debug_info(runtime: Runtime):
    """Local memory totals across every user."""
    return runtime.debug_info()


@router.get("/debug/{user_id}")
async def get_debug_info(user_id: str, runtime: Runtime):
    """Local memory state, with a block for one user."""
    return runtime.debug_info(user_id)


# ===========================================
# Chats
# ===========================================


@router.post("/chats/{chat_id}/upload", response_model=UploadResponse)
async def upload_chat(chat_id: str, request: UploadRequest, runtime: Runtime):
    """Upload a chat's locally held messages that were not uploaded yet."""
    try:
        stored = await runtime.upload_chat_turns(request.user_id, chat_id, force=request.force)
    except HybridMemoryError as e:
        raise _http_error(e) from e
    return UploadResponse(chat_id=chat_id, stored_messages=stored)


@router.delete("/chats/{chat_id}/upload-tracking", status_code=status.HTTP_204_NO_CONTENT)
async def reset_upload_tracking(chat_id: str, runtime: Runtime):
    """Forget which turns of a chat were uploaded, so the next upload resends them."""
    runtime.reset_upload_tracking(chat_id)


@router.delete("/chats/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat_id: str,
    runtime: Runtime,
    user_id: str = Query(..., min_length=1),
):
    """Delete every long-term record of a chat."""
    try:
        await runtime.delete_chat(user_id, chat_id)
    except HybridMemoryError as e:
        raise _http_error(e) from e


@router.get("/users/{user_id}/chats", response_model=list[StoredChat])
async def list_user_chats(
    user_id: str,
    runtime: Runtime,
    limit: int = Query(200, ge=1, le=1000),
):
    """Chats rebuilt from long-term storage, oldest first."""
    return await runtime.get_user_chats(user_id, limit)


@router.get("/users/{user_id}/chats/{chat_id}", response_model=StoredChat)
async def get_user_chat(user_id: str, chat_id: str, runtime: Runtime):
    """A single chat rebuilt from long-term storage."""
    chat = await runtime.get_chat(user_id, chat_id)
    if chat is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat {chat_id} not found",
        )
    return chat


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_data(user_id: str, runtime: Runtime):
    """Delete ALL long-term data and the profile of a user."""
    try:
        await runtime.delete_user_data(user_id)
    except HybridMemoryError as e:
        raise _http_error(e) from e


# ===========================================
# Profile
# ===========================================


@router.get("/profile/{user_id}", response_model=ProfileResponse)
async def get_user_profile(user_id: str, runtime: Runtime):
    """Cross-chat profile extracted from the user's conversations."""
    profile = runtime.get_user_profile(user_id)
    if profile is None:
        raise _http_error(NotFoundError(f"No profile for user {user_id}"))
    return ProfileResponse(profile=profile, context=runtime.get_profile_context(user_id))
