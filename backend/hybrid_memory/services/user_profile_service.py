"""
User profile service.

Keeps a persistent, cross-chat profile per user (name, role, interests, ...)
extracted from conversations by the LLM in the background, and renders it
as a short block for AI prompts.
"""

import json
import re
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from hybrid_memory.core.exceptions import LLMValidationError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.models.conversation import Turn
from hybrid_memory.models.profile import ProfileExtractionResult, ProfileFields, UserProfile
from hybrid_memory.utils.datetime_utils import now_utc

PROFILE_EXTRACTION_PROMPT = """
You are a profile extraction assistant. Analyze the conversation below and extract ANY personal information about the USER.

CRITICAL INSTRUCTIONS:
1. Look for sentences like "my name is X", "I am X", "I'm X", "call me X"
2. Look for "I work at/for X", "I'm a X", "my role is X"
3. Extract interests from "I like X", "I'm interested in X", "I enjoy X"
4. Extract preferences from how they communicate
5. If you find ANY information, include it in the JSON

CONVERSATION:
{conversation}

EXAMPLES OF WHAT TO EXTRACT:
- "my name is anoop kumar" -> name: "Anoop Kumar"
- "i work for nubevest" -> role: null, background: "Works at Nubevest"
- "I'm a software engineer" -> role: "Software Engineer"

Return ONLY a JSON object with this exact structure:
{{
  "name": "extracted name or null",
  "role": "string or null",
  "interests": ["array", "of", "strings"] or null,
  "preferences": ["array", "of", "strings"] or null,
  "background": "string or null",
  "conversation_style": "string or null"
}}

IMPORTANT: Return ONLY the JSON object, no markdown, no explanations.
"""


def _extract_json(raw_output: str) -> Optional[str]:
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", raw_output)
    if json_match:
        return json_match.group(1).strip()
    json_match = re.search(r"\{[\s\S]*\}", raw_output)
    if json_match:
        return json_match.group(0).strip()
    return None


def _merge_unique(existing: list[str], new: Optional[list[str]]) -> list[str]:
    merged = list(existing)
    for item in new or []:
        if item not in merged:
            merged.append(item)
    return merged


def render_turns(turns: list[Turn]) -> str:
    lines: list[str] = []
    for turn in turns:
        lines.append(f"USER: {turn.user_prompt}")
        lines.append(f"ASSISTANT: {turn.ai_response}")
    return "\n\n".join(lines)


class UserProfileService:
    """In-memory profile store with LLM-based extraction."""

    def __init__(self, llm_provider: Optional[ILLMProvider] = None):
        self._llm_provider = llm_provider
        self._profiles: dict[str, UserProfile] = {}

    def parse_extraction(self, raw_output: str) -> ProfileFields:
        """
        Parse the extractor's JSON answer.

        Raises:
            LLMValidationError: If no valid JSON object is found
        """
        json_str = _extract_json(raw_output)
        if json_str is None:
            raise LLMValidationError("No JSON found in profile extraction output", raw_output)
        try:
            data = json.loads(json_str)
            if not isinstance(data, dict):
                raise ValueError("Profile extraction output is not an object")
            if "conversation_style" not in data and "conversationStyle" in data:
                data["conversation_style"] = data.pop("conversationStyle")
            fields = ProfileFields.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            raise LLMValidationError(f"Invalid profile extraction output: {e}", raw_output) from e

        # Drop empty values
        return ProfileFields(
            name=fields.name or None,
            role=fields.role or None,
            interests=fields.interests or None,
            preferences=fields.preferences or None,
            background=fields.background or None,
            conversation_style=fields.conversation_style or None,
        )

    async def extract_profile(self, user_id: str, conversation_text: str) -> ProfileExtractionResult:
        """Ask the LLM for profile facts. Never raises."""
        if self._llm_provider is None:
            logger.info("LLM not configured, skipping profile extraction")
            return ProfileExtractionResult(extracted=False, error="LLM not configured")

        logger.info(f"Extracting profile info for user: {user_id}")
        try:
            raw = await self._llm_provider.generate(
                PROFILE_EXTRACTION_PROMPT.format(conversation=conversation_text),
                temperature=0.1,
            )
            if not raw:
                logger.info("Profile extraction returned no output")
                return ProfileExtractionResult(extracted=False)
            fields = self.parse_extraction(raw)
        except Exception as e:
            logger.warning(f"Profile extraction failed for {user_id}: {e}")
            return ProfileExtractionResult(extracted=False, error=str(e))

        if fields.is_empty():
            logger.info("No profile info found in conversation")
            return ProfileExtractionResult(extracted=False)
        return ProfileExtractionResult(extracted=True, profile=fields)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    def upsert_profile(self, user_id: str, fields: ProfileFields) -> UserProfile:
        """Create the profile or merge new facts into it (list fields are de-duplicated)."""
        now: datetime = now_utc()
        existing = self._profiles.get(user_id)

        if existing is None:
            profile = UserProfile(
                user_id=user_id,
                name=fields.name,
                role=fields.role,
                interests=fields.interests or [],
                preferences=fields.preferences or [],
                background=fields.background,
                conversation_style=fields.conversation_style,
                extracted_at=now,
                last_updated=now,
                conversation_count=1,
            )
            logger.info(f"Created new profile for {user_id}")
        else:
            profile = existing.model_copy(
                update={
                    "name": fields.name or existing.name,
                    "role": fields.role or existing.role,
                    "background": fields.background or existing.background,
                    "conversation_style": fields.conversation_style or existing.conversation_style,
                    "interests": _merge_unique(existing.interests, fields.interests),
                    "preferences": _merge_unique(existing.preferences, fields.preferences),
                    "last_updated": now,
                    "conversation_count": existing.conversation_count + 1,
                }
            )
            logger.info(f"Updated profile for {user_id}")

        self._profiles[user_id] = profile
        return profile

    def delete_profile(self, user_id: str) -> bool:
        return self._profiles.pop(user_id, None) is not None

    def all_profiles(self) -> list[UserProfile]:
        return list(self._profiles.values())

    async def update_from_turns(self, user_id: str, turns: list[Turn]) -> Optional[UserProfile]:
        """Background entry point: extract from a session snapshot and merge."""
        result = await self.extract_profile(user_id, render_turns(turns))
        if result.extracted and result.profile is not None:
            return self.upsert_profile(user_id, result.profile)
        return None

    def generate_profile_context(self, user_id: str) -> str:
        """Profile rendered for prompt injection; empty string when nothing is known."""
        profile = self._profiles.get(user_id)
        if profile is None:
            return ""

        parts: list[str] = []
        if profile.name:
            parts.append(f"The user's name is {profile.name}.")
        if profile.role:
            parts.append(f"They work as a {profile.role}.")
        if profile.interests:
            parts.append(f"Their interests include: {', '.join(profile.interests)}.")
        if profile.preferences:
            parts.append(f"Preferences: {', '.join(profile.preferences)}.")
        if profile.background:
            parts.append(f"Background: {profile.background}")
        if profile.conversation_style:
            parts.append(f"Communication style: {profile.conversation_style}")

        if not parts:
            return ""
        return "\n--- USER PROFILE ---\n" + " ".join(parts) + "\n--- END PROFILE ---\n"
