"""
Unit tests for UserProfileService.
"""

from unittest.mock import AsyncMock

import pytest

from hybrid_memory.core.exceptions import LLMError, LLMValidationError
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.models.profile import ProfileFields
from hybrid_memory.services.user_profile_service import UserProfileService, render_turns

from tests.factories import make_turn

EXTRACTION_JSON = """```json
{
  "name": "Anoop Kumar",
  "role": "Software Engineer",
  "interests": ["hiking"],
  "preferences": null,
  "background": "",
  "conversationStyle": "concise"
}
```"""


@pytest.fixture
def llm():
    provider = AsyncMock(spec=ILLMProvider)
    provider.generate.return_value = EXTRACTION_JSON
    return provider


@pytest.fixture
def profiles(llm):
    return UserProfileService(llm)


class TestParseExtraction:
    def test_fenced_json_with_camel_case_style(self, profiles):
        fields = profiles.parse_extraction(EXTRACTION_JSON)

        assert fields.name == "Anoop Kumar"
        assert fields.role == "Software Engineer"
        assert fields.interests == ["hiking"]
        assert fields.preferences is None
        assert fields.background is None
        assert fields.conversation_style == "concise"

    def test_bare_json_object(self, profiles):
        fields = profiles.parse_extraction('Here you go: {"name": "Mia"} done')

        assert fields.name == "Mia"

    def test_no_json_raises(self, profiles):
        with pytest.raises(LLMValidationError):
            profiles.parse_extraction("I could not find anything")

    def test_invalid_json_raises(self, profiles):
        with pytest.raises(LLMValidationError) as exc_info:
            profiles.parse_extraction("{name: Mia}")

        assert exc_info.value.raw_output == "{name: Mia}"


class TestExtractProfile:
    """LLM extraction never raises."""

    @pytest.mark.asyncio
    async def test_extracts_fields(self, profiles, llm):
        result = await profiles.extract_profile("user-1", "USER: my name is anoop kumar")

        assert result.extracted is True
        assert result.profile.name == "Anoop Kumar"
        assert llm.generate.await_args.kwargs["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_llm_error_is_reported_not_raised(self, profiles, llm):
        llm.generate.side_effect = LLMError("rate limited")

        result = await profiles.extract_profile("user-1", "USER: hi")

        assert result.extracted is False
        assert "rate limited" in result.error

    @pytest.mark.asyncio
    async def test_empty_fields_are_not_extracted(self, profiles, llm):
        llm.generate.return_value = '{"name": null, "interests": []}'

        result = await profiles.extract_profile("user-1", "USER: hi")

        assert result.extracted is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_without_llm(self):
        result = await UserProfileService(None).extract_profile("user-1", "USER: hi")

        assert result.extracted is False
        assert result.error == "LLM not configured"


class TestProfileStore:
    def test_create_then_merge(self, profiles):
        created = profiles.upsert_profile(
            "user-1", ProfileFields(name="Mia", interests=["chess"], preferences=["short answers"])
        )
        assert created.conversation_count == 1

        merged = profiles.upsert_profile(
            "user-1", ProfileFields(role="Designer", interests=["chess", "jazz"])
        )

        assert merged.name == "Mia"
        assert merged.role == "Designer"
        assert merged.interests == ["chess", "jazz"]
        assert merged.preferences == ["short answers"]
        assert merged.conversation_count == 2
        assert merged.extracted_at == created.extracted_at
        assert profiles.get_profile("user-1") == merged

    def test_delete(self, profiles):
        profiles.upsert_profile("user-1", ProfileFields(name="Mia"))

        assert profiles.delete_profile("user-1") is True
        assert profiles.delete_profile("user-1") is False
        assert profiles.all_profiles() == []

    @pytest.mark.asyncio
    async def test_update_from_turns(self, profiles, llm):
        turns = [make_turn(1, "my name is anoop kumar", "Nice to meet you")]

        profile = await profiles.update_from_turns("user-1", turns)

        assert profile.name == "Anoop Kumar"
        prompt = llm.generate.await_args.args[0]
        assert "USER: my name is anoop kumar" in prompt
        assert "ASSISTANT: Nice to meet you" in prompt


class TestProfileContext:
    def test_unknown_user(self, profiles):
        assert profiles.generate_profile_context("nobody") == ""

    def test_rendered_block(self, profiles):
        profiles.upsert_profile(
            "user-1", ProfileFields(name="Mia", role="Designer", interests=["chess", "jazz"])
        )

        assert profiles.generate_profile_context("user-1") == (
            "\n--- USER PROFILE ---\n"
            "The user's name is Mia. They work as a Designer. "
            "Their interests include: chess, jazz."
            "\n--- END PROFILE ---\n"
        )


def test_render_turns():
    turns = [make_turn(1, "hi", "hello"), make_turn(2, "bye", "ciao")]

    assert render_turns(turns) == "USER: hi\n\nASSISTANT: hello\n\nUSER: bye\n\nASSISTANT: ciao"
