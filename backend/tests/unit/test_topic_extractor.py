"""
Unit tests for TopicExtractor.
"""

from unittest.mock import AsyncMock

import pytest

from hybrid_memory.core.exceptions import LLMError
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.models.enums import TopicSource
from hybrid_memory.services.topic_extractor import (
    TopicExtractor,
    extract_keyword_based,
    parse_topic_list,
)


class TestKeywordFallback:
    def test_matches_in_table_order(self):
        assert extract_keyword_based("I love debugging my react app") == [
            "web-development",
            "debugging",
        ]

    def test_no_match_is_general(self):
        assert extract_keyword_based("zzz qqq") == ["general"]


class TestParseTopicList:
    def test_normalizes_and_filters(self):
        raw = "Programming, Web Development, ai, programming, `data_analysis`."

        assert parse_topic_list(raw, 5) == ["programming", "web-development", "data-analysis"]

    def test_respects_limit(self):
        raw = "alpha, bravo, charlie, delta, echo, foxtrot, golf"

        assert parse_topic_list(raw, 5) == ["alpha", "bravo", "charlie", "delta", "echo"]

    def test_drops_overlong_tags(self):
        assert parse_topic_list("x" * 40 + ", valid", 5) == ["valid"]


class TestTopicExtractor:
    """LLM-first extraction with keyword fallback."""

    @pytest.mark.asyncio
    async def test_uses_llm_answer(self, mock_llm):
        extractor = TopicExtractor(mock_llm)

        topics = await extractor.extract("User: hi\nAI: hello")

        assert topics == ["programming", "web-development"]
        mock_llm.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_document_prompt_truncates_long_text(self, mock_llm):
        extractor = TopicExtractor(mock_llm)

        await extractor.extract("a" * 5000, TopicSource.DOCUMENT)

        prompt = mock_llm.generate.await_args.args[0]
        assert "Document Content:" in prompt
        assert "a" * 2000 + "..." in prompt
        assert "a" * 2001 not in prompt

    @pytest.mark.asyncio
    async def test_document_topics_capped_at_six(self):
        llm = AsyncMock(spec=ILLMProvider)
        llm.generate.return_value = "one1, two2, three, four, five, six6, seven"

        topics = await TopicExtractor(llm).extract("contract text", TopicSource.DOCUMENT)

        assert len(topics) == 6

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_keywords(self):
        llm = AsyncMock(spec=ILLMProvider)
        llm.generate.side_effect = LLMError("quota exceeded")

        topics = await TopicExtractor(llm).extract("I love debugging my react app")

        assert topics == ["web-development", "debugging"]

    @pytest.mark.asyncio
    async def test_empty_llm_answer_falls_back_to_keywords(self):
        llm = AsyncMock(spec=ILLMProvider)
        llm.generate.return_value = ""

        topics = await TopicExtractor(llm).extract("zzz qqq")

        assert topics == ["general"]

    @pytest.mark.asyncio
    async def test_without_llm_uses_keywords(self):
        topics = await TopicExtractor(None).extract("deploy to production with docker")

        assert topics == ["deployment"]
