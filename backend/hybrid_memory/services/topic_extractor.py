"""
Topic extraction for conversations and documents.

Asks the LLM for a short comma-separated topic list and falls back to a
deterministic keyword table whenever the LLM is unavailable, fails or
returns nothing usable.
"""

import re
from typing import Optional

from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.models.enums import TopicSource

MAX_CONVERSATION_TOPICS = 5
MAX_DOCUMENT_TOPICS = 6
DOCUMENT_EXCERPT_CHARS = 2000
MIN_TOPIC_LENGTH = 3
MAX_TOPIC_LENGTH = 30

FALLBACK_TOPIC = "general"

# Order matters: topics are reported in table order
TOPIC_KEYWORDS: dict[str, list[str]] = {
    "programming": [
        "code", "programming", "javascript", "python", "typescript",
        "function", "api", "algorithm", "syntax",
    ],
    "ai-development": [
        "ai", "model", "gemini", "pinecone", "embedding",
        "memory", "chat", "machine-learning", "neural",
    ],
    "web-development": [
        "react", "html", "css", "website", "frontend",
        "backend", "server", "responsive", "framework",
    ],
    "project-work": [
        "project", "build", "create", "develop",
        "implement", "feature", "planning", "architecture",
    ],
    "learning": [
        "learn", "understand", "explain", "how", "what",
        "why", "tutorial", "concept", "theory",
    ],
    "debugging": [
        "error", "bug", "fix", "debug", "problem",
        "issue", "troubleshoot", "exception", "crash",
    ],
    "data-analysis": [
        "data", "analysis", "database", "query",
        "analytics", "visualization", "chart", "metrics",
    ],
    "ui-design": [
        "design", "ui", "ux", "interface", "user",
        "layout", "component", "styling", "visual",
    ],
    "deployment": [
        "deploy", "deployment", "production", "hosting",
        "server", "cloud", "docker", "container",
    ],
    "documentation": [
        "documentation", "docs", "readme", "guide",
        "manual", "specification", "comment",
    ],
}

CONVERSATION_TOPIC_PROMPT = """Analyze this conversation and extract 3-5 key topics that best describe what was discussed.

Conversation:
{text}

Please provide ONLY a comma-separated list of topics (lowercase, hyphenated). Focus on:
- Main subject areas discussed
- Technical domains involved
- Types of tasks or problems addressed
- Learning or development areas

Examples of good topics: programming, web-development, ai-chatbots, debugging, project-planning, learning-concepts, data-analysis, ui-design

Topics:"""

DOCUMENT_TOPIC_PROMPT = """Analyze this document content and extract 3-6 key topics that describe what the document is about.

Document Content:
{text}

Please provide ONLY a comma-separated list of topics (lowercase, hyphenated). Focus on:
- Main subject matter
- Document type (e.g., contract, manual, report, specifications)
- Industry or domain
- Key concepts covered

Examples: business-contract, technical-documentation, user-manual, financial-report, project-specifications, legal-agreement

Topics:"""

_SEPARATOR_RE = re.compile(r"[\s_]+")
_STRIP_CHARS = " \t\n\"'`*.-"


def extract_keyword_based(text: str) -> list[str]:
    """Topics whose keywords occur (as substrings) in the lowercased text."""
    lowered = text.lower()
    topics = [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]
    return topics or [FALLBACK_TOPIC]


def parse_topic_list(raw: str, limit: int) -> list[str]:
    """Normalize a comma-separated LLM answer into hyphenated lowercase tags."""
    topics: list[str] = []
    for part in raw.split(","):
        tag = _SEPARATOR_RE.sub("-", part.strip(_STRIP_CHARS).lower())
        if MIN_TOPIC_LENGTH <= len(tag) < MAX_TOPIC_LENGTH and tag not in topics:
            topics.append(tag)
        if len(topics) >= limit:
            break
    return topics


class TopicExtractor:
    """Two-tier topic extraction: LLM first, keyword table as fallback."""

    def __init__(self, llm_provider: Optional[ILLMProvider] = None):
        self._llm_provider = llm_provider

    def _build_prompt(self, text: str, source: TopicSource) -> str:
        if source == TopicSource.DOCUMENT:
            excerpt = text[:DOCUMENT_EXCERPT_CHARS]
            if len(text) > DOCUMENT_EXCERPT_CHARS:
                excerpt += "..."
            return DOCUMENT_TOPIC_PROMPT.format(text=excerpt)
        return CONVERSATION_TOPIC_PROMPT.format(text=text)

    async def extract(
        self,
        text: str,
        source: TopicSource = TopicSource.CONVERSATION,
    ) -> list[str]:
        """
        Extract topic tags from text.

        Never raises; any LLM problem degrades to extract_keyword_based().
        """
        limit = MAX_DOCUMENT_TOPICS if source == TopicSource.DOCUMENT else MAX_CONVERSATION_TOPICS

        if self._llm_provider is not None:
            try:
                raw = await self._llm_provider.generate(self._build_prompt(text, source))
                topics = parse_topic_list(raw or "", limit)
                if topics:
                    logger.info(f"LLM extracted {source.value} topics: {', '.join(topics)}")
                    return topics
                logger.warning("LLM topic extraction returned no usable topics, using keywords")
            except Exception as e:
                logger.warning(f"LLM topic extraction failed, using keywords: {e}")

        topics = extract_keyword_based(text)
        logger.info(f"Keyword-based topics: {', '.join(topics)}")
        return topics
