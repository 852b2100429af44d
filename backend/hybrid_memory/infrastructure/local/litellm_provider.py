"""
LiteLLM provider implementation for local development.

Supports Bedrock, OpenAI, and other providers via LiteLLM.
Includes support for custom endpoints (api_base) for proxy servers.
"""

import os
from typing import Any, Optional

import litellm

from hybrid_memory.core.config import get_settings
from hybrid_memory.core.exceptions import LLMError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.llm_provider import ILLMProvider


class LiteLLMProvider(ILLMProvider):
    """LiteLLM provider for local environment with custom endpoint support."""

    def __init__(
        self,
        model_name: str,
        api_base: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        """
        Initialize LiteLLM provider.

        Args:
            model_name: LiteLLM model identifier (e.g., "openai/gpt-4o-mini")
            api_base: Custom API endpoint URL (optional, for proxy servers)
                     Note: Do NOT include /v1 suffix - LiteLLM adds it automatically
            api_key: Custom API key (optional, overrides default)
        """
        self._model_name = model_name
        self._settings = get_settings()
        self._api_base = api_base or self._settings.LITELLM_API_BASE or None
        self._api_key = api_key or self._settings.LITELLM_API_KEY or None

        # Enable debug logging if DEBUG is set
        if self._settings.DEBUG:
            os.environ["LITELLM_LOG"] = "DEBUG"

    def get_model(self) -> str:
        return self._model_name

    def get_api_base(self) -> Optional[str]:
        """Get the configured LiteLLM API base, if any."""
        return self._api_base

    def get_model_name(self) -> str:
        """Get human-readable model name."""
        if self._api_base:
            return f"LiteLLM ({self._model_name} @ {self._api_base})"
        return f"LiteLLM ({self._model_name})"

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self._model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if max_output_tokens:
            kwargs["max_tokens"] = max_output_tokens
        if self._api_base:
            kwargs["api_base"] = self._api_base
        if self._api_key:
            kwargs["api_key"] = self._api_key

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(f"LiteLLM generation failed ({self._model_name}): {e}")
            raise LLMError(f"LiteLLM generation failed: {e}") from e

        content = response.choices[0].message.content
        return (content or "").strip()

    def with_model(self, model_id: str) -> "LiteLLMProvider":
        if not model_id or model_id == self._model_name:
            return self
        return LiteLLMProvider(model_name=model_id, api_base=self._api_base, api_key=self._api_key)
