"""
Gemini API provider for local development.

Uses Gemini API with API Key (no GCP project required).
"""

from typing import Optional

from hybrid_memory.core.config import get_settings
from hybrid_memory.core.exceptions import ConfigurationError, LLMError
from hybrid_memory.core.logger import logger
from hybrid_memory.interfaces.llm_provider import ILLMProvider


class GeminiAPIProvider(ILLMProvider):
    """Gemini API provider using API Key."""

    def __init__(self, model_name: str, api_key: Optional[str] = None):
        """
        Initialize Gemini API provider.

        Args:
            model_name: Gemini model name (e.g., "gemini-2.5-flash")
            api_key: Overrides GOOGLE_API_KEY when given
        """
        self._model_name = model_name
        self._settings = get_settings()
        self._api_key = api_key or self._settings.GOOGLE_API_KEY

        if not self._api_key:
            raise ConfigurationError(
                "GOOGLE_API_KEY is required for Gemini API provider. "
                "Get your API key from https://aistudio.google.com/apikey"
            )

        from google import genai

        self._client = genai.Client(api_key=self._api_key)

    def get_model(self) -> str:
        return self._model_name

    def get_model_name(self) -> str:
        """Get human-readable model name."""
        return f"Gemini API ({self._model_name})"

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        from google.genai.types import GenerateContentConfig

        config_kwargs: dict = {"temperature": temperature}
        if max_output_tokens:
            config_kwargs["max_output_tokens"] = max_output_tokens

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=GenerateContentConfig(**config_kwargs),
            )
        except Exception as e:
            logger.error(f"Gemini generation failed ({self._model_name}): {e}")
            raise LLMError(f"Gemini generation failed: {e}") from e

        return (response.text or "").strip()

    def with_model(self, model_id: str) -> "GeminiAPIProvider":
        """Create a new provider with a different model name."""
        if not model_id or model_id == self._model_name:
            return self
        return GeminiAPIProvider(model_name=model_id, api_key=self._api_key)
