"""
LLM provider interface.

Defines the contract for LLM (Large Language Model) access.
Implementations: Gemini API, LiteLLM (for Bedrock, OpenAI, etc.)
"""

from abc import ABC, abstractmethod
from typing import Optional


class ILLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def get_model(self) -> str:
        """
        Get the raw model identifier passed to the backing API.

        Returns:
            Model identifier string (e.g., "gemini-2.5-flash")
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Get the human-readable model name.

        Returns:
            Model name string for logging/display
        """
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a text completion for a single prompt.

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature
            max_output_tokens: Optional output cap

        Returns:
            Generated text (may be empty)

        Raises:
            LLMError: If the provider call fails
        """
        pass

    def with_model(self, model_id: str) -> "ILLMProvider":
        """
        Create a new provider instance using a different model.

        Default implementation returns self (no override).
        """
        return self
