"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class HybridMemoryError(Exception):
    """Base exception for the hybrid memory backend."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(HybridMemoryError):
    """Resource not found."""

    pass


class ValidationError(HybridMemoryError):
    """Validation error."""

    pass


class ConfigurationError(HybridMemoryError):
    """A collaborator is missing required credentials or settings."""

    pass


class LLMError(HybridMemoryError):
    """LLM-related error."""

    pass


class LLMValidationError(LLMError):
    """LLM output validation failed."""

    def __init__(self, message: str, raw_output: str, attempts: int = 1):
        super().__init__(message, details={"raw_output": raw_output, "attempts": attempts})
        self.raw_output = raw_output
        self.attempts = attempts


class VectorStoreError(HybridMemoryError):
    """Embedding or vector store call failed."""

    pass

