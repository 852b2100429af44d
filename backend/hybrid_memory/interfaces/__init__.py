"""
Abstract interfaces for infrastructure implementations.
"""

from hybrid_memory.interfaces.embedding_provider import IEmbeddingProvider
from hybrid_memory.interfaces.llm_provider import ILLMProvider
from hybrid_memory.interfaces.vector_store import IVectorStore

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStore",
]
