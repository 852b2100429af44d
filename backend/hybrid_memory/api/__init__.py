"""API routers."""

from hybrid_memory.api import health, memory

__all__ = ["health", "memory"]
