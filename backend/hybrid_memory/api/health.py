"""
Health check endpoint.
"""

from fastapi import APIRouter

from hybrid_memory.api.deps import AppSettings, Runtime

router = APIRouter()


@router.get("/health")
async def health_check(settings: AppSettings, runtime: Runtime):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
        "memory_runtime_started": runtime.started,
    }
