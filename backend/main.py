"""
Hybrid Memory Backend - Main Application Entry Point

Local turns, periodic AI summaries and a vector store, blended into
context for each AI request.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hybrid_memory.core.config import get_settings
from hybrid_memory.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Hybrid Memory Backend in {settings.ENVIRONMENT} mode...")

    from hybrid_memory.api.deps import get_memory_runtime

    runtime = get_memory_runtime()
    await runtime.start()

    yield

    # Shutdown
    logger.info("Shutting down Hybrid Memory Backend...")
    await runtime.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Hybrid Memory Backend",
        description="Cost-aware hybrid memory for AI chat: local turns, summaries and vector recall",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from hybrid_memory.api import health, memory

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(memory.router, prefix="/api/memory", tags=["memory"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
