"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from refood.config import get_settings
from refood.state.manager import get_state_manager
from refood.state.registry import SessionRegistry
from refood.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")
    settings = get_settings()

    # Per-token session data (chosen receiving center) lives in Redis
    state_manager = await get_state_manager()
    app.state.state_manager = state_manager
    logger.info("state_manager_initialized")

    # List cache and unread-count polling state survive between requests
    app.state.session_registry = SessionRegistry(settings)

    # One connection pool towards the remote service for every request
    app.state.http_client = httpx.AsyncClient(base_url=settings.api_url)
    logger.info("remote_client_initialized", api_url=settings.api_url)

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await app.state.http_client.aclose()
    await state_manager.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Refood Reservation Core",
    description="Reservation lifecycle for surplus-food lots",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "refood-reservations"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Refood Reservation Core API",
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from refood.api.routes import router

app.include_router(router, prefix="/api/v1", tags=["api"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "refood.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
