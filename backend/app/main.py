"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

# Try to use uvloop for better performance (Unix only)
try:
    import uvloop
    uvloop.install()
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from app.api import router
from app.config import get_settings
from app.services import SignalService
from app.tracking_config import load_tracking_config

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    tracking = load_tracking_config()

    logger.info("Starting confluence signal engine...")
    logger.info("Event loop: %s", "uvloop" if _UVLOOP_ENABLED else "asyncio")
    logger.info(
        "History mode: %s (insufficient history -> %s)",
        settings.history_mode,
        settings.insufficient_history_policy,
    )

    service = SignalService.from_settings(settings, tracking)
    await service.start()

    # Expose the service to API routes via app.state
    app.state.signal_service = service

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.signal_service = None
    await service.stop()
    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Confluence Signal Engine",
    description="Scheduled multi-indicator confluence signals for crypto pairs",
    version=VERSION,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    settings = get_settings()
    return {
        "name": "Confluence Signal Engine",
        "version": VERSION,
        "docs": "/docs",
        "history_mode": settings.history_mode,
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
