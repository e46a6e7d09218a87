"""
Call Signaling Coordinator - Main Application

This is the entry point for the FastAPI application.
It handles:
- WebSocket signaling between call participants
- Health and session inspection endpoints
- Background sweep of stale calling sessions
"""
from contextlib import asynccontextmanager
import asyncio
import logging
from datetime import datetime, UTC

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callsignal import __version__
from callsignal.api import router as api_router
from callsignal.api.deps import close_coordinator, get_coordinator
from callsignal.api.websocket import router as ws_router
from callsignal.config.redis import close_redis
from callsignal.config.settings import settings
from callsignal.services.metrics import start_metrics_server
from callsignal.services.session.coordinator import SessionCoordinator

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # === STARTUP ===
    logger.info("🚀 Starting Call Signaling Coordinator...")

    coordinator = get_coordinator()
    logger.info(f"✅ Session coordinator ready ({type(coordinator.media_relay).__name__})")

    sweeper = None
    if settings.CALLING_TIMEOUT_SEC > 0:
        sweeper = asyncio.create_task(coordinator.run_sweeper())
        logger.info("✅ Stale session sweeper started")

    if settings.METRICS_ENABLED:
        start_metrics_server(settings.METRICS_PORT)

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    await close_coordinator()
    await close_redis()


app = FastAPI(
    title="Call Signaling Coordinator",
    description="Presence, call session and negotiation relay for two-party calls",
    version=__version__,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST API routes
app.include_router(api_router, prefix="/api")

# Include WebSocket routes
app.include_router(ws_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Call Signaling Coordinator",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "active_sessions": coordinator.active_session_count(),
        "registered_identities": len(coordinator.presence)
    }


if __name__ == "__main__":
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
