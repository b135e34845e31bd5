"""
DorLog Reports — FastAPI Application

This is the entry point for the backend. It:
1. Creates the FastAPI app instance
2. Configures CORS (so the web app can call us)
3. Registers route handlers
4. Connects to Firestore on startup

Run with:
    uvicorn dorlog.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dorlog import firestore
from dorlog.config import settings
from dorlog.routers import generation, reports

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic.

    Firestore problems don't stop the app from starting: the status is
    recorded and reported by /health, and report requests come back
    with status "error".
    """
    # --- Startup ---
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting DorLog Reports API (%s)...", settings.APP_ENV)
    firestore.init_firestore()
    logger.info("Firestore: %s", firestore.firestore_status)

    yield

    # --- Shutdown ---
    logger.info("Shutting down...")


app = FastAPI(
    title="DorLog Reports API",
    description="Health report aggregation and export for the DorLog pain diary",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router)
app.include_router(generation.router)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint — confirms the API is alive."""
    return {
        "service": "DorLog Reports API",
        "status": "running",
        "version": "1.0.0",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check — reports whether Firestore is reachable.

    The app still answers when Firestore isn't configured, so this says
    "degraded" rather than failing.
    """
    return {
        "status": "healthy" if firestore.firestore_status == "connected" else "degraded",
        "firestore": firestore.firestore_status,
        "environment": settings.APP_ENV,
    }
