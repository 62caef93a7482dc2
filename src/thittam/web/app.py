"""
Thittam Web - FastAPI application.

Uses Supabase Auth for authentication. Serves the onboarding API.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboarding.api import router as onboarding_router
from thittam import __version__
from thittam.config import settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Thittam", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    logger.info("Thittam starting up...")
    logger.info(f"  Environment: {settings.app_env}")
    logger.info(f"  Onboarding store: {settings.onboarding_store}")
    logger.info(f"  Organizer flow: {settings.onboarding_organizer_variant}")


# CORS middleware for the web frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
