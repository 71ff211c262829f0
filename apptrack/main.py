"""FastAPI entry point for the apptrack backend."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apptrack import __version__
from apptrack.config import settings
from apptrack.db import close as close_db
from apptrack.db import get_connection
from apptrack.routers import applications, explore, suggestions
from apptrack.services.lifecycle import InFlightGuard
from apptrack.services.remote_store import create_client

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting apptrack backend on %s:%d", settings.host, settings.port)
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    # Local fallback cache
    get_connection()

    app.state.http_client = create_client()
    app.state.guard = InFlightGuard()
    logger.info("Remote store at %s", settings.rest_url)

    yield

    # Shutdown
    await app.state.http_client.aclose()
    close_db()
    logger.info("apptrack backend stopped")


app = FastAPI(
    title="apptrack",
    description="Job application tracking backend",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(applications.router)
app.include_router(explore.router)
app.include_router(suggestions.router)


@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "remote_url": settings.rest_url,
        "suggestion_mode": settings.suggestion_mode,
    }


if __name__ == "__main__":
    uvicorn.run(
        "apptrack.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
