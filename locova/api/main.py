"""
locova.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn locova.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from locova.api.deps import get_config, get_engine  # noqa: E402
from locova.api.routes.engagement import router as engagement_router  # noqa: E402
from locova.api.routes.leaderboard import router as leaderboard_router  # noqa: E402
from locova.api.routes.places import router as places_router  # noqa: E402
from locova.api.routes.profile import router as profile_router  # noqa: E402
from locova.api.routes.trends import router as trends_router  # noqa: E402
from locova.database.engine import init_db  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from CORS_ALLOW_ORIGINS (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]
    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine and config, ensure tables."""
    engine = get_engine()
    cfg = get_config()
    init_db(engine)
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Locova API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(trends_router, prefix="/api")
app.include_router(engagement_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(places_router, prefix="/api")
app.include_router(profile_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
