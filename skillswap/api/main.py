"""
skillswap.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn skillswap.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from skillswap.api.deps import get_engine  # noqa: E402
from skillswap.api.routes.admin import router as admin_router  # noqa: E402
from skillswap.api.routes.members import router as members_router  # noqa: E402
from skillswap.api.routes.swaps import router as swaps_router  # noqa: E402
from skillswap.errors import Forbidden, SkillSwapError  # noqa: E402
from skillswap.services.log_buffer import install_handler  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from the environment.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Attach the activity-log handler and warm the DB engine."""
    install_handler()
    engine = get_engine()
    logger.info("SkillSwap API started, engine ready (%s)", engine.url.database)
    yield
    logger.info("SkillSwap API shutting down")


app = FastAPI(
    title="SkillSwap API",
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


@app.exception_handler(SkillSwapError)
async def skillswap_error_handler(request: Request, exc: SkillSwapError) -> JSONResponse:
    if isinstance(exc, Forbidden):
        logger.warning("%s %s refused: %s", request.method, request.url.path, exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(members_router, prefix="/api")
app.include_router(swaps_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
