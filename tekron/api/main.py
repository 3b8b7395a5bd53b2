"""
tekron.api.main - FastAPI application entry point
==================================================

Run with::

    uvicorn tekron.api.main:app --reload --port 8000

or ``python -m tekron``.
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

from tekron.api.auth import router as auth_router  # noqa: E402
from tekron.api.deps import get_config, get_engine  # noqa: E402
from tekron.api.routes.admin import router as admin_router  # noqa: E402
from tekron.api.routes.alerts import router as alerts_router  # noqa: E402
from tekron.api.routes.community import router as community_router  # noqa: E402
from tekron.api.routes.participant import router as participant_router  # noqa: E402
from tekron.api.routes.superadmin import router as superadmin_router  # noqa: E402
from tekron.api.routes.volunteer import router as volunteer_router  # noqa: E402
from tekron.database.engine import init_db  # noqa: E402
from tekron.errors import TekronError  # noqa: E402

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")
    logging.getLogger("tekron").setLevel(level)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

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
    """Startup/shutdown lifecycle - configure logging, create tables, seed."""
    cfg = get_config()
    configure_logging(cfg.log_level)

    engine = get_engine()
    init_db(engine)
    logger.info("Tekron API started for %s - engine ready (%s)", cfg.event_name, engine.url.database)
    yield
    logger.info("Tekron API shutting down")


app = FastAPI(
    title="Tekron Event API",
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


@app.exception_handler(TekronError)
async def tekron_error_handler(request: Request, exc: TekronError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(auth_router)
app.include_router(participant_router)
app.include_router(admin_router)
app.include_router(superadmin_router)
app.include_router(volunteer_router)
app.include_router(alerts_router)
app.include_router(community_router)


@app.get("/health")
def health():
    return {"status": "ok"}
