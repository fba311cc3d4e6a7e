"""
ecoleveling.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn ecoleveling.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.staticfiles import StaticFiles

load_dotenv()

from ecoleveling.api.auth import router as auth_router  # noqa: E402
from ecoleveling.api.deps import get_engine  # noqa: E402
from ecoleveling.api.routes.comments import router as comments_router  # noqa: E402
from ecoleveling.api.routes.media import router as media_router  # noqa: E402
from ecoleveling.api.routes.posts import router as posts_router  # noqa: E402
from ecoleveling.api.routes.public import router as public_router  # noqa: E402
from ecoleveling.api.routes.users import router as users_router  # noqa: E402
from ecoleveling.database.engine import init_db  # noqa: E402
from ecoleveling.errors import EcoError, StorageError  # noqa: E402
from ecoleveling.services.upload_service import UPLOAD_DIR, ensure_upload_dir  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

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
    """Startup/shutdown lifecycle: create the engine and schema."""
    ensure_upload_dir()

    engine = get_engine()
    init_db(engine)
    logger.info("Eco-Leveling API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Eco-Leveling API shutting down")


app = FastAPI(
    title="Eco-Leveling API",
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


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------
@app.exception_handler(EcoError)
async def eco_error_handler(request: Request, exc: EcoError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    err = StorageError()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(comments_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(public_router, prefix="/api")
app.include_router(media_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Uploaded post media; the directory may be created later by the lifespan
app.mount(
    "/api/uploads",
    StaticFiles(directory=str(UPLOAD_DIR), check_dir=False),
    name="uploads",
)
