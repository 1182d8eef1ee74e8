from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Settings are read at import time, so .env must be loaded first.
load_dotenv()

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from fastapi.staticfiles import StaticFiles  # noqa: E402

from . import settings  # noqa: E402
from .errors import PicfeedError, Unauthenticated  # noqa: E402
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware  # noqa: E402
from .routers import (  # noqa: E402
    bookmarks,
    comments,
    notifications,
    posts,
    storage,
    system,
    users,
    webhooks,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    logger.info("run_migrations: Starting...")
    try:
        command.upgrade(_alembic_config(), "head")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    if settings.RUN_MIGRATIONS:
        run_migrations()
    else:
        logger.info("run_startup_tasks: RUN_MIGRATIONS is off, skipping migrations.")
    if not settings.IDENTITY_JWT_KEY:
        logger.warning("IDENTITY_JWT_KEY is not set, every authenticated call will fail")
    if not settings.UPLOAD_TOKEN_SECRET:
        logger.warning("UPLOAD_TOKEN_SECRET is not set, image uploads are disabled")
    _STARTUP_COMPLETE = True
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't start serving until these complete
    run_startup_tasks()
    logger.info("Picfeed API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Picfeed API",
    version="1.0.0",
    description="Photo-sharing social graph API",
    lifespan=lifespan,
)


@app.exception_handler(PicfeedError)
async def picfeed_error_handler(request: Request, exc: PicfeedError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


if "*" in settings.CORS_ORIGINS:
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,  # Cache preflight requests for 10 minutes
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


app.include_router(system.router)
app.include_router(webhooks.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(bookmarks.router)
app.include_router(notifications.router)
app.include_router(storage.router)


# Serve uploaded images; blob URLs point at /vault/...
vault_location = os.environ.get("VAULT_LOCATION")
if vault_location:
    vault_path = Path(vault_location)
    vault_path.mkdir(parents=True, exist_ok=True)
    app.mount("/vault", StaticFiles(directory=str(vault_path)), name="vault")
    logger.info(f"Mounted vault at /vault from {vault_location}")
