"""
FastAPI application entry point.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from hobbyboard.auth import session_guard
from hobbyboard.config import Settings, get_settings
from hobbyboard.dependencies import image_storage_for, record_store_for
from hobbyboard.errors import PersistenceError
from hobbyboard.routes import router

logger = logging.getLogger(__name__)


def content_security_policy(settings: Settings) -> str:
    s3_bucket_url = ""
    if settings.is_production and settings.aws_s3_bucket_name and settings.aws_region:
        s3_bucket_url = (
            f"https://{settings.aws_s3_bucket_name}.s3.{settings.aws_region}.amazonaws.com "
        )
    return (
        "default-src 'self' http://localhost:* ws://localhost:* wss://localhost:*; "
        "connect-src 'self' http://localhost:* ws://localhost:* wss://localhost:*; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        f"img-src 'self' data: https: {s3_bucket_url}; "
        "font-src 'self' https://cdn.jsdelivr.net;"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The upload backend is fixed for the life of the process.
    image_storage_for(app)
    try:
        record_store_for(app).create_schema()
    except PersistenceError as exc:
        logger.error("Could not create tables, requests will report errors: %s", exc)
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Hobbyboard", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(router)

    if not settings.is_production and not settings.use_in_memory_backends:
        upload_root = settings.upload_root
        os.makedirs(os.path.join(upload_root, "uploads"), exist_ok=True)
        app.mount("/images", StaticFiles(directory=upload_root), name="images")

    csp = content_security_policy(settings)

    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = csp
        return response

    # Middleware added last runs first: session -> headers -> guard -> routes.
    app.middleware("http")(session_guard)
    app.middleware("http")(add_security_headers)
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    return app
