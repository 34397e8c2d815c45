"""
Dependency wiring for the FastAPI app.

Backends are built once per application from the `Settings` the app was
created with (kept on `app.state.settings`) and cached on `app.state`.
"""

from __future__ import annotations

import os
import logging

from fastapi import FastAPI, Request
from fastapi.templating import Jinja2Templates

from hobbyboard.config import Settings, get_settings
from hobbyboard.db import (
    InMemoryRecordStore,
    RecordStore,
    SqlRecordStore,
    seed_default_user,
)
from hobbyboard.storage import (
    ImageStorage,
    InMemoryImageStorage,
    LocalImageStorage,
    S3ImageStorage,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")

templates = Jinja2Templates(directory=TEMPLATES_DIR)


def app_settings(app: FastAPI) -> Settings:
    settings = getattr(app.state, "settings", None)
    if settings is None:
        settings = get_settings()
        app.state.settings = settings
    return settings


def build_record_store(settings: Settings) -> RecordStore:
    if settings.use_in_memory_backends:
        store = InMemoryRecordStore()
        seed_default_user(store)
        return store
    # Does not connect; the first query or create_schema() does.
    return SqlRecordStore(settings.sqlalchemy_url())


def build_image_storage(settings: Settings) -> ImageStorage:
    """S3 in production, the local upload directory otherwise."""
    if settings.use_in_memory_backends:
        return InMemoryImageStorage()
    if settings.is_production:
        if not settings.aws_s3_bucket_name:
            raise RuntimeError("AWS_S3_BUCKET_NAME is required in production")
        storage = S3ImageStorage(
            bucket=settings.aws_s3_bucket_name,
            region=settings.aws_region or "",
            max_bytes=settings.max_upload_bytes,
        )
        logger.info("Using S3 storage for file uploads")
        return storage
    logger.info("Using local disk storage for file uploads")
    return LocalImageStorage(upload_dir=os.path.join(settings.upload_root, "uploads"))


def record_store_for(app: FastAPI) -> RecordStore:
    store = getattr(app.state, "record_store", None)
    if store is None:
        store = build_record_store(app_settings(app))
        app.state.record_store = store
    return store


def image_storage_for(app: FastAPI) -> ImageStorage:
    storage = getattr(app.state, "image_storage", None)
    if storage is None:
        storage = build_image_storage(app_settings(app))
        app.state.image_storage = storage
    return storage


def get_record_store(request: Request) -> RecordStore:
    return record_store_for(request.app)


def get_image_storage(request: Request) -> ImageStorage:
    return image_storage_for(request.app)
