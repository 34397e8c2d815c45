"""
Storage for uploaded profile images: local disk, S3 and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol
import os
import random
import time
from urllib.parse import quote

import boto3

from hobbyboard.errors import UploadTooLargeError, ValidationError

UPLOAD_PREFIX = "uploads"
LOCAL_URL_PREFIX = "/images/uploads"


class ImageStorage(Protocol):
    """Saves an uploaded file and returns a reference string for it."""

    def store(self, data: bytes, filename: str) -> str:
        ...


def _safe_filename(filename: str) -> str:
    name = os.path.basename(filename.replace("\\", "/"))
    if not name or name in (".", ".."):
        raise ValidationError("Profile image filename is not valid.")
    return name


def unique_object_key(filename: str, prefix: str = UPLOAD_PREFIX) -> str:
    """
    Build `<prefix>/<basename>-<epoch millis>-<random><ext>` so that
    concurrent uploads of the same file never overwrite each other.
    """
    name = _safe_filename(filename)
    basename, ext = os.path.splitext(name)
    unique_suffix = f"{int(time.time() * 1000)}-{round(random.random() * 1e9)}"
    return f"{prefix}/{basename}-{unique_suffix}{ext}"


@dataclass
class InMemoryImageStorage:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def store(self, data: bytes, filename: str) -> str:
        key = f"{UPLOAD_PREFIX}/{_safe_filename(filename)}"
        self.stored_objects[key] = data
        return f"{self.base_url}/{quote(key)}"


@dataclass
class LocalImageStorage:
    """
    Writes uploads into `upload_dir` under their original filename.

    A second upload with the same name replaces the first.
    """

    upload_dir: str
    url_prefix: str = LOCAL_URL_PREFIX

    def __post_init__(self):
        os.makedirs(self.upload_dir, exist_ok=True)

    def store(self, data: bytes, filename: str) -> str:
        name = _safe_filename(filename)
        with open(os.path.join(self.upload_dir, name), "wb") as f:
            f.write(data)
        return f"{self.url_prefix}/{quote(name)}"


@dataclass
class S3ImageStorage:
    """
    S3 storage for uploads. Credentials are resolved by boto3 from the
    environment or the instance role.
    """

    bucket: str
    region: str
    max_bytes: Optional[int] = 5 * 1024 * 1024

    def __post_init__(self):
        self._client = boto3.client("s3", region_name=self.region or None)
        if not self.region:
            # Fall back to what boto3 resolved from AWS_DEFAULT_REGION or ~/.aws/config.
            self.region = self._client.meta.region_name
        if not self.region:
            raise ValueError("an AWS region is required for S3ImageStorage")

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    def store(self, data: bytes, filename: str) -> str:
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise UploadTooLargeError(len(data), self.max_bytes)
        key = unique_object_key(filename)
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            Metadata={"fieldName": "profileImage"},
        )
        return self.object_url(key)
