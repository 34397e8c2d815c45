"""
Configuration and settings for the hobbyboard web app.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database (Postgres expected). DATABASE_URL wins over the DB_* parts.
    db_host: str = Field(default="localhost")
    db_user: str = Field(default="postgres")
    db_password: str = Field(default="admin")
    db_name: str = Field(default="foodisus")
    db_port: int = Field(default=5432)
    database_url: Optional[str] = Field(default=None)

    # HTTP
    port: int = Field(default=3001)
    session_secret: str = Field(default="fallback-secret-key")
    log_level: str = Field(default="INFO")

    # "production" switches uploads to S3
    app_env: str = Field(default="development")

    # S3 (credentials come from the ambient boto3 chain)
    aws_region: Optional[str] = Field(default=None)
    aws_s3_bucket_name: Optional[str] = Field(default=None)

    # Local uploads
    upload_root: str = Field(default="images")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    def sqlalchemy_url(self) -> str | URL:
        if self.database_url:
            return self.database_url
        return URL.create(
            "postgresql+psycopg2",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
