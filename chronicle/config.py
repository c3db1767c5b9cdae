"""
Configuration and settings for the chronicle service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

DEFAULT_ALLOWED_MIME_TYPES = ["image/jpeg", "image/png", "image/jpg"]


class Settings(BaseSettings):
    """Environment-backed settings, read once at process start."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    api_prefix: str = Field(default="/api")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=2004)
    log_level: str = Field(default="INFO")

    # Relational store (MySQL expected). DATABASE_URL wins over the DB_* parts.
    database_url: Optional[str] = Field(default=None)
    db_host: Optional[str] = Field(default=None)
    db_port: int = Field(default=3306)
    db_user: Optional[str] = Field(default=None)
    db_password: Optional[str] = Field(default=None)
    db_name: Optional[str] = Field(default=None)
    db_pool_size: int = Field(default=10, ge=1)
    db_create_schema: bool = Field(default=False)

    # Object storage, S3-compatible (GCS interoperability endpoint by default)
    bucket_name: Optional[str] = Field(default=None)
    storage_host: str = Field(default="storage.googleapis.com")
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: str = Field(default="auto")
    storage_access_key_id: Optional[str] = Field(default=None)
    storage_secret_access_key: Optional[str] = Field(default=None)

    # Profile picture uploads
    upload_max_bytes: int = Field(default=5 * 1024 * 1024)
    upload_allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Returning raw store/storage messages to clients leaks internals.
    # Turn off to send a generic message and keep the detail in the logs.
    expose_error_details: bool = Field(default=True)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def resolved_database_url(self) -> Optional[str]:
        if self.database_url:
            return self.database_url
        if not self.db_host:
            return None
        return URL.create(
            "mysql+pymysql",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)

    def resolved_storage_endpoint(self) -> str:
        return self.storage_endpoint or f"https://{self.storage_host}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
