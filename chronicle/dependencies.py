"""
Dependency wiring for the FastAPI app.

Backends are built once by ``build_db_client``/``build_storage_client`` when
the app is created and kept on ``app.state``; route dependencies only read
them back from there.
"""

from __future__ import annotations

import logging

from fastapi import Request

from chronicle.config import Settings
from chronicle.db import DbClient, InMemoryDbClient, ProfileRecord, SqlDbClient
from chronicle.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)


def build_db_client(settings: Settings) -> DbClient:
    database_url = settings.resolved_database_url()
    if settings.use_in_memory_backends or not database_url:
        logger.info("Using in-memory database backend")
        return InMemoryDbClient(profile=ProfileRecord(id=1, name=""))

    client = SqlDbClient(database_url, pool_size=settings.db_pool_size)
    if settings.db_create_schema:
        client.create_schema()
    logger.info(
        "Using SQL database backend %s (pool size %d)",
        client.engine.url.render_as_string(hide_password=True),
        settings.db_pool_size,
    )
    return client


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.use_in_memory_backends or not settings.bucket_name:
        logger.info("Using in-memory storage backend")
        return InMemoryStorageClient(host=settings.storage_host)

    logger.info(
        "Using object storage bucket %s at %s",
        settings.bucket_name,
        settings.resolved_storage_endpoint(),
    )
    return S3StorageClient(
        bucket=settings.bucket_name,
        endpoint=settings.resolved_storage_endpoint(),
        host=settings.storage_host,
        region=settings.storage_region,
        access_key_id=settings.storage_access_key_id,
        secret_access_key=settings.storage_secret_access_key,
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage
