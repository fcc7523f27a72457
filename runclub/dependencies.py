"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from runclub.config import Settings, get_settings
from runclub.service import ClubService
from runclub.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from runclub.stores import ClubStore, DocumentClubStore

logger = logging.getLogger(__name__)

_storage_client: StorageClient | None = None
_store: ClubStore | None = None
_service: ClubService | None = None


def build_storage_client(settings: Settings) -> StorageClient:
    """In-memory storage for the ``memory`` backend, S3 otherwise."""
    if settings.storage_backend == "memory":
        return InMemoryStorageClient()
    return S3StorageClient(
        bucket=settings.s3_bucket,
        region=settings.aws_region,
        endpoint=settings.s3_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
    )


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client
    _storage_client = build_storage_client(get_settings())
    return _storage_client


def build_store(settings: Settings) -> ClubStore:
    retry = {
        "retry_attempts": settings.retry_attempts,
        "retry_delay": settings.retry_delay_seconds,
    }
    backend = settings.storage_backend
    if backend == "dynamodb":
        from runclub.dynamo import DynamoClubStore

        return DynamoClubStore(
            settings.aws_region,
            settings.dynamodb_table_prefix,
            endpoint_url=settings.dynamodb_endpoint,
            **retry,
        )
    if backend == "sql":
        from runclub.db import SqlClubStore

        return SqlClubStore(settings.database_url or "", **retry)
    return DocumentClubStore(
        build_storage_client(settings), backend_name=backend, **retry
    )


def get_store() -> ClubStore:
    """
    Return a singleton storage manager so every request shares one backend.
    """
    global _store
    if _store:
        return _store
    _store = build_store(get_settings())
    logger.info("Using %s storage backend", _store.backend_name)
    return _store


def get_service() -> ClubService:
    global _service
    if _service:
        return _service
    settings = get_settings()
    _service = ClubService(
        get_store(), recent_records_limit=settings.recent_records_limit
    )
    return _service


def reset_dependencies() -> None:
    global _storage_client, _store, _service
    _storage_client = None
    _store = None
    _service = None
    get_settings.cache_clear()
