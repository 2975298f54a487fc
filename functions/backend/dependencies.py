"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from backend.config import get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.sessions import InMemorySessionCache, RedisSessionCache, SessionCache
from backend.storage import CosStorageClient, InMemoryStorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_session_cache: SessionCache | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so user state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.cos_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_session_cache() -> SessionCache:
    """
    Return a singleton cache of the active account per device.
    """
    global _session_cache
    if _session_cache:
        return _session_cache

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _session_cache = InMemorySessionCache()
    else:
        _session_cache = RedisSessionCache(
            url=settings.redis_url,
            key_prefix=settings.session_key_prefix,
        )
    return _session_cache


def get_clock() -> Callable[[], datetime]:
    """Wall-clock source for the planner rules (overridden in tests)."""
    return get_settings().now
