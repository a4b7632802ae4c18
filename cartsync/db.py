"""
Client factories - Supabase, Upstash Redis and the HTTP client.

Each call builds a fresh client from Settings; the PersistenceContext owns
them for the lifetime of the app (no module-level singletons).
"""
from typing import Optional

import httpx
from supabase._async.client import AsyncClient, create_client as acreate_client
from upstash_redis import Redis

from cartsync.config import Settings
from cartsync.logging import get_logger
from cartsync.storage.browser import KeyValueStore, MemoryKeyValueStore

logger = get_logger(__name__)


async def create_local_client(settings: Settings) -> Optional[AsyncClient]:
    """
    Async Supabase client for the Local Store tier.

    Returns None when the store is not configured or the client cannot be
    built; the tier then fails on use and the cascade skips it.
    """
    if not settings.local_store_configured:
        logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set, local store disabled")
        return None
    try:
        return await acreate_client(settings.supabase_url, settings.supabase_service_role_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}", exc_info=True)
        return None


def create_kv_store(settings: Settings) -> KeyValueStore:
    """
    Key/value backend for browser storage.

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN

    Falls back to an in-process store when they are unset (local dev, tests).
    """
    if not settings.redis_configured:
        logger.info("Upstash Redis not configured, using in-memory browser storage")
        return MemoryKeyValueStore()
    return Redis(url=settings.redis_rest_url, token=settings.redis_rest_token)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """HTTP client for the Remote Service tier; every request carries a timeout."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.remote_timeout, connect=settings.remote_connect_timeout),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
    )
