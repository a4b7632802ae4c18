"""Persistence context - owns the clients and wires the storage tiers."""
from typing import Any, Dict, Optional

import httpx
from supabase._async.client import AsyncClient

from cartsync.cart.merge import MergePolicy
from cartsync.cart.state import CartStateStore
from cartsync.config import Settings
from cartsync.db import create_http_client, create_kv_store, create_local_client
from cartsync.logging import get_logger
from cartsync.storage.browser import BrowserStorageAdapter, KeyValueStore
from cartsync.storage.local import LocalStoreAdapter
from cartsync.storage.remote import RemoteServiceAdapter
from cartsync.sync.orchestrator import SyncOrchestrator
from cartsync.sync.session import SessionTransitionHandler
from cartsync.sync.tiers import ServerCartService

logger = get_logger(__name__)


class PersistenceContext:
    """
    Everything a cart session needs, built once per process.

    Usage:
        context = await PersistenceContext.create()
        handler = context.session_handler(browser_id)
        await handler.observe("authenticated", owner_id)
        ...
        await context.close()
    """

    def __init__(
        self,
        settings: Settings,
        local_client: Optional[AsyncClient],
        kv_store: KeyValueStore,
        http_client: Optional[httpx.AsyncClient],
        policy: MergePolicy = MergePolicy.PREFER_INCOMING,
    ):
        self.settings = settings
        self.local_client = local_client
        self.kv_store = kv_store
        self.http_client = http_client

        self.local = LocalStoreAdapter(local_client)
        self.remote = RemoteServiceAdapter(
            http_client,
            settings.remote_base_url,
            fetch_path=settings.remote_fetch_path,
            primary_path=settings.remote_primary_path,
            legacy_path=settings.remote_legacy_path,
            clear_path=settings.remote_clear_path,
        )
        self.server = ServerCartService([self.local, self.remote], policy=policy)

    @classmethod
    async def create(cls, settings: Optional[Settings] = None) -> "PersistenceContext":
        settings = settings or Settings.from_env()
        context = cls(
            settings,
            local_client=await create_local_client(settings),
            kv_store=create_kv_store(settings),
            http_client=create_http_client(settings),
        )
        logger.info(
            f"Persistence context ready (local={'on' if context.local_client else 'off'}, "
            f"remote={'on' if settings.remote_configured else 'off'})"
        )
        return context

    # ==================== CLIENT SESSIONS ====================

    def browser_storage(self, browser_id: str) -> BrowserStorageAdapter:
        return BrowserStorageAdapter(self.kv_store, browser_id=browser_id, prefix=self.settings.key_prefix)

    def orchestrator(self, browser_id: str, store: Optional[CartStateStore] = None) -> SyncOrchestrator:
        return SyncOrchestrator(store or CartStateStore(), self.browser_storage(browser_id), self.server)

    def session_handler(
        self, browser_id: str, store: Optional[CartStateStore] = None
    ) -> SessionTransitionHandler:
        return SessionTransitionHandler(self.orchestrator(browser_id, store))

    # ==================== LIFECYCLE ====================

    async def check_local_store(self) -> Dict[str, Any]:
        return await self.local.check_connection()

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
        logger.info("Persistence context closed")
