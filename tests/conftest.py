"""Pytest configuration and fixtures"""
import os
from typing import Dict, List

import pytest

# Set test environment variables before cartsync configures logging
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from cartsync.cart.merge import merge_items  # noqa: E402
from cartsync.cart.models import CartItem  # noqa: E402
from cartsync.cart.state import CartStateStore  # noqa: E402
from cartsync.errors import LocalPersistenceError, RemoteUnavailableError  # noqa: E402
from cartsync.storage.base import WriteMode  # noqa: E402
from cartsync.storage.browser import BrowserStorageAdapter, MemoryKeyValueStore  # noqa: E402
from cartsync.sync.orchestrator import SyncOrchestrator  # noqa: E402
from cartsync.sync.session import SessionTransitionHandler  # noqa: E402
from cartsync.sync.tiers import ServerCartService  # noqa: E402


class FakeTier:
    """In-memory server tier with switchable failures and a call log."""

    def __init__(self, name: str, supports_merge: bool = False):
        self.name = name
        self.supports_merge = supports_merge
        self.carts: Dict[str, List[CartItem]] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.calls: list = []

    def _error(self, operation: str) -> Exception:
        if self.name == "remote":
            return RemoteUnavailableError(f"remote {operation} failed", status_code=503)
        return LocalPersistenceError(f"{self.name} {operation} failed")

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def read(self, owner_id):
        self.calls.append(("read", owner_id))
        if self.fail_reads:
            raise self._error("read")
        return [item.copy() for item in self.carts.get(owner_id, [])]

    async def write(self, owner_id, items, mode=WriteMode.REPLACE):
        self.calls.append(("write", owner_id, mode))
        if self.fail_writes:
            raise self._error("write")
        if mode is WriteMode.MERGE:
            self.carts[owner_id] = merge_items(self.carts.get(owner_id, []), items)
        else:
            self.carts[owner_id] = [item.copy() for item in items]
        return [item.copy() for item in self.carts[owner_id]]

    async def clear(self, owner_id):
        self.calls.append(("clear", owner_id))
        if self.fail_writes:
            raise self._error("clear")
        self.carts.pop(owner_id, None)


@pytest.fixture
def make_item():
    """Factory for cart items"""
    def _make(item_id: str, quantity: int = 1, **fields) -> CartItem:
        fields.setdefault("title", f"Record {item_id}")
        fields.setdefault("price", "25.00")
        return CartItem(item_id=item_id, quantity=quantity, **fields)
    return _make


@pytest.fixture
def local_tier():
    return FakeTier("local")


@pytest.fixture
def remote_tier():
    return FakeTier("remote", supports_merge=True)


@pytest.fixture
def server(local_tier, remote_tier):
    return ServerCartService([local_tier, remote_tier])


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def browser(kv_store):
    return BrowserStorageAdapter(kv_store, browser_id="browser-1", prefix="test")


@pytest.fixture
def store():
    return CartStateStore()


@pytest.fixture
def orchestrator(store, browser, server):
    return SyncOrchestrator(store, browser, server)


@pytest.fixture
def handler(orchestrator):
    return SessionTransitionHandler(orchestrator)


@pytest.fixture
def make_tier():
    """Factory for extra fake tiers"""
    return FakeTier
