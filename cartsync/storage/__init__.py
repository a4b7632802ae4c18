"""
Storage tiers for carts.

- BrowserStorageAdapter: guest cart, logout backup (browser-scoped, sync)
- LocalStoreAdapter: relational store keyed by owner (Supabase)
- RemoteServiceAdapter: backend cart service over HTTP
"""
from .base import CartTier, WriteMode, require_owner
from .browser import BrowserKeys, BrowserStorageAdapter, KeyValueStore, MemoryKeyValueStore
from .local import LocalStoreAdapter
from .remote import RemoteServiceAdapter, WriteIntent

__all__ = [
    "BrowserKeys",
    "BrowserStorageAdapter",
    "CartTier",
    "KeyValueStore",
    "LocalStoreAdapter",
    "MemoryKeyValueStore",
    "RemoteServiceAdapter",
    "WriteIntent",
    "WriteMode",
    "require_owner",
]
