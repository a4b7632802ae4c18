"""
Cart Sync

Keeps a shopping cart consistent across browser storage, the local
relational store and the remote cart service:
- cart: item model, merge engine, in-memory state store
- storage: one adapter per tier
- sync: tier cascade, orchestrator, session transitions
- routers: FastAPI cart endpoints

Note: Imports are lazy so importing a submodule does not pull in every
client library.
"""

__all__ = [
    "PersistenceContext",
    "Settings",
    "SyncOrchestrator",
    "SessionTransitionHandler",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "PersistenceContext":
        from cartsync.context import PersistenceContext
        return PersistenceContext
    elif name == "Settings":
        from cartsync.config import Settings
        return Settings
    elif name == "SyncOrchestrator":
        from cartsync.sync.orchestrator import SyncOrchestrator
        return SyncOrchestrator
    elif name == "SessionTransitionHandler":
        from cartsync.sync.session import SessionTransitionHandler
        return SessionTransitionHandler
    raise AttributeError(f"module 'cartsync' has no attribute '{name}'")
