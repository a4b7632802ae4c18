"""Cart synchronization: tier cascade, orchestrator and session transitions."""
from .cascade import Attempt, CascadeResult, first_success
from .orchestrator import SessionStatus, SyncOrchestrator
from .session import MergeState, SessionTransitionHandler
from .tiers import ServerCartService

__all__ = [
    "Attempt",
    "CascadeResult",
    "MergeState",
    "ServerCartService",
    "SessionStatus",
    "SessionTransitionHandler",
    "SyncOrchestrator",
    "first_success",
]
