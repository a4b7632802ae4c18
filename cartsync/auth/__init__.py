"""Authentication package."""
from .session import (
    create_web_session,
    get_current_owner,
    revoke_web_session,
    verify_web_session_token,
)

__all__ = [
    "create_web_session",
    "get_current_owner",
    "revoke_web_session",
    "verify_web_session_token",
]
