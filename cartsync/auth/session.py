"""Web session utilities (in-memory)."""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Header, HTTPException

from cartsync.errors import ERROR_UNAUTHORIZED
from cartsync.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

SESSION_TTL = timedelta(days=7)

_web_sessions: Dict[str, dict] = {}


def create_web_session(owner_id: str, username: Optional[str] = None) -> str:
    """Create a new web session for ``owner_id`` and return the token."""
    session_token = secrets.token_urlsafe(32)
    now = datetime.now(timezone.utc)
    _web_sessions[session_token] = {
        "owner_id": str(owner_id),
        "username": username,
        "created_at": now.isoformat(),
        "expires_at": (now + SESSION_TTL).isoformat(),
    }
    logger.info(f"Web session created for owner {sanitize_id_for_logging(owner_id)}")
    return session_token


def verify_web_session_token(token: str) -> Optional[dict]:
    """Verify a web session token and return session data."""
    session = _web_sessions.get(token)
    if not session:
        return None

    expires_at = datetime.fromisoformat(session["expires_at"])
    if datetime.now(timezone.utc) > expires_at:
        del _web_sessions[token]
        return None

    return session


def revoke_web_session(token: str) -> bool:
    """Drop a session (logout). Returns False if it did not exist."""
    return _web_sessions.pop(token, None) is not None


async def get_current_owner(authorization: str = Header(None, alias="Authorization")) -> str:
    """
    Resolve ``Authorization: Bearer <session_token>`` to the cart owner id.

    Usage:
        @router.get("/cart")
        async def get_cart(owner_id: str = Depends(get_current_owner)):
            ...
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="No authorization header")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)

    session = verify_web_session_token(parts[1])
    if not session or not session.get("owner_id"):
        raise HTTPException(status_code=401, detail="Invalid session token")

    return session["owner_id"]
