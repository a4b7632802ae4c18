"""Remote Service Adapter - the backend cart service reached over HTTP.

The remote side's own expiry and precedence defaults are unknown, so every
write states its intent explicitly. A 404 from the primary write endpoint is
retried exactly once against the legacy endpoint.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from cartsync.cart.models import CartItem, items_to_payload
from cartsync.errors import CartValidationError, RemoteUnavailableError
from cartsync.logging import get_logger, sanitize_id_for_logging

from .base import WriteMode, require_owner

logger = get_logger(__name__)


@dataclass(frozen=True)
class WriteIntent:
    """Flags sent with every remote write."""
    force_replace: bool
    prefer_incoming: bool = True
    persist_durably: bool = True
    prevent_expiry: bool = True

    @classmethod
    def for_mode(cls, mode: WriteMode) -> "WriteIntent":
        return cls(force_replace=mode is WriteMode.REPLACE)

    def to_payload(self) -> Dict[str, bool]:
        return {
            "force": self.force_replace,
            "preferGuest": self.prefer_incoming,
            "saveForLater": self.persist_durably,
            "persist": self.persist_durably,
            "preventExpiry": self.prevent_expiry,
        }


class RemoteServiceAdapter:
    """Cart persistence through the remote cart service."""

    name = "remote"
    supports_merge = True

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient],
        base_url: str,
        fetch_path: str = "/api/cart/fetch",
        primary_path: str = "/api/cart/persist",
        legacy_path: str = "/api/cart/merge",
        clear_path: str = "/api/cart",
    ) -> None:
        self.http_client = http_client
        self.base_url = (base_url or "").rstrip("/")
        self.fetch_path = fetch_path
        self.primary_path = primary_path
        self.legacy_path = legacy_path
        self.clear_path = clear_path

    def _url(self, path: str) -> str:
        if not self.base_url:
            raise RemoteUnavailableError("Remote cart service URL is not configured")
        return f"{self.base_url}{path}"

    @staticmethod
    def _headers(owner_id: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {owner_id}",
        }

    async def _request(self, method: str, path: str, owner_id: str, **kwargs: Any) -> httpx.Response:
        if self.http_client is None:
            raise RemoteUnavailableError("Remote cart service is not configured")
        url = self._url(path)
        try:
            return await self.http_client.request(method, url, headers=self._headers(owner_id), **kwargs)
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(
                f"{method} {path} failed: {type(e).__name__}", raw_error=e
            ) from e

    @staticmethod
    def _parse_items(response: httpx.Response) -> Optional[List[CartItem]]:
        """Items from a JSON body, or None when the body carries no item list."""
        try:
            data = response.json()
        except ValueError:
            return None
        raw_items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(raw_items, list):
            return None
        items: List[CartItem] = []
        for raw in raw_items:
            try:
                items.append(CartItem.from_dict(raw))
            except (CartValidationError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed item from remote cart service: {e}")
        return items

    # ==================== ADAPTER CONTRACT ====================

    async def read(self, owner_id: str) -> List[CartItem]:
        """Fetch the owner's cart. No cart is an empty list; unreachable is an error."""
        owner_id = require_owner(owner_id)
        response = await self._request("GET", self.fetch_path, owner_id)
        if response.status_code == 404:
            return []
        if not response.is_success:
            raise RemoteUnavailableError(
                f"Cart fetch failed ({response.status_code})", status_code=response.status_code
            )
        return self._parse_items(response) or []

    async def write(
        self, owner_id: str, items: Sequence[CartItem], mode: WriteMode = WriteMode.REPLACE
    ) -> Optional[List[CartItem]]:
        """Send the item set with explicit intent flags; returns the remote's items if given."""
        owner_id = require_owner(owner_id)
        body = {
            "userId": owner_id,
            "guestCartItems": items_to_payload(items),
            **WriteIntent.for_mode(mode).to_payload(),
        }

        response = await self._request("POST", self.primary_path, owner_id, json=body)
        if response.status_code == 404:
            logger.warning(
                f"Primary cart endpoint {self.primary_path} not found, trying {self.legacy_path}"
            )
            response = await self._request("POST", self.legacy_path, owner_id, json=body)

        if not response.is_success:
            logger.error(
                f"Remote cart write failed for user {sanitize_id_for_logging(owner_id)} "
                f"({response.status_code})"
            )
            raise RemoteUnavailableError(
                f"Cart write failed ({response.status_code})", status_code=response.status_code
            )
        return self._parse_items(response)

    async def clear(self, owner_id: str) -> None:
        """Ask the remote to delete the owner's cart; a missing cart counts as cleared."""
        owner_id = require_owner(owner_id)
        response = await self._request("DELETE", self.clear_path, owner_id)
        if response.status_code == 404:
            return
        if not response.is_success:
            raise RemoteUnavailableError(
                f"Cart clear failed ({response.status_code})", status_code=response.status_code
            )
