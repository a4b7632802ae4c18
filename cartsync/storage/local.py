"""Local Store Adapter - carts in the relational store (Supabase / Postgres).

All methods use async/await with supabase-py v2.

Layout: one ``carts`` row per owner (created lazily, never deleted here) and
one ``cart_items`` row per (cart, item_id). Writes replace verbatim; merging
happens upstream.
"""
import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from supabase._async.client import AsyncClient

from cartsync.cart.models import CartItem
from cartsync.errors import CartSyncError, CartValidationError, LocalPersistenceError
from cartsync.logging import get_logger, sanitize_id_for_logging
from cartsync.money import to_float

from .base import WriteMode, require_owner

logger = get_logger(__name__)


class LocalStoreAdapter:
    """Cart persistence in the local relational store."""

    name = "local"
    supports_merge = False

    CARTS_TABLE = "carts"
    ITEMS_TABLE = "cart_items"

    def __init__(self, client: Optional[AsyncClient]) -> None:
        self.client = client

    def _require_client(self) -> AsyncClient:
        if self.client is None:
            raise LocalPersistenceError("Local store is not configured")
        return self.client

    # ==================== ROW MAPPING ====================

    @staticmethod
    def _item_to_row(cart_id: Any, item: CartItem) -> Dict[str, Any]:
        return {
            "cart_id": cart_id,
            "item_id": item.item_id,
            "title": item.title,
            "price": to_float(item.price),
            "quantity": item.quantity,
            "condition": item.condition,
            "weight": item.weight,
            "images": list(item.images),
        }

    @staticmethod
    def _row_to_item(row: Dict[str, Any]) -> CartItem:
        return CartItem.from_dict({
            "itemId": row.get("item_id"),
            "title": row.get("title"),
            "price": row.get("price"),
            "quantity": row.get("quantity"),
            "condition": row.get("condition"),
            "weight": row.get("weight"),
            "images": row.get("images") or [],
        })

    # ==================== CART ROW ====================

    async def _find_cart_id(self, owner_id: str) -> Optional[Any]:
        client = self._require_client()
        result = (
            await client.table(self.CARTS_TABLE)
            .select("id")
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        return result.data[0]["id"] if result.data else None

    async def _get_or_create_cart_id(self, owner_id: str) -> Any:
        cart_id = await self._find_cart_id(owner_id)
        if cart_id is not None:
            return cart_id
        client = self._require_client()
        result = await client.table(self.CARTS_TABLE).insert({"user_id": owner_id}).execute()
        if not result.data:
            raise LocalPersistenceError("Cart row insert returned no data")
        logger.info(f"Created new cart for user {sanitize_id_for_logging(owner_id)}")
        return result.data[0]["id"]

    # ==================== ADAPTER CONTRACT ====================

    async def read(self, owner_id: str) -> List[CartItem]:
        """Point lookup by owner; an owner without a cart row has an empty cart."""
        owner_id = require_owner(owner_id)
        try:
            cart_id = await self._find_cart_id(owner_id)
            if cart_id is None:
                return []
            result = (
                await self._require_client().table(self.ITEMS_TABLE)
                .select("*")
                .eq("cart_id", cart_id)
                .order("id")
                .execute()
            )
        except CartSyncError:
            raise
        except Exception as e:
            raise LocalPersistenceError(f"Failed to read cart: {e}", raw_error=e) from e

        items: List[CartItem] = []
        for row in result.data or []:
            try:
                items.append(self._row_to_item(row))
            except (CartValidationError, ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable cart_items row {row.get('id')}: {e}")
        return items

    async def write(
        self, owner_id: str, items: Sequence[CartItem], mode: WriteMode = WriteMode.REPLACE
    ) -> List[CartItem]:
        """Replace the owner's items with ``items``.

        Rows are inserted one at a time so a bad item cannot sink the batch;
        the write fails only if the store is unreachable or every item fails.
        """
        owner_id = require_owner(owner_id)
        if mode is not WriteMode.REPLACE:
            raise ValueError("Local store only supports replace writes")
        try:
            cart_id = await self._get_or_create_cart_id(owner_id)
            await (
                self._require_client().table(self.ITEMS_TABLE)
                .delete()
                .eq("cart_id", cart_id)
                .execute()
            )
        except CartSyncError:
            raise
        except Exception as e:
            raise LocalPersistenceError(f"Failed to reset cart items: {e}", raw_error=e) from e

        if not items:
            return []

        results = await asyncio.gather(*[self._insert_item(cart_id, item) for item in items])
        saved = [item for item in results if item is not None]
        failed = len(items) - len(saved)

        if not saved:
            raise LocalPersistenceError(f"All {len(items)} cart items failed to save")
        if failed:
            logger.warning(
                f"Saved {len(saved)}/{len(items)} cart items for user "
                f"{sanitize_id_for_logging(owner_id)}; {failed} failed"
            )
        else:
            logger.info(
                f"Saved {len(saved)} cart items for user {sanitize_id_for_logging(owner_id)}"
            )
        return saved

    async def _insert_item(self, cart_id: Any, item: CartItem) -> Optional[CartItem]:
        try:
            await (
                self._require_client().table(self.ITEMS_TABLE)
                .insert(self._item_to_row(cart_id, item))
                .execute()
            )
            return item
        except Exception as e:
            logger.error(f"Error saving cart item {sanitize_id_for_logging(item.item_id)}: {e}")
            return None

    async def clear(self, owner_id: str) -> None:
        """Delete every item of the owner; the cart row stays."""
        owner_id = require_owner(owner_id)
        try:
            cart_id = await self._find_cart_id(owner_id)
            if cart_id is None:
                return
            await (
                self._require_client().table(self.ITEMS_TABLE)
                .delete()
                .eq("cart_id", cart_id)
                .execute()
            )
        except CartSyncError:
            raise
        except Exception as e:
            raise LocalPersistenceError(f"Failed to clear cart: {e}", raw_error=e) from e

    # ==================== DIAGNOSTICS ====================

    async def check_connection(self) -> Dict[str, Any]:
        """Round-trip a trivial query and report how long it took."""
        start = time.monotonic()
        try:
            await self._require_client().table(self.CARTS_TABLE).select("id").limit(1).execute()
        except Exception as e:
            return {
                "connected": False,
                "error": str(e),
                "message": "Local store connection failed",
            }
        duration_ms = int((time.monotonic() - start) * 1000)
        return {
            "connected": True,
            "duration": f"{duration_ms}ms",
            "message": f"Local store connection successful in {duration_ms}ms",
        }
