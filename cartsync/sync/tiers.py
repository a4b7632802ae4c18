"""
Server-side cart service - the Local Store -> Remote Service cascade.

Used by both the Sync Orchestrator and the HTTP API. Reads fall through to
the next tier on failure *or* on an empty result; writes fall through on
failure only. The login merge runs here, next to the authoritative data.
"""
from typing import List, Optional, Sequence

from cartsync.cart.merge import MergePolicy, merge_items
from cartsync.cart.models import CartItem
from cartsync.cart.state import add_line, remove_line, set_line_quantity
from cartsync.logging import get_logger, sanitize_id_for_logging
from cartsync.storage.base import CartTier, WriteMode, require_owner

from .cascade import Attempt, CascadeResult, first_success

logger = get_logger(__name__)


class ServerCartService:
    """Ordered server tiers plus the operations built on them."""

    def __init__(self, tiers: Sequence[CartTier], policy: MergePolicy = MergePolicy.PREFER_INCOMING):
        self.tiers = list(tiers)
        self.policy = policy

    # ==================== READ ====================

    async def fetch(self, owner_id: str) -> CascadeResult[List[CartItem]]:
        """Owner's authoritative items from the first tier that has any."""
        owner_id = require_owner(owner_id)
        return await first_success(
            "fetch",
            [Attempt(tier.name, lambda tier=tier: tier.read(owner_id)) for tier in self.tiers],
            accept=bool,
        )

    # ==================== WRITE ====================

    async def replace(self, owner_id: str, items: Sequence[CartItem]) -> CascadeResult[List[CartItem]]:
        """Full-cart replace on the first tier that accepts it."""
        owner_id = require_owner(owner_id)
        snapshot = [item.copy() for item in items]

        async def write(tier: CartTier) -> List[CartItem]:
            saved = await tier.write(owner_id, snapshot, WriteMode.REPLACE)
            return snapshot if saved is None else saved

        return await first_success(
            "replace",
            [Attempt(tier.name, lambda tier=tier: write(tier)) for tier in self.tiers],
        )

    async def clear(self, owner_id: str) -> CascadeResult[None]:
        owner_id = require_owner(owner_id)
        return await first_success(
            "clear",
            [Attempt(tier.name, lambda tier=tier: tier.clear(owner_id)) for tier in self.tiers],
        )

    # ==================== MERGE ====================

    async def merge(self, owner_id: str, guest_items: Sequence[CartItem]) -> CascadeResult[List[CartItem]]:
        """
        Merge guest items into the owner's cart.

        A tier that only stores verbatim gets read, merged here and rewritten
        with replace semantics. A tier that merges on its own side (the remote
        service) is sent the guest set with merge intent.
        """
        owner_id = require_owner(owner_id)
        incoming = [item.copy() for item in guest_items]

        async def merge_on(tier: CartTier) -> List[CartItem]:
            if tier.supports_merge:
                result = await tier.write(owner_id, incoming, WriteMode.MERGE)
                return incoming if result is None else result
            authoritative = await tier.read(owner_id)
            merged = merge_items(authoritative, incoming, self.policy)
            saved = await tier.write(owner_id, merged, WriteMode.REPLACE)
            return merged if saved is None else saved

        result = await first_success(
            "merge",
            [Attempt(tier.name, lambda tier=tier: merge_on(tier)) for tier in self.tiers],
        )
        logger.info(
            f"Merged {len(incoming)} guest items for user {sanitize_id_for_logging(owner_id)} "
            f"via {result.source}: {len(result.value)} items"
        )
        return result

    # ==================== ITEM OPERATIONS ====================

    async def _current_items(self, owner_id: str) -> tuple:
        result = await self.fetch(owner_id)
        return tuple(result.value)

    async def add_item(self, owner_id: str, item: CartItem) -> CascadeResult[List[CartItem]]:
        """Add a line (or increase its quantity) and persist the whole cart."""
        items = add_line(await self._current_items(owner_id), item)
        return await self.replace(owner_id, items)

    async def update_quantity(
        self, owner_id: str, item_id: str, quantity: int
    ) -> CascadeResult[List[CartItem]]:
        """Set a line's quantity; zero or less removes the line."""
        items = set_line_quantity(await self._current_items(owner_id), str(item_id), quantity)
        return await self.replace(owner_id, items)

    async def remove_item(self, owner_id: str, item_id: str) -> CascadeResult[List[CartItem]]:
        items = remove_line(await self._current_items(owner_id), str(item_id))
        return await self.replace(owner_id, items)

    def tier(self, name: str) -> Optional[CartTier]:
        return next((tier for tier in self.tiers if tier.name == name), None)
