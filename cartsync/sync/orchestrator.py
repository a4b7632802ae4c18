"""
Sync Orchestrator - every cart mutation goes through here.

Flow for each mutation:
1. apply it to the Cart State Store right away (observers see it before any I/O)
2. guest session: write the live guest cart to browser storage, done
3. authenticated: persist through the server tiers (Local Store, then Remote)
4. all tiers failed: undo this mutation only, notify the user, and resync
   from whatever server tier still answers

Each mutation coroutine does its optimistic update before its first await, so
UI code can fire it with ``schedule()`` and move on.
"""
import asyncio
from enum import Enum
from typing import Callable, Coroutine, Optional, Sequence, Set

from cartsync.cart.models import CartItem
from cartsync.cart.state import (
    CartStateStore,
    Items,
    add_line,
    remove_line,
    restore_line,
    set_line_quantity,
)
from cartsync.errors import (
    NOTIFY_ADD_FAILED,
    NOTIFY_CLEAR_FAILED,
    NOTIFY_FETCH_FAILED,
    NOTIFY_REMOVE_FAILED,
    NOTIFY_SAVE_FAILED,
    NOTIFY_UPDATE_FAILED,
    CascadeExhaustedError,
)
from cartsync.logging import get_logger, sanitize_id_for_logging
from cartsync.storage.browser import BrowserStorageAdapter

from .tiers import ServerCartService

logger = get_logger(__name__)


class SessionStatus(str, Enum):
    UNKNOWN = "unknown"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SyncOrchestrator:
    """Sequences cart reads/writes across browser storage and the server tiers."""

    def __init__(
        self,
        store: CartStateStore,
        browser: BrowserStorageAdapter,
        server: ServerCartService,
    ):
        self.store = store
        self.browser = browser
        self.server = server
        self.status = SessionStatus.UNKNOWN
        self.owner_id: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED and bool(self.owner_id)

    def set_session(self, status: SessionStatus, owner_id: Optional[str] = None) -> None:
        self.status = SessionStatus(status)
        self.owner_id = owner_id if self.status is SessionStatus.AUTHENTICATED else None

    # ==================== BACKGROUND WORK ====================

    def schedule(self, coro: Coroutine) -> asyncio.Task:
        """Run a mutation without waiting for its network phase."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled mutation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ==================== PERSISTENCE ====================

    def _save_guest(self) -> None:
        state = self.store.state
        if not self.browser.write(None, state.items, is_open=state.is_open):
            logger.warning("Guest cart not saved to browser storage; keeping in-memory state")

    async def _persist(
        self,
        rollback: Callable[[Items], Items],
        failure_message: str,
        clear: bool = False,
    ) -> bool:
        """Persist the current cart; on total failure undo via ``rollback``."""
        if not self.is_authenticated:
            self._save_guest()
            return True

        owner_id = self.owner_id
        try:
            if clear:
                await self.server.clear(owner_id)
            else:
                await self.server.replace(owner_id, self.store.items)
            return True
        except CascadeExhaustedError as e:
            logger.error(
                f"Cart persistence failed for user {sanitize_id_for_logging(owner_id)}: {e}"
            )
            self.store.update_items(rollback)
            self.store.notify_error(failure_message)
            await self._resync(owner_id)
            return False

    async def _resync(self, owner_id: str) -> None:
        """Replace the in-memory cart with server truth if any tier can be read."""
        try:
            result = await self.server.fetch(owner_id)
        except CascadeExhaustedError as e:
            logger.warning(f"Resync skipped, no tier readable; keeping rolled-back cart: {e}")
            return
        self.store.set_items(result.value)

    # ==================== MUTATIONS ====================

    async def add_item(self, item: CartItem) -> bool:
        """Add an item (existing line: quantity increases)."""
        item_id = item.item_id
        previous = self.store.state.find(item_id)
        position = self.store.state.index_of(item_id)

        self.store.update_items(lambda items: add_line(items, item))
        self.store.notify("Added to cart", item.title)

        return await self._persist(
            lambda items: restore_line(items, item_id, previous, position),
            NOTIFY_ADD_FAILED,
        )

    async def update_quantity(self, item_id: str, quantity: int) -> bool:
        """Set a line's quantity; zero or less is a removal."""
        item_id = str(item_id)
        if quantity <= 0:
            return await self.remove_item(item_id)

        previous = self.store.state.find(item_id)
        if previous is None:
            logger.info(f"update_quantity: item {sanitize_id_for_logging(item_id)} not in cart")
            return True
        position = self.store.state.index_of(item_id)

        self.store.update_items(lambda items: set_line_quantity(items, item_id, quantity))

        return await self._persist(
            lambda items: restore_line(items, item_id, previous, position),
            NOTIFY_UPDATE_FAILED,
        )

    async def remove_item(self, item_id: str) -> bool:
        item_id = str(item_id)
        previous = self.store.state.find(item_id)
        position = self.store.state.index_of(item_id)

        self.store.update_items(lambda items: remove_line(items, item_id))
        if previous is not None:
            self.store.notify("Removed from cart", previous.title)

        return await self._persist(
            lambda items: restore_line(items, item_id, previous, position),
            NOTIFY_REMOVE_FAILED,
        )

    async def clear(self) -> bool:
        previous_items = self.store.items
        previous_ids = {item.item_id for item in previous_items}

        self.store.update_items(lambda items: ())

        def rollback(items: Items) -> Items:
            # Lines added after the clear stay
            return previous_items + tuple(i for i in items if i.item_id not in previous_ids)

        return await self._persist(rollback, NOTIFY_CLEAR_FAILED, clear=True)

    async def replace_all(self, items: Sequence[CartItem]) -> bool:
        """Batch write: the whole item set replaces the cart."""
        previous_items = self.store.items
        self.store.set_items(items)
        return await self._persist(lambda _: previous_items, NOTIFY_SAVE_FAILED)

    def toggle_open(self) -> None:
        self.store.toggle_open()
        if not self.is_authenticated:
            self._save_guest()

    # ==================== LOADING ====================

    def load_guest(self) -> None:
        """Show the guest cart from browser storage verbatim."""
        items = self.browser.read()
        self.store.set_items(items)
        logger.info(f"Loaded guest cart from browser storage ({len(items)} items)")

    async def refresh(self) -> bool:
        """Replace the in-memory cart with the owner's authoritative cart.

        When no tier can be read the cart is emptied and the user notified.
        """
        if not self.is_authenticated:
            logger.info("refresh called while unauthenticated, loading guest cart")
            self.load_guest()
            return True

        owner_id = self.owner_id
        self.store.set_loading(True)
        try:
            result = await self.server.fetch(owner_id)
        except CascadeExhaustedError as e:
            logger.error(f"Error fetching cart for user {sanitize_id_for_logging(owner_id)}: {e}")
            self.store.notify_error(NOTIFY_FETCH_FAILED)
            self.store.set_items([])
            return False

        self.store.set_items(result.value)
        logger.info(f"Cart fetched from {result.source} ({len(result.value)} items)")
        return True
