"""
Cart State Store - the observable in-memory cart the application reads.

``update`` is the single writer: it runs synchronously on the event loop, so two
updates can never interleave. Observers are called after every change and
notifications (the toast equivalent) go to their own listeners.
"""
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from cartsync.logging import get_logger

from .models import CartItem

logger = get_logger(__name__)

Items = Tuple[CartItem, ...]


@dataclass(frozen=True)
class CartState:
    """Immutable snapshot of the cart as the UI sees it."""
    items: Items = ()
    is_open: bool = False
    loading: bool = True

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    def find(self, item_id: str) -> Optional[CartItem]:
        key = str(item_id)
        return next((item for item in self.items if item.item_id == key), None)

    def index_of(self, item_id: str) -> int:
        key = str(item_id)
        return next((i for i, item in enumerate(self.items) if item.item_id == key), -1)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: str = "default"  # default | destructive

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


# ==================== PURE ITEM TRANSFORMS ====================

def add_line(items: Items, item: CartItem) -> Items:
    """Add ``item``; an existing line gets its quantity increased."""
    if any(existing.item_id == item.item_id for existing in items):
        return tuple(
            existing.with_quantity(existing.quantity + item.quantity)
            if existing.item_id == item.item_id else existing
            for existing in items
        )
    return items + (item.copy(),)


def set_line_quantity(items: Items, item_id: str, quantity: int) -> Items:
    """Set quantity on a line; quantity <= 0 removes it."""
    if quantity <= 0:
        return remove_line(items, item_id)
    return tuple(
        item.with_quantity(quantity) if item.item_id == item_id else item
        for item in items
    )


def remove_line(items: Items, item_id: str) -> Items:
    return tuple(item for item in items if item.item_id != item_id)


def restore_line(items: Items, item_id: str, previous: Optional[CartItem], position: int = -1) -> Items:
    """Put a single line back to its pre-mutation value, leaving other lines alone."""
    without = remove_line(items, item_id)
    if previous is None:
        return without
    if any(item.item_id == item_id for item in items):
        return tuple(previous.copy() if item.item_id == item_id else item for item in items)
    if position < 0 or position > len(without):
        return without + (previous.copy(),)
    return without[:position] + (previous.copy(),) + without[position:]


# ==================== STORE ====================

class CartStateStore:
    """Observable holder of the current ``CartState``."""

    def __init__(self, initial: Optional[CartState] = None, history_size: int = 50):
        self._state = initial or CartState()
        self._observers: List[Callable[[CartState], None]] = []
        self._listeners: List[Callable[[Notification], None]] = []
        self._history_size = history_size
        self.notifications: List[Notification] = []

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> Items:
        return self._state.items

    def subscribe(self, observer: Callable[[CartState], None]) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def on_notification(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, fn: Callable[[CartState], CartState]) -> CartState:
        """Apply ``fn`` to the current state and notify observers if it changed."""
        new_state = fn(self._state)
        if new_state == self._state:
            return self._state
        self._state = new_state
        for observer in list(self._observers):
            try:
                observer(new_state)
            except Exception as e:
                logger.error(f"Cart state observer failed: {e}", exc_info=True)
        return new_state

    def update_items(self, fn: Callable[[Items], Items]) -> CartState:
        return self.update(lambda state: replace(state, items=fn(state.items)))

    def set_items(self, items) -> CartState:
        snapshot = tuple(item.copy() for item in items)
        return self.update(lambda state: replace(state, items=snapshot, loading=False))

    def set_loading(self, loading: bool) -> CartState:
        return self.update(lambda state: replace(state, loading=loading))

    def toggle_open(self) -> CartState:
        return self.update(lambda state: replace(state, is_open=not state.is_open))

    def notify(self, title: str, description: str = "", variant: str = "default") -> Notification:
        """Raise a user-visible notification."""
        notification = Notification(title=title, description=description, variant=variant)
        self.notifications.append(notification)
        if len(self.notifications) > self._history_size:
            del self.notifications[: len(self.notifications) - self._history_size]
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}", exc_info=True)
        return notification

    def notify_error(self, description: str) -> Notification:
        return self.notify("Error", description, variant="destructive")
