"""Cart package: models, merge engine, and the observable state store."""
from .merge import MergePolicy, merge_items
from .models import Cart, CartItem, items_from_payload, items_to_payload
from .state import CartState, CartStateStore, Notification

__all__ = [
    "Cart",
    "CartItem",
    "CartState",
    "CartStateStore",
    "MergePolicy",
    "Notification",
    "items_from_payload",
    "items_to_payload",
    "merge_items",
]
