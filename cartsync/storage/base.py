"""Shared contract for the server-side storage tiers."""
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from cartsync.cart.models import CartItem
from cartsync.errors import ERROR_OWNER_REQUIRED, CartValidationError


class WriteMode(str, Enum):
    """Replace the owner's items, or ask the tier to merge into them."""
    REPLACE = "replace"
    MERGE = "merge"


class CartTier(Protocol):
    """A durable tier the cascade can read from and write to.

    ``write`` returns the items the tier now holds when it knows them, else None.
    Tier failures are raised as the tier's own CartSyncError subclass.
    """

    name: str
    # True when the tier merges MERGE writes on its own side
    supports_merge: bool

    async def read(self, owner_id: str) -> List[CartItem]: ...

    async def write(
        self, owner_id: str, items: Sequence[CartItem], mode: WriteMode = WriteMode.REPLACE
    ) -> Optional[List[CartItem]]: ...

    async def clear(self, owner_id: str) -> None: ...


def require_owner(owner_id: Optional[str]) -> str:
    """Reject a missing owner id before any I/O happens."""
    if owner_id is None or not str(owner_id).strip():
        raise CartValidationError(ERROR_OWNER_REQUIRED)
    return str(owner_id).strip()
