"""
Cart API Pydantic Models

Request bodies for the cart endpoints. Field names follow the client's
camelCase payloads; snake_case names are accepted too.
"""
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cartsync.cart.models import ITEM_ID_KEYS


class AddCartItemRequest(BaseModel):
    # Catalog ids arrive as numbers or strings under any of the legacy keys
    item_id: str | int = Field(validation_alias=AliasChoices(*ITEM_ID_KEYS))
    quantity: int = 1
    title: Optional[str] = None
    price: Optional[float | str] = None
    condition: Optional[str] = None
    weight: Optional[int] = None
    images: Optional[list[Any]] = None


class UpdateCartItemRequest(BaseModel):
    quantity: int  # 0 means remove


class MergeCartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Validated by the endpoint so malformed payloads map to 400
    guest_cart_items: Any = Field(default=None, alias="guestCartItems")
