"""
Cart API Endpoints

Server-side cart operations for authenticated owners. Every operation runs
through the Local Store -> Remote Service cascade.
"""
from typing import List, Sequence

from fastapi import APIRouter, Depends, HTTPException, Request

from cartsync.auth import get_current_owner
from cartsync.cart.models import CartItem, items_from_payload, items_to_payload
from cartsync.errors import (
    ERROR_CART_UNAVAILABLE,
    ERROR_INTERNAL,
    ERROR_INVALID_GUEST_CART,
    CartValidationError,
    CascadeExhaustedError,
)
from cartsync.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from cartsync.sync.tiers import ServerCartService

from .models import AddCartItemRequest, MergeCartRequest, UpdateCartItemRequest

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


def get_cart_service(request: Request) -> ServerCartService:
    """Cart service of the app's persistence context."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail=ERROR_CART_UNAVAILABLE)
    return context.server


def _count(items: Sequence[CartItem]) -> int:
    return sum(item.quantity for item in items)


def _http_error(e: Exception, action: str) -> HTTPException:
    if isinstance(e, CartValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, CascadeExhaustedError):
        logger.error(f"Failed to {action}: {e}")
        return HTTPException(status_code=502, detail=ERROR_CART_UNAVAILABLE)
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=ERROR_INTERNAL)


@router.get("/cart")
async def get_cart(
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    """Get the owner's cart from the first tier that has it."""
    try:
        result = await service.fetch(owner_id)
    except Exception as e:
        raise _http_error(e, "get cart") from e

    items: List[CartItem] = result.value
    return {
        "items": items_to_payload(items),
        "count": _count(items),
        "source": result.source if result.accepted else "none",
    }


@router.post("/cart/items")
async def add_cart_item(
    request: AddCartItemRequest,
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    """Add item to cart (existing line: quantity increases)."""
    try:
        item = CartItem.from_dict(request.model_dump(exclude_none=True))
        result = await service.add_item(owner_id, item)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        raise _http_error(e, "add item to cart") from e

    return {"success": True, "count": _count(result.value)}


@router.patch("/cart/items/{item_id}")
async def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    """Update cart item quantity (0 = remove)."""
    try:
        result = await service.update_quantity(owner_id, item_id, request.quantity)
    except Exception as e:
        raise _http_error(e, "update cart item") from e

    return {"success": True, "count": _count(result.value)}


@router.delete("/cart/items/{item_id}")
async def remove_cart_item(
    item_id: str,
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    try:
        result = await service.remove_item(owner_id, item_id)
    except Exception as e:
        raise _http_error(e, "remove cart item") from e

    return {"success": True, "count": _count(result.value)}


@router.delete("/cart")
async def clear_cart(
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    try:
        await service.clear(owner_id)
    except Exception as e:
        raise _http_error(e, "clear cart") from e

    return {"success": True, "count": 0}


@router.post("/cart/merge")
async def merge_guest_cart(
    request: MergeCartRequest,
    owner_id: str = Depends(get_current_owner),
    service: ServerCartService = Depends(get_cart_service),
):
    """Merge a guest cart into the owner's cart (incoming quantities win)."""
    raw_items = request.guest_cart_items
    if not isinstance(raw_items, list):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_GUEST_CART)
    if not raw_items:
        return {"items": [], "count": 0, "merged": False, "source": "none"}

    try:
        guest_items = items_from_payload(raw_items)
    except (CartValidationError, TypeError, ValueError) as e:
        logger.warning(
            f"Rejected guest cart for {sanitize_id_for_logging(owner_id)}: "
            f"{sanitize_string_for_logging(str(e), 120)}"
        )
        raise HTTPException(status_code=400, detail=ERROR_INVALID_GUEST_CART) from e

    try:
        result = await service.merge(owner_id, guest_items)
    except Exception as e:
        raise _http_error(e, "merge guest cart") from e

    return {
        "items": items_to_payload(result.value),
        "count": _count(result.value),
        "merged": True,
        "source": result.source,
    }
