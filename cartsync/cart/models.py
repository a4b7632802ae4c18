"""Cart models with Decimal-based pricing and boundary normalization."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from cartsync.config import DEFAULT_CONDITION, DEFAULT_WEIGHT
from cartsync.errors import ERROR_ITEM_ID_REQUIRED, CartValidationError
from cartsync.money import multiply, round_money, to_decimal

# Alternate key names seen for the item id, in precedence order
ITEM_ID_KEYS = ("itemId", "item_id", "id", "discogsReleaseId", "recordId")
COVER_IMAGE_KEYS = ("cover_image", "coverImage")
IMAGE_URL_KEYS = ("uri", "resource_url", "url")


def _image_ref(value: Any) -> Optional[str]:
    """Reduce an image entry (string or object) to its reference string."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        for key in IMAGE_URL_KEYS:
            if value.get(key):
                return str(value[key])
    return None


def normalize_images(data: dict) -> List[str]:
    """Return the canonical ordered image list for a raw item payload.

    A legacy single cover field is lifted into a one-element list when the
    images sequence is absent or empty.
    """
    images = data.get("images")
    refs: List[str] = []
    if isinstance(images, (list, tuple)):
        refs = [ref for ref in (_image_ref(entry) for entry in images) if ref]
    if not refs:
        for key in COVER_IMAGE_KEYS:
            ref = _image_ref(data.get(key))
            if ref:
                refs = [ref]
                break
    return refs


def extract_item_id(data: dict) -> str:
    """Pick the item id from a raw payload, accepting the alias keys."""
    for key in ITEM_ID_KEYS:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


@dataclass
class CartItem:
    """Single line in the cart. Identity is ``item_id`` alone."""
    item_id: str
    title: str = ""
    price: Decimal = Decimal("0")
    quantity: int = 1
    condition: str = DEFAULT_CONDITION
    weight: int = DEFAULT_WEIGHT
    images: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.item_id = "" if self.item_id is None else str(self.item_id).strip()
        if not self.item_id:
            raise CartValidationError(ERROR_ITEM_ID_REQUIRED)
        self.price = to_decimal(self.price)
        self.quantity = int(self.quantity)
        if self.quantity < 1:
            raise CartValidationError(f"quantity must be >= 1, got {self.quantity}")
        if not self.condition:
            self.condition = DEFAULT_CONDITION
        if self.weight is None:
            self.weight = DEFAULT_WEIGHT
        self.images = list(self.images or [])

    @property
    def total_price(self) -> Decimal:
        """Total price for all units."""
        return round_money(multiply(self.price, self.quantity))

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=quantity, images=list(self.images))

    def copy(self) -> "CartItem":
        return replace(self, images=list(self.images))

    def to_dict(self) -> dict:
        """Convert to the canonical wire/storage shape."""
        return {
            "itemId": self.item_id,
            "title": self.title,
            "price": str(self.price),
            "quantity": self.quantity,
            "condition": self.condition,
            "weight": self.weight,
            "images": list(self.images),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """Create from any payload shape seen at an external boundary."""
        if not isinstance(data, dict):
            raise CartValidationError(f"cart item must be an object, got {type(data).__name__}")
        quantity = data.get("quantity")
        weight = data.get("weight")
        return cls(
            item_id=extract_item_id(data),
            title=str(data.get("title") or ""),
            price=to_decimal(data.get("price")),
            quantity=1 if quantity is None else int(quantity),
            condition=data.get("condition") or DEFAULT_CONDITION,
            weight=DEFAULT_WEIGHT if weight is None else int(weight),
            images=normalize_images(data),
        )


def items_from_payload(raw_items: Iterable[Any]) -> List[CartItem]:
    """Normalize a list of raw item payloads, rejecting the batch on any bad entry."""
    return [CartItem.from_dict(raw) for raw in raw_items]


def items_to_payload(items: Iterable[CartItem]) -> List[dict]:
    return [item.to_dict() for item in items]


@dataclass
class Cart:
    """Shopping cart for one owner (``owner_id`` is None for a guest)."""
    owner_id: Optional[str]
    items: List[CartItem]
    is_open: bool = False

    @property
    def is_guest(self) -> bool:
        return self.owner_id is None

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0"))

    def find(self, item_id: str) -> Optional[CartItem]:
        key = str(item_id)
        return next((item for item in self.items if item.item_id == key), None)

    def to_dict(self) -> dict:
        """Convert to dictionary for browser storage."""
        return {
            "items": items_to_payload(self.items),
            "isOpen": self.is_open,
        }

    @classmethod
    def from_dict(cls, data: dict, owner_id: Optional[str] = None) -> "Cart":
        """Create from a stored blob; raises on a malformed payload."""
        if not isinstance(data, dict):
            raise ValueError("cart payload must be an object")
        raw_items = data.get("items", [])
        if not isinstance(raw_items, list):
            raise ValueError("cart items must be a list")
        return cls(
            owner_id=owner_id,
            items=items_from_payload(raw_items),
            is_open=bool(data.get("isOpen", False)),
        )
