"""
Cart sync errors.

Message constants shared by notifications and HTTP details, and the exception
hierarchy raised by storage tiers and the sync engine.
"""
from typing import Any

# Notification / HTTP messages
ERROR_UNAUTHORIZED = "Unauthorized"
ERROR_OWNER_REQUIRED = "Owner id is required for this operation"
ERROR_ITEM_ID_REQUIRED = "Cart item id must be a non-empty string"
ERROR_INVALID_GUEST_CART = "Invalid guest cart data"
ERROR_CART_UNAVAILABLE = "Cart service unavailable"
ERROR_INTERNAL = "Internal server error"

# User-facing failure notifications
NOTIFY_ADD_FAILED = "Could not save item to your server cart."
NOTIFY_REMOVE_FAILED = "Could not remove item from your server cart."
NOTIFY_UPDATE_FAILED = "Could not update item quantity in your server cart."
NOTIFY_CLEAR_FAILED = "Could not clear your server cart."
NOTIFY_SAVE_FAILED = "Could not save your cart."
NOTIFY_FETCH_FAILED = "Could not load your cart from server."
NOTIFY_GUEST_CORRUPT = "Failed to read guest cart data."
NOTIFY_MERGE_FAILED = "Could not merge your guest cart."


class CartSyncError(Exception):
    """Base error for the cart sync engine."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        retryable: bool = False,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.raw_error = raw_error


class TransientStorageError(CartSyncError):
    """Browser storage unavailable, over quota or unreadable."""

    def __init__(self, message: str = "Browser storage unavailable", raw_error: Any = None) -> None:
        super().__init__(message, code="TRANSIENT_STORAGE", retryable=True, raw_error=raw_error)


class LocalPersistenceError(CartSyncError):
    """Local relational store read/write failed."""

    def __init__(self, message: str = "Local store failure", raw_error: Any = None) -> None:
        super().__init__(message, code="LOCAL_PERSISTENCE", retryable=True, raw_error=raw_error)


class RemoteUnavailableError(CartSyncError):
    """Remote cart service unreachable or answered with an error status."""

    def __init__(
        self,
        message: str = "Remote cart service unavailable",
        status_code: int | None = None,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code="REMOTE_UNAVAILABLE", retryable=True, raw_error=raw_error)
        self.status_code = status_code


class MergeDataCorruptError(CartSyncError):
    """Backup or guest cart payload could not be parsed."""

    def __init__(self, message: str = "Guest cart data is corrupt", raw_error: Any = None) -> None:
        super().__init__(message, code="MERGE_DATA_CORRUPT", retryable=False, raw_error=raw_error)


class CartValidationError(CartSyncError):
    """Request rejected before any I/O (missing owner, empty item id, ...)."""

    def __init__(self, message: str = ERROR_OWNER_REQUIRED) -> None:
        super().__init__(message, code="VALIDATION", retryable=False)


class CascadeExhaustedError(CartSyncError):
    """Every storage tier in a cascade failed."""

    def __init__(self, operation: str, errors: list[tuple[str, Exception]]) -> None:
        tiers = ", ".join(f"{name}: {type(err).__name__}" for name, err in errors)
        super().__init__(
            f"All tiers failed for {operation} ({tiers})",
            code="CASCADE_EXHAUSTED",
            retryable=True,
        )
        self.operation = operation
        self.errors = errors
