"""
Browser Storage Adapter - ephemeral, synchronous, scoped to one browser.

Holds the live guest cart, the logout backup snapshot and the last-login
timestamp. The key/value backend is either an in-process dict or the sync
Upstash Redis client. Any backend or parse failure is logged and read as
"no cart"; only the ``*_strict`` readers surface corrupt payloads, for the
login merge.
"""
import json
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

from cartsync.cart.models import Cart, CartItem
from cartsync.errors import CartValidationError, MergeDataCorruptError, TransientStorageError
from cartsync.logging import get_logger

from .base import WriteMode

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal string key/value API shared by the dict store and Upstash Redis."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> Any: ...

    def delete(self, *keys: str) -> Any: ...


class MemoryKeyValueStore:
    """In-process key/value store; ``quota_bytes`` simulates a storage quota."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota_bytes:
                raise TransientStorageError("Browser storage quota exceeded")
        self._data[key] = value
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed

    def keys(self) -> List[str]:
        return list(self._data)


class BrowserKeys:
    """Key names for one browser."""

    GUEST_CART = "cart"
    LOGOUT_BACKUP = "logout-backup"
    LOGIN_TIME = "login-time"

    def __init__(self, browser_id: str, prefix: str = "cartsync"):
        self.base = f"{prefix}:{browser_id}"

    @property
    def guest_cart(self) -> str:
        return f"{self.base}:{self.GUEST_CART}"

    @property
    def logout_backup(self) -> str:
        return f"{self.base}:{self.LOGOUT_BACKUP}"

    @property
    def login_time(self) -> str:
        return f"{self.base}:{self.LOGIN_TIME}"


class BrowserStorageAdapter:
    """Guest cart persistence in browser-scoped storage."""

    name = "browser"

    def __init__(self, backend: KeyValueStore, browser_id: str = "default", prefix: str = "cartsync"):
        self.backend = backend
        self.keys = BrowserKeys(browser_id, prefix)

    # ==================== RAW ACCESS ====================

    def _load(self, key: str) -> Optional[Cart]:
        """Load a cart blob. Raises MergeDataCorruptError / TransientStorageError."""
        try:
            raw = self.backend.get(key)
        except Exception as e:
            raise TransientStorageError(f"Failed to read {key}", raw_error=e) from e
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if isinstance(data, list):
                data = {"items": data}
            return Cart.from_dict(data)
        except (json.JSONDecodeError, ValueError, TypeError, CartValidationError) as e:
            raise MergeDataCorruptError(f"Corrupt cart payload under {key}: {e}", raw_error=e) from e

    def _load_silently(self, key: str) -> Optional[Cart]:
        try:
            return self._load(key)
        except (TransientStorageError, MergeDataCorruptError) as e:
            logger.warning(f"Browser storage read failed, treating as empty: {e}")
            return None

    def _store(self, key: str, cart: Cart) -> bool:
        try:
            self.backend.set(key, json.dumps(cart.to_dict()))
            return True
        except Exception as e:
            logger.error(f"Error saving to browser storage ({key}): {e}")
            return False

    def _delete(self, key: str) -> bool:
        try:
            self.backend.delete(key)
            return True
        except Exception as e:
            logger.error(f"Error deleting browser storage key {key}: {e}")
            return False

    # ==================== ADAPTER CONTRACT ====================

    def read(self, owner_id: Optional[str] = None) -> List[CartItem]:
        """Read the live guest cart; any failure reads as an empty cart."""
        cart = self._load_silently(self.keys.guest_cart)
        return cart.items if cart else []

    def write(
        self,
        owner_id: Optional[str],
        items: Sequence[CartItem],
        mode: WriteMode = WriteMode.REPLACE,
        is_open: bool = False,
    ) -> bool:
        """Overwrite the live guest cart blob. Returns False when storage refused it."""
        if mode is not WriteMode.REPLACE:
            raise ValueError("Browser storage only supports replace writes")
        return self._store(self.keys.guest_cart, Cart(owner_id=None, items=list(items), is_open=is_open))

    def clear(self, owner_id: Optional[str] = None) -> bool:
        return self._delete(self.keys.guest_cart)

    # ==================== SNAPSHOTS ====================

    def read_backup(self) -> List[CartItem]:
        cart = self._load_silently(self.keys.logout_backup)
        return cart.items if cart else []

    def write_backup(self, items: Sequence[CartItem], is_open: bool = False) -> bool:
        """Write the logout snapshot, replacing any previous one."""
        return self._store(self.keys.logout_backup, Cart(owner_id=None, items=list(items), is_open=is_open))

    def clear_backup(self) -> bool:
        return self._delete(self.keys.logout_backup)

    def read_backup_strict(self) -> List[CartItem]:
        """Read the backup, raising MergeDataCorruptError on a bad payload."""
        cart = self._load_strict(self.keys.logout_backup)
        return cart.items if cart else []

    def read_guest_strict(self) -> List[CartItem]:
        cart = self._load_strict(self.keys.guest_cart)
        return cart.items if cart else []

    def _load_strict(self, key: str) -> Optional[Cart]:
        try:
            return self._load(key)
        except TransientStorageError as e:
            logger.warning(f"Browser storage unavailable, treating {key} as empty: {e}")
            return None

    # ==================== DIAGNOSTICS ====================

    def record_login(self, timestamp_ms: Optional[int] = None) -> None:
        """Remember when the last login happened (diagnostics only)."""
        value = str(timestamp_ms if timestamp_ms is not None else int(time.time() * 1000))
        try:
            self.backend.set(self.keys.login_time, value)
        except Exception as e:
            logger.warning(f"Failed to record login time: {e}")

    def last_login(self) -> Optional[int]:
        try:
            raw = self.backend.get(self.keys.login_time)
            return int(raw) if raw else None
        except Exception as e:
            logger.warning(f"Failed to read login time: {e}")
            return None
