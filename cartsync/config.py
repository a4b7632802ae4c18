"""
Cart sync configuration.

All settings come from environment variables. A tier whose settings are
missing is not an error at startup: it raises its own tier error when used,
and the cascade moves on to the next tier.
"""
import os
from dataclasses import dataclass

DEFAULT_CONDITION = "VG+"
DEFAULT_WEIGHT = 180


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the persistence context."""

    # Local store (Supabase / Postgres)
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Browser storage backend (Upstash Redis); in-memory when unset
    redis_rest_url: str = ""
    redis_rest_token: str = ""
    key_prefix: str = "cartsync"

    # Remote cart service
    remote_base_url: str = ""
    remote_timeout: float = 10.0
    remote_connect_timeout: float = 5.0
    remote_fetch_path: str = "/api/cart/fetch"
    remote_primary_path: str = "/api/cart/persist"
    remote_legacy_path: str = "/api/cart/merge"
    remote_clear_path: str = "/api/cart"

    environment: str = "development"

    @property
    def local_store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def redis_configured(self) -> bool:
        return bool(self.redis_rest_url and self.redis_rest_token)

    @property
    def remote_configured(self) -> bool:
        return bool(self.remote_base_url)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        remote_base_url = (
            os.environ.get("CART_API_BASE_URL")
            or os.environ.get("API_BASE_URL")
            or ""
        )
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            redis_rest_url=os.environ.get("UPSTASH_REDIS_REST_URL", ""),
            redis_rest_token=os.environ.get("UPSTASH_REDIS_REST_TOKEN", ""),
            key_prefix=os.environ.get("CART_KEY_PREFIX", "cartsync"),
            remote_base_url=remote_base_url.rstrip("/"),
            remote_timeout=_env_float("CART_REMOTE_TIMEOUT", 10.0),
            remote_connect_timeout=_env_float("CART_REMOTE_CONNECT_TIMEOUT", 5.0),
            remote_fetch_path=os.environ.get("CART_REMOTE_FETCH_PATH", "/api/cart/fetch"),
            remote_primary_path=os.environ.get("CART_REMOTE_PRIMARY_PATH", "/api/cart/persist"),
            remote_legacy_path=os.environ.get("CART_REMOTE_LEGACY_PATH", "/api/cart/merge"),
            remote_clear_path=os.environ.get("CART_REMOTE_CLEAR_PATH", "/api/cart"),
            environment=os.environ.get("ENVIRONMENT", "development"),
        )
