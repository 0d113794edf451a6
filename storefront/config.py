"""Environment-driven configuration for the storefront core."""
import os
from pathlib import Path


# Commerce backend (Medusa store API)
MEDUSA_BASE_URL = os.environ.get("MEDUSA_BASE_URL", "http://localhost:9000")
MEDUSA_PUBLISHABLE_API_KEY = os.environ.get("MEDUSA_PUBLISHABLE_API_KEY", "")
MEDUSA_MAX_RETRIES = int(os.environ.get("MEDUSA_MAX_RETRIES", "3"))
MEDUSA_TIMEOUT_SECONDS = float(os.environ.get("MEDUSA_TIMEOUT_SECONDS", "10"))

# Payment confirmation provider (Stripe)
STRIPE_API_URL = os.environ.get("STRIPE_API_URL", "https://api.stripe.com/v1")

# Session store
SESSION_BACKENDS = ("file", "redis", "memory")
DEFAULT_SESSION_FILE = Path.home() / ".storefront" / "session.json"

# Checkout defaults
DEFAULT_COUNTRY_CODE = os.environ.get("DEFAULT_COUNTRY_CODE", "us")
DEFAULT_PAYMENT_PROVIDER = os.environ.get("DEFAULT_PAYMENT_PROVIDER", "pp_system_default")


def get_stripe_publishable_key() -> str:
    """Read at call time so tests and late-loaded env files are honored."""
    return os.environ.get("STRIPE_PUBLISHABLE_KEY", "")


def get_default_region_id() -> str | None:
    """Region used when a cart is created without an explicit region."""
    return os.environ.get("DEFAULT_REGION_ID") or None


def get_session_backend() -> str:
    """Get configured session backend, falling back to 'file'."""
    backend = os.environ.get("STOREFRONT_SESSION_BACKEND", "file").lower().strip()
    return backend if backend in SESSION_BACKENDS else "file"


def get_session_file() -> Path:
    """Path of the JSON file holding the cart identifier."""
    raw = os.environ.get("STOREFRONT_SESSION_FILE")
    return Path(raw).expanduser() if raw else DEFAULT_SESSION_FILE


def get_client_id() -> str:
    """Discriminator for the Redis session key (one cart per client)."""
    return os.environ.get("STOREFRONT_CLIENT_ID", "default")
