"""
Logging for the storefront core.

Every module logs through ``get_logger(__name__)``. Handler setup happens
once, the first time this module is imported, and is skipped when the host
application already configured the root logger.

Backend ids and payment secrets only reach the log stream through the
sanitizers below.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# HTTP client libraries log every gateway and Stripe request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

# Stripe client secrets look like "pi_123_secret_abc"
CLIENT_SECRET_MARKER = "_secret_"

# Medusa ids carry a type prefix ("cart_", "order_") ahead of a ULID
ID_LOG_LENGTH = 16

_CONTROL_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _configure() -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    is_production = os.environ.get("STOREFRONT_ENV") == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Shorten a backend id for logging.

    Client secrets are cut at the secret marker so only the payment intent
    id is ever logged; control characters are escaped (CWE-117).

    Examples:
        "pi_3Nx_secret_abc" -> "pi_3Nx"
        "cart_01HV8K2Q9ZP4XJ6YB" -> "cart_01HV8K2Q9ZP"
    """
    if not id_value:
        return "N/A"
    value = str(id_value).split(CLIENT_SECRET_MARKER, 1)[0]
    return value.translate(_CONTROL_CHARS)[:ID_LOG_LENGTH]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Escape and truncate a free-form string (backend error message) for logging."""
    if not value:
        return "N/A"
    safe_value = str(value).translate(_CONTROL_CHARS)
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."
