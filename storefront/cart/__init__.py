"""Cart package: models, session storage, and the session manager."""
from .models import CartSession, PaymentCollection, PaymentSession
from .service import CartSessionManager, get_cart_manager
from .storage import (
    FileSessionStore,
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    get_session_store,
)

__all__ = [
    "CartSession",
    "PaymentCollection",
    "PaymentSession",
    "CartSessionManager",
    "get_cart_manager",
    "SessionStore",
    "InMemorySessionStore",
    "FileSessionStore",
    "RedisSessionStore",
    "get_session_store",
]
