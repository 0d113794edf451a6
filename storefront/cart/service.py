"""Cart Session Manager - in-memory mirror of the remote cart."""
import asyncio
from typing import TYPE_CHECKING, Any, Callable, Optional

from storefront.config import get_default_region_id
from storefront.errors import (
    ERROR_ADD_ITEM_FAILED,
    ERROR_CART_UNAVAILABLE,
    ERROR_NO_ACTIVE_CART,
    ERROR_REMOVE_ITEM_FAILED,
    ERROR_UPDATE_CART_FAILED,
    ERROR_UPDATE_ITEM_FAILED,
    GatewayError,
    RemoteMutationError,
    SessionInvalid,
)
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import CartSession
from .storage import SessionStore, get_session_store

if TYPE_CHECKING:
    from storefront.services.commerce import CommerceGateway

logger = get_logger(__name__)

CartListener = Callable[[Optional[CartSession]], Any]


class CartSessionManager:
    """
    Owns the shopper's CartSession.

    Features:
    - Lazy cart creation on first add-to-cart
    - Server-round-trip mutations: the mirror is only ever replaced by
      what the gateway returns, never patched ahead of confirmation
    - Self-healing load: a stored id that no longer resolves is dropped
    - Mutations serialized per manager; responses landing after clear()
      or close() are discarded
    """

    def __init__(
        self,
        gateway: Optional["CommerceGateway"] = None,
        store: Optional[SessionStore] = None,
    ):
        self._gateway = gateway  # Lazy initialization
        self.store = store if store is not None else get_session_store()
        self._cart: Optional[CartSession] = None
        self._listeners: list[CartListener] = []
        self._lock = asyncio.Lock()
        self._generation = 0
        self._closed = False
        self.is_loading = True

    @property
    def gateway(self) -> "CommerceGateway":
        if self._gateway is None:
            from storefront.services.commerce import get_commerce_gateway

            self._gateway = get_commerce_gateway()
        return self._gateway

    @property
    def cart(self) -> Optional[CartSession]:
        """Current authoritative cart, or None when there is no active cart."""
        return self._cart

    @property
    def item_count(self) -> int:
        return self._cart.item_count if self._cart else 0

    # ==================== SUBSCRIPTIONS ====================

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Register a listener called with the new cart after every publish.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, cart: Optional[CartSession]) -> None:
        self._cart = cart
        for listener in list(self._listeners):
            try:
                listener(cart)
            except Exception:
                logger.exception("Cart listener failed")

    def _is_stale(self, generation: int) -> bool:
        """True once clear() or close() ran after `generation` was read."""
        return self._closed or generation != self._generation

    def _apply(self, cart: CartSession, generation: int) -> Optional[CartSession]:
        """Publish a gateway response unless the session moved on meanwhile."""
        if self._is_stale(generation):
            logger.debug("Discarding stale cart response for %s", sanitize_id_for_logging(cart.id))
            return self._cart
        self._publish(cart)
        return cart

    async def _invalidate(self, error: SessionInvalid) -> None:
        # Generation is left alone: a caller holding the lock goes on to create a new cart
        logger.warning(
            "Failed to fetch cart %s, clearing session: %s",
            sanitize_id_for_logging(error.cart_id),
            error.raw_error,
        )
        await self.store.clear()
        self._publish(None)

    # ==================== LOADING ====================

    async def load(self) -> Optional[CartSession]:
        """
        Fetch the authoritative cart for the stored identifier.

        A fetch failure means the identifier is stale: it is cleared and the
        manager settles to the no-cart state without raising.
        """
        try:
            cart_id = await self.store.get()
            if not cart_id:
                return None

            generation = self._generation
            try:
                cart = await self.gateway.retrieve_cart(cart_id)
            except Exception as e:
                await self._invalidate(SessionInvalid(cart_id, raw_error=e))
                return None
            return self._apply(cart, generation)
        finally:
            self.is_loading = False

    async def refresh(self) -> Optional[CartSession]:
        """
        Re-fetch the current cart.

        Raises:
            RemoteMutationError: If the gateway call fails
        """
        cart_id = await self._current_cart_id()
        if not cart_id:
            return None

        generation = self._generation
        try:
            cart = await self.gateway.retrieve_cart(cart_id)
        except GatewayError as e:
            logger.warning("Failed to refresh cart %s: %s", sanitize_id_for_logging(cart_id), e.message)
            raise RemoteMutationError(f"{ERROR_CART_UNAVAILABLE}: {e.message}", raw_error=e)
        return self._apply(cart, generation)

    async def _current_cart_id(self) -> Optional[str]:
        if self._cart is not None:
            return self._cart.id
        return await self.store.get()

    # ==================== SESSION ====================

    async def ensure_session(self, region_id: Optional[str] = None) -> Optional[CartSession]:
        """
        Return the current cart, creating a remote cart first if none exists.

        Returns None when clear() or close() ran while the cart was being
        loaded or created.
        """
        async with self._lock:
            return await self._ensure_session(self._generation, region_id)

    async def _ensure_session(self, generation: int, region_id: Optional[str] = None) -> Optional[CartSession]:
        if self._is_stale(generation):
            return None
        if self._cart is not None:
            return self._cart

        # A stored id that was never loaded is tried before creating a new cart
        cart = await self.load()
        if self._is_stale(generation):
            return None
        if cart is not None:
            return cart

        try:
            cart = await self.gateway.create_cart(region_id or get_default_region_id())
        except GatewayError as e:
            logger.error("Failed to create cart: %s", e.message)
            raise RemoteMutationError(f"{ERROR_CART_UNAVAILABLE}: {e.message}", raw_error=e)

        if self._is_stale(generation):
            # Never persisted, so the remote cart is simply abandoned
            logger.info("Session cleared while creating cart %s, discarding it", sanitize_id_for_logging(cart.id))
            return None

        await self.store.set(cart.id)
        return self._apply(cart, generation)

    # ==================== MUTATIONS ====================

    async def add_item(self, variant_id: str, quantity: int = 1) -> Optional[CartSession]:
        """
        Add a variant to the cart, creating the cart if needed.

        Raises:
            ValueError: If variant_id is empty or quantity < 1
            RemoteMutationError: If the gateway rejects the line item
        """
        if not variant_id or not isinstance(variant_id, str):
            raise ValueError("variant_id must be a non-empty string")
        if not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        async with self._lock:
            generation = self._generation
            cart = await self._ensure_session(generation)
            if cart is None:
                return self._cart
            try:
                updated = await self.gateway.add_line_item(cart.id, variant_id, quantity)
            except GatewayError as e:
                logger.warning("Failed to add variant %s to cart: %s", variant_id, e.message)
                raise RemoteMutationError(f"{ERROR_ADD_ITEM_FAILED}: {e.message}", raw_error=e)
            return self._apply(updated, generation)

    async def set_item_quantity(self, line_id: str, quantity: int) -> Optional[CartSession]:
        """
        Change a line item's quantity.

        Quantities below 1 are ignored: removal goes through remove_item().
        """
        if not isinstance(quantity, int) or quantity < 1:
            logger.debug("Ignoring quantity %s for line %s; use remove_item()", quantity, line_id)
            return self._cart

        async with self._lock:
            generation = self._generation
            cart_id = await self._current_cart_id()
            if not cart_id:
                return None
            if self._is_stale(generation):
                return self._cart
            try:
                updated = await self.gateway.update_line_item(cart_id, line_id, quantity)
            except GatewayError as e:
                logger.warning("Failed to update line item %s: %s", line_id, e.message)
                raise RemoteMutationError(f"{ERROR_UPDATE_ITEM_FAILED}: {e.message}", raw_error=e)
            return self._apply(updated, generation)

    async def remove_item(self, line_id: str) -> Optional[CartSession]:
        """Delete a line item from the cart."""
        async with self._lock:
            generation = self._generation
            cart_id = await self._current_cart_id()
            if not cart_id:
                return None
            if self._is_stale(generation):
                return self._cart
            try:
                updated = await self.gateway.delete_line_item(cart_id, line_id)
            except GatewayError as e:
                logger.warning("Failed to delete line item %s: %s", line_id, e.message)
                raise RemoteMutationError(f"{ERROR_REMOVE_ITEM_FAILED}: {e.message}", raw_error=e)
            return self._apply(updated, generation)

    async def patch_cart(self, fields: dict[str, Any]) -> Optional[CartSession]:
        """
        Merge fields (email, addresses) into the remote cart.

        Raises:
            RemoteMutationError: If there is no active cart or the update fails
        """
        async with self._lock:
            generation = self._generation
            cart_id = await self._current_cart_id()
            if not cart_id:
                raise RemoteMutationError(ERROR_NO_ACTIVE_CART)
            if self._is_stale(generation):
                return self._cart
            try:
                updated = await self.gateway.update_cart(cart_id, fields)
            except GatewayError as e:
                logger.warning("Failed to update cart %s: %s", sanitize_id_for_logging(cart_id), e.message)
                raise RemoteMutationError(f"{ERROR_UPDATE_CART_FAILED}: {e.message}", raw_error=e)
            return self._apply(updated, generation)

    async def clear(self) -> None:
        """Forget the cart: drop the stored identifier and the in-memory mirror."""
        await self.store.clear()
        self._generation += 1
        self._publish(None)
        logger.info("Cart session cleared")

    def close(self) -> None:
        """Tear down; responses to calls still in flight are discarded."""
        self._closed = True
        self._generation += 1
        self._listeners.clear()


# Singleton instance
_cart_manager: Optional[CartSessionManager] = None


def get_cart_manager() -> CartSessionManager:
    """Get CartSessionManager singleton."""
    global _cart_manager
    if _cart_manager is None:
        _cart_manager = CartSessionManager()
    return _cart_manager
