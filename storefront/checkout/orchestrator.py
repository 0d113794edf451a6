"""
Checkout Orchestrator

Drives the Shipping -> Payment -> Review state machine over the shopper's
cart. Every forward transition validates locally first, then performs its
remote side effects and only advances once they succeed. Backward
transitions are local and keep the draft. The orchestrator never retries
on its own: a failed step leaves the state where it was and the shopper
re-triggers it.
"""
from typing import TYPE_CHECKING, Any, Callable, Optional

from storefront.cart.models import CartSession
from storefront.cart.service import CartSessionManager
from storefront.config import DEFAULT_COUNTRY_CODE, DEFAULT_PAYMENT_PROVIDER
from storefront.errors import (
    ERROR_ADD_SHIPPING_METHOD_FAILED,
    ERROR_CHECKOUT_NOT_ACTIVE,
    ERROR_EMPTY_CART,
    ERROR_ORDER_COMPLETION_FAILED,
    ERROR_UPDATE_ADDRESSES_FAILED,
    CheckoutStepError,
    DraftIncomplete,
    GatewayError,
    InvalidTransition,
    OrderCompletionFailed,
    RemoteMutationError,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import Address, Order, ShippingOption
from storefront.payments.constants import ORDER_COMPLETION_KIND, PaymentProvider, get_provider

from .models import STEP_ORDER, CheckoutDraft, CheckoutStep
from .strategies import get_strategy

if TYPE_CHECKING:
    from storefront.services.commerce import CommerceGateway
    from storefront.services.payments import PaymentConfirmationProvider

logger = get_logger(__name__)

CheckoutListener = Callable[["CheckoutOrchestrator"], Any]


class CheckoutOrchestrator:
    """Checkout state machine for one shopper's cart."""

    def __init__(
        self,
        cart_manager: CartSessionManager,
        gateway: Optional["CommerceGateway"] = None,
        confirmation_provider: Optional["PaymentConfirmationProvider"] = None,
    ):
        self.cart_manager = cart_manager
        self._gateway = gateway
        self._confirmation_provider = confirmation_provider

        self.step: Optional[CheckoutStep] = None
        self.draft = CheckoutDraft()
        self.shipping_options: list[ShippingOption] = []
        self.completed_order: Optional[Order] = None
        self._listeners: list[CheckoutListener] = []

    @property
    def gateway(self) -> "CommerceGateway":
        if self._gateway is None:
            self._gateway = self.cart_manager.gateway
        return self._gateway

    @property
    def confirmation_provider(self) -> "PaymentConfirmationProvider":
        if self._confirmation_provider is None:
            from storefront.services.payments import get_confirmation_provider

            self._confirmation_provider = get_confirmation_provider()
        return self._confirmation_provider

    @property
    def is_active(self) -> bool:
        return self.step is not None

    @property
    def completed_order_id(self) -> Optional[str]:
        return self.completed_order.id if self.completed_order else None

    @property
    def payment_provider(self) -> PaymentProvider:
        return get_provider(self.draft.selected_payment_provider_id)

    # ==================== SUBSCRIPTIONS ====================

    def subscribe(self, listener: CheckoutListener) -> Callable[[], None]:
        """Register a listener called after every step or draft change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Checkout listener failed")

    def _set_step(self, step: Optional[CheckoutStep]) -> None:
        previous = self.step
        self.step = step
        logger.info(
            "Checkout step %s -> %s",
            previous.value if previous else None,
            step.value if step else None,
        )
        self._notify()

    # ==================== GUARDS ====================

    def require_cart(self) -> CartSession:
        cart = self.cart_manager.cart
        if cart is None:
            raise CheckoutStepError(ERROR_EMPTY_CART, code="EMPTY_CART")
        return cart

    def _require_step(self, expected: CheckoutStep) -> None:
        if self.step is None:
            raise InvalidTransition(ERROR_CHECKOUT_NOT_ACTIVE)
        if self.step is not expected:
            raise InvalidTransition(
                f"Cannot do this from step '{self.step.value}', expected '{expected.value}'"
            )

    # ==================== LIFECYCLE ====================

    async def begin(self) -> CheckoutStep:
        """
        Start checkout on the current cart with an empty draft.

        Raises:
            CheckoutStepError: If there is no cart or it has no items
        """
        cart = self.cart_manager.cart
        if cart is None:
            cart = await self.cart_manager.load()
        if cart is None or cart.is_empty:
            raise CheckoutStepError(ERROR_EMPTY_CART, code="EMPTY_CART")

        self.draft = CheckoutDraft(
            contact_email=cart.email or "",
            shipping_address=Address(country_code=DEFAULT_COUNTRY_CODE),
            selected_payment_provider_id=DEFAULT_PAYMENT_PROVIDER,
        )
        self.shipping_options = []
        self.completed_order = None

        await self.refresh_shipping_options()
        self._set_step(CheckoutStep.SHIPPING)
        return self.step

    async def refresh_shipping_options(self) -> list[ShippingOption]:
        """
        Fetch shipping options for the cart and pre-select the first one.

        A fetch failure leaves the list empty; the Shipping step then cannot
        validate until this is called again.
        """
        cart = self.require_cart()
        try:
            self.shipping_options = await self.gateway.list_shipping_options(cart.id)
        except GatewayError as e:
            logger.warning("Failed to fetch shipping options for cart %s: %s", sanitize_id_for_logging(cart.id), e.message)
            self.shipping_options = []

        option_ids = [option.id for option in self.shipping_options]
        if self.draft.selected_shipping_option_id not in option_ids:
            self.draft.selected_shipping_option_id = option_ids[0] if option_ids else None
        self._notify()
        return self.shipping_options

    def abandon(self) -> None:
        """Leave checkout and discard the draft."""
        self.draft = CheckoutDraft()
        self.shipping_options = []
        self._set_step(None)

    # ==================== DRAFT EDITING ====================

    def set_contact_email(self, email: str) -> None:
        self._require_step(CheckoutStep.SHIPPING)
        self.draft.contact_email = email
        self._notify()

    def update_address(self, **fields: str) -> Address:
        """Update shipping address fields (first_name, city, ...)."""
        self._require_step(CheckoutStep.SHIPPING)
        unknown = set(fields) - set(Address.model_fields)
        if unknown:
            raise ValueError(f"Unknown address fields: {', '.join(sorted(unknown))}")
        self.draft.shipping_address = self.draft.shipping_address.model_copy(update=fields)
        self._notify()
        return self.draft.shipping_address

    def select_shipping_option(self, option_id: str) -> None:
        self._require_step(CheckoutStep.SHIPPING)
        self.draft.selected_shipping_option_id = option_id
        self._notify()

    def select_payment_provider(self, provider_id: str) -> PaymentProvider:
        """
        Choose the payment provider.

        Raises:
            CheckoutStepError: If the provider is not registered
        """
        self._require_step(CheckoutStep.PAYMENT)
        provider = get_provider(provider_id)
        self.draft.selected_payment_provider_id = provider.id
        self._notify()
        return provider

    def missing_fields(self) -> list[str]:
        return self.draft.missing_fields(option.id for option in self.shipping_options)

    # ==================== TRANSITIONS ====================

    async def submit_shipping(self) -> CheckoutStep:
        """
        Shipping -> Payment.

        Pushes email and address to the cart, attaches the shipping method
        and refreshes the cart.

        Raises:
            DraftIncomplete: If required fields are empty (no remote call made)
            CheckoutStepError: If a remote side effect fails
        """
        self._require_step(CheckoutStep.SHIPPING)

        missing = self.missing_fields()
        if missing:
            raise DraftIncomplete(missing)

        cart = self.require_cart()
        try:
            await self.cart_manager.patch_cart(self.draft.to_cart_fields())
        except RemoteMutationError as e:
            raise CheckoutStepError(f"{ERROR_UPDATE_ADDRESSES_FAILED}: {e.message}", raw_error=e)

        try:
            await self.gateway.add_shipping_method(cart.id, self.draft.selected_shipping_option_id)
        except GatewayError as e:
            raise CheckoutStepError(f"{ERROR_ADD_SHIPPING_METHOD_FAILED}: {e.message}", raw_error=e)

        try:
            await self.cart_manager.refresh()
        except RemoteMutationError as e:
            raise CheckoutStepError(e.message, raw_error=e)

        self._set_step(CheckoutStep.PAYMENT)
        return self.step

    async def submit_payment(self) -> CheckoutStep:
        """
        Payment -> Review.

        Confirmation-required providers get their payment session (and its
        secret) before Review is entered; direct-settle providers advance
        immediately.

        Raises:
            CheckoutStepError: If the provider is unknown, not configured
                (code CONFIGURATION, not retryable) or session setup fails
        """
        self._require_step(CheckoutStep.PAYMENT)

        provider = self.payment_provider
        await get_strategy(provider).prepare_review(self, provider)

        self._set_step(CheckoutStep.REVIEW)
        return self.step

    def go_back(self) -> CheckoutStep:
        """Move one step back; local only, the draft is kept."""
        if self.step is None:
            raise InvalidTransition(ERROR_CHECKOUT_NOT_ACTIVE)
        index = STEP_ORDER.index(self.step)
        if index == 0:
            raise InvalidTransition("Already at the first checkout step")
        self._set_step(STEP_ORDER[index - 1])
        return self.step

    async def place_order(self, payment_method: Optional[str] = None) -> str:
        """
        Review -> order completed.

        Args:
            payment_method: Card/payment method reference; required for
                confirmation-required providers, ignored otherwise

        Returns:
            The placed order's id

        Raises:
            PaymentDeclined / PaymentActionRequired: Confirmation did not succeed
            CheckoutStepError: Payment session missing or could not be initiated
            OrderCompletionFailed: Backend did not return an order
        """
        self._require_step(CheckoutStep.REVIEW)

        provider = self.payment_provider
        await get_strategy(provider).settle(self, provider, payment_method)

        order = await self._complete_order()

        await self.cart_manager.clear()
        self.completed_order = order
        self.draft = CheckoutDraft()
        self.shipping_options = []
        self._set_step(None)
        logger.info("Order %s placed", sanitize_id_for_logging(order.id))
        return order.id

    async def _complete_order(self) -> Order:
        cart = self.require_cart()
        try:
            result = await self.gateway.complete_cart(cart.id)
        except GatewayError as e:
            raise OrderCompletionFailed(f"Failed to complete order: {e.message}", raw_error=e)

        if result.type != ORDER_COMPLETION_KIND or result.order is None:
            logger.warning(
                "Cart %s completion returned type=%s: %s",
                sanitize_id_for_logging(cart.id),
                result.type,
                result.error_message,
            )
            raise OrderCompletionFailed(
                result.error_message or ERROR_ORDER_COMPLETION_FAILED,
                outcome_kind=result.type,
                raw_error=result.error,
            )
        return result.order
