"""Payment strategies, one per provider capability class."""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from storefront.errors import (
    ERROR_INITIATE_PAYMENT_FAILED,
    ERROR_PAYMENT_FAILED,
    ERROR_PAYMENT_METHOD_REQUIRED,
    ERROR_PAYMENT_SESSION_NOT_INITIALIZED,
    CheckoutStepError,
    ConfigurationError,
    GatewayError,
    PaymentActionRequired,
    PaymentDeclined,
    RemoteMutationError,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.payments.config import validate_provider_config
from storefront.payments.constants import (
    PaymentConfirmationStatus,
    PaymentProvider,
    PaymentProviderClass,
)
from storefront.services.payments import BillingDetails

if TYPE_CHECKING:
    from storefront.cart.models import PaymentSession
    from .orchestrator import CheckoutOrchestrator

logger = get_logger(__name__)


async def initiate_payment_session(checkout: "CheckoutOrchestrator", provider: PaymentProvider) -> None:
    """Create (or replace) the provider's payment session on the cart."""
    cart_id = checkout.require_cart().id
    try:
        await checkout.gateway.initiate_payment_session(cart_id, provider.id)
    except GatewayError as e:
        raise CheckoutStepError(
            f"{ERROR_INITIATE_PAYMENT_FAILED}: {e.message}", code="PAYMENT_SESSION", raw_error=e
        )


class PaymentStrategy(ABC):
    """What a provider class does on Payment -> Review and on order placement."""

    provider_class: PaymentProviderClass

    @abstractmethod
    async def prepare_review(self, checkout: "CheckoutOrchestrator", provider: PaymentProvider) -> None:
        """Side effects required before the Review step may be entered."""

    @abstractmethod
    async def settle(
        self,
        checkout: "CheckoutOrchestrator",
        provider: PaymentProvider,
        payment_method: Optional[str],
    ) -> None:
        """Side effects required before the cart can be completed."""


class ConfirmationRequiredStrategy(PaymentStrategy):
    """
    Providers that confirm the payment client-side with a secret.

    The secret must be on the cart before card details are collected, so
    the session is initiated when leaving Payment, and confirmed on Review.
    """

    provider_class = PaymentProviderClass.CONFIRMATION_REQUIRED

    @staticmethod
    def _pending_session(checkout: "CheckoutOrchestrator", provider: PaymentProvider) -> "PaymentSession":
        session = checkout.require_cart().pending_payment_session(provider.id)
        if session is None or not session.client_secret:
            raise CheckoutStepError(ERROR_PAYMENT_SESSION_NOT_INITIALIZED, code="PAYMENT_SESSION")
        return session

    async def prepare_review(self, checkout: "CheckoutOrchestrator", provider: PaymentProvider) -> None:
        try:
            validate_provider_config(provider.id)
        except ConfigurationError as e:
            raise CheckoutStepError(e.message, code="CONFIGURATION", retryable=False, raw_error=e)
        await initiate_payment_session(checkout, provider)

        # The secret only becomes visible on the refreshed cart
        try:
            await checkout.cart_manager.refresh()
        except RemoteMutationError as e:
            raise CheckoutStepError(
                f"{ERROR_INITIATE_PAYMENT_FAILED}: {e.message}", code="PAYMENT_SESSION", raw_error=e
            )

        session = self._pending_session(checkout, provider)
        logger.info("Payment session %s ready for confirmation", sanitize_id_for_logging(session.id))

    async def settle(
        self,
        checkout: "CheckoutOrchestrator",
        provider: PaymentProvider,
        payment_method: Optional[str],
    ) -> None:
        if not payment_method:
            raise CheckoutStepError(ERROR_PAYMENT_METHOD_REQUIRED, code="PAYMENT_METHOD_REQUIRED")

        session = self._pending_session(checkout, provider)
        draft = checkout.draft
        confirmation = await checkout.confirmation_provider.confirm_payment(
            session.client_secret,
            payment_method,
            BillingDetails.from_address(draft.contact_email, draft.shipping_address),
        )

        if confirmation.is_confirmed:
            return

        logger.warning(
            "Payment for session %s not confirmed: status=%s",
            sanitize_id_for_logging(session.id),
            confirmation.status.value,
        )
        if confirmation.status is PaymentConfirmationStatus.REQUIRES_ACTION:
            raise PaymentActionRequired(raw_error=confirmation.raw_response)
        raise PaymentDeclined(confirmation.message or ERROR_PAYMENT_FAILED, raw_error=confirmation.raw_response)


class DirectSettleStrategy(PaymentStrategy):
    """Providers with nothing to confirm client-side (manual/test payments)."""

    provider_class = PaymentProviderClass.DIRECT_SETTLE

    async def prepare_review(self, checkout: "CheckoutOrchestrator", provider: PaymentProvider) -> None:
        return None

    async def settle(
        self,
        checkout: "CheckoutOrchestrator",
        provider: PaymentProvider,
        payment_method: Optional[str],
    ) -> None:
        await initiate_payment_session(checkout, provider)


STRATEGIES: dict[PaymentProviderClass, PaymentStrategy] = {
    strategy.provider_class: strategy
    for strategy in (ConfirmationRequiredStrategy(), DirectSettleStrategy())
}


def get_strategy(provider: PaymentProvider) -> PaymentStrategy:
    return STRATEGIES[provider.provider_class]
