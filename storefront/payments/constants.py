"""Payment constants, enums, and the provider registry."""
from dataclasses import dataclass
from enum import Enum

from storefront.errors import CheckoutStepError, ERROR_UNKNOWN_PROVIDER


class PaymentProviderClass(str, Enum):
    """
    Capability class of a payment provider.

    - confirmation_required: a provider-issued secret must exist on the cart
      before card details are collected, and the payment is confirmed
      client-side before the order is completed.
    - direct_settle: nothing to confirm client-side; the payment session is
      initiated at order placement and settled by the backend.
    """
    CONFIRMATION_REQUIRED = "confirmation_required"
    DIRECT_SETTLE = "direct_settle"


class PaymentSessionStatus(str, Enum):
    """Status of a payment session sub-resource on the cart."""
    NOT_INITIATED = "not_initiated"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    CANCELED = "canceled"
    ERROR = "error"


class PaymentConfirmationStatus(str, Enum):
    """Outcome reported by the payment confirmation provider."""
    SUCCEEDED = "succeeded"
    REQUIRES_CAPTURE = "requires_capture"
    REQUIRES_ACTION = "requires_action"
    FAILED = "failed"


# Confirmation outcomes that allow the order to be completed
CONFIRMED_STATES: set[str] = {
    PaymentConfirmationStatus.SUCCEEDED.value,
    PaymentConfirmationStatus.REQUIRES_CAPTURE.value,
}

# Completion response kind that means an order was placed
ORDER_COMPLETION_KIND = "order"


@dataclass(frozen=True)
class PaymentProvider:
    """A payment provider the storefront offers at checkout."""
    id: str
    title: str
    icon: str
    provider_class: PaymentProviderClass

    @property
    def requires_confirmation(self) -> bool:
        return self.provider_class is PaymentProviderClass.CONFIRMATION_REQUIRED


STRIPE_PROVIDER_ID = "pp_stripe_stripe"
MANUAL_PROVIDER_ID = "pp_system_default"

_PROVIDERS: dict[str, PaymentProvider] = {}


def register_provider(provider: PaymentProvider) -> PaymentProvider:
    """Register (or replace) a payment provider by id."""
    _PROVIDERS[provider.id] = provider
    return provider


def get_provider(provider_id: str | None) -> PaymentProvider:
    """
    Look up a registered provider.

    Raises:
        CheckoutStepError: If the provider id is not registered
    """
    provider = _PROVIDERS.get((provider_id or "").strip())
    if provider is None:
        raise CheckoutStepError(f"{ERROR_UNKNOWN_PROVIDER}: {provider_id}", code="UNKNOWN_PROVIDER")
    return provider


def list_providers() -> list[PaymentProvider]:
    """Registered providers in registration order."""
    return list(_PROVIDERS.values())


register_provider(PaymentProvider(
    id=STRIPE_PROVIDER_ID,
    title="Credit Card",
    icon="💳",
    provider_class=PaymentProviderClass.CONFIRMATION_REQUIRED,
))
register_provider(PaymentProvider(
    id=MANUAL_PROVIDER_ID,
    title="Manual Payment (Test)",
    icon="🧪",
    provider_class=PaymentProviderClass.DIRECT_SETTLE,
))
