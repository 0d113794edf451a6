"""Payment provider registry and configuration."""
from .constants import (
    PaymentProvider,
    PaymentProviderClass,
    PaymentSessionStatus,
    PaymentConfirmationStatus,
    CONFIRMED_STATES,
    ORDER_COMPLETION_KIND,
    STRIPE_PROVIDER_ID,
    MANUAL_PROVIDER_ID,
    get_provider,
    list_providers,
    register_provider,
)
from .config import is_provider_configured, validate_provider_config

__all__ = [
    "PaymentProvider",
    "PaymentProviderClass",
    "PaymentSessionStatus",
    "PaymentConfirmationStatus",
    "CONFIRMED_STATES",
    "ORDER_COMPLETION_KIND",
    "STRIPE_PROVIDER_ID",
    "MANUAL_PROVIDER_ID",
    "get_provider",
    "list_providers",
    "register_provider",
    "is_provider_configured",
    "validate_provider_config",
]
