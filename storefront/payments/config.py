"""Payment provider configuration and validation."""
from storefront.config import get_stripe_publishable_key
from storefront.errors import ConfigurationError
from storefront.logging import get_logger

from .constants import PaymentProviderClass, get_provider

logger = get_logger(__name__)


def is_provider_configured(provider_id: str) -> bool:
    """Check whether a provider can be used without raising."""
    try:
        validate_provider_config(provider_id)
    except ConfigurationError:
        return False
    return True


def validate_provider_config(provider_id: str) -> str:
    """
    Validate that a provider has the credentials it needs.

    Confirmation-required providers confirm payments client-side, so the
    publishable key must be set. Direct-settle providers need nothing.

    Returns:
        The provider id

    Raises:
        CheckoutStepError: If the provider is unknown
        ConfigurationError: If required credentials are missing
    """
    provider = get_provider(provider_id)

    if provider.provider_class is PaymentProviderClass.CONFIRMATION_REQUIRED:
        if not get_stripe_publishable_key():
            logger.error("Payment provider %s not configured. Missing: STRIPE_PUBLISHABLE_KEY", provider.id)
            raise ConfigurationError(f"{provider.title} is not configured. Set STRIPE_PUBLISHABLE_KEY")

    return provider.id
