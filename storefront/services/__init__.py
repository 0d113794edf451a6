# Services Module
from .catalog import CatalogService
from .commerce import CommerceGateway, get_commerce_gateway
from .payments import (
    BillingDetails,
    PaymentConfirmation,
    PaymentConfirmationProvider,
    StripeConfirmationProvider,
    get_confirmation_provider,
)

__all__ = [
    "CatalogService",
    "CommerceGateway",
    "get_commerce_gateway",
    "BillingDetails",
    "PaymentConfirmation",
    "PaymentConfirmationProvider",
    "StripeConfirmationProvider",
    "get_confirmation_provider",
]
