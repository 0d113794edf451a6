"""
Storefront Core

Cart and checkout session core for a headless commerce storefront:
- cart: Session store and Cart Session Manager
- checkout: Checkout Orchestrator state machine
- services: Commerce gateway, payment confirmation, catalog
- payments: Provider registry and capability classes

Note: Imports are lazy so that importing a leaf module does not pull in
the whole package.
"""

__version__ = "0.1.0"

__all__ = [
    "CartSessionManager",
    "CheckoutOrchestrator",
    "CommerceGateway",
    "CatalogService",
    "StripeConfirmationProvider",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "CartSessionManager":
        from storefront.cart import CartSessionManager
        return CartSessionManager
    elif name == "CheckoutOrchestrator":
        from storefront.checkout import CheckoutOrchestrator
        return CheckoutOrchestrator
    elif name == "CommerceGateway":
        from storefront.services import CommerceGateway
        return CommerceGateway
    elif name == "CatalogService":
        from storefront.services import CatalogService
        return CatalogService
    elif name == "StripeConfirmationProvider":
        from storefront.services import StripeConfirmationProvider
        return StripeConfirmationProvider
    raise AttributeError(f"module 'storefront' has no attribute '{name}'")
