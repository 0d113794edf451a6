"""
Storefront error taxonomy.

Every failure the core reports to the presentation layer is a
StorefrontError subclass. ``retryable`` tells the shopper-facing layer
whether re-triggering the same step can succeed; no error here is fatal
to the running client.
"""

from typing import Any

# Cart errors
ERROR_NO_ACTIVE_CART = "No active cart"
ERROR_CART_UNAVAILABLE = "Cart service unavailable"
ERROR_ADD_ITEM_FAILED = "Failed to add item to cart"
ERROR_UPDATE_ITEM_FAILED = "Failed to update line item"
ERROR_REMOVE_ITEM_FAILED = "Failed to delete line item"
ERROR_UPDATE_CART_FAILED = "Failed to update cart"

# Checkout errors
ERROR_EMPTY_CART = "Cart is empty"
ERROR_DRAFT_INCOMPLETE = "Please fill in all required fields"
ERROR_UPDATE_ADDRESSES_FAILED = "Failed to update addresses"
ERROR_ADD_SHIPPING_METHOD_FAILED = "Failed to add shipping method"
ERROR_INITIATE_PAYMENT_FAILED = "Failed to initiate payment"
ERROR_PAYMENT_SESSION_NOT_INITIALIZED = "Payment session not initialized"
ERROR_UNKNOWN_PROVIDER = "Unknown payment provider"
ERROR_CHECKOUT_NOT_ACTIVE = "Checkout is not active"

# Payment errors
ERROR_PAYMENT_FAILED = "Payment failed"
ERROR_PAYMENT_ACTION_REQUIRED = "Payment requires additional action"
ERROR_PAYMENT_METHOD_REQUIRED = "Payment method is required"

# Order errors
ERROR_ORDER_COMPLETION_FAILED = "Order completion failed"


class StorefrontError(Exception):
    """Base error for all storefront core failures."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        retryable: bool = False,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.raw_error = raw_error


class ConfigurationError(StorefrontError):
    """Required configuration is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION", retryable=False)


class GatewayError(StorefrontError):
    """Commerce gateway request failed (HTTP error or network failure)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code="GATEWAY", retryable=retryable, raw_error=raw_error)
        self.status_code = status_code


class SessionInvalid(StorefrontError):
    """Stored cart identifier no longer resolves on the gateway.

    Recovered locally by the cart manager; never shown to the shopper.
    """

    def __init__(self, cart_id: str, raw_error: Any = None) -> None:
        super().__init__(
            f"Cart {cart_id} no longer exists",
            code="SESSION_INVALID",
            retryable=False,
            raw_error=raw_error,
        )
        self.cart_id = cart_id


class RemoteMutationError(StorefrontError):
    """A cart mutation was rejected or failed on the network."""

    def __init__(self, message: str, raw_error: Any = None) -> None:
        super().__init__(message, code="REMOTE_MUTATION", retryable=True, raw_error=raw_error)


class CheckoutStepError(StorefrontError):
    """A checkout transition could not complete; the step did not advance."""

    def __init__(
        self,
        message: str,
        code: str = "CHECKOUT_STEP",
        retryable: bool = True,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code=code, retryable=retryable, raw_error=raw_error)


class DraftIncomplete(CheckoutStepError):
    """Required checkout fields are empty."""

    def __init__(self, missing_fields: list[str]) -> None:
        super().__init__(
            f"{ERROR_DRAFT_INCOMPLETE}: {', '.join(missing_fields)}",
            code="DRAFT_INCOMPLETE",
        )
        self.missing_fields = missing_fields


class InvalidTransition(CheckoutStepError):
    """Requested step change is not allowed from the current step."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_TRANSITION", retryable=False)


class PaymentError(StorefrontError):
    """Payment confirmation did not succeed."""

    def __init__(
        self,
        message: str = ERROR_PAYMENT_FAILED,
        status: str | None = None,
        code: str = "PAYMENT",
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code=code, retryable=True, raw_error=raw_error)
        self.status = status


class PaymentDeclined(PaymentError):
    """Provider reported a terminal non-success status."""

    def __init__(self, message: str = ERROR_PAYMENT_FAILED, raw_error: Any = None) -> None:
        super().__init__(message, status="failed", code="PAYMENT_DECLINED", raw_error=raw_error)


class PaymentActionRequired(PaymentError):
    """Provider needs the shopper to take a further step (e.g. 3-D Secure)."""

    def __init__(self, message: str = ERROR_PAYMENT_ACTION_REQUIRED, raw_error: Any = None) -> None:
        super().__init__(
            message, status="requires_action", code="PAYMENT_ACTION_REQUIRED", raw_error=raw_error
        )


class OrderCompletionFailed(StorefrontError):
    """Gateway completion returned something other than an order."""

    def __init__(
        self,
        message: str = ERROR_ORDER_COMPLETION_FAILED,
        outcome_kind: str | None = None,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code="ORDER_COMPLETION", retryable=True, raw_error=raw_error)
        self.outcome_kind = outcome_kind
