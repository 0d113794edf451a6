"""Checkout step and draft models."""
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from storefront.models import Address


class CheckoutStep(str, Enum):
    """
    Checkout steps, in order.

    Flow:
        shipping <-> payment <-> review -> (order completed)
    """
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"


STEP_ORDER: list[CheckoutStep] = [CheckoutStep.SHIPPING, CheckoutStep.PAYMENT, CheckoutStep.REVIEW]

REQUIRED_ADDRESS_FIELDS = ("first_name", "last_name", "address_1", "city", "postal_code")


class CheckoutDraft(BaseModel):
    """Shopper input collected during checkout; local until submitted."""
    contact_email: str = ""
    shipping_address: Address = Field(default_factory=Address)
    selected_shipping_option_id: Optional[str] = None
    selected_payment_provider_id: Optional[str] = None

    def missing_fields(self, shipping_option_ids: Iterable[str]) -> list[str]:
        """Names of required fields that are empty or invalid."""
        missing = []
        if not self.contact_email.strip():
            missing.append("contact_email")
        for name in REQUIRED_ADDRESS_FIELDS:
            if not getattr(self.shipping_address, name).strip():
                missing.append(name)
        option_id = self.selected_shipping_option_id
        if not option_id or option_id not in set(shipping_option_ids):
            missing.append("shipping_option")
        return missing

    def to_cart_fields(self) -> dict[str, Any]:
        """Email plus shipping address (reused as billing address) for the cart."""
        address = self.shipping_address.model_dump()
        return {
            "email": self.contact_email.strip(),
            "shipping_address": address,
            "billing_address": dict(address),
        }
