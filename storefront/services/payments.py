"""Payment Confirmation Providers.

Confirmation-required payment providers hand the storefront a client
secret on the cart's pending payment session. The provider adapter uses
that secret to confirm the payment and reports a terminal or intermediate
status; it never completes the order itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from storefront.config import STRIPE_API_URL, get_stripe_publishable_key
from storefront.errors import ConfigurationError, PaymentError
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import Address
from storefront.payments.constants import CONFIRMED_STATES, PaymentConfirmationStatus

logger = get_logger(__name__)

CLIENT_SECRET_SEPARATOR = "_secret_"

# Stripe PaymentIntent status -> confirmation outcome
STRIPE_STATUS_MAP: dict[str, PaymentConfirmationStatus] = {
    "succeeded": PaymentConfirmationStatus.SUCCEEDED,
    "requires_capture": PaymentConfirmationStatus.REQUIRES_CAPTURE,
    "requires_action": PaymentConfirmationStatus.REQUIRES_ACTION,
    "requires_confirmation": PaymentConfirmationStatus.REQUIRES_ACTION,
    "processing": PaymentConfirmationStatus.REQUIRES_ACTION,
    "requires_payment_method": PaymentConfirmationStatus.FAILED,
    "canceled": PaymentConfirmationStatus.FAILED,
}


@dataclass
class BillingDetails:
    """Billing details sent along with a card confirmation."""
    name: str
    email: str
    line1: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""

    @classmethod
    def from_address(cls, email: str, address: Address) -> "BillingDetails":
        return cls(
            name=address.full_name,
            email=email,
            line1=address.address_1,
            city=address.city,
            postal_code=address.postal_code,
            country=(address.country_code or "").upper(),
        )

    def to_form(self, prefix: str) -> dict[str, str]:
        """Flatten into Stripe's bracketed form-field notation."""
        fields = {
            f"{prefix}[name]": self.name,
            f"{prefix}[email]": self.email,
            f"{prefix}[address][line1]": self.line1,
            f"{prefix}[address][city]": self.city,
            f"{prefix}[address][postal_code]": self.postal_code,
            f"{prefix}[address][country]": self.country,
        }
        return {key: value for key, value in fields.items() if value}


@dataclass
class PaymentConfirmation:
    """Result of a confirmation attempt."""
    status: PaymentConfirmationStatus
    intent_id: Optional[str] = None
    message: Optional[str] = None
    raw_response: Any = None

    @property
    def is_confirmed(self) -> bool:
        return self.status.value in CONFIRMED_STATES


class PaymentConfirmationProvider(ABC):
    """Interface for client-side payment confirmation."""

    @abstractmethod
    async def confirm_payment(
        self,
        client_secret: str,
        payment_method: str,
        billing_details: BillingDetails,
    ) -> PaymentConfirmation:
        """
        Confirm a payment using the provider-issued secret.

        Args:
            client_secret: Secret from the cart's pending payment session
            payment_method: Payment method or card token collected by the
                presentation layer
            billing_details: Name, email and address of the payer

        Returns:
            PaymentConfirmation with the provider's outcome

        Raises:
            PaymentError: If the provider could not be reached
        """


class StripeConfirmationProvider(PaymentConfirmationProvider):
    """Confirms PaymentIntents through the Stripe REST API with a publishable key."""

    def __init__(
        self,
        publishable_key: Optional[str] = None,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.publishable_key = publishable_key or get_stripe_publishable_key()
        self.api_url = (api_url or STRIPE_API_URL).rstrip("/")

        # HTTP client (lazy init)
        self._http_client: httpx.AsyncClient | None = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(20.0, connect=5.0),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def _intent_id(client_secret: str) -> str:
        intent_id, separator, _ = client_secret.partition(CLIENT_SECRET_SEPARATOR)
        if not separator or not intent_id:
            raise PaymentError("Invalid payment client secret", code="INVALID_CLIENT_SECRET")
        return intent_id

    @staticmethod
    def _build_form(
        client_secret: str, payment_method: str, billing_details: BillingDetails
    ) -> dict[str, str]:
        form = {"client_secret": client_secret}
        if payment_method.startswith("tok_"):
            # Raw card token: wrap it in a new PaymentMethod with billing details
            form["payment_method_data[type]"] = "card"
            form["payment_method_data[card][token]"] = payment_method
            form.update(billing_details.to_form("payment_method_data[billing_details]"))
        else:
            form["payment_method"] = payment_method
        return form

    async def confirm_payment(
        self,
        client_secret: str,
        payment_method: str,
        billing_details: BillingDetails,
    ) -> PaymentConfirmation:
        if not self.publishable_key:
            raise ConfigurationError("Stripe is not configured. Set STRIPE_PUBLISHABLE_KEY")

        intent_id = self._intent_id(client_secret)
        form = self._build_form(client_secret, payment_method, billing_details)

        logger.info("Confirming payment intent %s", sanitize_id_for_logging(intent_id))

        client = await self._get_http_client()
        try:
            response = await client.post(
                f"{self.api_url}/payment_intents/{intent_id}/confirm",
                data=form,
                headers={"Authorization": f"Bearer {self.publishable_key}"},
            )
        except httpx.RequestError as e:
            logger.warning("Stripe network error for intent %s: %s", sanitize_id_for_logging(intent_id), e)
            raise PaymentError(f"Failed to connect to payment provider: {e!s}", raw_error=e)

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 500:
            logger.error("Stripe API error %s for intent %s", response.status_code, sanitize_id_for_logging(intent_id))
            raise PaymentError("Payment provider is unavailable", raw_error=data)

        if response.is_error:
            error = data.get("error", {}) if isinstance(data, dict) else {}
            message = error.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "Stripe confirmation rejected for intent %s: %s",
                sanitize_id_for_logging(intent_id),
                error.get("code") or error.get("type"),
            )
            intent = error.get("payment_intent") or {}
            # An intent confirmed by an earlier attempt reports its own status here
            status = STRIPE_STATUS_MAP.get(intent.get("status", ""), PaymentConfirmationStatus.FAILED)
            return PaymentConfirmation(status=status, intent_id=intent_id, message=message, raw_response=data)

        raw_status = str(data.get("status", ""))
        status = STRIPE_STATUS_MAP.get(raw_status, PaymentConfirmationStatus.FAILED)
        logger.info("Payment intent %s confirmed with status=%s", sanitize_id_for_logging(intent_id), raw_status)

        message = None
        last_error = data.get("last_payment_error")
        if isinstance(last_error, dict):
            message = last_error.get("message")

        return PaymentConfirmation(status=status, intent_id=intent_id, message=message, raw_response=data)


# Singleton instance
_confirmation_provider: Optional[PaymentConfirmationProvider] = None


def get_confirmation_provider() -> PaymentConfirmationProvider:
    """Get the default (Stripe) confirmation provider singleton."""
    global _confirmation_provider
    if _confirmation_provider is None:
        _confirmation_provider = StripeConfirmationProvider()
    return _confirmation_provider
