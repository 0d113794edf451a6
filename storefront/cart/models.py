"""CartSession - authoritative mirror of one remote cart."""
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from storefront.models import LineItem, Region, Totals
from storefront.payments.constants import PaymentSessionStatus

_TOTAL_FIELDS = ("subtotal", "shipping_total", "tax_total", "total")


class PaymentSession(BaseModel):
    """Provider-scoped payment attempt on the cart."""
    id: str
    provider_id: str
    status: PaymentSessionStatus = PaymentSessionStatus.NOT_INITIATED
    amount: Optional[int] = None
    data: dict[str, Any] = {}

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if v is None:
            return PaymentSessionStatus.NOT_INITIATED
        try:
            return PaymentSessionStatus(str(v).lower())
        except ValueError:
            # Provider-specific statuses we do not model
            return PaymentSessionStatus.ERROR

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v):
        return v or {}

    @property
    def client_secret(self) -> Optional[str]:
        """Confirmation secret issued by the provider, if any."""
        return self.data.get("client_secret") or None

    @property
    def is_pending(self) -> bool:
        return self.status is PaymentSessionStatus.PENDING


class PaymentCollection(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    payment_sessions: list[PaymentSession] = []

    @field_validator("payment_sessions", mode="before")
    @classmethod
    def default_sessions(cls, v):
        return v or []


class CartSession(BaseModel):
    """
    Cart as last returned by the commerce backend.

    Never patched locally: every mutation replaces the whole object with
    the backend's response. ``totals`` stays None until the backend has
    reported them; callers must treat that as "not yet known", not zero.
    """
    id: str
    items: list[LineItem] = []
    region_id: Optional[str] = None
    region: Optional[Region] = None
    email: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None
    shipping_methods: list[dict[str, Any]] = []
    totals: Optional[Totals] = None
    payment_collection: Optional[PaymentCollection] = None
    completed_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def collect_totals(cls, data):
        if not isinstance(data, dict) or "totals" in data:
            return data
        if data.get("total") is None:
            return data
        data = dict(data)
        data["totals"] = {name: data.get(name) for name in _TOTAL_FIELDS}
        return data

    @field_validator("items", "shipping_methods", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CartSession":
        """Build from a backend cart payload."""
        return cls.model_validate(data)

    @property
    def currency_code(self) -> str:
        if self.region and self.region.currency_code:
            return self.region.currency_code
        return "usd"

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        """Total number of units in the cart."""
        return sum(item.quantity for item in self.items)

    @property
    def estimated_subtotal(self) -> int:
        """Local estimate for display only while no server totals exist."""
        return sum(item.unit_price * item.quantity for item in self.items)

    @property
    def payment_sessions(self) -> list[PaymentSession]:
        if self.payment_collection is None:
            return []
        return self.payment_collection.payment_sessions

    def find_item(self, line_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.id == line_id), None)

    def pending_payment_session(self, provider_id: Optional[str] = None) -> Optional[PaymentSession]:
        """First pending payment session, optionally for one provider."""
        return next(
            (
                session
                for session in self.payment_sessions
                if session.is_pending and (provider_id is None or session.provider_id == provider_id)
            ),
            None,
        )
