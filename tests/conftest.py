"""Pytest configuration and fixtures"""
import os
import itertools
from typing import Any, Dict, List, Optional

import pytest

# Set test environment variables before storefront modules read them
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_123")
os.environ.setdefault("STOREFRONT_SESSION_BACKEND", "memory")
os.environ.setdefault("MEDUSA_BASE_URL", "http://medusa.test")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://redis.test")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from storefront.cart import CartSession, CartSessionManager, InMemorySessionStore
from storefront.checkout import CheckoutOrchestrator
from storefront.errors import GatewayError
from storefront.models import CompletionResult, ShippingOption
from storefront.payments.constants import PaymentConfirmationStatus
from storefront.services.payments import PaymentConfirmation, PaymentConfirmationProvider


VARIANTS = {
    "variant_1": {"title": "Medusa T-Shirt", "unit_price": 500},
    "variant_2": {"title": "Medusa Hoodie", "unit_price": 2500},
}

SHIPPING_OPTIONS = [
    {"id": "so_standard", "name": "Standard Shipping", "amount": 800},
    {"id": "so_express", "name": "Express Shipping", "amount": 1500},
]


class FakeCommerceGateway:
    """In-memory commerce backend computing totals the way the real one does."""

    def __init__(self):
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, GatewayError] = {}
        self.issue_client_secret = True
        self.completion_type = "order"
        self.shipping_options = [dict(o) for o in SHIPPING_OPTIONS]
        self._ids = itertools.count(1)

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _get(self, cart_id: str) -> Dict[str, Any]:
        if cart_id not in self.carts:
            raise GatewayError(f"Cart with id: {cart_id} was not found", status_code=404)
        return self.carts[cart_id]

    def _recalculate(self, cart: Dict[str, Any]) -> CartSession:
        for item in cart["items"]:
            item["total"] = item["unit_price"] * item["quantity"]
        subtotal = sum(item["total"] for item in cart["items"])
        shipping = sum(m["amount"] for m in cart["shipping_methods"])
        cart.update(subtotal=subtotal, shipping_total=shipping, tax_total=0, total=subtotal + shipping)
        return CartSession.from_api(cart)

    async def retrieve_cart(self, cart_id):
        self._record("retrieve_cart", cart_id)
        return self._recalculate(self._get(cart_id))

    async def create_cart(self, region_id=None):
        self._record("create_cart", region_id)
        cart_id = f"cart_{next(self._ids)}"
        self.carts[cart_id] = {
            "id": cart_id,
            "region": {"id": region_id or "reg_us", "currency_code": "usd"},
            "items": [],
            "shipping_methods": [],
            "payment_collection": None,
        }
        return self._recalculate(self.carts[cart_id])

    async def update_cart(self, cart_id, fields):
        self._record("update_cart", cart_id, fields)
        cart = self._get(cart_id)
        cart.update(fields)
        return self._recalculate(cart)

    async def add_line_item(self, cart_id, variant_id, quantity=1):
        self._record("add_line_item", cart_id, variant_id, quantity)
        cart = self._get(cart_id)
        if variant_id not in VARIANTS:
            raise GatewayError(f"Variant {variant_id} is not available", status_code=400)
        existing = next((i for i in cart["items"] if i["variant_id"] == variant_id), None)
        if existing:
            existing["quantity"] += quantity
        else:
            cart["items"].append({
                "id": f"item_{next(self._ids)}",
                "variant_id": variant_id,
                "quantity": quantity,
                **VARIANTS[variant_id],
            })
        return self._recalculate(cart)

    async def update_line_item(self, cart_id, line_id, quantity):
        self._record("update_line_item", cart_id, line_id, quantity)
        cart = self._get(cart_id)
        for item in cart["items"]:
            if item["id"] == line_id:
                item["quantity"] = quantity
        return self._recalculate(cart)

    async def delete_line_item(self, cart_id, line_id):
        self._record("delete_line_item", cart_id, line_id)
        cart = self._get(cart_id)
        cart["items"] = [i for i in cart["items"] if i["id"] != line_id]
        return self._recalculate(cart)

    async def list_shipping_options(self, cart_id):
        self._record("list_shipping_options", cart_id)
        return [ShippingOption.model_validate(o) for o in self.shipping_options]

    async def add_shipping_method(self, cart_id, option_id):
        self._record("add_shipping_method", cart_id, option_id)
        cart = self._get(cart_id)
        option = next(o for o in self.shipping_options if o["id"] == option_id)
        cart["shipping_methods"] = [{"shipping_option_id": option_id, "amount": option["amount"]}]
        return self._recalculate(cart)

    async def initiate_payment_session(self, cart_id, provider_id):
        self._record("initiate_payment_session", cart_id, provider_id)
        cart = self._get(cart_id)
        collection = cart.get("payment_collection") or {"id": "paycol_1", "payment_sessions": []}
        sessions = [s for s in collection["payment_sessions"] if s["provider_id"] != provider_id]
        data = {}
        if provider_id.startswith("pp_stripe") and self.issue_client_secret:
            data["client_secret"] = f"pi_{next(self._ids)}_secret_abc"
        sessions.append({
            "id": f"payses_{next(self._ids)}",
            "provider_id": provider_id,
            "status": "pending",
            "data": data,
        })
        collection["payment_sessions"] = sessions
        cart["payment_collection"] = collection
        return {"payment_collection": collection}

    async def complete_cart(self, cart_id):
        self._record("complete_cart", cart_id)
        cart = self._get(cart_id)
        if self.completion_type != "order":
            return CompletionResult.model_validate({
                "type": self.completion_type,
                "cart": cart,
                "error": {"message": "Payment sessions are not authorized"},
            })
        return CompletionResult.model_validate({
            "type": "order",
            "order": {"id": "order_01", "display_id": 1, "email": cart.get("email"), "items": cart["items"]},
        })


class FakeConfirmationProvider(PaymentConfirmationProvider):
    """Confirmation provider returning a configurable status."""

    def __init__(self, status: PaymentConfirmationStatus = PaymentConfirmationStatus.SUCCEEDED):
        self.status = status
        self.calls: List[tuple] = []

    async def confirm_payment(self, client_secret, payment_method, billing_details):
        self.calls.append((client_secret, payment_method, billing_details))
        message: Optional[str] = None
        if self.status is PaymentConfirmationStatus.FAILED:
            message = "Your card was declined."
        return PaymentConfirmation(status=self.status, intent_id=client_secret.split("_secret_")[0], message=message)


@pytest.fixture
def fake_gateway():
    """In-memory commerce gateway"""
    return FakeCommerceGateway()


@pytest.fixture
def session_store():
    """Empty in-memory session store"""
    return InMemorySessionStore()


@pytest.fixture
def cart_manager(fake_gateway, session_store):
    """Cart manager wired to the fake gateway"""
    return CartSessionManager(gateway=fake_gateway, store=session_store)


@pytest.fixture
def confirmation_provider():
    """Confirmation provider that succeeds by default"""
    return FakeConfirmationProvider()


@pytest.fixture
def checkout(cart_manager, fake_gateway, confirmation_provider):
    """Checkout orchestrator over the fake backend"""
    return CheckoutOrchestrator(
        cart_manager,
        gateway=fake_gateway,
        confirmation_provider=confirmation_provider,
    )


@pytest.fixture
def sample_cart_payload():
    """Backend cart payload"""
    return {
        "id": "cart_123",
        "email": "shopper@example.com",
        "region": {"id": "reg_us", "name": "US", "currency_code": "usd"},
        "items": [
            {
                "id": "item_1",
                "variant_id": "variant_1",
                "title": "Medusa T-Shirt",
                "unit_price": 500,
                "quantity": 2,
                "total": 1000,
            }
        ],
        "shipping_methods": [],
        "subtotal": 1000,
        "shipping_total": 0,
        "tax_total": 0,
        "total": 1000,
        "payment_collection": {
            "id": "paycol_1",
            "payment_sessions": [
                {
                    "id": "payses_1",
                    "provider_id": "pp_stripe_stripe",
                    "status": "pending",
                    "data": {"client_secret": "pi_123_secret_abc"},
                }
            ],
        },
    }
