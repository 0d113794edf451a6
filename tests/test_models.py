"""
Tests for wire models and the cart mirror
"""

import pytest
from pydantic import ValidationError

from storefront.cart import CartSession, PaymentSession
from storefront.checkout import CheckoutDraft
from storefront.models import Address, CompletionResult, LineItem, Totals
from storefront.payments.constants import PaymentSessionStatus


class TestLineItem:
    """Tests for LineItem."""

    def test_total_alias(self):
        item = LineItem.model_validate(
            {"id": "item_1", "unit_price": 500, "quantity": 2, "total": 1000}
        )
        assert item.line_total == 1000
        assert item.display_total == 1000

    def test_display_total_without_server_total(self):
        item = LineItem(id="item_1", unit_price=500, quantity=3)
        assert item.line_total is None
        assert item.display_total == 1500

    def test_amounts_rounded_to_integers(self):
        item = LineItem.model_validate({"id": "item_1", "unit_price": "499.6", "quantity": 1})
        assert item.unit_price == 500

    def test_missing_unit_price_is_zero(self):
        item = LineItem.model_validate({"id": "item_1", "unit_price": None, "quantity": 1})
        assert item.unit_price == 0

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            LineItem(id="item_1", quantity=0)


class TestCartSession:
    """Tests for CartSession parsing."""

    def test_from_api(self, sample_cart_payload):
        cart = CartSession.from_api(sample_cart_payload)

        assert cart.id == "cart_123"
        assert cart.currency_code == "usd"
        assert cart.item_count == 2
        assert cart.totals == Totals(subtotal=1000, shipping_total=0, tax_total=0, total=1000)
        assert cart.find_item("item_1").quantity == 2
        assert cart.find_item("missing") is None

    def test_totals_unknown_until_reported(self):
        """A cart without server totals has totals=None, not zero."""
        cart = CartSession.from_api({"id": "cart_1", "items": None})

        assert cart.totals is None
        assert cart.is_empty
        assert cart.item_count == 0

    def test_estimated_subtotal(self, sample_cart_payload):
        cart = CartSession.from_api(sample_cart_payload)
        assert cart.estimated_subtotal == 1000

    def test_unknown_fields_ignored(self, sample_cart_payload):
        sample_cart_payload["sales_channel_id"] = "sc_1"
        sample_cart_payload["promotions"] = []
        cart = CartSession.from_api(sample_cart_payload)
        assert not hasattr(cart, "sales_channel_id")

    def test_pending_payment_session(self, sample_cart_payload):
        cart = CartSession.from_api(sample_cart_payload)

        session = cart.pending_payment_session("pp_stripe_stripe")
        assert session.client_secret == "pi_123_secret_abc"
        assert cart.pending_payment_session("pp_system_default") is None

    def test_no_payment_collection(self):
        cart = CartSession.from_api({"id": "cart_1"})
        assert cart.payment_sessions == []
        assert cart.pending_payment_session() is None


class TestPaymentSession:
    """Tests for payment session status normalization."""

    def test_unknown_status_is_error(self):
        session = PaymentSession.model_validate(
            {"id": "ps_1", "provider_id": "pp_x", "status": "requires_more"}
        )
        assert session.status is PaymentSessionStatus.ERROR

    def test_missing_status(self):
        session = PaymentSession.model_validate({"id": "ps_1", "provider_id": "pp_x", "status": None})
        assert session.status is PaymentSessionStatus.NOT_INITIATED
        assert session.client_secret is None

    def test_status_case_insensitive(self):
        session = PaymentSession.model_validate({"id": "ps_1", "provider_id": "pp_x", "status": "PENDING"})
        assert session.is_pending


class TestCheckoutDraft:
    """Tests for draft validation."""

    def test_empty_draft_missing_everything(self):
        missing = CheckoutDraft().missing_fields([])
        assert missing == [
            "contact_email",
            "first_name",
            "last_name",
            "address_1",
            "city",
            "postal_code",
            "shipping_option",
        ]

    def test_whitespace_is_empty(self):
        draft = CheckoutDraft(
            contact_email="  ",
            shipping_address=Address(
                first_name="Ada", last_name="Lovelace", address_1="1 Main St", city="London", postal_code="N1"
            ),
            selected_shipping_option_id="so_standard",
        )
        assert draft.missing_fields(["so_standard"]) == ["contact_email"]

    def test_selected_option_must_be_offered(self):
        draft = CheckoutDraft(selected_shipping_option_id="so_gone")
        assert "shipping_option" in draft.missing_fields(["so_standard"])

    def test_to_cart_fields_reuses_address_for_billing(self):
        draft = CheckoutDraft(
            contact_email=" ada@example.com ",
            shipping_address=Address(first_name="Ada", city="London"),
        )
        fields = draft.to_cart_fields()

        assert fields["email"] == "ada@example.com"
        assert fields["billing_address"] == fields["shipping_address"]
        assert fields["shipping_address"]["first_name"] == "Ada"


class TestCompletionResult:
    """Tests for CompletionResult."""

    def test_order_result(self):
        result = CompletionResult.model_validate({"type": "order", "order": {"id": "order_1", "total": 1800}})
        assert result.order.id == "order_1"
        assert result.error_message is None

    def test_cart_result_error_message(self):
        result = CompletionResult.model_validate(
            {"type": "cart", "cart": {"id": "cart_1"}, "error": {"message": "Payment not authorized"}}
        )
        assert result.order is None
        assert result.error_message == "Payment not authorized"
