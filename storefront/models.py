"""
Wire Models - Pydantic schemas for commerce backend resources.

Amounts are integers in minor currency units. Unknown fields returned by
the backend are ignored.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from storefront.money import to_decimal


def _to_minor(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Region(BaseModel):
    """Currency and locale context for price formatting."""
    id: str
    name: Optional[str] = None
    currency_code: str = "usd"


class LineItem(BaseModel):
    """One (variant, quantity) pairing within a cart or order."""
    id: str
    variant_id: Optional[str] = None
    title: str = ""
    thumbnail: Optional[str] = None
    unit_price: int = 0
    quantity: int = Field(ge=1)
    line_total: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("line_total", "total")
    )

    @field_validator("unit_price", mode="before")
    @classmethod
    def convert_unit_price(cls, v):
        return _to_minor(v) or 0

    @field_validator("line_total", mode="before")
    @classmethod
    def convert_line_total(cls, v):
        return _to_minor(v)

    @property
    def display_total(self) -> int:
        """Server line total, or unit price x quantity while none is known."""
        if self.line_total is not None:
            return self.line_total
        return self.unit_price * self.quantity


class Totals(BaseModel):
    """Server-computed cart totals."""
    subtotal: int = 0
    shipping_total: int = 0
    tax_total: int = 0
    total: int = 0

    @field_validator("subtotal", "shipping_total", "tax_total", "total", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return _to_minor(v) or 0


class Address(BaseModel):
    """Structured postal address, forwarded verbatim to the backend."""
    first_name: str = ""
    last_name: str = ""
    address_1: str = ""
    city: str = ""
    postal_code: str = ""
    country_code: str = "us"
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class VariantPrice(BaseModel):
    amount: int
    currency_code: str = "usd"

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return _to_minor(v)


class ProductVariant(BaseModel):
    """Purchasable variant of a product."""
    id: str
    title: str = ""
    sku: Optional[str] = None
    prices: list[VariantPrice] = []
    calculated_price: Any = None  # number or {"calculated_amount", "currency_code"}
    inventory_quantity: Optional[int] = None


class Product(BaseModel):
    """Catalog product."""
    id: str
    title: str
    handle: str = ""
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    variants: list[ProductVariant] = []


class ShippingOption(BaseModel):
    """Shipping option available for a cart."""
    id: str
    name: str = ""
    amount: int = 0

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return _to_minor(v) or 0


class Order(BaseModel):
    """Read-only order projection for confirmation display."""
    id: str
    display_id: Optional[int] = None
    email: Optional[str] = None
    currency_code: str = "usd"
    items: list[LineItem] = []
    shipping_address: Optional[Address] = None
    total: Optional[int] = None

    @field_validator("total", mode="before")
    @classmethod
    def convert_total(cls, v):
        return _to_minor(v)


class CompletionResult(BaseModel):
    """Cart completion response, tagged by outcome kind."""
    type: str
    order: Optional[Order] = None
    cart: Optional[dict[str, Any]] = None
    error: Any = None

    @property
    def error_message(self) -> Optional[str]:
        if isinstance(self.error, dict):
            return self.error.get("message")
        if self.error:
            return str(self.error)
        return None
