"""Catalog facade over the commerce gateway: products and placed orders."""
from typing import TYPE_CHECKING, Optional

from storefront.errors import GatewayError
from storefront.logging import get_logger
from storefront.models import Order, Product, ProductVariant, VariantPrice

if TYPE_CHECKING:
    from storefront.services.commerce import CommerceGateway

logger = get_logger(__name__)


class CatalogService:
    """Read-only catalog access for the presentation layer."""

    def __init__(self, gateway: Optional["CommerceGateway"] = None):
        self._gateway = gateway

    @property
    def gateway(self) -> "CommerceGateway":
        if self._gateway is None:
            from storefront.services.commerce import get_commerce_gateway

            self._gateway = get_commerce_gateway()
        return self._gateway

    async def list_products(self, limit: int = 100) -> list[Product]:
        return await self.gateway.list_products(limit=limit)

    async def get_product(self, handle_or_id: str) -> Optional[Product]:
        """
        Find a product by handle, falling back to lookup by id.

        Returns:
            The product, or None if neither lookup finds it
        """
        try:
            products = await self.gateway.list_products(handle=handle_or_id, limit=1)
        except GatewayError as e:
            logger.warning("Product lookup by handle %s failed: %s", handle_or_id, e.message)
            products = []
        if products:
            return products[0]

        try:
            return await self.gateway.retrieve_product(handle_or_id)
        except GatewayError as e:
            if e.status_code == 404:
                return None
            raise

    async def get_order(self, order_id: str) -> Order:
        """Placed order for confirmation display."""
        return await self.gateway.retrieve_order(order_id)

    @staticmethod
    def default_variant(product: Product) -> Optional[ProductVariant]:
        return product.variants[0] if product.variants else None

    @staticmethod
    def variant_price(variant: ProductVariant) -> Optional[VariantPrice]:
        """First listed price, else the region-calculated price."""
        if variant.prices:
            return variant.prices[0]

        calculated = variant.calculated_price
        if isinstance(calculated, dict):
            amount = calculated.get("calculated_amount", calculated.get("amount"))
            if amount is None:
                return None
            return VariantPrice(amount=amount, currency_code=calculated.get("currency_code") or "usd")
        if isinstance(calculated, (int, float)):
            return VariantPrice(amount=calculated)
        return None
