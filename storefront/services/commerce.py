"""Commerce Gateway - async client for the Medusa store API.

Every call returns the backend's authoritative resource or raises
GatewayError. Reads are retried on transient failures; writes are not,
so a lost response never duplicates a line item.
"""

from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from storefront import config
from storefront.cart.models import CartSession
from storefront.errors import GatewayError
from storefront.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from storefront.models import CompletionResult, Order, Product, Region, ShippingOption

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, GatewayError) and error.retryable


def _error_message(response: httpx.Response) -> str:
    """Extract the backend's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}"


class CommerceGateway:
    """HTTP client for cart, catalog, checkout and order endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        publishable_key: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        retry_backoff: float = 0.5,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or config.MEDUSA_BASE_URL).rstrip("/")
        self.publishable_key = (
            publishable_key if publishable_key is not None else config.MEDUSA_PUBLISHABLE_API_KEY
        )
        self.max_retries = config.MEDUSA_MAX_RETRIES if max_retries is None else max_retries
        self.timeout = timeout or config.MEDUSA_TIMEOUT_SECONDS
        self.retry_backoff = retry_backoff

        # HTTP client (lazy init)
        self._http_client: httpx.AsyncClient | None = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.publishable_key:
            headers["x-publishable-api-key"] = self.publishable_key
        return headers

    # ==================== TRANSPORT ====================

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        client = await self._get_http_client()
        try:
            response = await client.request(
                method, f"{self.base_url}{path}", headers=self._headers(), json=json, params=params
            )
        except httpx.TimeoutException as e:
            logger.warning("Commerce gateway timeout: %s %s", method, path)
            raise GatewayError("Commerce backend timed out", retryable=True, raw_error=e)
        except httpx.RequestError as e:
            logger.warning("Commerce gateway network error: %s %s: %s", method, path, e)
            raise GatewayError(
                f"Failed to connect to commerce backend: {e!s}", retryable=True, raw_error=e
            )

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "Commerce gateway error %s for %s %s: %s",
                response.status_code,
                method,
                path,
                sanitize_string_for_logging(message, 200),
            )
            raise GatewayError(
                message,
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError("Invalid JSON from commerce backend", raw_error=e)
        return data if isinstance(data, dict) else {}

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if method != "GET" or self.max_retries <= 0:
            return await self._send(method, path, json=json, params=params)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_backoff, max=4),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        return await retrying(self._send, method, path, json=json, params=params)

    @staticmethod
    def _cart_from(data: dict[str, Any]) -> CartSession:
        # Line item deletion nests the cart under "parent"
        payload = data.get("cart") or data.get("parent")
        if not isinstance(payload, dict):
            raise GatewayError("Cart missing in commerce backend response", raw_error=data)
        try:
            return CartSession.from_api(payload)
        except ValidationError as e:
            raise GatewayError("Malformed cart in commerce backend response", raw_error=e)

    # ==================== CARTS ====================

    async def retrieve_cart(self, cart_id: str) -> CartSession:
        data = await self._request("GET", f"/store/carts/{cart_id}")
        return self._cart_from(data)

    async def create_cart(self, region_id: Optional[str] = None) -> CartSession:
        body: dict[str, Any] = {}
        if region_id:
            body["region_id"] = region_id
        data = await self._request("POST", "/store/carts", json=body)
        cart = self._cart_from(data)
        logger.info("Cart created: %s", sanitize_id_for_logging(cart.id))
        return cart

    async def update_cart(self, cart_id: str, fields: dict[str, Any]) -> CartSession:
        data = await self._request("POST", f"/store/carts/{cart_id}", json=fields)
        return self._cart_from(data)

    async def add_line_item(self, cart_id: str, variant_id: str, quantity: int = 1) -> CartSession:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/line-items",
            json={"variant_id": variant_id, "quantity": quantity},
        )
        return self._cart_from(data)

    async def update_line_item(self, cart_id: str, line_id: str, quantity: int) -> CartSession:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/line-items/{line_id}",
            json={"quantity": quantity},
        )
        return self._cart_from(data)

    async def delete_line_item(self, cart_id: str, line_id: str) -> CartSession:
        data = await self._request("DELETE", f"/store/carts/{cart_id}/line-items/{line_id}")
        return self._cart_from(data)

    # ==================== CHECKOUT ====================

    async def list_shipping_options(self, cart_id: str) -> list[ShippingOption]:
        data = await self._request("GET", "/store/shipping-options", params={"cart_id": cart_id})
        return [ShippingOption.model_validate(o) for o in data.get("shipping_options", [])]

    async def add_shipping_method(self, cart_id: str, option_id: str) -> CartSession:
        data = await self._request(
            "POST",
            f"/store/carts/{cart_id}/shipping-methods",
            json={"option_id": option_id},
        )
        return self._cart_from(data)

    async def initiate_payment_session(self, cart_id: str, provider_id: str) -> dict[str, Any]:
        """Create or replace the provider's payment session on the cart."""
        logger.info(
            "Initiating payment session: cart=%s provider=%s",
            sanitize_id_for_logging(cart_id),
            provider_id,
        )
        return await self._request(
            "POST",
            f"/store/carts/{cart_id}/payment-sessions",
            json={"provider_id": provider_id},
        )

    async def complete_cart(self, cart_id: str) -> CompletionResult:
        data = await self._request("POST", f"/store/carts/{cart_id}/complete")
        result = CompletionResult.model_validate(data)
        logger.info(
            "Cart completion for %s returned type=%s", sanitize_id_for_logging(cart_id), result.type
        )
        return result

    # ==================== CATALOG & ORDERS ====================

    async def list_products(
        self, limit: int = 100, offset: int = 0, handle: Optional[str] = None
    ) -> list[Product]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if handle:
            params["handle"] = handle
        data = await self._request("GET", "/store/products", params=params)
        return [Product.model_validate(p) for p in data.get("products", [])]

    async def retrieve_product(self, product_id: str) -> Product:
        data = await self._request("GET", f"/store/products/{product_id}")
        if not data.get("product"):
            raise GatewayError(f"Product {product_id} not found", status_code=404)
        return Product.model_validate(data["product"])

    async def retrieve_order(self, order_id: str) -> Order:
        data = await self._request("GET", f"/store/orders/{order_id}")
        if not data.get("order"):
            raise GatewayError(f"Order {order_id} not found", status_code=404)
        return Order.model_validate(data["order"])

    async def list_regions(self) -> list[Region]:
        data = await self._request("GET", "/store/regions")
        return [Region.model_validate(r) for r in data.get("regions", [])]


# Singleton instance
_commerce_gateway: Optional[CommerceGateway] = None


def get_commerce_gateway() -> CommerceGateway:
    """Get CommerceGateway singleton."""
    global _commerce_gateway
    if _commerce_gateway is None:
        _commerce_gateway = CommerceGateway()
    return _commerce_gateway
