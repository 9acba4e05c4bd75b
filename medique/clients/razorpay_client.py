"""
Razorpay API Client

Async client for the Razorpay Orders API using HTTP basic auth
(key id / key secret).

Endpoints:
    - POST /v1/orders - Create an order
    - GET /v1/orders/{id} - Fetch an order and its status

The appointment id is sent as the order ``receipt`` so that a paid order
can be traced back to the appointment it settles.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class RazorpayError(Exception):
    """
    Base exception for Razorpay errors.

    Attributes:
        error_code: Machine-readable error code
        error_message: Human-readable error description
    """

    def __init__(self, error_code: str, error_message: str):
        self.error_code = error_code
        self.error_message = error_message
        super().__init__(f"{error_code}: {error_message}")


class RazorpayAuthError(RazorpayError):
    """Authentication error (invalid key id / secret)."""

    def __init__(self, message: str = "Invalid API credentials"):
        super().__init__("AUTH_ERROR", message)


class RazorpayConnectionError(RazorpayError):
    """Network connectivity issues."""

    def __init__(self, message: str):
        super().__init__("CONNECTION_ERROR", message)


class RazorpayValidationError(RazorpayError):
    """Request validation error."""

    def __init__(self, message: str):
        super().__init__("VALIDATION_ERROR", message)


class RazorpayClient:
    """
    Async HTTP client for the Razorpay Orders API.

    Example:
        async with RazorpayClient() as client:
            order = await client.create_order(
                amount=50000,
                currency="INR",
                receipt="42",
            )
            status = (await client.fetch_order(order["id"]))["status"]
    """

    BASE_URL = "https://api.razorpay.com"

    def __init__(self):
        self._key_id = settings.RAZORPAY_KEY_ID
        self._key_secret = settings.RAZORPAY_KEY_SECRET
        self._timeout = settings.RAZORPAY_TIMEOUT
        self._client: httpx.AsyncClient | None = None

        if not self._key_id or not self._key_secret:
            logger.error("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not configured")

    async def __aenter__(self) -> RazorpayClient:
        """Enter async context and create HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            auth=(self._key_id or "", self._key_secret or ""),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context and close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _check_response(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            raise RazorpayAuthError("Invalid or revoked API key")

        if response.status_code == 400:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            raise RazorpayValidationError(error.get("description", "Validation error"))

        if response.status_code == 404:
            raise RazorpayError("NOT_FOUND", "Order not found")

        if response.is_error:
            raise RazorpayError("API_ERROR", f"Razorpay returned HTTP {response.status_code}")

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if not self._client:
            raise RazorpayError("CLIENT_NOT_INITIALIZED", "Client not initialized. Use 'async with' context.")

        try:
            response = await self._client.request(method, path, **kwargs)
            self._check_response(response)
            return response.json()

        except httpx.ConnectError as e:
            logger.error(f"Razorpay connection error: {e}")
            raise RazorpayConnectionError(f"Could not connect to Razorpay: {e}") from e

        except httpx.TimeoutException as e:
            logger.error(f"Razorpay timeout error: {e}")
            raise RazorpayConnectionError(f"Razorpay request timed out: {e}") from e

        except httpx.HTTPError as e:
            logger.error(f"Razorpay HTTP error: {e}")
            raise RazorpayError("HTTP_ERROR", str(e)) from e

        except ValueError as e:
            # Body of a 2xx response was not JSON
            logger.error(f"Razorpay returned an unreadable body for {method} {path}: {e}")
            raise RazorpayError("INVALID_RESPONSE", "Unreadable response from Razorpay") from e

    async def create_order(self, amount: int, currency: str, receipt: str) -> dict[str, Any]:
        """
        Create an order.

        Args:
            amount: Amount in the currency's minor unit (paise for INR)
            currency: ISO currency code
            receipt: Correlation reference stored on the order

        Returns:
            The order object (id, amount, currency, receipt, status, ...)

        Raises:
            RazorpayAuthError: Invalid credentials
            RazorpayValidationError: Invalid request parameters
            RazorpayConnectionError: Network error
            RazorpayError: Any other gateway failure
        """
        if amount <= 0:
            raise RazorpayValidationError("Amount must be greater than zero")

        payload = {"amount": amount, "currency": currency, "receipt": receipt}
        logger.info(f"Creating Razorpay order: amount={amount} {currency}, receipt={receipt}")

        order = await self._request("POST", "/v1/orders", json=payload)
        logger.info(f"Razorpay order created: {order.get('id')}")
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        """
        Fetch an order by id.

        Returns:
            The order object; ``status`` is one of created, attempted, paid
            and ``receipt`` carries the reference given at creation.
        """
        logger.info(f"Fetching Razorpay order: {order_id}")

        order = await self._request("GET", f"/v1/orders/{order_id}")
        logger.info(f"Razorpay order {order_id} status: {order.get('status')}")
        return order
