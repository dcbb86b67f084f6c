"""
HTTP client for the kiosk backend.

Wraps an `httpx.AsyncClient`. Response bodies that do not parse as a JSON
object are treated as an empty dict; only network errors, timeouts and
non-2xx responses raise.
"""

from __future__ import annotations

from typing import Any, Optional, Type
from urllib.parse import quote

import httpx

from kiosk_client.core.exceptions import (
    ActuationError,
    BackendTransportError,
    ConnectivityProbeError,
    DeviceStatusError,
    PaymentCreationError,
    PaymentStatusError,
)
from kiosk_client.infrastructure.settings import BackendSettings
from kiosk_client.loggers import logger


def safe_json(response: httpx.Response) -> dict[str, Any]:
    """
    Parse a response body as a JSON object.

    Args:
        response: HTTP response.

    Returns:
        The decoded object, or an empty dict for anything else.
    """
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class BackendClient:
    """
    Client for the kiosk backend API.

    Attributes:
        base_url: Backend base URL.
    """

    def __init__(
        self,
        settings: BackendSettings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Backend connection settings.
            client: Optional preconfigured httpx client (used by tests).
        """
        self.base_url = settings.base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.request_timeout_s,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[BackendTransportError],
        default_message: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise error_cls(f"{default_message}: {e}") from e

        data = safe_json(response)
        if not response.is_success:
            message = data.get("error")
            raise error_cls(
                message if isinstance(message, str) and message else default_message,
                status_code=response.status_code,
                details={"body": data},
            )
        return data

    async def create_payment(
        self,
        amount_cents: int,
        currency: str,
        redirect_url: str,
    ) -> dict[str, Any]:
        """
        Create a payment session.

        Args:
            amount_cents: Amount in minor currency units.
            currency: ISO currency code.
            redirect_url: URL the payment provider redirects to.

        Returns:
            Creation response with id, expiry and QR payload fields.

        Raises:
            PaymentCreationError: On transport failure.
        """
        logger.debug(f"Creating payment for {amount_cents} {currency}")
        return await self._request(
            "POST",
            "/api/payment",
            PaymentCreationError,
            "Payment creation failed",
            json={
                "amount_cents": amount_cents,
                "currency": currency,
                "payment_redirect_url": redirect_url,
            },
        )

    async def get_payment_status(self, payment_id: str) -> dict[str, Any]:
        """
        Fetch the status of a payment.

        Raises:
            PaymentStatusError: On transport failure.
        """
        return await self._request(
            "GET",
            f"/api/payment/{quote(payment_id, safe='')}",
            PaymentStatusError,
            "Status check failed",
        )

    async def actuate(self) -> dict[str, Any]:
        """
        Confirm dispensing after a successful payment.

        Raises:
            ActuationError: On transport failure.
        """
        return await self._request("POST", "/api/actuate", ActuationError, "Actuation failed")

    async def get_device_status(self) -> dict[str, Any]:
        """
        Fetch the currently executing device command.

        Raises:
            DeviceStatusError: On transport failure.
        """
        return await self._request(
            "GET",
            "/api/device/status",
            DeviceStatusError,
            "Device status check failed",
        )

    async def check_reachability(self, url: str) -> None:
        """
        GET a third-party URL as a connectivity heartbeat.

        The body is not parsed.

        Raises:
            ConnectivityProbeError: On network error or non-2xx response.
        """
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ConnectivityProbeError(f"Reachability probe failed: {e}") from e
        if not response.is_success:
            raise ConnectivityProbeError(
                f"Reachability probe returned {response.status_code}",
                details={"status_code": response.status_code},
            )
