"""
Payment gateway client.

A thin wrapper over the gateway's REST API. Only order creation is needed by
the engine; payments themselves happen on the gateway's hosted checkout and
come back to us through the webhook and the client confirmation.

Usage:
    client = PaymentGatewayClient()
    gateway_order = client.create_order(
        amount_minor=19900,
        currency="INR",
        receipt="FOUR_DAY_sub_42",
        notes={"plan_type": "FOUR_DAY"},
    )
    gateway_order["id"]  # "order_xxx"
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from django.conf import settings

from dripaccess.payments.exceptions import GatewayUnavailable

logger = logging.getLogger(__name__)


class PaymentGatewayClient:
    """
    Client for the payment gateway's order API.

    Every failure mode (missing credentials, network error, timeout, 4xx/5xx,
    unparseable response) surfaces as GatewayUnavailable so callers have a
    single retryable error to handle.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.key_id = key_id if key_id is not None else settings.PAYMENT_GATEWAY_KEY_ID
        self.key_secret = (
            key_secret
            if key_secret is not None
            else settings.PAYMENT_GATEWAY_KEY_SECRET
        )
        self.api_base = (api_base or settings.PAYMENT_GATEWAY_API_BASE).rstrip("/")
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Create an order on the gateway.

        Args:
            amount_minor: Amount in the currency's minor unit (paise for INR).
            currency: ISO currency code.
            receipt: Our own reference, echoed back by the gateway.
            notes: Free-form metadata stored on the gateway order.

        Returns:
            The gateway order document; always contains ``id``.

        Raises:
            GatewayUnavailable: on any failure.
        """
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        data = self._request("POST", "/orders", json_payload=payload)
        if not data.get("id"):
            logger.error("Gateway order response missing id: %s", data)
            raise GatewayUnavailable("Unexpected response from payment gateway.")

        logger.info(
            "Created gateway order %s (amount=%s %s, receipt=%s)",
            data["id"],
            amount_minor,
            currency,
            receipt,
        )
        return data

    def _request(
        self,
        method: str,
        path: str,
        json_payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured:
            logger.error("Payment gateway credentials are not configured")
            raise GatewayUnavailable("Payment configuration error.")

        url = f"{self.api_base}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method=method.upper(),
                url=url,
                auth=(self.key_id, self.key_secret),
                json=json_payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Payment gateway request to %s failed: %s", path, exc)
            raise GatewayUnavailable("Failed to contact payment gateway.") from exc

        if response.status_code >= 400:  # noqa: PLR2004
            logger.warning(
                "Payment gateway returned %s for %s %s",
                response.status_code,
                method.upper(),
                path,
            )
            raise GatewayUnavailable("Payment gateway rejected the request.")

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayUnavailable("Invalid response from payment gateway.") from exc

        if not isinstance(data, dict):
            raise GatewayUnavailable("Unexpected response from payment gateway.")
        return data


def get_gateway_client() -> PaymentGatewayClient:
    return PaymentGatewayClient()
