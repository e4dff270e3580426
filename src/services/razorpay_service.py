"""Thin async client for the Razorpay Orders API."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from src.core.config import settings
from src.core.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

_client: Optional["RazorpayClient"] = None


class RazorpayClient:
    def __init__(self, key_id: str, key_secret: str, base_url: str, timeout: float) -> None:
        self.key_id = key_id
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create an order; ``amount`` is in the smallest currency unit."""

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/orders", json=payload, auth=self._auth
                )
        except httpx.HTTPError as exc:
            logger.error("Razorpay order request failed: %s", exc)
            raise PaymentProviderError("Payment provider unavailable") from exc

        if response.status_code >= 400:
            logger.error(
                "Razorpay order creation rejected status=%s body=%s",
                response.status_code,
                response.text,
            )
            raise PaymentProviderError("Failed to create payment order")

        order = response.json()
        logger.info("Created Razorpay order %s receipt=%s", order.get("id"), receipt)
        return order


def get_razorpay_client() -> RazorpayClient:
    """Create (or reuse) a client configured from the environment."""

    global _client

    if _client is None:
        if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
            raise PaymentProviderError("Razorpay credentials are not configured")
        _client = RazorpayClient(
            settings.RAZORPAY_KEY_ID,
            settings.RAZORPAY_KEY_SECRET,
            settings.billing.razorpay_base_url,
            settings.billing.request_timeout_seconds,
        )
    return _client


async def create_order(
    amount: int,
    currency: str,
    receipt: str,
    notes: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    return await get_razorpay_client().create_order(amount, currency, receipt, notes)
