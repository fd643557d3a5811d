# portal/services/gateway.py
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from portal.exceptions import PortalError

logger = logging.getLogger(__name__)


class GatewayError(PortalError):
    status_code = 502


class RazorpayGateway:
    """Order creation and signature verification against Razorpay."""

    def __init__(self, key_id: str, key_secret: str, api_url: str = "https://api.razorpay.com/v1",
                 timeout: float = 15.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET, settings.RAZORPAY_API_URL)

    def create_order(self, amount_paise: int, receipt: str, notes: Optional[Dict[str, Any]] = None,
                     currency: str = "INR") -> Dict[str, Any]:
        payload = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            response = httpx.post(
                f"{self.api_url}/orders",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"[Razorpay] HTTP error creating order {receipt}: {e.response.status_code} {e.response.text}")
            raise GatewayError("Payment gateway rejected the order request")
        except httpx.RequestError as e:
            logger.error(f"[Razorpay] Request error creating order {receipt}: {e}")
            raise GatewayError("Payment gateway unavailable")

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not (order_id and payment_id and signature):
            return False
        expected = hmac.new(
            self.key_secret.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)
