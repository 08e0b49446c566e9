import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..core.config import Config
from ..exceptions import InvalidWebhookException, PaymentProcessorException
from ..schemas.payment import PaymentEvent, PaymentIntentResponse


logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


class PaymentService:
    """
    Thin client for a Stripe-compatible payment processor.

    The engine never sees card details: it asks for a payment intent, hands the
    client secret to the app, and later learns the outcome from a webhook.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_base: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: float = 30,
    ):
        self.secret_key = secret_key or Config.STRIPE_SECRET_KEY
        self.api_base = (api_base or Config.STRIPE_API_BASE).rstrip("/")
        self.webhook_secret = webhook_secret if webhook_secret is not None else Config.STRIPE_WEBHOOK_SECRET
        self.currency = currency or Config.PAYMENT_CURRENCY
        self.timeout = timeout

    async def create_payment_intent(self, amount: int, metadata: Dict[str, str]) -> PaymentIntentResponse:
        """Create a payment intent for ``amount`` minor units"""
        url = f"{self.api_base}/v1/payment_intents"
        headers = {"Authorization": f"Bearer {self.secret_key}"}

        payload = {
            "amount": str(amount),
            "currency": self.currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            payload[f"metadata[{key}]"] = str(value)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, data=payload)
        except httpx.RequestError as e:
            logger.error("Payment processor unreachable: %s", e)
            raise PaymentProcessorException("Payment service is temporarily unavailable. Please try again.")

        if response.status_code != 200:
            logger.error("Payment intent rejected (%s): %s", response.status_code, response.text)
            raise PaymentProcessorException("Payment could not be started. Please try again.")

        data = response.json()
        return PaymentIntentResponse(
            id=data["id"],
            client_secret=data["client_secret"],
            amount=data.get("amount", amount),
            currency=data.get("currency", self.currency),
        )

    def verify_signature(self, payload: bytes, signature_header: Optional[str], now: Optional[float] = None) -> None:
        """Check a ``Stripe-Signature`` header (``t=<ts>,v1=<hex>``) against the webhook secret"""
        if not signature_header:
            raise InvalidWebhookException("Missing webhook signature")

        parts: Dict[str, list] = {}
        for item in signature_header.split(","):
            key, _, value = item.strip().partition("=")
            parts.setdefault(key, []).append(value)

        try:
            timestamp = int(parts["t"][0])
        except (KeyError, IndexError, ValueError):
            raise InvalidWebhookException("Malformed webhook signature")

        now = now if now is not None else time.time()
        if abs(now - timestamp) > SIGNATURE_TOLERANCE_SECONDS:
            raise InvalidWebhookException("Webhook signature timestamp outside tolerance")

        signed_payload = f"{timestamp}.".encode() + payload
        expected = hmac.new(self.webhook_secret.encode(), signed_payload, hashlib.sha256).hexdigest()
        if not any(hmac.compare_digest(expected, candidate) for candidate in parts.get("v1", [])):
            raise InvalidWebhookException("Webhook signature mismatch")

    def parse_event(self, payload: bytes, signature_header: Optional[str] = None) -> PaymentEvent:
        if self.webhook_secret:
            self.verify_signature(payload, signature_header)

        try:
            event: Dict[str, Any] = json.loads(payload)
            intent = event["data"]["object"]
            metadata = {key: str(value) for key, value in (intent.get("metadata") or {}).items()}
            return PaymentEvent(
                event_id=event.get("id"),
                event_type=event["type"],
                payment_intent_id=intent["id"],
                order_code=metadata.get("order_code"),
                metadata=metadata,
            )
        except (ValueError, KeyError, TypeError):
            raise InvalidWebhookException("Malformed webhook payload")
