from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TypedDict

import stripe

from .errors import ConfigError

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class PaymentError(Exception):
    """The processor refused or failed to create a payment intent."""


class WebhookError(Exception):
    """Signature or payload could not be verified."""


class WebhookConfigError(WebhookError):
    """Signature header or signing secret missing."""


# ----------------------------
# Payment Adapter Interface
# ----------------------------
class PaymentIntent(TypedDict):
    id: str
    client_secret: str


class WebhookEvent(TypedDict):
    type: str
    intent_id: Optional[str]


class PaymentAdapter(ABC):
    @abstractmethod
    async def create_payment_intent(
        self, amount: int, currency: str, metadata: Dict[str, str]
    ) -> PaymentIntent: ...

    @abstractmethod
    def verify_webhook(
        self, payload: bytes, signature: Optional[str]
    ) -> WebhookEvent: ...


# ----------------------------
# Stripe implementation
# ----------------------------
class StripePay(PaymentAdapter):

    def __init__(self, secret_key: Optional[str],
                 webhook_secret: Optional[str]) -> None:
        self.webhook_secret = webhook_secret
        self.client: Optional[stripe.StripeClient] = None
        if secret_key:
            self.client = stripe.StripeClient(
                secret_key, http_client=stripe.HTTPXClient()
            )

    async def create_payment_intent(
        self, amount: int, currency: str, metadata: Dict[str, str]
    ) -> PaymentIntent:
        if self.client is None:
            raise ConfigError("STRIPE_SECRET_KEY is not set")
        try:
            pi = await self.client.payment_intents.create_async(params={
                "amount": int(amount),
                "currency": currency.lower(),
                "metadata": metadata,
            })
        except stripe.StripeError as e:
            raise PaymentError(str(e)) from e
        return {"id": pi.id, "client_secret": pi.client_secret}

    def verify_webhook(
        self, payload: bytes, signature: Optional[str]
    ) -> WebhookEvent:
        if not signature or not self.webhook_secret:
            raise WebhookConfigError("Missing webhook config")
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookError(str(e)) from e
        return {"type": event.type, "intent_id": _intent_id(event)}


def _intent_id(event: Any) -> Optional[str]:
    data = getattr(event, "data", None)
    obj = getattr(data, "object", None) if data is not None else None
    return getattr(obj, "id", None) if obj is not None else None
