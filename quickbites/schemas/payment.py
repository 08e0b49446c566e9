from pydantic import BaseModel, Field
from typing import Optional, Dict


class PaymentIntentResponse(BaseModel):
    """Payment intent created by the processor"""
    id: str
    client_secret: str
    amount: int
    currency: str


class PaymentEvent(BaseModel):
    """Outcome of a payment, as delivered by the processor's webhook"""
    event_id: Optional[str] = None
    event_type: str
    payment_intent_id: str
    order_code: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.event_type == "payment_intent.succeeded"

    @property
    def failed(self) -> bool:
        return self.event_type in ("payment_intent.payment_failed", "payment_intent.canceled")


class WebhookAck(BaseModel):
    received: bool = True
    handled: bool = False
