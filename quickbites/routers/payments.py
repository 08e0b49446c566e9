from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ..core.dependencies import get_db, get_order_service, get_payment_service
from ..schemas.payment import WebhookAck
from ..services.order_service import OrderService
from ..services.payment_service import PaymentService

router = APIRouter()


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    payments: PaymentService = Depends(get_payment_service),
    orders: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db)
):
    """
    **Payment Processor Webhook**

    Receives payment outcomes. Deliveries may repeat; a success commits the
    order's capacity at most once.

    **Handled events:**
    - ``payment_intent.succeeded``: order paid, coupon consumed, capacity committed
    - ``payment_intent.payment_failed`` / ``payment_intent.canceled``: order marked failed

    Other events are acknowledged with ``handled: false``.
    """
    payload = await request.body()
    event = payments.parse_event(payload, stripe_signature)
    handled = await orders.handle_payment_event(event, db)
    return WebhookAck(received=True, handled=handled)
