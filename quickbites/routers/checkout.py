from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ..core.dependencies import get_current_user_id, get_db, get_order_service
from ..schemas.cart import Cart
from ..schemas.order import CheckoutRequest, CheckoutResponse, OrderResponse, QuoteResponse
from ..services.order_service import OrderService

router = APIRouter()


@router.post("/quote", response_model=QuoteResponse)
async def quote(
    cart: Cart,
    slot_id: Optional[int] = Query(None, description="Evaluate admission against this slot"),
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db)
):
    """
    **Quote Cart**

    Prices the cart with the user's selected coupon and, when ``slot_id`` is
    given, reports whether the slot can take it. Nothing is written.
    """
    return await orders.quote(user_id, cart, db, slot_id)


@router.post("/", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    request: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db)
):
    """
    **Checkout**

    Re-validates the pickup slot and the restaurant, prices the cart and opens a
    pending order with a payment intent.

    **Returns:**
    - **order_code**: 6-digit code, unique for the day
    - **client_secret**: handed to the payment sheet on the device
    - **amount**: charge in the currency's minor unit

    **Process:**
    1. Re-reads the selected slot and the cart's restaurant
    2. Applies the selected coupon and computes fees and tax
    3. Creates the order in ``pending_payment``
    4. Requests a payment intent from the processor

    Capacity is committed only when the processor confirms the payment.

    **Errors:**
    - **SLOT_INVALIDATED**: the slot disappeared or filled up; may carry an alternative
    - **SHOP_FULL**: no slot in the coming days can carry the cart
    - **RESTAURANT_INACTIVE**: the restaurant stopped accepting orders
    - **PAYMENT_UNAVAILABLE**: the processor could not be reached; retry
    """
    return await orders.checkout(user_id, request, db)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_checkout(
    order_id: int,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db)
):
    """Abandon a checkout whose payment has not been confirmed"""
    return await orders.cancel(user_id, order_id, db)
