import logging
import random
from datetime import date, datetime
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import OrderStatus, ReservationResult
from ..exceptions import (
    BadRequestException,
    NotFoundException,
    PaymentProcessorException,
)
from ..models import Order, Restaurant
from ..schemas.cart import Cart
from ..schemas.order import CheckoutRequest, CheckoutResponse, QuoteResponse
from ..schemas.payment import PaymentEvent
from ..utils.money import to_minor_units
from .admission_service import AdmissionController
from .cart_service import LoadScorer
from .coupon_service import CouponService
from .payment_service import PaymentService
from .pricing_service import PricingEngine
from .reservation_service import SlotReservation


logger = logging.getLogger(__name__)


class OrderService:
    """
    Checkout orchestration: score, re-validate, price, open a pending order and
    request payment. Capacity is only touched once the payment succeeds.
    """

    def __init__(
        self,
        scorer: LoadScorer,
        admission: AdmissionController,
        pricing: PricingEngine,
        coupons: CouponService,
        reservation: SlotReservation,
        payments: PaymentService,
        code_attempts: int = 50,
    ):
        self.scorer = scorer
        self.admission = admission
        self.pricing = pricing
        self.coupons = coupons
        self.reservation = reservation
        self.payments = payments
        self.code_attempts = code_attempts

    def _check_cart(self, cart: Cart) -> None:
        if cart.is_empty:
            raise BadRequestException("Your cart is empty")
        if len(cart.restaurant_ids) > 1:
            raise BadRequestException("Each order must contain items from a single restaurant")

    async def generate_order_code(self, order_date: date, db: AsyncSession) -> str:
        """Random 6-digit code, unique among the codes already issued on ``order_date``"""
        for _ in range(self.code_attempts):
            code = str(random.randint(100000, 999999))
            result = await db.execute(
                select(Order.id).where(and_(Order.order_date == order_date, Order.order_code == code))
            )
            if result.first() is None:
                return code

        raise BadRequestException("Could not allocate an order code, please try again")

    async def quote(
        self,
        user_id: str,
        cart: Cart,
        db: AsyncSession,
        slot_id: Optional[int] = None,
    ) -> QuoteResponse:
        score = self.scorer.score(cart.items)
        admission = None
        if slot_id is not None:
            admission = await self.admission.evaluate_slot(score.total_score, slot_id, db)

        usage = await self.coupons.active_usage(user_id, db)
        coupon = usage.coupon if usage else None
        pricing = self.pricing.price(cart, coupon)

        return QuoteResponse(
            score=score,
            admission=admission,
            pricing=pricing.rounded(),
            coupon_code=coupon.code if coupon else None,
        )

    async def checkout(self, user_id: str, request: CheckoutRequest, db: AsyncSession) -> CheckoutResponse:
        cart = request.cart
        self._check_cart(cart)

        score = self.scorer.score(cart.items)
        now = self.admission.now()

        # raises before anything is written
        decision = await self.admission.revalidate(cart, request.slot_id, score.total_score, db, now)

        usage = await self.coupons.active_usage(user_id, db)
        coupon = usage.coupon if usage else None
        pricing = self.pricing.price(cart, coupon).rounded()

        restaurant_id = next(iter(cart.restaurant_ids))
        restaurant = await db.get(Restaurant, restaurant_id)
        order_date = now.date()

        try:
            order = Order(
                order_code=await self.generate_order_code(order_date, db),
                order_date=order_date,
                user_id=user_id,
                restaurant_id=restaurant_id,
                slot_id=request.slot_id,
                coupon_usage_id=usage.id if usage else None,
                status=OrderStatus.PENDING_PAYMENT,
                items=[item.model_dump(mode="json") for item in cart.items],
                required_load=score.total_score,
                subtotal=pricing.subtotal,
                subtotal_discount=pricing.subtotal_discount,
                delivery_fee=pricing.delivery_fee,
                delivery_discount=pricing.delivery_discount,
                tax=pricing.tax,
                transaction_fee=pricing.transaction_fee,
                total=pricing.total,
                payment_currency=self.payments.currency,
                delivery_location=request.delivery_location,
            )
            db.add(order)
            await db.flush()

            amount = to_minor_units(pricing.total)
            intent = await self.payments.create_payment_intent(
                amount,
                {
                    "order_code": order.order_code,
                    "restaurant": restaurant.name,
                    "user_id": user_id,
                },
            )

            order.payment_reference = intent.id
            await db.commit()
            await db.refresh(order)

        except PaymentProcessorException:
            await db.rollback()
            raise
        except IntegrityError:
            await db.rollback()
            logger.warning("Order code collision for user %s, asking client to retry", user_id)
            raise BadRequestException("Could not allocate an order code, please try again")

        logger.info(
            "Order %s opened for user %s: %.2f LU on slot %s, total %.2f",
            order.order_code, user_id, score.total_score, request.slot_id, pricing.total,
        )

        return CheckoutResponse(
            order_id=order.id,
            order_code=order.order_code,
            order_date=order.order_date,
            client_secret=intent.client_secret,
            amount=amount,
            currency=intent.currency,
            pricing=pricing,
            admission=decision,
        )

    async def get_order_by_id(self, order_id: int, user_id: Optional[str], db: AsyncSession) -> Order:
        """
        Get order by ID
        If user_id is provided, ensure the order belongs to that user
        """
        query = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)

        result = await db.execute(query)
        order = result.scalars().first()
        if not order:
            raise NotFoundException(f"Order with ID {order_id} not found")
        return order

    async def cancel(self, user_id: str, order_id: int, db: AsyncSession) -> Order:
        """Abandon a checkout before payment; no capacity was ever held for it"""
        order = await self.get_order_by_id(order_id, user_id, db)
        if order.status != OrderStatus.PENDING_PAYMENT:
            raise BadRequestException(f"Order {order.order_code} can no longer be cancelled")

        order.status = OrderStatus.CANCELLED
        await db.commit()
        await db.refresh(order)
        return order

    async def handle_payment_event(self, event: PaymentEvent, db: AsyncSession) -> bool:
        """
        Apply a payment outcome. Safe to call any number of times for the same event.
        Returns False for events that do not concern a known order.
        """
        result = await db.execute(
            select(Order)
            .where(Order.payment_reference == event.payment_intent_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalars().first()
        if not order:
            logger.warning("Payment event %s for unknown intent %s", event.event_type, event.payment_intent_id)
            return False

        if event.order_code and event.order_code != order.order_code:
            logger.warning(
                "Payment intent %s carries order code %s but belongs to order %s",
                event.payment_intent_id, event.order_code, order.order_code,
            )
            return False

        order_id, order_code = order.id, order.order_code

        if event.succeeded:
            await self._mark_paid(order, db)

            try:
                outcome = await self.reservation.commit(order_id, db)
            except Exception:
                await db.rollback()
                logger.exception("Capacity commit raised for paid order %s; left for reconciliation", order_code)
                return True

            if outcome == ReservationResult.FAILED:
                logger.warning("Order %s is paid but its capacity needs reconciliation", order_code)
            return True

        if event.failed:
            await db.execute(
                update(Order)
                .where(and_(Order.id == order_id, Order.status == OrderStatus.PENDING_PAYMENT))
                .values(status=OrderStatus.PAYMENT_FAILED)
            )
            await db.commit()
            logger.info("Payment failed for order %s", order_code)
            return True

        return False

    async def _mark_paid(self, order: Order, db: AsyncSession) -> None:
        order_id, order_code, usage_id = order.id, order.order_code, order.coupon_usage_id

        result = await db.execute(
            update(Order)
            .where(and_(Order.id == order_id, Order.status != OrderStatus.PAID))
            .values(status=OrderStatus.PAID, payment_date=datetime.utcnow())
        )
        if result.rowcount != 1:
            return

        if usage_id is not None:
            await self.coupons.mark_applied(usage_id, order_id, db)

        await db.commit()
        logger.info("Payment confirmed for order %s", order_code)
