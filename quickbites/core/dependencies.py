from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator, Optional

from ..exceptions import ForbiddenException, UnauthorizedException
from ..core.config import Config
from ..db.database import AsyncSessionLocal
from ..services import (
    AdmissionController,
    CouponService,
    LoadScorer,
    OrderService,
    PaymentService,
    PricingEngine,
    SchedulingService,
    SlotReservation,
    WindowAggregator,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Asynchronous dependency that provides a database session for FastAPI routes.

    Yields:
        AsyncSession: An instance of the asynchronous database session.

    Usage:
        Use as a dependency in FastAPI endpoints to access the database session.
        The session is automatically closed after the request is processed.
    """

    async with AsyncSessionLocal() as db:
        yield db
        await db.close()


async def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Identity is established upstream; the gateway forwards the customer id in ``X-User-Id``.

    Raises:
        UnauthorizedException: If the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedException(detail="Authentication required!")
    return x_user_id.strip()


async def require_admin(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> bool:
    if x_api_key != Config.ADMIN_API_KEY:
        raise ForbiddenException(detail="Only admins can access this resource!")
    return True


def get_load_scorer() -> LoadScorer:
    return LoadScorer()


def get_window_aggregator() -> WindowAggregator:
    return WindowAggregator(min_lead_minutes=Config.MIN_LEAD_TIME_MINUTES)


def get_admission_controller(
    aggregator: WindowAggregator = Depends(get_window_aggregator),
) -> AdmissionController:
    return AdmissionController(
        aggregator,
        horizon_days=Config.ADMISSION_HORIZON_DAYS,
        timezone=Config.SERVICE_TIMEZONE,
    )


def get_coupon_service() -> CouponService:
    return CouponService()


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_scheduling_service(
    admission: AdmissionController = Depends(get_admission_controller),
) -> SchedulingService:
    return SchedulingService(admission, courier_capacity=Config.COURIER_CAPACITY_LU)


def get_order_service(
    scorer: LoadScorer = Depends(get_load_scorer),
    admission: AdmissionController = Depends(get_admission_controller),
    coupons: CouponService = Depends(get_coupon_service),
    payments: PaymentService = Depends(get_payment_service),
) -> OrderService:
    return OrderService(
        scorer=scorer,
        admission=admission,
        pricing=PricingEngine(),
        coupons=coupons,
        reservation=SlotReservation(),
        payments=payments,
        code_attempts=Config.ORDER_CODE_MAX_ATTEMPTS,
    )
