import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import AdmissionLevel, DayOfWeek
from ..exceptions import (
    NotFoundException,
    RestaurantInactiveException,
    ShopFullException,
    SlotInvalidatedException,
)
from ..models import DriverSlot, Restaurant
from ..schemas.cart import Cart
from ..schemas.slot import AdmissionDecision, AlternativeWindow, CustomerWindow
from .window_service import WindowAggregator


logger = logging.getLogger(__name__)

LARGE_ORDER_RATIO = 0.75


class AdmissionController:
    """
    Decides whether a load fits a window or slot, and where it could go instead.

    The decision here is advisory: the hard guarantee is the conditional update in
    ``SlotReservation``. ``revalidate`` is the blocking check run right before
    payment is requested.
    """

    def __init__(
        self,
        aggregator: WindowAggregator,
        horizon_days: int = 7,
        timezone: str = "America/New_York",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.aggregator = aggregator
        self.horizon_days = max(1, horizon_days)
        self.timezone = ZoneInfo(timezone)
        self.clock = clock

    def now(self) -> datetime:
        if self.clock is not None:
            return self.clock()
        return datetime.now(self.timezone)

    @staticmethod
    def classify(required: float, capacity: float, current_load: float) -> AdmissionLevel:
        available = capacity - current_load
        if required > available:
            return AdmissionLevel.OVER
        if required <= LARGE_ORDER_RATIO * available:
            return AdmissionLevel.NORMAL
        return AdmissionLevel.LARGE

    @staticmethod
    def select_slot(
        window: CustomerWindow,
        slots: Dict[int, DriverSlot],
        required: float,
        after_minutes: Optional[int] = None,
    ) -> Optional[DriverSlot]:
        """Earliest member slot that can carry ``required`` on its own and starts after ``after_minutes``"""
        for slot_id in window.slot_ids:
            slot = slots.get(slot_id)
            if slot is None:
                continue
            if after_minutes is not None and slot.minutes_since_midnight <= after_minutes:
                continue
            if slot.max_capacity > 0 and required <= slot.available_capacity:
                return slot
        return None

    async def _day_view(
        self,
        day: DayOfWeek,
        now: datetime,
        db: AsyncSession,
        is_today: bool,
    ) -> Tuple[List[CustomerWindow], Dict[int, DriverSlot]]:
        slots = await self.aggregator.slots_for_day(day, db)
        now_minutes = self.aggregator.minutes_of_day(now) if is_today else None
        windows = self.aggregator.aggregate(slots, now_minutes)
        return windows, {slot.id: slot for slot in slots}

    async def find_alternative(
        self,
        required: float,
        db: AsyncSession,
        now: Optional[datetime] = None,
        start_day: Optional[DayOfWeek] = None,
        after_minutes: Optional[int] = None,
    ) -> Optional[AlternativeWindow]:
        """
        First window, going forward in time, with a slot that fits ``required``.

        Starts on ``start_day`` (today by default) after ``after_minutes`` and walks
        the following days up to the configured horizon.
        """
        now = now or self.now()
        days = list(DayOfWeek)
        today = DayOfWeek.from_weekday(now.weekday())
        start_day = start_day or today
        start_index = days.index(start_day)
        start_offset = (start_index - now.weekday()) % 7

        for step in range(self.horizon_days):
            day = days[(start_index + step) % 7]
            # the same weekday a week from now gets no lead-time cut
            windows, slots = await self._day_view(day, now, db, is_today=start_offset + step == 0)
            cutoff = after_minutes if step == 0 else None

            for window in windows:
                slot = self.select_slot(window, slots, required, cutoff)
                if slot is not None:
                    return AlternativeWindow(
                        day_of_week=day,
                        days_ahead=start_offset + step,
                        label=window.label,
                        slot_id=slot.id,
                        available=slot.available_capacity,
                    )

        return None

    async def _decide(
        self,
        required: float,
        capacity: float,
        current_load: float,
        slot: Optional[DriverSlot],
        db: AsyncSession,
        now: datetime,
        day: DayOfWeek,
        after_minutes: int,
    ) -> AdmissionDecision:
        level = self.classify(required, capacity, current_load)
        available = capacity - current_load

        if level != AdmissionLevel.OVER and slot is not None:
            return AdmissionDecision(level=level, required=required, available=available, slot_id=slot.id)

        logger.info(
            "Load %.2f LU does not fit %s at minute %d (available %.2f LU), searching forward",
            required, day.value, after_minutes, available,
        )
        alternative = await self.find_alternative(required, db, now, day, after_minutes)
        if alternative is None:
            logger.warning("No slot within %d days can carry %.2f LU", self.horizon_days, required)
            return AdmissionDecision(level=AdmissionLevel.SHOP_FULL, required=required, available=available)

        return AdmissionDecision(
            level=AdmissionLevel.OVER,
            required=required,
            available=available,
            alternative=alternative,
        )

    async def evaluate_slot(
        self,
        required: float,
        slot_id: int,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> AdmissionDecision:
        now = now or self.now()
        slot = await db.get(DriverSlot, slot_id, populate_existing=True)
        if not slot:
            raise NotFoundException(f"Slot with ID {slot_id} not found")

        staffed = slot.max_capacity > 0

        # an unstaffed slot is never a target, however small the load
        return await self._decide(
            required,
            slot.max_capacity if staffed else 0.0,
            slot.current_load if staffed else 0.0,
            slot if staffed else None,
            db,
            now,
            DayOfWeek(slot.day_of_week),
            slot.minutes_since_midnight,
        )

    async def evaluate_window(
        self,
        required: float,
        day: DayOfWeek,
        label: str,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> AdmissionDecision:
        now = now or self.now()
        today = DayOfWeek.from_weekday(now.weekday())
        windows, slots = await self._day_view(day, now, db, is_today=day == today)
        window = next((w for w in windows if w.label == label), None)
        if window is None:
            raise NotFoundException(f"Window {label} is not available on {day.value}")

        slot = self.select_slot(window, slots, required)
        return await self._decide(
            required,
            window.capacity,
            window.load,
            slot,
            db,
            now,
            day,
            window.start_minutes,
        )

    async def revalidate(
        self,
        cart: Cart,
        slot_id: int,
        required: float,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> AdmissionDecision:
        """
        Re-read the selected slot and the cart's restaurants right before payment.

        Raises ``RestaurantInactiveException`` or ``SlotInvalidatedException``; nothing
        has been written when either is raised.
        """
        now = now or self.now()

        restaurant_ids = sorted(cart.restaurant_ids)
        result = await db.execute(
            select(Restaurant)
            .where(Restaurant.id.in_(restaurant_ids))
            .execution_options(populate_existing=True)
        )
        restaurants = {restaurant.id: restaurant for restaurant in result.scalars().all()}
        closed = [rid for rid in restaurant_ids if rid not in restaurants or not restaurants[rid].is_active]
        if closed:
            logger.warning("Checkout blocked, restaurants no longer accepting orders: %s", closed)
            raise RestaurantInactiveException(
                "A restaurant in your cart is no longer accepting orders.",
                restaurant_ids=closed,
            )

        result = await db.execute(
            select(DriverSlot)
            .where(DriverSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        slot = result.scalars().first()
        if slot is None or slot.max_capacity <= 0:
            logger.warning("Checkout blocked, slot %s was removed or lost its couriers", slot_id)
            raise SlotInvalidatedException(
                "Your pickup time is no longer available. Please choose another time.",
                slot_id=slot_id,
            )

        today = DayOfWeek.from_weekday(now.weekday())
        if slot.day_of_week == today and (
            slot.minutes_since_midnight - self.aggregator.minutes_of_day(now) < self.aggregator.min_lead_minutes
        ):
            logger.warning("Checkout blocked, slot %s is inside the lead time", slot_id)
            raise SlotInvalidatedException(
                "Your pickup time is too close to prepare the order. Please choose a later time.",
                slot_id=slot_id,
            )

        level = self.classify(required, slot.max_capacity, slot.current_load)
        if level == AdmissionLevel.OVER:
            alternative = await self.find_alternative(
                required, db, now, DayOfWeek(slot.day_of_week), slot.minutes_since_midnight
            )
            logger.warning(
                "Checkout blocked, slot %s has %.2f LU left for %.2f LU",
                slot_id, slot.available_capacity, required,
            )
            if alternative is None:
                raise ShopFullException(
                    "We are fully booked for the coming days. Please try again later.",
                    slot_id=slot_id,
                )
            raise SlotInvalidatedException(
                "Your pickup time filled up while you were checking out. Please choose another time.",
                slot_id=slot_id,
                alternative=alternative.model_dump(mode="json"),
            )

        return AdmissionDecision(
            level=level,
            required=required,
            available=slot.available_capacity,
            slot_id=slot.id,
        )
