import logging

from sqlalchemy import and_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import CapacityStatus, OrderStatus, ReservationResult
from ..exceptions import BadRequestException, NotFoundException
from ..models import DriverSlot, Order


logger = logging.getLogger(__name__)


class SlotReservation:
    """
    Commits a paid order's load against its slot, exactly once per order.

    The capacity check and the increment are a single conditional UPDATE, so two
    orders racing for the last LU of a slot can never both succeed.
    """

    async def _load_order(self, order_id: int, db: AsyncSession) -> Order:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalars().first()
        if not order:
            raise NotFoundException(f"Order with ID {order_id} not found")
        return order

    async def try_reserve(self, slot_id: int, required: float, db: AsyncSession) -> bool:
        """Add ``required`` LU to the slot only if it still fits. Does not commit."""
        result = await db.execute(
            update(DriverSlot)
            .where(
                and_(
                    DriverSlot.id == slot_id,
                    DriverSlot.max_capacity > 0,
                    DriverSlot.current_load + required <= DriverSlot.max_capacity,
                )
            )
            .values(
                current_load=DriverSlot.current_load + required,
                order_count=DriverSlot.order_count + 1,
            )
        )
        return result.rowcount == 1

    async def commit(self, order_id: int, db: AsyncSession) -> ReservationResult:
        order = await self._load_order(order_id, db)

        if order.status != OrderStatus.PAID:
            raise BadRequestException(f"Order {order.order_code} has not been paid")

        if order.capacity_status == CapacityStatus.COMMITTED:
            return ReservationResult.ALREADY_COMMITTED

        # claim the order first; a duplicate event blocks here and then matches no row
        claim = await db.execute(
            update(Order)
            .where(
                and_(
                    Order.id == order.id,
                    Order.capacity_status != CapacityStatus.COMMITTED,
                )
            )
            .values(capacity_status=CapacityStatus.COMMITTED)
        )
        if claim.rowcount != 1:
            await db.rollback()
            return ReservationResult.ALREADY_COMMITTED

        slot_id, required, order_code = order.slot_id, order.required_load, order.order_code

        if await self.try_reserve(slot_id, required, db):
            await db.commit()
            logger.info("Committed %.2f LU to slot %s for order %s", required, slot_id, order_code)
            return ReservationResult.COMMITTED

        await db.rollback()
        await db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(capacity_status=CapacityStatus.FAILED)
        )
        await db.commit()

        # the order stands; reconciliation picks up FAILED capacity rows
        logger.error(
            "Capacity commit failed for paid order %s: slot %s cannot take %.2f LU",
            order_code, slot_id, required,
        )
        return ReservationResult.FAILED
