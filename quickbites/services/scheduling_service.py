import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..exceptions import BadRequestException, NotFoundException
from ..models import DriverSlot
from ..schemas.slot import AlternativeWindow
from .admission_service import AdmissionController


logger = logging.getLogger(__name__)


class SchedulingService:
    """Courier assignment and slot lookup operations the checkout flow relies on"""

    def __init__(self, admission: AdmissionController, courier_capacity: float = 20.0):
        self.admission = admission
        self.courier_capacity = courier_capacity

    async def _get_slot(self, slot_id: int, db: AsyncSession) -> DriverSlot:
        result = await db.execute(
            select(DriverSlot)
            .where(DriverSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        slot = result.scalars().first()
        if not slot:
            raise NotFoundException(f"Slot with ID {slot_id} not found")
        return slot

    async def assign_courier(self, slot_id: int, db: AsyncSession) -> DriverSlot:
        await self._get_slot(slot_id, db)
        await db.execute(
            update(DriverSlot)
            .where(DriverSlot.id == slot_id)
            .values(max_capacity=DriverSlot.max_capacity + self.courier_capacity)
        )
        await db.commit()
        logger.info("Courier assigned to slot %s", slot_id)
        return await self._get_slot(slot_id, db)

    async def unassign_courier(self, slot_id: int, db: AsyncSession) -> DriverSlot:
        """Remove one courier's capacity; refused while it would drop below the committed load"""
        slot = await self._get_slot(slot_id, db)
        if slot.max_capacity < self.courier_capacity:
            raise BadRequestException(f"Slot {slot_id} has no courier assigned")

        result = await db.execute(
            update(DriverSlot)
            .where(
                and_(
                    DriverSlot.id == slot_id,
                    DriverSlot.max_capacity - self.courier_capacity >= DriverSlot.current_load,
                )
            )
            .values(max_capacity=DriverSlot.max_capacity - self.courier_capacity)
        )
        if result.rowcount != 1:
            await db.rollback()
            raise BadRequestException(
                f"Slot {slot_id} already carries more load than the remaining couriers can take"
            )

        await db.commit()
        logger.info("Courier unassigned from slot %s", slot_id)
        return await self._get_slot(slot_id, db)

    async def find_next_available_slot(
        self,
        required: float,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> Optional[AlternativeWindow]:
        return await self.admission.find_alternative(required, db, now)
