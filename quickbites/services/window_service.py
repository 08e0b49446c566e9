from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import DayOfWeek
from ..models import DriverSlot
from ..schemas.slot import CustomerWindow


class WindowAggregator:
    """
    Groups fine-grained courier slots into the coarser windows customers pick from.

    Slot and window granularities are configured independently, so the mapping is
    rebuilt from the slot rows on every read.
    """

    def __init__(self, min_lead_minutes: int = 105):
        self.min_lead_minutes = min_lead_minutes

    @staticmethod
    def minutes_of_day(moment: datetime) -> int:
        return moment.hour * 60 + moment.minute

    def label_for(self, slot: DriverSlot) -> str:
        return slot.window_label or slot.display_time

    def aggregate(
        self,
        slots: Iterable[DriverSlot],
        now_minutes: Optional[int] = None,
    ) -> List[CustomerWindow]:
        """
        Build windows from one day's slots.

        ``now_minutes`` is only given for today; slots starting less than the lead
        time from now are dropped. Other days keep every staffed slot.
        """
        groups: Dict[str, List[DriverSlot]] = OrderedDict()

        for slot in slots:
            # no courier assigned
            if not slot.max_capacity or slot.max_capacity <= 0:
                continue

            if now_minutes is not None and slot.minutes_since_midnight - now_minutes < self.min_lead_minutes:
                continue

            groups.setdefault(self.label_for(slot), []).append(slot)

        windows = []
        for label, members in groups.items():
            members.sort(key=lambda s: (s.minutes_since_midnight, s.id))
            earliest = members[0]
            windows.append(
                CustomerWindow(
                    label=label,
                    day_of_week=earliest.day_of_week,
                    slot_ids=[s.id for s in members],
                    earliest_slot_id=earliest.id,
                    start_minutes=earliest.minutes_since_midnight,
                    capacity=sum(s.max_capacity for s in members),
                    load=sum(s.current_load or 0.0 for s in members),
                )
            )

        windows.sort(key=lambda w: (w.start_minutes, w.earliest_slot_id))
        return windows

    async def slots_for_day(self, day: DayOfWeek, db: AsyncSession) -> List[DriverSlot]:
        query = (
            select(DriverSlot)
            .where(DriverSlot.day_of_week == day)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def windows_for_day(
        self,
        day: DayOfWeek,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> List[CustomerWindow]:
        """Windows for ``day``; pass ``now`` when ``day`` is today to apply the lead time"""
        slots = await self.slots_for_day(day, db)
        now_minutes = self.minutes_of_day(now) if now is not None else None
        return self.aggregate(slots, now_minutes)
