import pytest

from quickbites.enums import DayOfWeek, Meridiem
from quickbites.exceptions import BadRequestException, NotFoundException
from quickbites.services.scheduling_service import SchedulingService

from conftest import add_slot


async def test_assign_courier_adds_one_courier_of_capacity(db, admission):
    slot = await add_slot(db, max_capacity=0.0)

    updated = await SchedulingService(admission).assign_courier(slot.id, db)

    assert updated.max_capacity == 20.0


async def test_unassign_courier_keeps_committed_load(db, admission):
    slot = await add_slot(db, max_capacity=40.0, current_load=15.0)
    scheduling = SchedulingService(admission)

    updated = await scheduling.unassign_courier(slot.id, db)
    assert updated.max_capacity == 20.0

    with pytest.raises(BadRequestException):
        await scheduling.unassign_courier(slot.id, db)

    await db.refresh(slot)
    assert slot.max_capacity == 20.0


async def test_unassign_from_unstaffed_slot_is_refused(db, admission):
    slot = await add_slot(db, max_capacity=0.0)

    with pytest.raises(BadRequestException):
        await SchedulingService(admission).unassign_courier(slot.id, db)


async def test_unknown_slot(db, admission):
    with pytest.raises(NotFoundException):
        await SchedulingService(admission).assign_courier(404, db)


async def test_find_next_available_slot_starts_from_now(db, admission):
    # Monday 08:00; 9:00 AM is inside the lead time
    await add_slot(db, day=DayOfWeek.MONDAY, hour=9, meridiem=Meridiem.AM)
    full = await add_slot(db, day=DayOfWeek.MONDAY, hour=12, meridiem=Meridiem.PM, current_load=19.0)
    evening = await add_slot(db, day=DayOfWeek.MONDAY, hour=6, meridiem=Meridiem.PM, current_load=5.0)

    found = await SchedulingService(admission).find_next_available_slot(4.0, db)

    assert found.slot_id == evening.id
    assert found.slot_id != full.id
    assert found.days_ahead == 0
    assert found.available == 15.0


async def test_find_next_available_slot_wraps_into_next_week(db, admission):
    sunday = await add_slot(db, day=DayOfWeek.SUNDAY, hour=11, meridiem=Meridiem.AM)

    found = await SchedulingService(admission).find_next_available_slot(4.0, db)

    assert found.slot_id == sunday.id
    assert found.days_ahead == 6


async def test_find_next_available_slot_none(db, admission):
    await add_slot(db, day=DayOfWeek.WEDNESDAY, current_load=18.0)

    assert await SchedulingService(admission).find_next_available_slot(4.0, db) is None
