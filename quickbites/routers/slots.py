from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ..core.dependencies import (
    get_admission_controller,
    get_db,
    get_scheduling_service,
    require_admin,
)
from ..enums import DayOfWeek
from ..exceptions import ShopFullException
from ..schemas.slot import (
    AdmissionDecision,
    AdmissionRequest,
    AlternativeWindow,
    CustomerWindow,
    DriverSlotResponse,
)
from ..services.admission_service import AdmissionController
from ..services.scheduling_service import SchedulingService

router = APIRouter()

admin_only = Depends(require_admin)


@router.get("/windows", response_model=List[CustomerWindow])
async def get_windows(
    day: Optional[DayOfWeek] = Query(None, description="Day of week, defaults to today"),
    admission: AdmissionController = Depends(get_admission_controller),
    db: AsyncSession = Depends(get_db)
):
    """
    **Get Pickup Windows**

    Lists the windows customers can pick from on the given day, earliest first.
    Windows starting inside the preparation lead time are hidden for today.
    """
    now = admission.now()
    today = DayOfWeek.from_weekday(now.weekday())
    day = day or today
    return await admission.aggregator.windows_for_day(day, db, now if day == today else None)


@router.post("/admission", response_model=AdmissionDecision)
async def evaluate_admission(
    request: AdmissionRequest,
    admission: AdmissionController = Depends(get_admission_controller),
    db: AsyncSession = Depends(get_db)
):
    """
    **Evaluate Admission**

    Checks whether a load fits a single slot (``slot_id``) or a window
    (``day_of_week`` + ``window_label``).

    **Returns:**
    - **level**: NORMAL, LARGE, OVER (with an alternative window) or SHOP_FULL
    - **slot_id**: the slot the order would be assigned to when admitted
    """
    if request.slot_id is not None:
        return await admission.evaluate_slot(request.required_load, request.slot_id, db)

    now = admission.now()
    day = request.day_of_week or DayOfWeek.from_weekday(now.weekday())
    return await admission.evaluate_window(request.required_load, day, request.window_label, db, now)


@router.get("/next-available", response_model=AlternativeWindow)
async def next_available_slot(
    required: float = Query(..., ge=0, description="Required load in load units"),
    scheduling: SchedulingService = Depends(get_scheduling_service),
    db: AsyncSession = Depends(get_db)
):
    """First window, from now on, with a slot able to carry ``required``"""
    alternative = await scheduling.find_next_available_slot(required, db)
    if alternative is None:
        raise ShopFullException(required=required)
    return alternative


@router.post("/{slot_id}/couriers", response_model=DriverSlotResponse, dependencies=[admin_only])
async def assign_courier(
    slot_id: int,
    scheduling: SchedulingService = Depends(get_scheduling_service),
    db: AsyncSession = Depends(get_db)
):
    """Add one courier's capacity to a slot"""
    return await scheduling.assign_courier(slot_id, db)


@router.delete("/{slot_id}/couriers", response_model=DriverSlotResponse, dependencies=[admin_only])
async def unassign_courier(
    slot_id: int,
    scheduling: SchedulingService = Depends(get_scheduling_service),
    db: AsyncSession = Depends(get_db)
):
    """Remove one courier's capacity from a slot"""
    return await scheduling.unassign_courier(slot_id, db)
