from pydantic import BaseModel, Field, model_validator
from typing import Optional, List

from ..enums import AdmissionLevel, DayOfWeek, Meridiem


class DriverSlotResponse(BaseModel):
    """Schema for courier slot responses"""
    id: int
    day_of_week: DayOfWeek
    hour: int
    minute: int
    meridiem: Meridiem
    max_capacity: float
    current_load: float
    order_count: int
    window_label: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerWindow(BaseModel):
    """A customer-facing window; derived from slots on every read, never stored"""
    label: str
    day_of_week: DayOfWeek
    slot_ids: List[int]
    earliest_slot_id: int
    start_minutes: int = Field(..., description="Earliest member slot, minutes since midnight")
    capacity: float
    load: float

    @property
    def available(self) -> float:
        return self.capacity - self.load


class AdmissionRequest(BaseModel):
    """Evaluate a load against either a window (day + label) or a single slot"""
    required_load: float = Field(ge=0)
    slot_id: Optional[int] = None
    day_of_week: Optional[DayOfWeek] = None
    window_label: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if self.slot_id is None and self.window_label is None:
            raise ValueError("Provide either slot_id or window_label")
        return self


class AlternativeWindow(BaseModel):
    day_of_week: DayOfWeek
    days_ahead: int
    label: str
    slot_id: int
    available: float


class AdmissionDecision(BaseModel):
    level: AdmissionLevel
    required: float
    available: float
    slot_id: Optional[int] = Field(None, description="Slot the order would be assigned to when admitted")
    alternative: Optional[AlternativeWindow] = None

    @property
    def admitted(self) -> bool:
        return self.level in (AdmissionLevel.NORMAL, AdmissionLevel.LARGE)
