from sqlalchemy import CheckConstraint, Column, Enum, Float, Integer, String

from ..db.base import Base
from ..enums import DayOfWeek, Meridiem
from ..models.base import TimeStampMixin


class DriverSlot(Base, TimeStampMixin):
    """
    A fine-grained courier slot. Rows are generated by the scheduling configuration;
    the engine only mutates ``current_load``/``order_count`` (reservations) and
    ``max_capacity`` (courier assignment).
    """
    __tablename__ = "driver_slots"
    __table_args__ = (
        CheckConstraint("hour >= 1 AND hour <= 12", name="ck_driver_slots_hour"),
        CheckConstraint("minute >= 0 AND minute < 60", name="ck_driver_slots_minute"),
        CheckConstraint("current_load >= 0", name="ck_driver_slots_load"),
    )

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Enum(DayOfWeek), nullable=False, index=True)
    hour = Column(Integer, nullable=False)
    minute = Column(Integer, nullable=False, default=0)
    meridiem = Column(Enum(Meridiem), nullable=False)
    max_capacity = Column(Float, nullable=False, default=0.0)   # LU, 0 when no courier is assigned
    current_load = Column(Float, nullable=False, default=0.0)   # LU committed by paid orders
    order_count = Column(Integer, nullable=False, default=0)
    window_label = Column(String, nullable=True)  # customer-facing window, e.g. "11:00 AM"

    @property
    def minutes_since_midnight(self) -> int:
        hour = self.hour
        if self.meridiem == Meridiem.PM and hour != 12:
            hour += 12
        elif self.meridiem == Meridiem.AM and hour == 12:
            hour = 0
        return hour * 60 + (self.minute or 0)

    @property
    def display_time(self) -> str:
        return f"{self.hour}:{(self.minute or 0):02d} {Meridiem(self.meridiem).value}"

    @property
    def available_capacity(self) -> float:
        return (self.max_capacity or 0.0) - (self.current_load or 0.0)

    def __repr__(self):
        return f'<DriverSlot(id={self.id}, day={self.day_of_week}, time={self.display_time}, load={self.current_load}/{self.max_capacity})>'
