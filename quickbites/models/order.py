from datetime import date, datetime
from sqlalchemy import Column, Integer, String, Float, ForeignKey, Date, DateTime, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..enums import CapacityStatus, OrderStatus
from ..models.base import TimeStampMixin


class Order(Base, TimeStampMixin):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("order_code", "order_date", name="uq_orders_code_per_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_code = Column(String(6), nullable=False, index=True)
    order_date = Column(Date, nullable=False, default=date.today)
    user_id = Column(String, nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    slot_id = Column(Integer, ForeignKey("driver_slots.id"), nullable=False)
    coupon_usage_id = Column(Integer, ForeignKey("coupon_usages.id"), nullable=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING_PAYMENT)
    capacity_status = Column(Enum(CapacityStatus), nullable=False, default=CapacityStatus.PENDING)
    items = Column(JSON, nullable=False)  # snapshot of the cart lines at checkout
    required_load = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)
    subtotal_discount = Column(Float, nullable=False, default=0)
    delivery_fee = Column(Float, nullable=False)
    delivery_discount = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False)
    transaction_fee = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    payment_currency = Column(String, default="usd")
    payment_reference = Column(String, nullable=True, unique=True, index=True)
    payment_date = Column(DateTime, nullable=True)
    delivery_location = Column(String, nullable=True)

    slot = relationship("DriverSlot")
    restaurant = relationship("Restaurant")

    def __repr__(self):
        return f'<Order(code={self.order_code}, date={self.order_date}, status={self.status})>'
