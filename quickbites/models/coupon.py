from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from datetime import datetime

from ..db.base import Base
from ..enums import CouponUsageStatus
from ..models.base import TimeStampMixin


class Coupon(Base, TimeStampMixin):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=True)
    category = Column(String, nullable=False)  # see CouponCategory; unknown values fall back to percent off
    percentage = Column(Float, nullable=False, default=0.0)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True)  # restaurant-fee / item-fee
    menu_item_id = Column(Integer, nullable=True)  # item-fee
    max_usage = Column(Integer, nullable=False, default=1)  # per user
    remaining_uses = Column(Integer, nullable=True)  # referral rewards are gated by this counter instead
    starts_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    ends_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    usages = relationship("CouponUsage", back_populates="coupon")


class CouponUsage(Base, TimeStampMixin):
    __tablename__ = "coupon_usages"
    __table_args__ = (
        # one open (not yet applied) usage per user and coupon
        Index(
            "uq_coupon_usages_open",
            "user_id",
            "coupon_id",
            unique=True,
            postgresql_where=text("status != 'APPLIED'"),
            sqlite_where=text("status != 'APPLIED'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False)
    status = Column(Enum(CouponUsageStatus), nullable=False, default=CouponUsageStatus.REDEEMED)
    is_selected = Column(Boolean, nullable=False, default=False)
    order_id = Column(Integer, nullable=True)  # order the usage was applied to
    applied_at = Column(DateTime, nullable=True)

    coupon = relationship("Coupon", back_populates="usages", lazy="joined")

    def __repr__(self):
        return f'<CouponUsage(user_id={self.user_id}, coupon_id={self.coupon_id}, status={self.status})>'
