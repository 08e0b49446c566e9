from .restaurant import Restaurant
from .driver_slot import DriverSlot
from .coupon import Coupon, CouponUsage
from .order import Order


__all__ = [
    "Coupon",
    "CouponUsage",
    "DriverSlot",
    "Order",
    "Restaurant",
]
