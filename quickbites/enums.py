import enum


class Meridiem(str, enum.Enum):
    AM = "AM"
    PM = "PM"


class DayOfWeek(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """ Map ``date.weekday()`` (Monday == 0) to a day name. """
        return list(cls)[weekday % 7]


class LoadWarningLevel(str, enum.Enum):
    NORMAL = "normal"
    LARGE = "large"
    HEAVY = "heavy"


class AdmissionLevel(str, enum.Enum):
    NORMAL = "NORMAL"
    LARGE = "LARGE"
    OVER = "OVER"
    SHOP_FULL = "SHOP_FULL"


class CouponCategory(str, enum.Enum):
    DELIVERY_FEE = "delivery-fee"
    REFERRAL = "referral"
    DELIVERY_FREE = "delivery-free"
    RESTAURANT_FEE = "restaurant-fee"
    DEV_FEE = "dev-fee"
    ITEM_FEE = "item-fee"
    PERCENT = "percent"


class CouponUsageStatus(str, enum.Enum):
    AVAILABLE = "available"
    REDEEMED = "redeemed"
    APPLIED = "applied"


class OrderStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"
    CANCELLED = "cancelled"


class CapacityStatus(str, enum.Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class ReservationResult(str, enum.Enum):
    COMMITTED = "committed"
    ALREADY_COMMITTED = "already_committed"
    FAILED = "failed"
