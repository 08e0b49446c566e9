from .admission_service import AdmissionController
from .cart_service import LoadScorer
from .coupon_service import CouponService
from .discount_service import DiscountResolver
from .order_service import OrderService
from .payment_service import PaymentService
from .pricing_service import PricingEngine
from .reservation_service import SlotReservation
from .scheduling_service import SchedulingService
from .window_service import WindowAggregator


__all__ = [
    "AdmissionController",
    "CouponService",
    "DiscountResolver",
    "LoadScorer",
    "OrderService",
    "PaymentService",
    "PricingEngine",
    "SchedulingService",
    "SlotReservation",
    "WindowAggregator",
]
