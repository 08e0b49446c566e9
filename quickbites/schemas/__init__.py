from .cart import (
    Cart,
    CartItem,
    CartScoreResponse,
    CartItemRequest,
    LoadScore,
    LoadWarning,
)
from .coupon import (
    CouponResponse,
    CouponUsageResponse,
    DiscountBreakdown,
    DiscountRule,
    RedeemCouponRequest,
    RedeemCouponResponse,
)
from .order import (
    CheckoutRequest,
    CheckoutResponse,
    OrderResponse,
    PriceBreakdown,
    QuoteResponse,
)
from .slot import (
    AdmissionDecision,
    AdmissionRequest,
    AlternativeWindow,
    CustomerWindow,
    DriverSlotResponse,
)


__all__ = [
    # cart schemas
    "Cart",
    "CartItem",
    "CartItemRequest",
    "CartScoreResponse",
    "LoadScore",
    "LoadWarning",

    # coupon schemas
    "CouponResponse",
    "CouponUsageResponse",
    "DiscountBreakdown",
    "DiscountRule",
    "RedeemCouponRequest",
    "RedeemCouponResponse",

    # order schemas
    "CheckoutRequest",
    "CheckoutResponse",
    "OrderResponse",
    "PriceBreakdown",
    "QuoteResponse",

    # slot schemas
    "AdmissionDecision",
    "AdmissionRequest",
    "AlternativeWindow",
    "CustomerWindow",
    "DriverSlotResponse",
]
