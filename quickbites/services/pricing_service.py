from typing import Optional

from ..models import Coupon
from ..schemas.cart import Cart
from ..schemas.order import PriceBreakdown
from .discount_service import DiscountResolver


TAX_RATE = 0.08875
DELIVERY_FEE_RATE = 0.20
TRANSACTION_FEE_RATE = 0.029
TRANSACTION_FEE_FIXED = 0.30


class PricingEngine:
    """
    Composes subtotal, delivery fee, discounts, tax and the card transaction fee.

    Amounts stay unrounded; use ``PriceBreakdown.rounded()`` when showing or storing them.
    """

    def __init__(self, resolver: Optional[DiscountResolver] = None):
        self.resolver = resolver or DiscountResolver()

    def price(self, cart: Cart, coupon: Optional[Coupon] = None) -> PriceBreakdown:
        subtotal = cart.subtotal
        # computed on the pre-discount subtotal
        delivery_fee = DELIVERY_FEE_RATE * subtotal

        discounts = self.resolver.resolve(cart, subtotal, delivery_fee, coupon)
        final_subtotal = discounts.final_subtotal
        final_delivery_fee = discounts.final_delivery_fee

        tax = TAX_RATE * final_subtotal
        transaction_fee = TRANSACTION_FEE_RATE * final_subtotal + TRANSACTION_FEE_FIXED
        total = final_subtotal + final_delivery_fee + tax + transaction_fee

        return PriceBreakdown(
            subtotal=subtotal,
            subtotal_discount=discounts.subtotal_discount,
            final_subtotal=final_subtotal,
            delivery_fee=delivery_fee,
            delivery_discount=discounts.delivery_discount,
            final_delivery_fee=final_delivery_fee,
            tax=tax,
            transaction_fee=transaction_fee,
            total=total,
        )
