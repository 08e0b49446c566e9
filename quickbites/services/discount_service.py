from typing import Optional

from ..enums import CouponCategory
from ..models import Coupon
from ..schemas.cart import Cart
from ..schemas.coupon import (
    DeliveryFeeWaiver,
    DeliveryPercentOff,
    DiscountBreakdown,
    DiscountRule,
    FreeOrder,
    ItemPercentOff,
    RestaurantPercentOff,
    SubtotalPercentOff,
)


class DiscountResolver:
    """
    Turns the single selected coupon into subtotal and delivery discounts.

    The resolver never picks a coupon by itself; callers pass the one the user
    selected, or ``None``.
    """

    @staticmethod
    def rule_for(coupon: Coupon) -> DiscountRule:
        percentage = coupon.percentage or 0.0
        try:
            category = CouponCategory(coupon.category)
        except ValueError:
            return SubtotalPercentOff(percentage=percentage)

        if category == CouponCategory.DELIVERY_FEE:
            return DeliveryFeeWaiver()
        if category in (CouponCategory.REFERRAL, CouponCategory.DELIVERY_FREE):
            return DeliveryPercentOff(percentage=percentage)
        if category == CouponCategory.RESTAURANT_FEE:
            return RestaurantPercentOff(percentage=percentage, restaurant_id=coupon.restaurant_id)
        if category == CouponCategory.DEV_FEE:
            return FreeOrder()
        if category == CouponCategory.ITEM_FEE:
            return ItemPercentOff(
                percentage=percentage,
                menu_item_id=coupon.menu_item_id,
                restaurant_id=coupon.restaurant_id,
            )
        return SubtotalPercentOff(percentage=percentage)

    def apply_rule(self, rule: DiscountRule, cart: Cart, subtotal: float, delivery_fee: float) -> DiscountBreakdown:
        breakdown = DiscountBreakdown(subtotal=subtotal, delivery_fee=delivery_fee)

        if isinstance(rule, DeliveryFeeWaiver):
            breakdown.delivery_discount += delivery_fee

        elif isinstance(rule, DeliveryPercentOff):
            breakdown.delivery_discount += delivery_fee * rule.percentage / 100

        elif isinstance(rule, RestaurantPercentOff):
            # the whole subtotal, not only the matching restaurant's share
            if any(item.restaurant_id == rule.restaurant_id for item in cart.items):
                breakdown.subtotal_discount += subtotal * rule.percentage / 100

        elif isinstance(rule, FreeOrder):
            breakdown.subtotal_discount += subtotal
            breakdown.delivery_discount += delivery_fee

        elif isinstance(rule, ItemPercentOff):
            for item in cart.items:
                if item.id == rule.menu_item_id and item.restaurant_id == rule.restaurant_id:
                    breakdown.subtotal_discount += item.price * item.quantity * rule.percentage / 100

        elif isinstance(rule, SubtotalPercentOff):
            breakdown.subtotal_discount += subtotal * rule.percentage / 100

        else:
            raise TypeError(f"Unhandled discount rule: {rule!r}")

        return breakdown

    def resolve(
        self,
        cart: Cart,
        subtotal: float,
        delivery_fee: float,
        coupon: Optional[Coupon] = None,
    ) -> DiscountBreakdown:
        if coupon is None:
            return DiscountBreakdown(subtotal=subtotal, delivery_fee=delivery_fee)

        breakdown = self.apply_rule(self.rule_for(coupon), cart, subtotal, delivery_fee)
        breakdown.coupon_code = coupon.code
        return breakdown
