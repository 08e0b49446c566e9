from pydantic import BaseModel, Field
from typing import Annotated, Literal, Optional, Union
from datetime import datetime

from ..enums import CouponUsageStatus


class DeliveryFeeWaiver(BaseModel):
    """delivery-fee: the whole delivery fee is waived"""
    kind: Literal["delivery_fee_waiver"] = "delivery_fee_waiver"


class DeliveryPercentOff(BaseModel):
    """referral / delivery-free: a percentage of the delivery fee"""
    kind: Literal["delivery_percent_off"] = "delivery_percent_off"
    percentage: float


class RestaurantPercentOff(BaseModel):
    """restaurant-fee: a percentage of the whole subtotal when the cart has an item from the restaurant"""
    kind: Literal["restaurant_percent_off"] = "restaurant_percent_off"
    percentage: float
    restaurant_id: Optional[int] = None


class FreeOrder(BaseModel):
    """dev-fee: subtotal and delivery fee are both waived"""
    kind: Literal["free_order"] = "free_order"


class ItemPercentOff(BaseModel):
    """item-fee: a percentage of the matching item lines only"""
    kind: Literal["item_percent_off"] = "item_percent_off"
    percentage: float
    menu_item_id: Optional[int] = None
    restaurant_id: Optional[int] = None


class SubtotalPercentOff(BaseModel):
    """Any other category: a percentage of the subtotal"""
    kind: Literal["subtotal_percent_off"] = "subtotal_percent_off"
    percentage: float


DiscountRule = Annotated[
    Union[
        DeliveryFeeWaiver,
        DeliveryPercentOff,
        RestaurantPercentOff,
        FreeOrder,
        ItemPercentOff,
        SubtotalPercentOff,
    ],
    Field(discriminator="kind"),
]


class DiscountBreakdown(BaseModel):
    subtotal: float
    delivery_fee: float
    subtotal_discount: float = 0.0
    delivery_discount: float = 0.0
    coupon_code: Optional[str] = None

    @property
    def final_subtotal(self) -> float:
        return max(0.0, self.subtotal - self.subtotal_discount)

    @property
    def final_delivery_fee(self) -> float:
        return max(0.0, self.delivery_fee - self.delivery_discount)


class CouponResponse(BaseModel):
    """Schema for coupon responses"""
    id: int
    code: str
    title: Optional[str] = None
    category: str
    percentage: float
    restaurant_id: Optional[int] = None
    menu_item_id: Optional[int] = None
    max_usage: int
    starts_at: datetime
    ends_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CouponUsageResponse(BaseModel):
    """Schema for coupon usage responses"""
    id: int
    coupon_id: int
    status: CouponUsageStatus
    is_selected: bool
    coupon: CouponResponse

    class Config:
        from_attributes = True


class RedeemCouponRequest(BaseModel):
    code: str = Field(..., min_length=1)


class RedeemCouponResponse(BaseModel):
    usage: CouponUsageResponse
    already_redeemed: bool = False
