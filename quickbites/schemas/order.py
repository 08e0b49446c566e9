from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date

from ..enums import CapacityStatus, OrderStatus
from .cart import Cart, CartItem, LoadScore
from .slot import AdmissionDecision
from ..utils.money import round_money


class PriceBreakdown(BaseModel):
    """Unrounded amounts; call ``rounded()`` at display or persistence boundaries"""
    subtotal: float
    subtotal_discount: float = 0.0
    final_subtotal: float
    delivery_fee: float
    delivery_discount: float = 0.0
    final_delivery_fee: float
    tax: float
    transaction_fee: float
    total: float

    def rounded(self) -> "PriceBreakdown":
        return PriceBreakdown(**{name: round_money(value) for name, value in self.model_dump().items()})


class CheckoutRequest(BaseModel):
    cart: Cart
    slot_id: int
    delivery_location: Optional[str] = None


class QuoteResponse(BaseModel):
    score: LoadScore
    admission: Optional[AdmissionDecision] = None
    pricing: PriceBreakdown
    coupon_code: Optional[str] = None


class CheckoutResponse(BaseModel):
    order_id: int
    order_code: str = Field(..., min_length=6, max_length=6)
    order_date: date
    client_secret: str
    amount: int = Field(..., description="Amount charged, in the currency's minor unit")
    currency: str
    pricing: PriceBreakdown
    admission: AdmissionDecision


class OrderResponse(BaseModel):
    """Schema for order responses"""
    id: int
    order_code: str
    order_date: date
    user_id: str
    restaurant_id: int
    slot_id: int
    status: OrderStatus
    capacity_status: CapacityStatus
    items: List[CartItem]
    required_load: float
    subtotal: float
    subtotal_discount: float
    delivery_fee: float
    delivery_discount: float
    tax: float
    transaction_fee: float
    total: float

    class Config:
        from_attributes = True
