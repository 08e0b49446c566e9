from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Set

from ..enums import LoadWarningLevel


# category -> item id -> selected option
Customizations = Dict[str, Dict[str, str]]


class CartItem(BaseModel):
    """A single cart line"""
    id: int = Field(..., description="Menu item id")
    name: str
    price: float = Field(ge=0, description="Unit price, option price when an option is chosen")
    quantity: int = Field(ge=1, default=1)
    load_unit: float = Field(ge=0, default=0.0, description="Load units consumed by one unit of this item")
    restaurant_id: int
    restaurant_name: Optional[str] = None
    option: Optional[str] = None
    customizations: Optional[Customizations] = None

    def same_line(self, other: "CartItem") -> bool:
        """Two lines merge when they are the same dish, option, customizations and restaurant"""
        return (
            self.id == other.id
            and self.option == other.option
            and (self.customizations or {}) == (other.customizations or {})
            and self.restaurant_id == other.restaurant_id
        )

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Cart(BaseModel):
    """Explicit cart state, sent by the client with every request that needs it"""
    items: List[CartItem] = []

    def add_item(self, item: CartItem) -> "Cart":
        for existing in self.items:
            if existing.same_line(item):
                existing.quantity += item.quantity
                return self

        self.items.append(item.model_copy(deep=True))
        return self

    def remove_item(self, item: CartItem) -> "Cart":
        """Decrement a line by one, dropping it at zero"""
        match = next((line for line in self.items if line.same_line(item)), None)
        if match is None:
            match = next((line for line in self.items if line.id == item.id), None)
        if match is None:
            return self

        if match.quantity <= 1:
            self.items.remove(match)
        else:
            match.quantity -= 1
        return self

    def set_quantity(self, item: CartItem, quantity: int) -> "Cart":
        match = next((line for line in self.items if line.same_line(item)), None)
        if match is None:
            return self

        if quantity <= 0:
            self.items.remove(match)
        else:
            match.quantity = quantity
        return self

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def restaurant_ids(self) -> Set[int]:
        return {item.restaurant_id for item in self.items}

    @property
    def is_empty(self) -> bool:
        return not self.items


class LoadScore(BaseModel):
    total_score: float = 0.0
    is_overloaded: bool = False
    food_load: float = 0.0
    drink_load: float = 0.0
    drink_count: int = 0
    internal_drinks: int = 0


class LoadWarning(BaseModel):
    level: LoadWarningLevel
    message: Optional[str] = None


class CartScoreResponse(BaseModel):
    score: LoadScore
    warning: LoadWarning
    subtotal: float


class CartItemRequest(BaseModel):
    """Cart state plus the line being added or removed"""
    cart: Cart = Field(default_factory=Cart)
    item: CartItem
