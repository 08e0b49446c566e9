from typing import Iterable

from ..enums import LoadWarningLevel
from ..schemas.cart import CartItem, LoadScore, LoadWarning


MAX_CAPACITY = 20.0
FREE_DRINK_SLOTS = 4  # drinks that ride in the bag's external pockets
INTERNAL_DRINK_LOAD = 4.0
LARGE_ORDER_RATIO = 0.75

DRINK_KEYWORDS = (
    'soda', 'shake', 'water', 'drink', 'juice', 'tea', 'coffee',
    'smoothie', 'lemonade', 'cola', 'pepsi', 'sprite',
)


class LoadScorer:
    """
    Converts a cart into the load units (LU) it will consume in a courier's bag.

    Food items cost their own ``load_unit`` per unit. Drinks are recognised by name;
    the first ``FREE_DRINK_SLOTS`` of them are free, every further drink costs
    ``INTERNAL_DRINK_LOAD``. The score is a plain sum, so item order never matters.
    """

    def is_drink(self, item: CartItem) -> bool:
        name = (item.name or '').lower()
        return any(keyword in name for keyword in DRINK_KEYWORDS)

    def score(self, items: Iterable[CartItem]) -> LoadScore:
        food_load = 0.0
        drink_count = 0

        for item in items:
            if self.is_drink(item):
                drink_count += item.quantity
            else:
                food_load += item.load_unit * item.quantity

        internal_drinks = max(0, drink_count - FREE_DRINK_SLOTS)
        drink_load = internal_drinks * INTERNAL_DRINK_LOAD
        total_score = round(food_load + drink_load, 2)

        return LoadScore(
            total_score=total_score,
            is_overloaded=total_score > MAX_CAPACITY,
            food_load=round(food_load, 2),
            drink_load=round(drink_load, 2),
            drink_count=drink_count,
            internal_drinks=internal_drinks,
        )

    def warning(self, total_score: float, max_capacity: float = MAX_CAPACITY) -> LoadWarning:
        """Advisory level shown before a concrete slot is chosen; never a rejection"""
        if total_score <= max_capacity * LARGE_ORDER_RATIO:
            return LoadWarning(level=LoadWarningLevel.NORMAL)

        if total_score <= max_capacity:
            return LoadWarning(
                level=LoadWarningLevel.LARGE,
                message="Large Order: Handled with extra care",
            )

        return LoadWarning(
            level=LoadWarningLevel.HEAVY,
            message="Multi-Trip Order: Items will arrive in split deliveries",
        )
