from decimal import Decimal, ROUND_HALF_UP


CENT = Decimal("0.01")


def round_money(amount: float) -> float:
    """Round half-up to cents. Only used where amounts are shown or stored."""
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def to_minor_units(amount: float) -> int:
    """Amount in cents, as payment processors expect it."""
    return int((Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
