import pytest

from quickbites.models import Coupon
from quickbites.schemas.coupon import (
    DeliveryFeeWaiver,
    DeliveryPercentOff,
    FreeOrder,
    ItemPercentOff,
    RestaurantPercentOff,
    SubtotalPercentOff,
)
from quickbites.services.discount_service import DiscountResolver

from conftest import make_cart, make_item


def _coupon(category, percentage=0.0, restaurant_id=None, menu_item_id=None, code="SAVE"):
    return Coupon(
        code=code,
        category=category,
        percentage=percentage,
        restaurant_id=restaurant_id,
        menu_item_id=menu_item_id,
    )


@pytest.mark.parametrize(
    "category, expected",
    [
        ("delivery-fee", DeliveryFeeWaiver),
        ("referral", DeliveryPercentOff),
        ("delivery-free", DeliveryPercentOff),
        ("restaurant-fee", RestaurantPercentOff),
        ("dev-fee", FreeOrder),
        ("item-fee", ItemPercentOff),
        ("percent", SubtotalPercentOff),
        ("summer-special", SubtotalPercentOff),
    ],
)
def test_categories_map_to_rules(category, expected):
    assert isinstance(DiscountResolver.rule_for(_coupon(category, 10.0)), expected)


def test_no_coupon_means_no_discount():
    cart = make_cart(make_item(1, "Burger", price=20.0))
    breakdown = DiscountResolver().resolve(cart, 20.0, 4.0)
    assert breakdown.subtotal_discount == 0.0
    assert breakdown.delivery_discount == 0.0
    assert breakdown.coupon_code is None


def test_delivery_fee_coupon_waives_the_fee():
    cart = make_cart(make_item(1, "Burger", price=20.0))
    breakdown = DiscountResolver().resolve(cart, 20.0, 4.0, _coupon("delivery-fee", code="FREEDEL"))
    assert breakdown.final_delivery_fee == 0.0
    assert breakdown.final_subtotal == 20.0
    assert breakdown.coupon_code == "FREEDEL"


def test_referral_takes_a_percentage_of_delivery():
    cart = make_cart(make_item(1, "Burger", price=20.0))
    breakdown = DiscountResolver().resolve(cart, 20.0, 4.0, _coupon("referral", 50.0))
    assert breakdown.delivery_discount == pytest.approx(2.0)
    assert breakdown.final_delivery_fee == pytest.approx(2.0)
    assert breakdown.subtotal_discount == 0.0


def test_restaurant_coupon_discounts_whole_subtotal():
    cart = make_cart(
        make_item(1, "Burger", price=20.0, restaurant_id=1),
        make_item(2, "Fries", price=10.0, restaurant_id=1),
    )
    breakdown = DiscountResolver().resolve(cart, 30.0, 6.0, _coupon("restaurant-fee", 50.0, restaurant_id=1))
    assert breakdown.final_subtotal == pytest.approx(15.0)
    assert breakdown.final_delivery_fee == 6.0


def test_restaurant_coupon_needs_an_item_from_that_restaurant():
    cart = make_cart(make_item(1, "Burger", price=20.0, restaurant_id=2))
    breakdown = DiscountResolver().resolve(cart, 20.0, 4.0, _coupon("restaurant-fee", 50.0, restaurant_id=1))
    assert breakdown.subtotal_discount == 0.0


def test_dev_coupon_makes_the_order_free():
    cart = make_cart(make_item(1, "Burger", price=20.0))
    breakdown = DiscountResolver().resolve(cart, 20.0, 4.0, _coupon("dev-fee"))
    assert breakdown.final_subtotal == 0.0
    assert breakdown.final_delivery_fee == 0.0


def test_item_coupon_only_touches_matching_lines():
    cart = make_cart(
        make_item(7, "Milkshake", price=5.0, quantity=2, restaurant_id=1),
        make_item(7, "Milkshake", price=5.0, quantity=1, restaurant_id=2),
        make_item(8, "Burger", price=12.0, restaurant_id=1),
    )
    coupon = _coupon("item-fee", 20.0, restaurant_id=1, menu_item_id=7)
    breakdown = DiscountResolver().resolve(cart, 27.0, 5.4, coupon)
    assert breakdown.subtotal_discount == pytest.approx(2.0)
    assert breakdown.delivery_discount == 0.0


def test_unknown_category_is_percent_of_subtotal():
    cart = make_cart(make_item(1, "Burger", price=40.0))
    breakdown = DiscountResolver().resolve(cart, 40.0, 8.0, _coupon("launch-week", 25.0))
    assert breakdown.subtotal_discount == pytest.approx(10.0)


@pytest.mark.parametrize("category", ["delivery-fee", "referral", "restaurant-fee", "dev-fee", "item-fee", "percent"])
def test_final_amounts_never_go_negative(category):
    cart = make_cart(make_item(1, "Burger", price=10.0, restaurant_id=1))
    coupon = _coupon(category, 250.0, restaurant_id=1, menu_item_id=1)
    breakdown = DiscountResolver().resolve(cart, 10.0, 2.0, coupon)
    assert breakdown.final_subtotal >= 0.0
    assert breakdown.final_delivery_fee >= 0.0


def test_unhandled_rule_type_is_rejected():
    with pytest.raises(TypeError):
        DiscountResolver().apply_rule(object(), make_cart(), 10.0, 2.0)
