"""
Tests for checkout total calculation.
"""
from decimal import Decimal

from storefront.schemas.cart import CartDisplayItem
from storefront.schemas.coupon import Coupon
from storefront.services.pricing import calculate_subtotal, calculate_total, calculate_totals


def item(product_id: str, price: str, quantity: int) -> CartDisplayItem:
    return CartDisplayItem(id=product_id, name=product_id.upper(), price=Decimal(price), quantity=quantity)


FIXED5 = Coupon(id="c2", code="FIXED5", type="fixed", discount_value=Decimal("5"),
                min_purchase_amount=Decimal("20"))
SAVE10 = Coupon(id="c1", code="SAVE10", type="percentage", discount_value=Decimal("10"),
                min_purchase_amount=Decimal("50"))


class TestCalculateSubtotal:

    def test_sum_of_price_times_quantity(self):
        assert calculate_subtotal([item("a", "100", 2), item("b", "15.50", 3)]) == Decimal("246.50")

    def test_empty(self):
        assert calculate_subtotal([]) == Decimal("0")


class TestCalculateTotal:

    def test_subtracts_discount(self):
        assert calculate_total(Decimal("200"), Decimal("5")) == Decimal("195")

    def test_never_negative(self):
        assert calculate_total(Decimal("10"), Decimal("25")) == Decimal("0")


class TestCalculateTotals:

    def test_fixed_coupon_scenario(self):
        totals = calculate_totals([item("a", "100", 2)], FIXED5)

        assert totals.subtotal == Decimal("200")
        assert totals.discount == Decimal("5")
        assert totals.total == Decimal("195")
        assert totals.item_count == 2

    def test_percentage_coupon(self):
        totals = calculate_totals([item("a", "100", 2)], SAVE10)

        assert totals.discount == Decimal("20")
        assert totals.total == Decimal("180")

    def test_no_coupon(self):
        totals = calculate_totals([item("a", "40", 1)])

        assert totals.discount == Decimal("0")
        assert totals.total == Decimal("40")

    def test_fixed_discount_capped_at_subtotal(self):
        big = Coupon(id="c9", code="BIG", type="fixed", discount_value=Decimal("500"))

        totals = calculate_totals([item("a", "30", 1)], big)

        assert totals.discount == Decimal("30")
        assert totals.total == Decimal("0")
