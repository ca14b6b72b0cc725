import pytest

from cardcheck.pricing.cart import Cart, CartItem, ProductPricing, parse_formatted_total
from cardcheck.pricing.service import compute_cart_total, is_zero_total


def _lookup(table):
    def _inner(product_ids, currency_id):
        return {pid: table[pid] for pid in product_ids if pid in table}
    return _inner


def test_free_product_without_setup_fee_is_zero_total():
    cart = Cart(items=(CartItem(7, "monthly"),))
    assert is_zero_total(cart, pricing_lookup=_lookup({7: ProductPricing()})) is True


def test_setup_fee_makes_free_cycle_payable():
    cart = Cart(items=(CartItem(7, "free"),))
    pricing = {7: ProductPricing(monthly=5, setup_fee=5)}
    assert compute_cart_total(cart, _lookup(pricing)) == 5
    assert is_zero_total(cart, pricing_lookup=_lookup(pricing)) is False


def test_unknown_cycle_falls_back_to_monthly_price():
    cart = Cart(items=(CartItem(3, "weekly"),))
    pricing = {3: ProductPricing(monthly=4.5, annually=0)}
    assert compute_cart_total(cart, _lookup(pricing)) == 4.5


def test_total_sums_each_line_cycle_price():
    cart = Cart(items=(CartItem(1, "annually"), CartItem(2, "monthly")))
    pricing = {1: ProductPricing(annually=100), 2: ProductPricing(monthly=0)}
    assert compute_cart_total(cart, _lookup(pricing)) == 100


def test_empty_cart_is_never_zero_total():
    assert is_zero_total(Cart(), rendered_total="$0.00 USD") is False


def test_rendered_total_takes_precedence_over_recomputation():
    cart = Cart(items=(CartItem(9, "monthly"),))
    paid = _lookup({9: ProductPricing(monthly=9.99)})
    assert is_zero_total(cart, rendered_total="$0.00 USD", pricing_lookup=paid) is True
    assert is_zero_total(cart, rendered_total="$12.00 USD", pricing_lookup=_lookup({9: ProductPricing()})) is False


def test_pricing_lookup_failure_means_not_zero():
    def _boom(product_ids, currency_id):
        raise RuntimeError("db down")
    cart = Cart(items=(CartItem(1),))
    assert is_zero_total(cart, pricing_lookup=_boom) is False


@pytest.mark.parametrize("raw,expected", [
    ("$0.00 USD", 0.0),
    ("12,50 EUR", 1250.0),
    ("€19.99", 19.99),
    ("Free", 0.0),
    (0, 0.0),
    (3.5, 3.5),
    (None, None),
])
def test_parse_formatted_total(raw, expected):
    assert parse_formatted_total(raw) == expected


def test_parse_formatted_total_uses_to_numeric():
    class _Money:
        def to_numeric(self):
            return "0.00"
    assert parse_formatted_total(_Money()) == 0.0


def test_cart_from_session_skips_invalid_lines():
    cart = Cart.from_session(
        {"products": [{"pid": "7", "billingcycle": "Annually"}, {"pid": "x"}, {"pid": 0}, {"pid": 8}]},
        currency_id=2,
    )
    assert cart.items == (CartItem(7, "annually"), CartItem(8, "monthly"))
    assert cart.currency_id == 2
    assert Cart.from_session(None, 1).is_empty()
