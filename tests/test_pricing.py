import pytest

from shop.services.pricing import (
    DEFAULT_MARGIN,
    derive_margin,
    retail_prices,
    sale_price,
    validate_margin,
    weight_in_kg,
    wholesale_price,
)


def test_sale_price():
    assert sale_price(80, 35) == pytest.approx(108.0)
    assert sale_price(50, 0) == pytest.approx(50.0)
    assert sale_price(10, 1000) == pytest.approx(110.0)


def test_retail_prices_scale_from_1kg():
    prices = retail_prices(80, 35)
    assert prices["1kg"] == pytest.approx(108.0)
    assert prices["500g"] == pytest.approx(54.0)
    assert prices["200g"] == pytest.approx(21.6)


def test_zero_margin_sells_at_cost():
    assert retail_prices(42, 0)["1kg"] == pytest.approx(42.0)


def test_wholesale_price():
    assert wholesale_price(80, weight_in_kg("3kg"), 25) == pytest.approx(300.0)
    assert wholesale_price(100, weight_in_kg("10kg"), 18) == pytest.approx(1180.0)


def test_weight_in_kg_unknown_tier():
    with pytest.raises(ValueError):
        weight_in_kg("7kg")


def test_derive_margin_inverts_retail_prices():
    assert derive_margin(80, retail_prices(80, 42.5)) == pytest.approx(42.5)
    assert derive_margin(100, {"1kg": 150}) == pytest.approx(50.0)


@pytest.mark.parametrize(
    "cost, prices",
    [(0, {"1kg": 100}), (None, {"1kg": 100}), (80, None), (80, {"1kg": 0}), (80, {})],
)
def test_derive_margin_falls_back_to_default(cost, prices):
    assert derive_margin(cost, prices) == DEFAULT_MARGIN


@pytest.mark.parametrize("value", [0, "0", 35, "35.5", 1000])
def test_validate_margin_accepts(value):
    assert validate_margin(value).valid


@pytest.mark.parametrize(
    "value, reason",
    [
        ("abc", "not_a_number"),
        (None, "not_a_number"),
        (float("nan"), "not_a_number"),
        (-0.01, "negative"),
        ("-5", "negative"),
        (1000.01, "too_large"),
    ],
)
def test_validate_margin_rejects(value, reason):
    result = validate_margin(value)
    assert not result.valid
    assert result.reason == reason
    assert result.message
