"""
Tests for conversion fee calculation
"""

from decimal import Decimal

import pytest

from loyalty_engine.fee_calculator import FeeCalculator
from loyalty_engine.exceptions import ConfigurationError, InvalidAmountError


def test_fee_above_free_threshold():
    calculator = FeeCalculator(free_threshold=10000, base_fee_rate="0.005")
    assert calculator.compute_fee(15000, tier_discount_percent=0) == 25


def test_discounted_fee_is_floored():
    calculator = FeeCalculator()
    # 12.5 points rounds down to 12
    assert calculator.compute_fee(15000, tier_discount_percent="0.5") == 12


def test_no_fee_up_to_free_threshold():
    calculator = FeeCalculator()
    assert calculator.compute_fee(0) == 0
    assert calculator.compute_fee(9999) == 0
    assert calculator.compute_fee(10000) == 0
    assert calculator.compute_fee(10001) == 0


def test_fee_is_non_decreasing_in_amount():
    calculator = FeeCalculator()
    for discount in (0, Decimal("0.1"), Decimal("0.25"), Decimal("0.5")):
        fees = [calculator.compute_fee(amount, discount) for amount in range(0, 60001, 250)]
        assert all(a <= b for a, b in zip(fees, fees[1:]))
        assert all(fee >= 0 for fee in fees)


def test_full_discount_means_no_fee():
    calculator = FeeCalculator()
    assert calculator.compute_fee(500000, tier_discount_percent=1) == 0


def test_per_call_overrides():
    calculator = FeeCalculator()
    assert calculator.compute_fee(15000, free_threshold=20000) == 0
    assert calculator.compute_fee(15000, base_fee_rate="0.01") == 50


@pytest.mark.parametrize("amount", [-1, float("nan"), float("inf"), "abc", None])
def test_invalid_amounts_rejected(amount):
    calculator = FeeCalculator()
    with pytest.raises(InvalidAmountError):
        calculator.compute_fee(amount)


def test_invalid_discount_is_configuration_error():
    calculator = FeeCalculator()
    with pytest.raises(ConfigurationError):
        calculator.compute_fee(15000, tier_discount_percent="1.5")


def test_negative_settings_rejected():
    with pytest.raises(ConfigurationError):
        FeeCalculator(free_threshold=-1)
    with pytest.raises(ConfigurationError):
        FeeCalculator(base_fee_rate="-0.01")


def test_quote_amounts_floors_output():
    calculator = FeeCalculator()
    fee, net_amount, output_amount = calculator.quote_amounts(15000, Decimal("0.35"))
    assert fee == 25
    assert net_amount == Decimal(14975)
    # 14975 * 0.35 = 5241.25
    assert output_amount == 5241
