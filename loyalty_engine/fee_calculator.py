"""
Conversion fee calculation
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Any, Optional, Tuple
from loguru import logger

from .models import as_amount, parse_decimal
from .exceptions import ConfigurationError

DEFAULT_FREE_THRESHOLD = Decimal("10000")
DEFAULT_BASE_FEE_RATE = Decimal("0.005")


def floor_points(value: Decimal) -> int:
    """Round down to whole points"""
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class FeeCalculator:
    """
    Computes conversion fees in units of the source program.

    Only the part of the amount above the free threshold is charged, at the
    base fee rate reduced by the member's tier discount. Fees are floored to
    whole points so the member is never over-charged.
    """

    def __init__(self, free_threshold: Any = DEFAULT_FREE_THRESHOLD, base_fee_rate: Any = DEFAULT_BASE_FEE_RATE):
        self.free_threshold = self._check_setting(free_threshold, "free_threshold")
        self.base_fee_rate = self._check_setting(base_fee_rate, "base_fee_rate")

    @staticmethod
    def _check_setting(value: Any, name: str) -> Decimal:
        try:
            setting = parse_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
        if not setting.is_finite() or setting < 0:
            raise ConfigurationError(f"{name} must be a non-negative number, got {value}")
        return setting

    def compute_fee(
        self,
        amount: Any,
        tier_discount_percent: Any = 0,
        free_threshold: Optional[Any] = None,
        base_fee_rate: Optional[Any] = None,
    ) -> int:
        """
        Compute the fee charged on a conversion

        Args:
            amount: Points to convert, in the source program
            tier_discount_percent: Fee discount as a fraction (0.25 = 25% off)
            free_threshold: Override of the configured free threshold
            base_fee_rate: Override of the configured base fee rate

        Returns:
            Fee in whole source-program points

        Raises:
            InvalidAmountError: If the amount is negative or not finite
        """
        amount = as_amount(amount)
        discount = self._check_discount(tier_discount_percent)
        threshold = self.free_threshold if free_threshold is None else self._check_setting(free_threshold, "free_threshold")
        fee_rate = self.base_fee_rate if base_fee_rate is None else self._check_setting(base_fee_rate, "base_fee_rate")

        if amount <= threshold:
            return 0

        fee = (amount - threshold) * fee_rate * (Decimal(1) - discount)
        result = max(floor_points(fee), 0)
        logger.debug(f"Fee on {amount} (threshold {threshold}, rate {fee_rate}, discount {discount}): {fee} -> {result}")
        return result

    def quote_amounts(
        self,
        amount: Any,
        rate: Decimal,
        tier_discount_percent: Any = 0,
        free_threshold: Optional[Any] = None,
    ) -> Tuple[int, Decimal, int]:
        """
        Split a conversion into fee, net amount and output amount

        Returns:
            (fee, net_amount, output_amount); the output is floored to whole
            destination-program points
        """
        amount = as_amount(amount)
        fee = self.compute_fee(amount, tier_discount_percent, free_threshold=free_threshold)
        net_amount = amount - fee
        output_amount = floor_points(net_amount * Decimal(rate))
        return fee, net_amount, output_amount

    @staticmethod
    def _check_discount(value: Any) -> Decimal:
        try:
            discount = parse_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"Tier discount must be a number, got {value!r}") from e
        if not discount.is_finite() or not (0 <= discount <= 1):
            raise ConfigurationError(f"Tier discount must be between 0 and 1, got {value}")
        return discount
