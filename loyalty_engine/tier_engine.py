"""
Membership tier classification from trailing monthly conversion volume
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Tuple
from loguru import logger

from .models import MembershipTier, TierBenefit, TierProgress, as_amount, parse_decimal
from .exceptions import ConfigurationError, UnknownTierError


class TierEngine:
    """
    Pure classifier mapping trailing 30-day converted volume to a tier.

    Only tiers present in the threshold mapping take part in the ladder;
    their thresholds must strictly increase in tier order.
    """

    def __init__(
        self,
        tier_thresholds: Mapping[MembershipTier, Any],
        tier_discounts: Optional[Mapping[MembershipTier, Any]] = None,
        free_thresholds: Optional[Mapping[MembershipTier, Any]] = None,
        default_free_threshold: Any = Decimal("10000"),
    ):
        """
        Initialize the tier engine

        Args:
            tier_thresholds: Minimum volume per tier
            tier_discounts: Fee discount fraction per tier (missing tiers get 0)
            free_thresholds: Per-tier free conversion limits
            default_free_threshold: Free conversion limit for tiers without an override

        Raises:
            ConfigurationError: If the ladder is empty, negative or not strictly increasing
        """
        self._ladder = self._build_ladder(tier_thresholds)
        self._discounts = {
            _as_tier(tier): self._fraction(value, f"discount for {tier}")
            for tier, value in (tier_discounts or {}).items()
        }
        self._free_thresholds = {
            _as_tier(tier): self._non_negative(value, f"free threshold for {tier}")
            for tier, value in (free_thresholds or {}).items()
        }
        self._default_free_threshold = self._non_negative(default_free_threshold, "default free threshold")

        logger.debug("Tier ladder: " + ", ".join(f"{tier.value}>={minimum}" for tier, minimum in self._ladder))

    @classmethod
    def from_config(cls, config) -> "TierEngine":
        return cls(
            config.tier_thresholds,
            config.tier_discounts,
            config.tier_free_thresholds,
            config.free_threshold,
        )

    def _build_ladder(self, tier_thresholds: Mapping[MembershipTier, Any]) -> List[Tuple[MembershipTier, Decimal]]:
        thresholds = {_as_tier(tier): value for tier, value in tier_thresholds.items()}

        ladder = [
            (tier, self._non_negative(thresholds[tier], f"threshold for {tier.value}"))
            for tier in MembershipTier
            if tier in thresholds
        ]
        if not ladder:
            raise ConfigurationError("At least one tier threshold must be configured")

        for (lower, lower_min), (upper, upper_min) in zip(ladder, ladder[1:]):
            if upper_min == lower_min:
                raise ConfigurationError(
                    f"Degenerate tier ladder: {lower.value} and {upper.value} share threshold {lower_min}"
                )
            if upper_min < lower_min:
                raise ConfigurationError(
                    f"Tier thresholds must increase: {upper.value} ({upper_min}) < {lower.value} ({lower_min})"
                )
        return ladder

    @staticmethod
    def _non_negative(value: Any, name: str) -> Decimal:
        try:
            number = parse_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
        if not number.is_finite() or number < 0:
            raise ConfigurationError(f"{name} must be a non-negative number, got {value}")
        return number

    @classmethod
    def _fraction(cls, value: Any, name: str) -> Decimal:
        number = cls._non_negative(value, name)
        if number > 1:
            raise ConfigurationError(f"{name} must not exceed 1, got {value}")
        return number

    @property
    def tiers(self) -> List[MembershipTier]:
        return [tier for tier, _ in self._ladder]

    def threshold_for(self, tier: MembershipTier) -> Decimal:
        tier = MembershipTier.parse(tier)
        for candidate, minimum in self._ladder:
            if candidate == tier:
                return minimum
        raise ConfigurationError(f"Tier {tier} is not part of the configured ladder")

    def tier_for(self, volume: Any) -> MembershipTier:
        """Highest tier whose threshold the volume reaches (lowest tier below every threshold)"""
        volume = as_amount(volume, "volume")
        current = self._ladder[0][0]
        for tier, minimum in self._ladder:
            if volume >= minimum:
                current = tier
            else:
                break
        return current

    def progress_to_next(self, volume: Any) -> TierProgress:
        """
        Progress from the current tier towards the next one

        Returns:
            TierProgress; at the top tier next_tier is None and percent is 100
        """
        volume = as_amount(volume, "volume")
        tier = self.tier_for(volume)
        index = self.tiers.index(tier)

        if index == len(self._ladder) - 1:
            return TierProgress(tier=tier, next_tier=None, percent=100, points_needed=Decimal(0), volume=volume)

        current_min = self._ladder[index][1]
        next_tier, next_min = self._ladder[index + 1]
        # ladder construction guarantees span > 0
        span = next_min - current_min
        raw = ((volume - current_min) / span * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        percent = int(min(max(raw, Decimal(0)), Decimal(100)))

        return TierProgress(
            tier=tier,
            next_tier=next_tier,
            percent=percent,
            points_needed=max(next_min - volume, Decimal(0)),
            volume=volume,
        )

    def discount_for(self, tier: MembershipTier) -> Decimal:
        return self._discounts.get(MembershipTier.parse(tier), Decimal(0))

    def free_threshold_for(self, tier: MembershipTier) -> Decimal:
        return self._free_thresholds.get(MembershipTier.parse(tier), self._default_free_threshold)

    def benefits_for(self, tier: MembershipTier) -> TierBenefit:
        tier = MembershipTier.parse(tier)
        return TierBenefit(
            tier=tier,
            monthly_threshold=self.threshold_for(tier),
            fee_discount_percent=self.discount_for(tier),
            free_conversion_limit=self.free_threshold_for(tier),
        )

    def benefits(self) -> Dict[MembershipTier, TierBenefit]:
        """Benefits for every tier on the ladder, lowest first"""
        return {tier: self.benefits_for(tier) for tier in self.tiers}


def _as_tier(value: Any) -> MembershipTier:
    try:
        return MembershipTier.parse(value)
    except UnknownTierError as e:
        raise ConfigurationError(f"Unknown membership tier: {value!r}") from e
