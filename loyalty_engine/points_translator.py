"""
Points translator: what a balance is worth in real-world redemptions
"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional
from loguru import logger

from .models import (
    PointsTranslation, Program, RedemptionCategory, RedemptionItem, as_amount, parse_decimal
)
from .redemption_catalog import RedemptionCatalog
from .exceptions import ConfigurationError, ValidationError

TOP_RANKED = "top_ranked"
WEIGHTED = "weighted"

# (upper bound exclusive, message template); the last band has no bound
BALANCE_BANDS = [
    (1000, "Your {points} {program} points are worth about ${cash} - maybe grab a coffee or snack."),
    (5000, "With {points} {program} points (about ${cash}) you could get a nice meal or movie tickets."),
    (15000, "Your {points} {program} points are valued around ${cash} - enough for a quality restaurant dinner for two."),
    (30000, "Those {points} {program} points are worth approximately ${cash} - consider a weekend getaway or a nice shopping spree."),
    (60000, "With {points} {program} points (valued at ~${cash}), you could enjoy a domestic flight or a short vacation package."),
    (None, "Your impressive {points} {program} points balance is worth around ${cash} - enough for an international flight or luxury hotel stay."),
]


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def ranking_key(item: RedemptionItem):
    """Best value first; equal value ratios put the cheapest item first"""
    return (-item.value_ratio, item.points_required)


class PointsTranslator:
    """
    Translates a point balance into ranked redemption equivalents.

    Stateless apart from the catalog it reads; every call returns new values.
    """

    def __init__(
        self,
        catalog: RedemptionCatalog,
        best_value_limit: Optional[int] = None,
        cash_value_method: str = TOP_RANKED,
        upsell_reach_factor: Any = Decimal("2"),
    ):
        """
        Initialize the translator

        Args:
            catalog: Redemption catalog to read items from
            best_value_limit: Default top-N for best_value_redemptions (None = all)
            cash_value_method: 'top_ranked' (ratio of the best item) or 'weighted'
            upsell_reach_factor: Almost-there window as a multiple of the balance
        """
        if cash_value_method not in (TOP_RANKED, WEIGHTED):
            raise ConfigurationError(f"Unknown cash value method: {cash_value_method}")
        if best_value_limit is not None and best_value_limit < 1:
            raise ConfigurationError(f"best_value_limit must be positive, got {best_value_limit}")
        self.catalog = catalog
        self.best_value_limit = best_value_limit
        self.cash_value_method = cash_value_method
        self.upsell_reach_factor = self._check_reach_factor(upsell_reach_factor)

    @staticmethod
    def _check_reach_factor(value: Any) -> Decimal:
        try:
            factor = parse_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"upsell_reach_factor must be a number, got {value!r}") from e
        if not factor.is_finite() or factor <= 0:
            raise ConfigurationError(f"upsell_reach_factor must be a positive number, got {value}")
        return factor

    @classmethod
    def from_config(cls, catalog: RedemptionCatalog, config) -> "PointsTranslator":
        return cls(
            catalog,
            best_value_limit=config.best_value_limit,
            cash_value_method=config.cash_value_method,
            upsell_reach_factor=config.upsell_reach_factor,
        )

    def translate(
        self,
        balance: Any,
        program: Program,
        category: Optional[RedemptionCategory] = None,
    ) -> List[PointsTranslation]:
        """
        Annotate every redemption item of a program against a balance

        Args:
            balance: Points held in the program
            program: Program the balance belongs to
            category: Optional category filter

        Returns:
            Translations sorted by descending value ratio, ties by ascending
            points required
        """
        balance = as_amount(balance, "balance")
        items = sorted(self.catalog.get_redemptions(program), key=ranking_key)

        translations = [self._annotate(balance, item) for item in items]
        if category is not None:
            translations = self.filter_by_category(translations, category)
        return translations

    def _annotate(self, balance: Decimal, item: RedemptionItem) -> PointsTranslation:
        required = Decimal(item.points_required)
        affordable = balance >= required
        if affordable:
            progress = 100
            needed = 0
        else:
            progress = min(100, _round_half_up(balance / required * 100))
            needed = int((required - balance).to_integral_value(rounding=ROUND_CEILING))
        return PointsTranslation(
            item=item,
            affordable=affordable,
            progress_percent=progress,
            points_needed=needed,
            value_ratio=item.value_ratio,
        )

    @staticmethod
    def filter_by_category(
        translations: Iterable[PointsTranslation],
        category: RedemptionCategory,
    ) -> List[PointsTranslation]:
        category = RedemptionCategory(category)
        return [translation for translation in translations if translation.category == category]

    def best_value_redemptions(
        self,
        program: Program,
        balance: Any,
        limit: Optional[int] = None,
    ) -> List[PointsTranslation]:
        """Affordable translations in value order, capped at limit (or the configured default)"""
        if limit is None:
            limit = self.best_value_limit
        elif limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}")
        affordable = [t for t in self.translate(balance, program) if t.affordable]
        return affordable[:limit] if limit is not None else affordable

    def estimated_cash_value(self, balance: Any, program: Program, method: Optional[str] = None) -> Decimal:
        """
        Approximate cash value of a balance, rounded to whole currency units

        'top_ranked' prices the whole balance at the value ratio of the best
        ranked item in the catalog. 'weighted' uses the pooled ratio
        (total cash / total points) of the items the balance can afford, and
        is 0 when nothing is affordable.
        """
        method = method or self.cash_value_method
        balance = as_amount(balance, "balance")
        translations = self.translate(balance, program)
        if not translations:
            return Decimal(0)

        if method == TOP_RANKED:
            top = translations[0].item
            estimate = balance * top.cash_value / Decimal(top.points_required)
        elif method == WEIGHTED:
            affordable = [t.item for t in translations if t.affordable]
            if not affordable:
                return Decimal(0)
            total_cash = sum((item.cash_value for item in affordable), Decimal(0))
            total_points = sum(item.points_required for item in affordable)
            estimate = balance * total_cash / Decimal(total_points)
        else:
            raise ConfigurationError(f"Unknown cash value method: {method}")

        return estimate.quantize(Decimal(1), rounding=ROUND_HALF_UP)

    def almost_there(self, balance: Any, program: Program) -> List[PointsTranslation]:
        """
        Upsell list of rewards just out of reach

        One item per category: the best ranked unaffordable item costing at
        most upsell_reach_factor times the balance. Ordered by ascending
        points required.
        """
        balance = as_amount(balance, "balance")
        reach = balance * self.upsell_reach_factor

        first_per_category = {}
        for translation in self.translate(balance, program):
            if translation.affordable or translation.points_required > reach:
                continue
            first_per_category.setdefault(translation.category, translation)

        upcoming = sorted(first_per_category.values(), key=lambda t: t.points_required)
        logger.debug(f"{len(upcoming)} almost-there rewards for {balance} {Program.parse(program).value}")
        return upcoming

    @staticmethod
    def points_needed(balance: Any, item: RedemptionItem) -> int:
        """Additional points needed for an item, 0 if already affordable"""
        balance = as_amount(balance, "balance")
        if balance >= item.points_required:
            return 0
        return int((Decimal(item.points_required) - balance).to_integral_value(rounding=ROUND_CEILING))

    def dollar_value(self, balance: Any, program: Program) -> Decimal:
        """Balance times the program's cash value per point"""
        balance = as_amount(balance, "balance")
        point_value = self.catalog.point_value(program)
        if point_value is None:
            raise ConfigurationError(f"No point value configured for {Program.parse(program).value}")
        return balance * point_value

    def describe_balance(self, balance: Any, program: Program) -> str:
        """One-line description of what a balance is roughly worth"""
        balance = as_amount(balance, "balance")
        program = Program.parse(program)
        cash = _round_half_up(self.dollar_value(balance, program))
        points = _round_half_up(balance)
        for upper, template in BALANCE_BANDS:
            if upper is None or points < upper:
                return template.format(points=points, program=program.value, cash=cash)
