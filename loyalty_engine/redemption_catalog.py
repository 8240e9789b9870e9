"""
Static redemption catalog: what points of each program can be exchanged for
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .models import Program, RedemptionCategory, RedemptionItem, parse_decimal
from .exceptions import ConfigurationError, UnknownProgramError


class RedemptionCatalog:
    """
    Read-only table of redemption items keyed by program.

    Lookups return tuples, so repeated calls are independent and the
    catalog cannot be mutated through them.
    """

    def __init__(self, items: Iterable[RedemptionItem] = (), point_values: Optional[Mapping[Program, Any]] = None):
        """
        Initialize the catalog

        Args:
            items: Redemption items for any number of programs
            point_values: Approximate cash value of one point per program
        """
        grouped: Dict[Program, List[RedemptionItem]] = {}
        for item in items:
            grouped.setdefault(item.program, []).append(item)
        self._items: Dict[Program, Tuple[RedemptionItem, ...]] = {
            program: tuple(program_items) for program, program_items in grouped.items()
        }

        self._point_values: Dict[Program, Decimal] = {}
        for program, value in (point_values or {}).items():
            point_value = parse_decimal(value)
            if point_value <= 0:
                raise ConfigurationError(f"Point value for {program} must be positive, got {value}")
            self._point_values[Program.parse(program)] = point_value

        logger.debug(f"Redemption catalog holds {sum(len(v) for v in self._items.values())} items "
                     f"across {len(self._items)} programs")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RedemptionCatalog":
        """
        Build a catalog from its JSON representation

        Programs listed under 'programs' use their own items. Every other
        program with a point value gets the 'standard_rewards', priced in
        that program's points.
        """
        point_values = {}
        for program, value in (data.get('point_values') or {}).items():
            try:
                point_values[Program.parse(program)] = parse_decimal(value)
            except (ValueError, UnknownProgramError) as e:
                raise ConfigurationError(f"Invalid point value for {program}: {e}") from e

        items: List[RedemptionItem] = []
        explicit_programs = set()
        for program_code, rows in (data.get('programs') or {}).items():
            try:
                program = Program.parse(program_code)
            except UnknownProgramError:
                logger.warning(f"Skipping catalog entries for unknown program {program_code}")
                continue
            explicit_programs.add(program)
            for row in rows:
                item = _parse_item(program, row)
                if item is not None:
                    items.append(item)

        standard_rewards = data.get('standard_rewards') or []
        for program, point_value in point_values.items():
            if program in explicit_programs:
                continue
            items.extend(price_standard_rewards(standard_rewards, program, point_value))

        return cls(items, point_values)

    def get_redemptions(self, program: Program) -> Tuple[RedemptionItem, ...]:
        """All redemption items for a program (empty when none are configured)"""
        return self._items.get(Program.parse(program), ())

    def programs(self) -> List[Program]:
        return [program for program in Program if program in self._items]

    def categories(self, program: Program) -> List[RedemptionCategory]:
        present = {item.category for item in self.get_redemptions(program)}
        return [category for category in RedemptionCategory if category in present]

    def point_value(self, program: Program) -> Optional[Decimal]:
        """Approximate cash value of a single point, if known"""
        return self._point_values.get(Program.parse(program))


def price_standard_rewards(
    rewards: Iterable[Mapping[str, Any]],
    program: Program,
    point_value: Decimal,
) -> List[RedemptionItem]:
    """
    Price program-agnostic rewards in a program's points

    Each reward's points requirement is its cash value divided by the
    program's value per point, rounded to whole points.
    """
    if point_value <= 0:
        raise ConfigurationError(f"Point value for {program.value} must be positive, got {point_value}")

    priced = []
    for reward in rewards:
        try:
            cash_value = parse_decimal(reward['cash_value'])
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping standard reward {reward.get('title', '?')}: {e}")
            continue
        points_required = int((cash_value / point_value).quantize(Decimal(1), rounding=ROUND_HALF_UP))
        item = _parse_item(program, {**reward, 'points_required': points_required})
        if item is not None:
            priced.append(item)
    return priced


def _parse_item(program: Program, row: Mapping[str, Any]) -> Optional[RedemptionItem]:
    try:
        return RedemptionItem(program=program, **row)
    except (PydanticValidationError, TypeError) as e:
        logger.warning(f"Skipping malformed redemption item for {program.value}: {row.get('title', row)} ({e})")
        return None
