"""
Data models for the Loyalty Engine
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Any
from dateutil import parser
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import InvalidAmountError, UnknownProgramError, UnknownTierError


class Program(str, Enum):
    """Loyalty programs known to the exchange"""

    QANTAS = "QANTAS"
    GYG = "GYG"
    XPOINTS = "XPOINTS"
    VELOCITY = "VELOCITY"
    AMEX = "AMEX"
    FLYBUYS = "FLYBUYS"
    HILTON = "HILTON"
    MARRIOTT = "MARRIOTT"
    AIRBNB = "AIRBNB"
    DELTA = "DELTA"

    @classmethod
    def parse(cls, value: Any) -> "Program":
        """
        Convert a caller-supplied identifier into a Program

        Args:
            value: Program member or program code (case-insensitive)

        Returns:
            Matching Program

        Raises:
            UnknownProgramError: If the identifier is not a known program
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnknownProgramError(f"Unknown loyalty program: {value!r}")


class MembershipTier(str, Enum):
    """Membership tiers, declared lowest to highest"""

    STANDARD = "STANDARD"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

    @classmethod
    def parse(cls, value: Any) -> "MembershipTier":
        """Convert a tier member or case-insensitive tier name, raising UnknownTierError"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnknownTierError(f"Unknown membership tier: {value!r}")

    @property
    def rank(self) -> int:
        return list(MembershipTier).index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()


class RedemptionCategory(str, Enum):
    TRAVEL = "travel"
    DINING = "dining"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    SERVICES = "services"


def parse_decimal(value: Any) -> Decimal:
    """Convert int/float/str to Decimal via its string form"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"invalid decimal value {value!r}") from e


def as_amount(value: Any, name: str = "amount") -> Decimal:
    """
    Validate a non-negative finite quantity of points

    Raises:
        InvalidAmountError: If the value is negative, NaN, infinite or not numeric
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidAmountError(f"{name} must be finite, got {value}")
    try:
        amount = parse_decimal(value)
    except ValueError as e:
        raise InvalidAmountError(f"{name} must be a number, got {value!r}") from e
    if not amount.is_finite():
        raise InvalidAmountError(f"{name} must be finite, got {value}")
    if amount < 0:
        raise InvalidAmountError(f"{name} must be non-negative, got {value}")
    return amount


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp; naive values are taken as UTC"""
    if value is None or value == "":
        return None
    if not isinstance(value, datetime):
        value = parser.parse(str(value))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class ExchangeRate(BaseModel):
    """1 unit of from_program yields `rate` units of to_program"""

    model_config = ConfigDict(frozen=True)

    from_program: Program
    to_program: Program
    rate: Decimal = Field(gt=0)
    last_updated: Optional[datetime] = None

    @field_validator('rate', mode='before')
    @classmethod
    def _parse_rate(cls, v):
        return parse_decimal(v)

    @field_validator('last_updated', mode='before')
    @classmethod
    def _parse_last_updated(cls, v):
        return parse_timestamp(v)


class ResolvedRate(BaseModel):
    """Rate between two programs together with the route used to obtain it"""

    model_config = ConfigDict(frozen=True)

    from_program: Program
    to_program: Program
    rate: Decimal
    route: List[Program]
    last_updated: Optional[datetime] = None

    @property
    def via_hub(self) -> bool:
        return len(self.route) > 2


class ConversionQuote(BaseModel):
    """Fee-adjusted conversion quote; computed on demand, never persisted"""

    model_config = ConfigDict(frozen=True)

    from_program: Program
    to_program: Program
    input_amount: Decimal
    fee: int
    net_amount: Decimal
    output_amount: int
    rate_used: Decimal
    tier: MembershipTier
    route: List[Program]
    rate_last_updated: Optional[datetime] = None


class TierBenefit(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: MembershipTier
    monthly_threshold: Decimal
    fee_discount_percent: Decimal
    free_conversion_limit: Decimal


class TierProgress(BaseModel):
    """Current tier and progress towards the next one for a trailing volume"""

    model_config = ConfigDict(frozen=True)

    tier: MembershipTier
    next_tier: Optional[MembershipTier] = None
    percent: int = Field(ge=0, le=100)
    points_needed: Decimal
    volume: Decimal


class RedemptionItem(BaseModel):
    """A real-world reward obtainable with points of one program"""

    model_config = ConfigDict(frozen=True)

    program: Program
    category: RedemptionCategory
    title: str
    points_required: int = Field(gt=0)
    cash_value: Decimal = Field(gt=0)
    description: str = ""

    @field_validator('cash_value', mode='before')
    @classmethod
    def _parse_cash_value(cls, v):
        return parse_decimal(v)

    @property
    def value_ratio(self) -> Decimal:
        return self.cash_value / Decimal(self.points_required)


class PointsTranslation(BaseModel):
    """A redemption item annotated against a specific balance"""

    model_config = ConfigDict(frozen=True)

    item: RedemptionItem
    affordable: bool
    progress_percent: int = Field(ge=0, le=100)
    points_needed: int = Field(ge=0)
    value_ratio: Decimal

    @property
    def category(self) -> RedemptionCategory:
        return self.item.category

    @property
    def points_required(self) -> int:
        return self.item.points_required

    @property
    def cash_value(self) -> Decimal:
        return self.item.cash_value

    @property
    def title(self) -> str:
        return self.item.title
