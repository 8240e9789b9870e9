"""
Loyalty Engine

Conversion and valuation engine for a loyalty-points exchange: hub-routed
exchange rates, tiered conversion fees, membership tier classification and
translation of point balances into real-world redemptions.
"""

__version__ = "1.0.0"

from .core import ConversionEngine
from .config import EngineConfig, ConfigManager, get_config
from .models import (
    Program, MembershipTier, RedemptionCategory, ExchangeRate, ResolvedRate,
    ConversionQuote, TierProgress, TierBenefit, RedemptionItem, PointsTranslation
)
from .rate_graph import RateGraph
from .fee_calculator import FeeCalculator
from .tier_engine import TierEngine
from .redemption_catalog import RedemptionCatalog
from .points_translator import PointsTranslator
from .exceptions import (
    LoyaltyEngineError, ValidationError, InvalidAmountError, UnknownProgramError,
    InvalidConversionError, UnknownTierError, RateNotFoundError, ConfigurationError
)

__all__ = [
    "ConversionEngine",
    "EngineConfig",
    "ConfigManager",
    "get_config",
    "Program",
    "MembershipTier",
    "RedemptionCategory",
    "ExchangeRate",
    "ResolvedRate",
    "ConversionQuote",
    "TierProgress",
    "TierBenefit",
    "RedemptionItem",
    "PointsTranslation",
    "RateGraph",
    "FeeCalculator",
    "TierEngine",
    "RedemptionCatalog",
    "PointsTranslator",
    "LoyaltyEngineError",
    "ValidationError",
    "InvalidAmountError",
    "UnknownProgramError",
    "InvalidConversionError",
    "UnknownTierError",
    "RateNotFoundError",
    "ConfigurationError",
]
