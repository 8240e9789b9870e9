"""
Tests for the ConversionEngine facade and batch quoting
"""

from decimal import Decimal

import pandas as pd
import pytest

from loyalty_engine import ConversionEngine, EngineConfig
from loyalty_engine.models import ExchangeRate, MembershipTier, Program, RedemptionCategory, RedemptionItem
from loyalty_engine.redemption_catalog import RedemptionCatalog
from loyalty_engine.exceptions import (
    ConfigurationError, InvalidAmountError, InvalidConversionError, LoyaltyEngineError, RateNotFoundError,
    UnknownTierError
)


RATES = [
    ExchangeRate(from_program=Program.QANTAS, to_program=Program.XPOINTS, rate="0.5"),
    ExchangeRate(from_program=Program.XPOINTS, to_program=Program.VELOCITY, rate="0.7"),
    ExchangeRate(from_program=Program.XPOINTS, to_program=Program.QANTAS, rate="1.8"),
]

CATALOG = RedemptionCatalog([
    RedemptionItem(program=Program.XPOINTS, category=RedemptionCategory.SHOPPING,
                   title="Voucher", points_required=5000, cash_value=50),
    RedemptionItem(program=Program.XPOINTS, category=RedemptionCategory.TRAVEL,
                   title="Flight", points_required=20000, cash_value=300),
])


@pytest.fixture
def engine():
    return ConversionEngine(config=EngineConfig(), rates=RATES, catalog=CATALOG)


def test_quote_through_hub(engine):
    quote = engine.quote(Program.QANTAS, Program.VELOCITY, 15000)

    assert quote.tier == MembershipTier.STANDARD
    assert quote.rate_used == Decimal("0.35")
    assert quote.fee == 25
    assert quote.net_amount == Decimal(14975)
    assert quote.output_amount == 5241
    assert quote.route == [Program.QANTAS, Program.XPOINTS, Program.VELOCITY]


def test_quote_applies_tier_discount(engine):
    platinum = engine.quote("QANTAS", "VELOCITY", 15000, monthly_volume=60000)
    assert platinum.tier == MembershipTier.PLATINUM
    assert platinum.fee == 12

    gold = engine.quote("QANTAS", "VELOCITY", 15000, monthly_volume=30000)
    # 25 * 0.75 = 18.75
    assert gold.fee == 18


def test_quote_tier_override(engine):
    quote = engine.quote(Program.QANTAS, Program.VELOCITY, 15000, monthly_volume=0, tier=MembershipTier.PLATINUM)
    assert quote.tier == MembershipTier.PLATINUM
    assert quote.fee == 12


def test_quote_uses_per_tier_free_threshold():
    config = EngineConfig(tier_free_thresholds={"SILVER": 20000})
    engine = ConversionEngine(config=config, rates=RATES, catalog=CATALOG)
    assert engine.quote(Program.QANTAS, Program.VELOCITY, 15000, monthly_volume=12000).fee == 0


def test_quote_errors(engine):
    with pytest.raises(InvalidConversionError):
        engine.quote(Program.QANTAS, Program.QANTAS, 1000)
    with pytest.raises(InvalidAmountError):
        engine.quote(Program.QANTAS, Program.VELOCITY, -5)
    with pytest.raises(RateNotFoundError):
        engine.quote(Program.GYG, Program.VELOCITY, 1000)


def test_error_kinds_distinguish_client_and_server_faults():
    assert InvalidAmountError.client_error
    assert RateNotFoundError.client_error
    assert not ConfigurationError.client_error


def test_tier_status(engine):
    status = engine.tier_status(12000)
    assert status.tier == MembershipTier.SILVER
    assert status.next_tier == MembershipTier.GOLD
    assert status.percent == 13


def test_translation_delegates(engine):
    assert [t.title for t in engine.translate(10000, "XPOINTS")] == ["Flight", "Voucher"]
    assert [t.title for t in engine.best_value_redemptions("XPOINTS", 10000)] == ["Voucher"]
    assert engine.estimated_cash_value(10000, "XPOINTS") == Decimal(150)
    assert [t.title for t in engine.almost_there(10000, "XPOINTS")] == ["Flight"]


def test_misconfigured_ladder_fails_at_construction():
    config = EngineConfig(tier_thresholds={"STANDARD": 0, "SILVER": 10000, "GOLD": 10000})
    with pytest.raises(ConfigurationError):
        ConversionEngine(config=config, rates=RATES, catalog=CATALOG)


def test_engine_loads_packaged_seed_data():
    engine = ConversionEngine(config=EngineConfig())
    assert Program.QANTAS in engine.catalog.programs()
    assert engine.resolve_rate(Program.QANTAS, Program.VELOCITY) == Decimal("0.5") * Decimal("1.35")
    assert engine.resolve_rate(Program.AMEX, Program.QANTAS) == Decimal("1.7")


def test_process_dataframe(engine):
    df = pd.DataFrame({
        'from_program': ['QANTAS', 'BOGUS', 'QANTAS', 'QANTAS'],
        'to_program': ['VELOCITY', 'VELOCITY', 'VELOCITY', 'QANTAS'],
        'amount': [15000, 1000, -1, 500],
        'monthly_volume': [60000, 0, 0, None],
    })

    result = engine.process_dataframe(df)

    assert len(result) == 4
    assert list(df.columns) == list(result.columns[:4])
    assert result.loc[0, 'fee'] == 12
    assert result.loc[0, 'tier'] == 'PLATINUM'
    assert result.loc[0, 'route'] == 'QANTAS>XPOINTS>VELOCITY'
    assert result.loc[0, 'error'] == ""
    assert result.loc[1, 'error'].startswith("UnknownProgramError")
    assert result.loc[2, 'error'].startswith("InvalidAmountError")
    assert result.loc[3, 'error'].startswith("InvalidConversionError")


def test_process_empty_dataframe(engine):
    df = pd.DataFrame(columns=['from_program', 'to_program', 'amount'])
    result = engine.process_dataframe(df)
    assert result.empty
    assert 'output_amount' in result.columns


def test_quote_tier_override_is_case_insensitive(engine):
    quote = engine.quote(Program.QANTAS, Program.VELOCITY, 15000, tier="gold")
    assert quote.tier == MembershipTier.GOLD
    assert quote.fee == 18


def test_quote_unknown_tier_override(engine):
    with pytest.raises(UnknownTierError) as excinfo:
        engine.quote(Program.QANTAS, Program.VELOCITY, 15000, tier="DIAMOND")
    assert excinfo.value.client_error
    assert isinstance(excinfo.value, LoyaltyEngineError)
