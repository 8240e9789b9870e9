"""
Core Conversion Engine implementation
"""

import sys
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import pandas as pd
from loguru import logger

from .config import EngineConfig, get_config
from .models import (
    ConversionQuote, ExchangeRate, MembershipTier, PointsTranslation, Program,
    RedemptionCategory, TierProgress, as_amount
)
from .exceptions import InvalidConversionError, LoyaltyEngineError
from .rate_graph import RateGraph
from .fee_calculator import FeeCalculator
from .tier_engine import TierEngine
from .redemption_catalog import RedemptionCatalog
from .points_translator import PointsTranslator
from .data_loader import load_catalog, load_exchange_rates

QUOTE_COLUMNS = ['fee', 'net_amount', 'output_amount', 'rate_used', 'tier', 'route', 'error']


def configure_logging(log_level: str = "INFO") -> None:
    """Route engine logs to stderr at the given level"""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level}</level> | {message}"
    )


class ConversionEngine:
    """
    Main entry point: quotes conversions, classifies tiers and translates balances.

    The engine keeps only configuration and the injected rate table and
    catalog; balances and volumes are passed in on every call.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rates: Optional[Iterable[ExchangeRate]] = None,
        catalog: Optional[RedemptionCatalog] = None,
        log_level: Optional[str] = None,
    ):
        """
        Initialize the Conversion Engine

        Args:
            config: Engine configuration (global configuration when None)
            rates: Exchange rate records (loaded from config.rates_file or the seed table when None)
            catalog: Redemption catalog (loaded from config.catalog_file or the seed catalog when None)
            log_level: Reconfigure the log sink at this level (DEBUG, INFO, WARNING, ERROR)
        """
        if log_level:
            configure_logging(log_level)

        self.config = config or get_config()

        if rates is None:
            rates = load_exchange_rates(self.config.rates_file)
        if catalog is None:
            catalog = load_catalog(self.config.catalog_file)

        self.rate_graph = RateGraph(rates, self.config.hub_program)
        self.fee_calculator = FeeCalculator(self.config.free_threshold, self.config.base_fee_rate)
        self.tier_engine = TierEngine.from_config(self.config)
        self.catalog = catalog
        self.translator = PointsTranslator.from_config(catalog, self.config)

        logger.info(
            f"Conversion Engine initialized: {len(self.rate_graph)} rates, "
            f"hub {self.config.hub_program.value}, catalog for {len(catalog.programs())} programs"
        )

    def quote(
        self,
        from_program: Any,
        to_program: Any,
        amount: Any,
        monthly_volume: Any = 0,
        tier: Optional[MembershipTier] = None,
    ) -> ConversionQuote:
        """
        Quote a conversion between two programs

        Args:
            from_program: Source program
            to_program: Destination program
            amount: Points to convert, in the source program
            monthly_volume: Member's trailing 30-day converted volume
            tier: Tier set by administrative override; derived from volume when None

        Returns:
            ConversionQuote with fee, net and output amounts

        Raises:
            InvalidConversionError: If source and destination are the same program
            InvalidAmountError: If amount or volume is invalid
            UnknownTierError: If the tier override is not a known tier
            RateNotFoundError: If the programs are not connected
        """
        from_program = Program.parse(from_program)
        to_program = Program.parse(to_program)
        if from_program == to_program:
            raise InvalidConversionError(f"Cannot convert {from_program.value} to itself")

        amount = as_amount(amount)
        if tier is None:
            tier = self.tier_engine.tier_for(monthly_volume)
        else:
            tier = MembershipTier.parse(tier)

        resolved = self.rate_graph.resolve(from_program, to_program)
        fee, net_amount, output_amount = self.fee_calculator.quote_amounts(
            amount,
            resolved.rate,
            self.tier_engine.discount_for(tier),
            free_threshold=self.tier_engine.free_threshold_for(tier),
        )

        logger.debug(
            f"Quote {amount} {from_program.value} -> {to_program.value} ({tier.value}): "
            f"fee {fee}, net {net_amount}, output {output_amount} at {resolved.rate}"
        )

        return ConversionQuote(
            from_program=from_program,
            to_program=to_program,
            input_amount=amount,
            fee=fee,
            net_amount=net_amount,
            output_amount=output_amount,
            rate_used=resolved.rate,
            tier=tier,
            route=resolved.route,
            rate_last_updated=resolved.last_updated,
        )

    def resolve_rate(self, from_program: Any, to_program: Any) -> Decimal:
        return self.rate_graph.resolve_rate(from_program, to_program)

    def tier_status(self, monthly_volume: Any) -> TierProgress:
        return self.tier_engine.progress_to_next(monthly_volume)

    def translate(self, balance: Any, program: Any, category: Optional[RedemptionCategory] = None) -> List[PointsTranslation]:
        return self.translator.translate(balance, Program.parse(program), category)

    def best_value_redemptions(self, program: Any, balance: Any, limit: Optional[int] = None) -> List[PointsTranslation]:
        return self.translator.best_value_redemptions(Program.parse(program), balance, limit)

    def estimated_cash_value(self, balance: Any, program: Any, method: Optional[str] = None) -> Decimal:
        return self.translator.estimated_cash_value(balance, Program.parse(program), method)

    def almost_there(self, balance: Any, program: Any) -> List[PointsTranslation]:
        return self.translator.almost_there(balance, Program.parse(program))

    def process_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Quote every conversion request in a DataFrame

        Expected columns: from_program, to_program, amount and optionally
        monthly_volume. Input columns are preserved; quote columns are added.
        A row that cannot be quoted gets the error kind and message in the
        'error' column instead of failing the batch.
        """
        logger.info(f"Quoting {len(df)} conversion requests")
        results: List[Dict[str, Any]] = []
        failed = 0

        for index, row in df.iterrows():
            result_row = row.to_dict()
            volume = row.get('monthly_volume', 0)
            if volume is None or pd.isna(volume):
                volume = 0
            try:
                quote = self.quote(row.get('from_program'), row.get('to_program'), row.get('amount'), volume)
                result_row.update({
                    'fee': quote.fee,
                    'net_amount': float(quote.net_amount),
                    'output_amount': quote.output_amount,
                    'rate_used': float(quote.rate_used),
                    'tier': quote.tier.value,
                    'route': ">".join(program.value for program in quote.route),
                    'error': "",
                })
            except LoyaltyEngineError as e:
                failed += 1
                logger.warning(f"Row {index}: {type(e).__name__}: {e}")
                result_row.update({column: None for column in QUOTE_COLUMNS})
                result_row['error'] = f"{type(e).__name__}: {e}"
            results.append(result_row)

        logger.info(f"Quoted {len(df) - failed} rows, {failed} failed")
        if not results:
            return pd.DataFrame(columns=list(df.columns) + QUOTE_COLUMNS)
        return pd.DataFrame(results)
