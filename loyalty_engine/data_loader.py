"""
Loading of exchange rate tables and redemption catalogs
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import pandas as pd
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .models import ExchangeRate
from .redemption_catalog import RedemptionCatalog
from .exceptions import ConfigurationError

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_RATES_FILE = DATA_DIR / "exchange_rates.json"
DEFAULT_CATALOG_FILE = DATA_DIR / "redemption_catalog.json"

RATE_COLUMNS = ['from_program', 'to_program', 'rate', 'last_updated']


def load_exchange_rates(path: Optional[Union[str, Path]] = None) -> List[ExchangeRate]:
    """
    Load exchange rate records from a JSON or CSV file

    Args:
        path: Rate table file; the packaged seed table when None

    Returns:
        List of ExchangeRate records; malformed records are skipped

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = Path(path) if path else DEFAULT_RATES_FILE

    if path.suffix.lower() == '.csv':
        records = _read_rate_csv(path)
    else:
        data = _read_json(path)
        records = data.get('rates', []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ConfigurationError(f"Rate file {path} must contain a list of rates")

    rates = parse_exchange_rates(records)
    logger.info(f"Loaded {len(rates)} exchange rates from {path.name}")
    return rates


def parse_exchange_rates(records: List[Dict[str, Any]]) -> List[ExchangeRate]:
    """Validate raw rate records, skipping and logging the ones that do not parse"""
    rates = []
    for index, record in enumerate(records):
        try:
            rates.append(ExchangeRate(**_normalise_rate_record(record)))
        except (PydanticValidationError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping rate record {index}: {record} ({e})")
    return rates


def load_catalog(path: Optional[Union[str, Path]] = None) -> RedemptionCatalog:
    """
    Load a redemption catalog JSON file

    Args:
        path: Catalog file; the packaged seed catalog when None
    """
    path = Path(path) if path else DEFAULT_CATALOG_FILE
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Catalog file {path} must contain a JSON object")

    catalog = RedemptionCatalog.from_dict(data)
    logger.info(f"Loaded redemption catalog for {len(catalog.programs())} programs from {path.name}")
    return catalog


def _read_json(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load {path}: {e}")
        raise ConfigurationError(f"Failed to load {path}: {e}") from e


def _read_rate_csv(path: Path) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.error(f"Failed to read rate table {path}: {e}")
        raise ConfigurationError(f"Failed to read rate table {path}: {e}") from e

    df.columns = [str(col).strip().lower() for col in df.columns]
    missing = [col for col in RATE_COLUMNS[:3] if col not in df.columns]
    if missing:
        raise ConfigurationError(f"Rate table {path} is missing columns: {missing}")

    return df[[col for col in RATE_COLUMNS if col in df.columns]].to_dict(orient='records')


def _normalise_rate_record(record: Dict[str, Any]) -> Dict[str, Any]:
    # accept the camelCase keys used by the rate admin export
    aliases = {'fromProgram': 'from_program', 'toProgram': 'to_program', 'lastUpdated': 'last_updated'}
    normalised = {aliases.get(key, key): value for key, value in record.items()}
    for key in ('from_program', 'to_program'):
        if isinstance(normalised.get(key), str):
            normalised[key] = normalised[key].strip().upper()
    return normalised
