"""
Configuration management for the Loyalty Engine
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Dict, Any, Optional
from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .models import MembershipTier, Program, parse_decimal


ENV_PREFIX = "LOYALTY_ENGINE_"

CASH_VALUE_METHODS = ("top_ranked", "weighted")


def _default_tier_thresholds() -> Dict[MembershipTier, Decimal]:
    return {
        MembershipTier.STANDARD: Decimal("0"),
        MembershipTier.SILVER: Decimal("10000"),
        MembershipTier.GOLD: Decimal("25000"),
        MembershipTier.PLATINUM: Decimal("50000"),
    }


def _default_tier_discounts() -> Dict[MembershipTier, Decimal]:
    return {
        MembershipTier.STANDARD: Decimal("0"),
        MembershipTier.SILVER: Decimal("0.10"),
        MembershipTier.GOLD: Decimal("0.25"),
        MembershipTier.PLATINUM: Decimal("0.50"),
    }


def _tier_key(key: Any) -> Any:
    if isinstance(key, str) and not isinstance(key, MembershipTier):
        return key.strip().upper()
    return key


class EngineConfig(BaseModel):
    """Configuration model for the Loyalty Engine"""

    # Fees
    free_threshold: Decimal = Field(default=Decimal("10000"), ge=0, description="Points converted free of charge")
    base_fee_rate: Decimal = Field(default=Decimal("0.005"), ge=0, le=1, description="Fee rate above the free threshold")

    # Rates
    hub_program: Program = Field(default=Program.XPOINTS, description="Hub currency for routed rates")

    # Tiers
    tier_thresholds: Dict[MembershipTier, Decimal] = Field(default_factory=_default_tier_thresholds,
                                                           description="Minimum trailing monthly volume per tier")
    tier_discounts: Dict[MembershipTier, Decimal] = Field(default_factory=_default_tier_discounts,
                                                          description="Fee discount fraction per tier")
    tier_free_thresholds: Dict[MembershipTier, Decimal] = Field(default_factory=dict,
                                                                description="Per-tier free conversion limit overrides")

    # Points translator
    best_value_limit: Optional[int] = Field(default=None, ge=1, description="Top-N cap for best value redemptions")
    cash_value_method: str = Field(default="top_ranked", description="top_ranked or weighted")
    upsell_reach_factor: Decimal = Field(default=Decimal("2"), gt=0, description="Almost-there window as a multiple of balance")

    # Data sources
    rates_file: Optional[str] = Field(default=None, description="Exchange rate table (JSON or CSV)")
    catalog_file: Optional[str] = Field(default=None, description="Redemption catalog JSON")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('free_threshold', 'base_fee_rate', 'upsell_reach_factor', mode='before')
    @classmethod
    def _parse_scalar_decimal(cls, v):
        return parse_decimal(v)

    @field_validator('tier_thresholds', 'tier_discounts', 'tier_free_thresholds', mode='before')
    @classmethod
    def _parse_tier_mapping(cls, v):
        if not isinstance(v, dict):
            return v
        return {_tier_key(k): parse_decimal(val) for k, val in v.items()}

    @field_validator('hub_program', mode='before')
    @classmethod
    def _parse_hub_program(cls, v):
        if isinstance(v, str) and not isinstance(v, Program):
            return v.strip().upper()
        return v

    @field_validator('cash_value_method')
    @classmethod
    def _check_cash_value_method(cls, v):
        if v not in CASH_VALUE_METHODS:
            raise ValueError(f"cash_value_method must be one of {CASH_VALUE_METHODS}")
        return v


class ConfigManager:
    """Configuration manager for the Loyalty Engine"""

    def __init__(self, config_file: Optional[str] = None, strict: bool = True):
        """
        Initialize configuration manager

        Args:
            config_file: Path to configuration file
            strict: Raise ConfigurationError on a bad file or override; when False,
                log a warning and use the defaults instead
        """
        self.config_file = config_file or "loyalty_engine_config.json"
        self._config = None
        try:
            self._load_config()
        except ConfigurationError as e:
            if strict:
                raise
            logger.warning(f"Using default configuration: {e}")
            self._config = EngineConfig()

    def _load_config(self) -> None:
        """Load configuration from file, then apply environment overrides"""
        config_data: Dict[str, Any] = {}

        path = Path(self.config_file)
        if path.exists():
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to read configuration file {path}: {e}")
                raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
            logger.debug(f"Loaded configuration from {path}")

        config_data.update(self.get_environment_config())

        try:
            self._config = EngineConfig(**config_data)
        except PydanticValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def get_config(self) -> EngineConfig:
        """Get current configuration"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """Update configuration with new values, re-validating the result"""
        data = self._config.model_dump()
        data.update(kwargs)
        try:
            self._config = EngineConfig(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration update: {e}") from e

    def save_config(self) -> None:
        """Save current configuration to file"""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            f.write(self._config.model_dump_json(indent=2))

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults"""
        self._config = EngineConfig()

    def validate_config(self) -> Dict[str, Any]:
        """Validate the tier ladder and fee settings of the current configuration"""
        return validate_engine_config(self._config)

    def get_environment_config(self) -> Dict[str, str]:
        """Get scalar configuration overrides from environment variables"""
        env_config = {}

        for field_name, field_info in EngineConfig.model_fields.items():
            if field_name.startswith('tier_'):
                continue
            env_value = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if env_value is not None:
                env_config[field_name] = env_value

        return env_config


def validate_engine_config(config: EngineConfig) -> Dict[str, Any]:
    """
    Check a configuration for problems pydantic field constraints cannot see

    Returns:
        Dictionary with 'valid', 'warnings' and 'errors'
    """
    validation_results = {
        'valid': True,
        'warnings': [],
        'errors': []
    }

    ladder = [(tier, config.tier_thresholds[tier]) for tier in MembershipTier if tier in config.tier_thresholds]
    if not ladder:
        validation_results['errors'].append("tier_thresholds must define at least one tier")
    for (lower, lower_min), (upper, upper_min) in zip(ladder, ladder[1:]):
        if upper_min <= lower_min:
            validation_results['errors'].append(
                f"Threshold for {upper.value} ({upper_min}) must exceed {lower.value} ({lower_min})"
            )
    for tier, threshold in ladder:
        if threshold < 0:
            validation_results['errors'].append(f"Threshold for {tier.value} must be non-negative")

    for tier, discount in config.tier_discounts.items():
        if not (0 <= discount <= 1):
            validation_results['errors'].append(f"Discount for {tier.value} must be between 0 and 1, got {discount}")
        if tier not in config.tier_thresholds:
            validation_results['warnings'].append(f"Discount configured for {tier.value} which has no threshold")

    for tier, limit in config.tier_free_thresholds.items():
        if limit < 0:
            validation_results['errors'].append(f"Free threshold for {tier.value} must be non-negative")

    if config.rates_file and not Path(config.rates_file).exists():
        validation_results['warnings'].append(f"Rates file does not exist: {config.rates_file}")
    if config.catalog_file and not Path(config.catalog_file).exists():
        validation_results['warnings'].append(f"Catalog file does not exist: {config.catalog_file}")

    valid_log_levels = ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']
    if config.log_level.upper() not in valid_log_levels:
        validation_results['errors'].append(f"Invalid log level: {config.log_level}")

    validation_results['valid'] = not validation_results['errors']
    return validation_results


# Global configuration instance, created on first use
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """
    Get the global configuration manager

    A broken working-directory config file or environment override falls
    back to the defaults with a warning instead of failing the caller.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(strict=False)
    return _config_manager


def get_config() -> EngineConfig:
    """Get the global configuration instance"""
    return get_config_manager().get_config()


def update_config(**kwargs) -> None:
    """Update the global configuration"""
    get_config_manager().update_config(**kwargs)
