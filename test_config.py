"""
Tests for engine configuration
"""

import json
import os
import subprocess
import sys
from decimal import Decimal
from pathlib import Path

import pytest

from loyalty_engine import config as config_module
from loyalty_engine.config import ConfigManager, EngineConfig, validate_engine_config
from loyalty_engine.models import MembershipTier, Program
from loyalty_engine.exceptions import ConfigurationError


def test_defaults():
    config = EngineConfig()
    assert config.free_threshold == Decimal(10000)
    assert config.base_fee_rate == Decimal("0.005")
    assert config.hub_program == Program.XPOINTS
    assert config.tier_thresholds[MembershipTier.GOLD] == Decimal(25000)
    assert config.tier_discounts[MembershipTier.PLATINUM] == Decimal("0.50")
    assert config.cash_value_method == "top_ranked"
    assert validate_engine_config(config)['valid']


def test_load_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "free_threshold": 5000,
        "base_fee_rate": 0.01,
        "hub_program": "gyg",
        "tier_thresholds": {"standard": 0, "silver": 2000},
    }))

    config = ConfigManager(str(path)).get_config()

    assert config.free_threshold == Decimal(5000)
    assert config.base_fee_rate == Decimal("0.01")
    assert config.hub_program == Program.GYG
    assert config.tier_thresholds == {MembershipTier.STANDARD: Decimal(0), MembershipTier.SILVER: Decimal(2000)}


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LOYALTY_ENGINE_FREE_THRESHOLD", "2500")
    monkeypatch.setenv("LOYALTY_ENGINE_CASH_VALUE_METHOD", "weighted")
    config = ConfigManager(str(tmp_path / "absent.json")).get_config()
    assert config.free_threshold == Decimal(2500)
    assert config.cash_value_method == "weighted"


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"base_fee_rate": -1}))
    with pytest.raises(ConfigurationError):
        ConfigManager(str(path))

    path.write_text("{broken")
    with pytest.raises(ConfigurationError):
        ConfigManager(str(path))


def test_update_and_save(tmp_path):
    path = tmp_path / "config.json"
    manager = ConfigManager(str(path))
    manager.update_config(best_value_limit=3)
    assert manager.get_config().best_value_limit == 3

    with pytest.raises(ConfigurationError):
        manager.update_config(cash_value_method="median")

    manager.save_config()
    reloaded = ConfigManager(str(path)).get_config()
    assert reloaded.best_value_limit == 3
    assert reloaded.tier_discounts == manager.get_config().tier_discounts


def test_validate_reports_bad_ladder():
    config = EngineConfig(
        tier_thresholds={"STANDARD": 0, "SILVER": 30000, "GOLD": 20000},
        tier_discounts={"GOLD": "1.2", "PLATINUM": "0.5"},
    )
    report = validate_engine_config(config)
    assert not report['valid']
    assert any("GOLD" in error for error in report['errors'])
    assert any("PLATINUM" in warning for warning in report['warnings'])


def test_global_config_falls_back_to_defaults(tmp_path, monkeypatch):
    (tmp_path / "loyalty_engine_config.json").write_text("{broken")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOYALTY_ENGINE_BEST_VALUE_LIMIT", "none")
    monkeypatch.setattr(config_module, "_config_manager", None)

    assert config_module.get_config() == EngineConfig()

    with pytest.raises(ConfigurationError):
        ConfigManager("loyalty_engine_config.json")


def test_import_with_broken_working_directory_config(tmp_path):
    (tmp_path / "loyalty_engine_config.json").write_text("{broken")
    env = {key: value for key, value in os.environ.items() if not key.startswith("LOYALTY_ENGINE_")}
    env["PYTHONPATH"] = str(Path(__file__).resolve().parent)
    result = subprocess.run(
        [sys.executable, "-c", "import loyalty_engine; print(loyalty_engine.get_config().free_threshold)"],
        cwd=tmp_path, env=env, capture_output=True, text=True,
    )
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "10000"
