"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for monitor configs.
"""

import os
import tempfile
from decimal import Decimal

import pytest
import yaml

from cc_guard.config.loader import BillingMode, Config, default_mode, load_config


PRICING = {
    "input": 1.0,
    "output": 2.0,
    "cache_write_5m": 1.25,
    "cache_write_1h": 2.0,
    "cache_read": 0.1,
}


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_path = self._write_config({
            "budget_per_block": 20,
            "warning_threshold": 70,
            "critical_threshold": 90,
            "alerts_enabled": False,
            "log_dir": "/tmp/claude-logs",
            "mode": "API",
            "token_budget_per_block": 2000000,
            "log_level": "debug",
            "log_format": "json",
        })
        config = load_config(config_path)

        assert config.budget_per_block == 20.0
        assert config.warning_threshold == 70.0
        assert config.critical_threshold == 90.0
        assert config.alerts_enabled is False
        assert config.log_dir == "/tmp/claude-logs"
        assert config.mode == BillingMode.API
        assert config.token_budget_per_block == 2000000
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_defaults_for_missing_keys(self):
        """Test that omitted keys keep their defaults."""
        config = load_config(self._write_config({"budget_per_block": 10}))

        assert config.budget_per_block == 10.0
        assert config.warning_threshold == 80.0
        assert config.critical_threshold == 95.0
        assert config.alerts_enabled is True
        assert config.log_dir is None
        assert config.poll_interval == 1.0
        assert config.refresh_interval == 1.0
        assert config.custom_pricing == {}

    def test_empty_file(self):
        """Test that an empty file yields defaults."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, "w").close()
        assert load_config(config_path).budget_per_block == 50.0

    def test_missing_explicit_file(self):
        """Test that an explicit path must exist."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_missing_default_file(self, monkeypatch):
        """Test that the home config file is optional."""
        monkeypatch.setenv("HOME", self.temp_dir)
        assert load_config().budget_per_block == 50.0

    def test_default_file_is_read(self, monkeypatch):
        monkeypatch.setenv("HOME", self.temp_dir)
        self._write_config({"budget_per_block": 7}, filename=".cc-guard.yaml")
        assert load_config().budget_per_block == 7.0

    def test_invalid_yaml(self):
        """Test that invalid YAML raises an error."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, "w", encoding="utf-8") as f:
            f.write("budget_per_block: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(config_path)

    def test_non_mapping_file(self):
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(self._write_config(["a", "b"]))

    def test_unknown_keys_rejected(self):
        """Test that unknown keys raise errors."""
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_config(self._write_config({"budget": 10}))

    @pytest.mark.parametrize("data,message", [
        ({"budget_per_block": 0}, "budget_per_block must be > 0"),
        ({"budget_per_block": -5}, "budget_per_block must be > 0"),
        ({"warning_threshold": 96}, "thresholds"),
        ({"warning_threshold": 0}, "thresholds"),
        ({"poll_interval": 0}, "poll_interval"),
        ({"refresh_interval": -1}, "refresh_interval"),
        ({"token_budget_per_block": 0}, "token_budget_per_block"),
        ({"log_format": "xml"}, "log_format"),
        ({"log_level": "verbose"}, "log_level must be a logging level name"),
        ({"mode": "enterprise"}, "'mode' must be one of"),
        ({"budget_per_block": "ten"}, "must be a number"),
        ({"budget_per_block": True}, "must be a number"),
        ({"alerts_enabled": "yes please"}, "must be a boolean"),
    ])
    def test_invalid_values(self, data, message):
        """Test that invalid values are rejected."""
        with pytest.raises(ValueError, match=message):
            load_config(self._write_config(data))

    def test_custom_pricing(self):
        """Test custom pricing parsing."""
        config = load_config(self._write_config({"custom_pricing": {"glm-4.7": PRICING}}))

        pricing = config.custom_pricing["glm-4.7"]
        assert pricing.input == Decimal("1.0")
        assert pricing.cache_write_5m == Decimal("1.25")
        assert pricing.cache_read == Decimal("0.1")

    def test_custom_pricing_missing_key(self):
        prices = dict(PRICING)
        del prices["cache_read"]
        with pytest.raises(ValueError, match="Missing keys"):
            load_config(self._write_config({"custom_pricing": {"glm": prices}}))

    def test_custom_pricing_unknown_key(self):
        prices = dict(PRICING, batch=0.5)
        with pytest.raises(ValueError, match="Unknown keys"):
            load_config(self._write_config({"custom_pricing": {"glm": prices}}))

    def test_custom_pricing_negative(self):
        prices = dict(PRICING, output=-1)
        with pytest.raises(ValueError, match=">= 0"):
            load_config(self._write_config({"custom_pricing": {"glm": prices}}))

    def test_custom_pricing_not_a_mapping(self):
        with pytest.raises(ValueError, match="must be a dictionary"):
            load_config(self._write_config({"custom_pricing": ["glm"]}))

    def test_overrides_take_precedence(self):
        """Test that CLI-style overrides beat the file."""
        config_path = self._write_config({"budget_per_block": 20, "mode": "api"})
        config = load_config(config_path, {"budget_per_block": 5.0, "mode": "sub", "alerts_enabled": False})

        assert config.budget_per_block == 5.0
        assert config.mode == BillingMode.SUB
        assert config.alerts_enabled is False

    def test_overrides_are_validated(self):
        config_path = self._write_config({})
        with pytest.raises(ValueError):
            load_config(config_path, {"critical_threshold": 50.0})


class TestConfigDefaults:
    """Test Config construction."""

    def test_mode_from_environment(self, monkeypatch):
        """Test that an API key selects pay-per-token mode."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        assert default_mode() == BillingMode.API
        assert Config().mode == BillingMode.API

        monkeypatch.delenv("ANTHROPIC_API_KEY")
        assert default_mode() == BillingMode.SUB

    def test_config_is_frozen(self):
        config = Config(mode=BillingMode.API)
        with pytest.raises(AttributeError):
            config.budget_per_block = 1.0

    def test_mode_must_be_enum(self):
        with pytest.raises(ValueError, match="BillingMode"):
            Config(mode="api")
