"""
Configuration management and loading.

Merges built-in defaults, the YAML config file and command-line overrides.
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml

from cc_guard.core.pricing import ModelPricing


logger = structlog.get_logger()

CONFIG_FILENAME = ".cc-guard.yaml"
PRICING_KEYS = {"input", "output", "cache_write_5m", "cache_write_1h", "cache_read"}


class BillingMode(Enum):
    """How usage is billed."""
    API = "api"  # Pay-per-token
    SUB = "sub"  # Subscription


def default_mode() -> BillingMode:
    return BillingMode.API if os.environ.get("ANTHROPIC_API_KEY") else BillingMode.SUB


@dataclass(frozen=True)
class Config:
    """Complete monitor configuration."""
    budget_per_block: float = 50.0  # USD per 5-hour block
    warning_threshold: float = 80.0  # Percent of budget
    critical_threshold: float = 95.0  # Percent of budget
    alerts_enabled: bool = True
    log_dir: Optional[str] = None  # Overrides ~/.claude/projects
    poll_interval: float = 1.0  # Seconds
    refresh_interval: float = 1.0  # Seconds
    mode: BillingMode = field(default_factory=default_mode)
    token_budget_per_block: Optional[int] = None  # Used in subscription mode
    custom_pricing: Dict[str, ModelPricing] = field(default_factory=dict)
    log_level: str = "WARNING"
    log_format: str = "console"

    def __post_init__(self):
        """Validate thresholds, budgets and intervals."""
        if self.budget_per_block <= 0:
            raise ValueError("budget_per_block must be > 0")
        if not 0 < self.warning_threshold <= self.critical_threshold:
            raise ValueError("thresholds must satisfy 0 < warning_threshold <= critical_threshold")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.refresh_interval <= 0:
            raise ValueError("refresh_interval must be > 0")
        if self.token_budget_per_block is not None and self.token_budget_per_block <= 0:
            raise ValueError("token_budget_per_block must be > 0")
        if not isinstance(self.mode, BillingMode):
            raise ValueError("mode must be a BillingMode")
        if self.log_format not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"log_level must be a logging level name, got '{self.log_level}'")


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Config:
    """Load configuration from YAML, merged over defaults and under overrides.

    Args:
        path: Config file path. When omitted, ~/.cc-guard.yaml is read if present.
        overrides: Values that take precedence over the file (e.g. CLI flags)

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        config_path = Path.home() / CONFIG_FILENAME

    values: Dict[str, Any] = {}
    if config_path.exists():
        values.update(_read_config_file(config_path))
        logger.debug("config_loaded", path=str(config_path))

    config = _build_config(values)
    if overrides:
        config = replace(config, **_parse_values(dict(overrides)))
    return config


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {config_path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")
    return raw_config


def _build_config(values: Dict[str, Any]) -> Config:
    return Config(**_parse_values(values))


def _parse_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Validate keys and coerce raw values to Config field types."""
    allowed_keys = {f.name for f in fields(Config)}
    unknown_keys = set(values.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    parsed = dict(values)
    for key in ("budget_per_block", "warning_threshold", "critical_threshold",
                "poll_interval", "refresh_interval"):
        if key in parsed:
            parsed[key] = _number(parsed[key], key)

    if "alerts_enabled" in parsed and not isinstance(parsed["alerts_enabled"], bool):
        raise ValueError("'alerts_enabled' must be a boolean")

    if parsed.get("token_budget_per_block") is not None:
        parsed["token_budget_per_block"] = int(_number(parsed["token_budget_per_block"], "token_budget_per_block"))

    if "mode" in parsed and not isinstance(parsed["mode"], BillingMode):
        try:
            parsed["mode"] = BillingMode(str(parsed["mode"]).lower())
        except ValueError:
            valid_modes = [mode.value for mode in BillingMode]
            raise ValueError(f"'mode' must be one of: {valid_modes}")

    if "log_level" in parsed:
        parsed["log_level"] = str(parsed["log_level"]).upper()

    if parsed.get("log_dir") is not None:
        parsed["log_dir"] = str(parsed["log_dir"])

    if "custom_pricing" in parsed:
        parsed["custom_pricing"] = _parse_custom_pricing(parsed["custom_pricing"])

    return parsed


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    return float(value)


def _parse_custom_pricing(data: Any) -> Dict[str, ModelPricing]:
    """Parse and validate custom model pricing ($ per million tokens).

    Args:
        data: Mapping of model id (or substring) to price mapping

    Returns:
        Mapping of model id to ModelPricing

    Raises:
        ValueError: If pricing is malformed
    """
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("'custom_pricing' must be a dictionary")

    pricing: Dict[str, ModelPricing] = {}
    for model, prices in data.items():
        if isinstance(prices, ModelPricing):
            pricing[str(model)] = prices
            continue
        path = f"custom_pricing.{model}"
        if not isinstance(prices, dict):
            raise ValueError(f"'{path}' must be a dictionary")

        missing = PRICING_KEYS - set(prices.keys())
        if missing:
            raise ValueError(f"Missing keys in {path}: {missing}")
        unknown = set(prices.keys()) - PRICING_KEYS
        if unknown:
            raise ValueError(f"Unknown keys in {path}: {unknown}")

        for key in PRICING_KEYS:
            if _number(prices[key], f"{path}.{key}") < 0:
                raise ValueError(f"'{path}.{key}' must be >= 0")

        pricing[str(model)] = ModelPricing.from_mapping(prices)
    return pricing
