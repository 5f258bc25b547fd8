"""
Pricing calculations and rate management.

Resolves a raw model id to its per-million-token prices and computes the
cost of a single usage entry.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional

from .token_counter import TokenUsage


TOKENS_PER_MILLION = Decimal("1000000")

FAMILY_RE = re.compile(r"(opus|sonnet|haiku)")


@dataclass(frozen=True)
class ModelPricing:
    """Per-million-token pricing for a model, in USD."""
    input: Decimal
    output: Decimal
    cache_write_5m: Decimal  # Ephemeral 5-minute cache write (1.25x input)
    cache_write_1h: Decimal  # Ephemeral 1-hour cache write (2x input)
    cache_read: Decimal

    @classmethod
    def from_mapping(cls, data: Mapping[str, float]) -> "ModelPricing":
        """Build pricing from a plain mapping of numbers (e.g. parsed config)."""
        return cls(
            input=Decimal(str(data["input"])),
            output=Decimal(str(data["output"])),
            cache_write_5m=Decimal(str(data["cache_write_5m"])),
            cache_write_1h=Decimal(str(data["cache_write_1h"])),
            cache_read=Decimal(str(data["cache_read"])),
        )


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table keyed by normalized pricing key."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, key: str) -> Optional[ModelPricing]:
        """Get pricing for a pricing key, or None if the key is unknown."""
        return self.prices.get(key)


def _pricing(input: str, output: str, cw5m: str, cw1h: str, read: str) -> ModelPricing:
    return ModelPricing(
        input=Decimal(input),
        output=Decimal(output),
        cache_write_5m=Decimal(cw5m),
        cache_write_1h=Decimal(cw1h),
        cache_read=Decimal(read),
    )


# Built-in pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    # Opus
    "opus-4-6": _pricing("5", "25", "6.25", "10", "0.50"),
    "opus-4-5": _pricing("5", "25", "6.25", "10", "0.50"),
    "opus-4-1": _pricing("15", "75", "18.75", "30", "1.50"),
    "opus-4-0": _pricing("15", "75", "18.75", "30", "1.50"),
    "opus-3": _pricing("15", "75", "18.75", "30", "1.50"),
    # Sonnet
    "sonnet-4-5": _pricing("3", "15", "3.75", "6", "0.30"),
    "sonnet-4-0": _pricing("3", "15", "3.75", "6", "0.30"),
    "sonnet-3-7": _pricing("3", "15", "3.75", "6", "0.30"),
    # Haiku
    "haiku-4-5": _pricing("1", "5", "1.25", "2", "0.10"),
    "haiku-3-5": _pricing("0.80", "4", "1.00", "1.60", "0.08"),
    "haiku-3": _pricing("0.25", "1.25", "0.30", "0.50", "0.03"),
})


@dataclass(frozen=True)
class ModelVersion:
    """Family and version parsed out of a model id."""
    family: str
    major: str
    minor: Optional[str]
    scheme: str  # "old" or "new"

    @property
    def pricing_key(self) -> str:
        if self.minor is not None:
            return f"{self.family}-{self.major}-{self.minor}"
        if self.scheme == "old":
            return f"{self.family}-{self.major}"
        return f"{self.family}-{self.major}-0"

    @property
    def display_name(self) -> str:
        if self.minor is not None:
            return f"{self.family}-{self.major}.{self.minor}"
        return f"{self.family}-{self.major}"


def _match_old_scheme(model_id: str, family: str) -> Optional[ModelVersion]:
    """claude-{major}-{minor?}-{family}-{date}, e.g. claude-3-7-sonnet-20250219."""
    match = re.search(rf"(\d+)(?:-(\d+))?-{family}", model_id)
    if not match or len(match.group(1)) != 1:
        return None
    return ModelVersion(family, match.group(1), match.group(2), "old")


def _match_new_scheme(model_id: str, family: str) -> Optional[ModelVersion]:
    """claude-{family}-{major}-{minor?}-{date?}, e.g. claude-sonnet-4-5-20250929."""
    match = re.search(rf"{family}-(\d+)(?:-(\d+))?", model_id)
    if not match:
        return None
    minor = match.group(2)
    if minor is not None and len(minor) >= 4:
        # Date stamp, not a minor version
        minor = None
    return ModelVersion(family, match.group(1), minor, "new")


# Tried in order; the first rule that matches wins
MODEL_ID_RULES: List[Callable[[str, str], Optional[ModelVersion]]] = [
    _match_old_scheme,
    _match_new_scheme,
]


def parse_model_version(model_id: str) -> Optional[ModelVersion]:
    """Parse the Claude family and version out of a model id.

    Returns None for model ids without a known family (non-Anthropic models).
    """
    lower = model_id.lower()
    family_match = FAMILY_RE.search(lower)
    if not family_match:
        return None

    family = family_match.group(1)
    for rule in MODEL_ID_RULES:
        version = rule(lower, family)
        if version is not None:
            return version
    return None


def get_pricing_key(model_id: str) -> Optional[str]:
    """Extract a pricing key from a model id.

    Examples:
        "claude-opus-4-6"            -> "opus-4-6"
        "claude-sonnet-4-20250514"   -> "sonnet-4-0"
        "claude-3-7-sonnet-20250219" -> "sonnet-3-7"
        "claude-3-haiku-20240307"    -> "haiku-3"
        "glm-4.7"                    -> None
    """
    version = parse_model_version(model_id)
    return version.pricing_key if version else None


def get_pricing(
    model_id: str,
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> Optional[ModelPricing]:
    """Get pricing for a model, checking custom overrides before the built-in table.

    Args:
        model_id: Raw model id from the log record
        custom_pricing: Optional overrides keyed by model id or substring

    Returns:
        ModelPricing, or None when no price can be resolved
    """
    if custom_pricing:
        if model_id in custom_pricing:
            return custom_pricing[model_id]
        lower = model_id.lower()
        for key, pricing in custom_pricing.items():
            if key.lower() in lower:
                return pricing

    key = get_pricing_key(model_id)
    if key is None:
        return None
    return PRICING_TABLE.get_pricing(key)


def has_pricing(
    model_id: str,
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> bool:
    return get_pricing(model_id, custom_pricing) is not None


def calculate_entry_cost(
    model_id: str,
    usage: TokenUsage,
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> float:
    """Calculate the USD cost of one usage entry from its token counts.

    Returns 0.0 for models without resolvable pricing.
    """
    pricing = get_pricing(model_id, custom_pricing)
    if pricing is None:
        return 0.0

    total = (
        usage.input_tokens * pricing.input
        + usage.output_tokens * pricing.output
        + usage.cache_write_5m_tokens * pricing.cache_write_5m
        + usage.cache_write_1h_tokens * pricing.cache_write_1h
        + usage.cache_read_tokens * pricing.cache_read
    )
    return float(total / TOKENS_PER_MILLION)
