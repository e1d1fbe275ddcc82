"""
Instrument classification and symbol normalisation.

Search results that come back without an explicit type are sorted into the
stock, fund or forex bucket with an ordered list of rules. The rules are data
(CLASSIFICATION_RULES) so their order can be inspected and tested; the first
rule that matches wins.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple
import structlog

logger = structlog.get_logger(__name__)


class AssetType(Enum):
    """Asset-class bucket a holding lives in."""
    STOCK = "stock"
    FUND = "fund"
    FOREX = "forex"

    def __str__(self) -> str:
        return self.value

    @property
    def bucket(self) -> str:
        """Key of this asset class in the portfolio payload."""
        return _BUCKET_KEYS[self]

    @classmethod
    def parse(cls, value) -> "AssetType":
        """Accept an AssetType, its value, or a bucket key ("stocks", "funds")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for asset_type, bucket in _BUCKET_KEYS.items():
            if text in (asset_type.value, bucket):
                return asset_type
        raise ValueError(f"Unknown asset type: {value!r}")


_BUCKET_KEYS = {
    AssetType.STOCK: "stocks",
    AssetType.FUND: "funds",
    AssetType.FOREX: "forex",
}

# Japanese investment trusts are quoted by an 8-digit association code
FUND_CODE_PATTERN = re.compile(r"^\d{8}$")

# 4-digit codes are Tokyo Stock Exchange listings
TSE_CODE_PATTERN = re.compile(r"^\d{4}$")
TSE_SUFFIX = ".T"

FOREX_MARKERS = ("=X", "USD", "EUR", "GBP", "JPY", "CAD")

FUND_NAME_KEYWORDS = (
    "FUND", "ETF", "INDEX", "TRUST",
    "投資信託", "ファンド", "EMAXIS", "基準価額",
)
FUND_SYMBOL_KEYWORDS = ("FUND", "ETF")


def is_fund_code(symbol: str) -> bool:
    """Check for an 8-digit numeric fund code."""
    return bool(FUND_CODE_PATTERN.match((symbol or "").strip()))


def _is_fund_code(symbol: str, name: str) -> bool:
    return is_fund_code(symbol)


def _is_forex_pair(symbol: str, name: str) -> bool:
    upper_symbol = symbol.upper()
    return any(marker in upper_symbol for marker in FOREX_MARKERS)


def _has_fund_keyword(symbol: str, name: str) -> bool:
    upper_symbol = symbol.upper()
    upper_name = name.upper()
    return (
        any(keyword in upper_name for keyword in FUND_NAME_KEYWORDS)
        or any(keyword in upper_symbol for keyword in FUND_SYMBOL_KEYWORDS)
    )


def _always(symbol: str, name: str) -> bool:
    return True


@dataclass(frozen=True)
class ClassificationRule:
    """
    One step of instrument classification.

    Attributes:
        name: Short rule identifier, used in logs and tests
        asset_type: Bucket assigned when the rule matches
        predicate: Callable taking (symbol, name) and returning a bool
    """
    name: str
    asset_type: AssetType
    predicate: Callable[[str, str], bool]

    def matches(self, symbol: str, name: str) -> bool:
        return self.predicate(symbol, name)


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("fund_code", AssetType.FUND, _is_fund_code),
    ClassificationRule("forex_pair", AssetType.FOREX, _is_forex_pair),
    ClassificationRule("fund_keyword", AssetType.FUND, _has_fund_keyword),
    ClassificationRule("default", AssetType.STOCK, _always),
)


def matching_rule(symbol: str, name: Optional[str] = "") -> ClassificationRule:
    """
    Return the first classification rule that matches.

    Args:
        symbol: Ticker symbol as returned by the quote source
        name: Display name (may be empty)

    Returns:
        The winning ClassificationRule; the default rule always matches
    """
    symbol = (symbol or "").strip()
    name = name or ""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(symbol, name):
            return rule
    # CLASSIFICATION_RULES ends with a catch-all
    return CLASSIFICATION_RULES[-1]


def classify_instrument(symbol: str, name: Optional[str] = "") -> AssetType:
    """
    Classify an instrument as stock, fund or forex.

    Example:
        >>> classify_instrument("03311187", "eMAXIS Slim")
        <AssetType.FUND: 'fund'>
        >>> classify_instrument("EURUSD=X")
        <AssetType.FOREX: 'forex'>
        >>> classify_instrument("AAPL", "Apple Inc.")
        <AssetType.STOCK: 'stock'>
    """
    rule = matching_rule(symbol, name)
    logger.debug("instrument_classified", symbol=symbol, rule=rule.name, asset_type=rule.asset_type.value)
    return rule.asset_type


def format_symbol(query: str) -> str:
    """
    Normalise a search query into the symbol the quote source expects.

    A bare 4-digit code is a Tokyo listing and gets the ".T" suffix;
    everything else is upper-cased.

    Example:
        >>> format_symbol(" 7974 ")
        '7974.T'
        >>> format_symbol("eurusd=x")
        'EURUSD=X'
    """
    trimmed = (query or "").strip()
    if TSE_CODE_PATTERN.match(trimmed):
        return f"{trimmed}{TSE_SUFFIX}"
    return trimmed.upper()
