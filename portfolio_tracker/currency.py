"""
Currency inference and price display helpers.
"""

import math
from typing import Optional

from portfolio_tracker.config import config
from portfolio_tracker.ticker_utils import TSE_SUFFIX, is_fund_code

NOT_AVAILABLE = "N/A"

# Currencies displayed with a glyph; anything else is prefixed by its code
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

# Decimal places per currency; the default is 2
CURRENCY_DECIMALS = {
    "JPY": 0,
}

# Symbol suffixes of markets that quote in JPY
JPY_MARKET_SUFFIXES = (TSE_SUFFIX,)


def currency_for_symbol(symbol: str) -> str:
    """
    Infer the quote currency of a symbol.

    Japanese fund codes and Tokyo listings quote in JPY; everything else is
    assumed to be in the configured default currency (USD unless
    DEFAULT_CURRENCY is set).

    Example:
        >>> currency_for_symbol("7974.T")
        'JPY'
        >>> currency_for_symbol("AAPL")
        'USD'
    """
    symbol = (symbol or "").strip().upper()
    if is_fund_code(symbol):
        return "JPY"
    if symbol.endswith(JPY_MARKET_SUFFIXES):
        return "JPY"
    return config.default_currency


def format_price(price: Optional[float], currency: Optional[str] = None) -> str:
    """
    Format a price for display.

    Args:
        price: Price to format; None, NaN or infinity renders as "N/A"
        currency: ISO currency code; None means the default currency

    Returns:
        Formatted string, e.g. "$1234.50", "¥15320", "CHF 12.00"
    """
    if price is None:
        return NOT_AVAILABLE
    try:
        value = float(price)
    except (TypeError, ValueError):
        return NOT_AVAILABLE
    if not math.isfinite(value):
        return NOT_AVAILABLE

    code = (currency or config.default_currency).strip().upper()
    decimals = CURRENCY_DECIMALS.get(code, 2)
    amount = f"{value:.{decimals}f}"

    glyph = CURRENCY_SYMBOLS.get(code)
    if glyph is None:
        return f"{code} {amount}"
    if amount.startswith("-"):
        return f"-{glyph}{amount[1:]}"
    return f"{glyph}{amount}"


def format_change(change_pct: Optional[float], decimals: int = 2) -> str:
    """Format a percentage change with an explicit sign, e.g. "+1.25%"."""
    if change_pct is None:
        return NOT_AVAILABLE
    try:
        value = float(change_pct)
    except (TypeError, ValueError):
        return NOT_AVAILABLE
    if not math.isfinite(value):
        return NOT_AVAILABLE
    return f"{value:+.{decimals}f}%"
