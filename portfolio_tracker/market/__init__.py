"""
Market data models for the portfolio tracker.

Module Structure:
- quote.py: Quote parsed from the stock lookup endpoint
- history.py: PriceHistory, chart periods and transaction markers
- sources.py: collaborator interfaces and the workflows consuming them

Usage:
    from portfolio_tracker.market import Quote, PriceHistory
    from portfolio_tracker.market.sources import search_instrument, refresh_prices
"""

from .quote import Quote
from .history import (
    PriceHistory,
    PricePoint,
    TimePeriod,
    TransactionMarker,
    TIME_PERIODS,
    normalize_period,
    refresh_interval,
)

__all__ = [
    "Quote",
    "PriceHistory",
    "PricePoint",
    "TimePeriod",
    "TransactionMarker",
    "TIME_PERIODS",
    "normalize_period",
    "refresh_interval",
]
