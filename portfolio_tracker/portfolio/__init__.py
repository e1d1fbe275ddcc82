"""
Portfolio Tracking Module.

This module provides:
- Buy/sell transaction records
- Position valuation (average-cost realized and unrealized P&L)
- Holdings bucketed into stocks, funds and forex
- Debounced saving of inline transaction edits

Example usage:
    >>> from portfolio_tracker.portfolio import (
    ...     PortfolioManager, compute_position,
    ...     create_buy_transaction, create_sell_transaction
    ... )
    >>>
    >>> buy = create_buy_transaction(100.0, 10, "2024-01-02")
    >>> sell = create_sell_transaction(120.0, 4, "2024-02-01")
    >>> position = compute_position([buy, sell], current_price=110.0)
    >>> position.total_pl
    140.0
"""

from .transaction import (
    Transaction,
    TransactionType,
    create_buy_transaction,
    create_sell_transaction,
    legacy_transactions,
)
from .position import Position, PositionCalculator, compute_position
from .holding import Holding
from .manager import PortfolioManager
from .autosave import TransactionAutosaver
from ..ticker_utils import AssetType

__all__ = [
    # Transactions
    "Transaction",
    "TransactionType",
    "create_buy_transaction",
    "create_sell_transaction",
    "legacy_transactions",

    # Valuation
    "Position",
    "PositionCalculator",
    "compute_position",

    # Holdings
    "AssetType",
    "Holding",
    "PortfolioManager",
    "TransactionAutosaver",
]
