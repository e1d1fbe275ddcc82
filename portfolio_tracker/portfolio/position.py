"""
Position valuation for portfolio holdings.

compute_position() turns a holding's transaction history and the latest
market price into a Position snapshot: shares held, average cost, realized
and unrealized profit/loss. Every surface that shows P&L goes through it.

Cost basis uses the average-cost method: every sale is costed at the
weighted-average price of all buys, regardless of the order of trades.
No FIFO/LIFO lot matching is done.

Oversold histories (more shares sold than bought) are clamped: the held
share count and remaining cost basis never go below zero, and the excess is
reported in Position.oversold_shares.
"""

import math
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Iterable
import structlog

from .transaction import TransactionType

logger = structlog.get_logger(__name__)


def _finite(value: float) -> float:
    """Map NaN and infinities to 0.0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)


def _as_number(value: Any) -> Optional[float]:
    """Convert to float; None for missing, non-numeric or non-finite values."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _transaction_type(value: Any) -> Optional[TransactionType]:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class Position:
    """
    Derived valuation snapshot of a holding. Never persisted.

    Attributes:
        total_bought_shares: Sum of shares over buys
        total_sold_shares: Sum of shares over sells
        current_shares: Shares still held, clamped at zero
        total_buy_value: Sum of price * shares over buys
        total_sell_value: Sum of price * shares over sells
        average_buy_price: Value-weighted average buy price
        average_sell_price: Value-weighted average sell price
        current_price: Price used for valuation (0 when unknown)
        market_value: current_shares * current_price
        remaining_cost_basis: current_shares * average_buy_price
        realized_pl: Sale proceeds minus the average cost of sold shares
        unrealized_pl: Market value minus remaining cost basis
        total_pl: realized_pl + unrealized_pl
        return_pct: total_pl as a percentage of total_buy_value
        unrealized_pct: unrealized_pl as a percentage of remaining_cost_basis
        oversold_shares: Shares sold beyond what was bought
    """

    total_bought_shares: float = 0.0
    total_sold_shares: float = 0.0
    current_shares: float = 0.0
    total_buy_value: float = 0.0
    total_sell_value: float = 0.0
    average_buy_price: float = 0.0
    average_sell_price: float = 0.0
    current_price: float = 0.0
    market_value: float = 0.0
    remaining_cost_basis: float = 0.0
    realized_pl: float = 0.0
    unrealized_pl: float = 0.0
    total_pl: float = 0.0
    return_pct: float = 0.0
    unrealized_pct: float = 0.0
    oversold_shares: float = 0.0

    @property
    def is_open(self) -> bool:
        """Check if any shares are still held."""
        return self.current_shares > 0

    @property
    def is_oversold(self) -> bool:
        """Check if the history sells more shares than it buys."""
        return self.oversold_shares > 0

    @property
    def is_profitable(self) -> bool:
        return self.total_pl > 0

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the camelCase shape used by the rendering layer.

        Example:
            >>> compute_position([], 100.0).to_dict()["currentShares"]
            0.0
        """
        return {
            "totalBoughtShares": self.total_bought_shares,
            "totalSoldShares": self.total_sold_shares,
            "currentShares": self.current_shares,
            "totalBuyValue": self.total_buy_value,
            "totalSellValue": self.total_sell_value,
            "averageBuyPrice": self.average_buy_price,
            "averageSellPrice": self.average_sell_price,
            "currentPrice": self.current_price,
            "marketValue": self.market_value,
            "remainingCostBasis": self.remaining_cost_basis,
            "realizedPL": self.realized_pl,
            "unrealizedPL": self.unrealized_pl,
            "totalPL": self.total_pl,
            "returnPct": self.return_pct,
            "unrealizedPct": self.unrealized_pct,
            "oversoldShares": self.oversold_shares,
        }

    def as_record(self) -> Dict[str, float]:
        """Flat snake_case mapping, suitable for a DataFrame row."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Position(shares={self.current_shares:.4g}, avg_buy={self.average_buy_price:.2f}, "
            f"realized={self.realized_pl:+.2f}, unrealized={self.unrealized_pl:+.2f}, "
            f"total={self.total_pl:+.2f} ({self.return_pct:+.2f}%))"
        )


def compute_position(transactions: Optional[Iterable[Any]], current_price: Optional[float] = None) -> Position:
    """
    Compute a Position from a transaction history and a current price.

    Transactions are read through their transaction_type (or wire-name
    `type`), price and shares attributes and are never modified. Entries with a non-positive share
    count, a negative price, or non-finite values contribute nothing.

    Args:
        transactions: Buy/sell transactions in any order; may be empty or None
        current_price: Latest market price; None means unknown and counts as 0

    Returns:
        Position snapshot. All derived P&L is 0 when nothing was bought.

    Example:
        >>> buy = create_buy_transaction(100.0, 10, "2024-01-02")
        >>> sell = create_sell_transaction(120.0, 4, "2024-02-01")
        >>> p = compute_position([buy, sell], 110.0)
        >>> p.current_shares, p.realized_pl, p.unrealized_pl, p.total_pl
        (6.0, 80.0, 60.0, 140.0)
    """
    price = _as_number(current_price)
    if price is None or price < 0:
        price = 0.0

    total_bought_shares = 0.0
    total_buy_value = 0.0
    total_sold_shares = 0.0
    total_sell_value = 0.0
    skipped = 0

    for txn in transactions or ():
        shares = _as_number(getattr(txn, "shares", None))
        txn_price = _as_number(getattr(txn, "price", None))
        if shares is None or txn_price is None or shares <= 0 or txn_price < 0:
            skipped += 1
            continue

        raw_type = getattr(txn, "transaction_type", None)
        if raw_type is None:
            raw_type = getattr(txn, "type", None)
        txn_type = _transaction_type(raw_type)
        if txn_type == TransactionType.BUY:
            total_bought_shares += shares
            total_buy_value += txn_price * shares
        elif txn_type == TransactionType.SELL:
            total_sold_shares += shares
            total_sell_value += txn_price * shares
        else:
            skipped += 1

    if skipped:
        logger.debug("transactions_skipped", count=skipped)

    average_sell_price = total_sell_value / total_sold_shares if total_sold_shares > 0 else 0.0
    net_shares = total_bought_shares - total_sold_shares
    oversold_shares = max(0.0, -net_shares)

    if oversold_shares > 0:
        logger.warning(
            "oversold_position",
            bought=total_bought_shares,
            sold=total_sold_shares,
            oversold=oversold_shares
        )

    if total_bought_shares <= 0:
        # Nothing bought: no cost basis to measure a gain or loss against
        return Position(
            total_sold_shares=_finite(total_sold_shares),
            total_sell_value=_finite(total_sell_value),
            average_sell_price=_finite(average_sell_price),
            current_price=price,
            oversold_shares=_finite(oversold_shares),
        )

    average_buy_price = total_buy_value / total_bought_shares
    current_shares = max(0.0, net_shares)

    sold_cost_basis = total_sold_shares * average_buy_price
    realized_pl = total_sell_value - sold_cost_basis

    remaining_cost_basis = max(0.0, current_shares * average_buy_price)
    market_value = current_shares * price
    unrealized_pl = market_value - remaining_cost_basis
    total_pl = realized_pl + unrealized_pl

    return_pct = (total_pl / total_buy_value * 100.0) if total_buy_value > 0 else 0.0
    unrealized_pct = (unrealized_pl / remaining_cost_basis * 100.0) if remaining_cost_basis > 0 else 0.0

    return Position(
        total_bought_shares=_finite(total_bought_shares),
        total_sold_shares=_finite(total_sold_shares),
        current_shares=_finite(current_shares),
        total_buy_value=_finite(total_buy_value),
        total_sell_value=_finite(total_sell_value),
        average_buy_price=_finite(average_buy_price),
        average_sell_price=_finite(average_sell_price),
        current_price=price,
        market_value=_finite(market_value),
        remaining_cost_basis=_finite(remaining_cost_basis),
        realized_pl=_finite(realized_pl),
        unrealized_pl=_finite(unrealized_pl),
        total_pl=_finite(total_pl),
        return_pct=_finite(return_pct),
        unrealized_pct=_finite(unrealized_pct),
        oversold_shares=_finite(oversold_shares),
    )


class PositionCalculator:
    """
    Object facade over compute_position().

    Holds no state between calls; it exists for callers that want to inject
    a calculator rather than import a function.

    Example:
        >>> calculator = PositionCalculator()
        >>> position = calculator.compute_for(holding)
    """

    def compute(self, transactions: Optional[Iterable[Any]], current_price: Optional[float] = None) -> Position:
        return compute_position(transactions, current_price)

    def compute_for(self, holding) -> Position:
        """Compute the position of a Holding at its current price."""
        return compute_position(holding.transactions, holding.current_price)
