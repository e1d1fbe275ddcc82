"""
Holdings: tracked instruments with their transaction history and latest quote.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
import structlog

from ..exceptions import TransactionNotFoundError, DataValidationError
from ..ticker_utils import AssetType, classify_instrument
from ..currency import currency_for_symbol
from .position import Position, compute_position
from .transaction import Transaction, legacy_transactions

logger = structlog.get_logger(__name__)


@dataclass
class Holding:
    """
    An instrument in one of the portfolio buckets.

    Attributes:
        symbol: Ticker symbol, unique within its asset-type bucket
        name: Display name
        asset_type: stock, fund or forex
        current_price: Latest known market price (may be stale; None if unknown)
        currency: Quote currency code
        change_percent: Latest daily change reported by the quote source
        transactions: Buy/sell history in insertion order
        last_updated: Time of the last price refresh

    Example:
        >>> holding = Holding("AAPL", "Apple Inc", AssetType.STOCK, current_price=150.0)
        >>> holding.add_transaction(create_buy_transaction(100.0, 10, "2024-01-02"))
        >>> holding.position.unrealized_pl
        500.0
    """

    symbol: str
    name: str = ""
    asset_type: AssetType = AssetType.STOCK
    current_price: Optional[float] = None
    currency: Optional[str] = None
    change_percent: float = 0.0
    transactions: List[Transaction] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        """Validate and normalize holding data."""
        self.symbol = self.symbol.strip().upper()
        if not self.symbol:
            raise DataValidationError("Holding symbol cannot be empty", field="symbol")

        self.asset_type = AssetType.parse(self.asset_type)
        self.name = self.name or self.symbol
        self.currency = (self.currency or currency_for_symbol(self.symbol)).strip().upper()
        self.transactions = list(self.transactions)

    @property
    def key(self) -> str:
        return f"{self.asset_type.value}:{self.symbol}"

    @property
    def position(self) -> Position:
        """Valuation of this holding at its current price."""
        return compute_position(self.transactions, self.current_price)

    @property
    def buy_transactions(self) -> List[Transaction]:
        return [t for t in self.transactions if t.is_buy]

    @property
    def sell_transactions(self) -> List[Transaction]:
        return [t for t in self.transactions if t.is_sell]

    def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Look up a transaction by id.

        Raises:
            TransactionNotFoundError: If no transaction has that id
        """
        for txn in self.transactions:
            if txn.transaction_id == transaction_id:
                return txn
        raise TransactionNotFoundError(
            f"No transaction {transaction_id} on {self.symbol}",
            details={"symbol": self.symbol, "transaction_id": transaction_id}
        )

    def add_transaction(self, transaction: Transaction) -> None:
        """Append a transaction to the history."""
        self.transactions.append(transaction)
        logger.info(
            "transaction_added",
            symbol=self.symbol,
            transaction_id=transaction.transaction_id,
            type=transaction.transaction_type.value,
            shares=transaction.shares,
            price=transaction.price
        )

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        """
        Replace fields of an existing transaction in place in the history.

        Args:
            transaction_id: Id of the transaction to edit
            **changes: Fields to change (type, price, shares, date)

        Returns:
            The updated transaction

        Raises:
            TransactionNotFoundError: If no transaction has that id
            TransactionValidationError: If the edited values are invalid
        """
        current = self.get_transaction(transaction_id)
        updated = current.with_changes(**changes)
        index = self.transactions.index(current)
        self.transactions[index] = updated

        logger.debug(
            "transaction_updated",
            symbol=self.symbol,
            transaction_id=transaction_id,
            fields=sorted(changes)
        )
        return updated

    def remove_transaction(self, transaction_id: str) -> Transaction:
        """
        Remove a transaction from the history.

        Raises:
            TransactionNotFoundError: If no transaction has that id
        """
        txn = self.get_transaction(transaction_id)
        self.transactions.remove(txn)
        logger.info("transaction_removed", symbol=self.symbol, transaction_id=transaction_id)
        return txn

    def update_quote(
        self,
        price: Optional[float],
        change_percent: Optional[float] = None,
        currency: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> None:
        """
        Refresh the latest quote.

        Args:
            price: New market price (None leaves the price unknown)
            change_percent: New daily change, kept unchanged when None
            currency: Quote currency, kept unchanged when None
            timestamp: Time of the refresh (defaults to now)

        Raises:
            DataValidationError: If price is negative or not finite
        """
        if price is not None and (not math.isfinite(price) or price < 0):
            raise DataValidationError(
                f"Price cannot be negative, got {price}",
                field="currentPrice",
                value=price
            )

        self.current_price = price
        if change_percent is not None:
            self.change_percent = change_percent
        if currency:
            self.currency = currency.strip().upper()
        self.last_updated = timestamp or datetime.now()

        logger.debug(
            "holding_quote_updated",
            symbol=self.symbol,
            price=price,
            change_percent=self.change_percent
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the portfolio API representation."""
        return {
            "symbol": self.symbol,
            "name": self.name,
            "type": self.asset_type.value,
            "currentPrice": self.current_price,
            "currency": self.currency,
            "changePercent": self.change_percent,
            "transactions": [t.to_dict() for t in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], asset_type: Optional[AssetType] = None) -> "Holding":
        """
        Create a holding from the portfolio API representation.

        Legacy records without a transactions list have their
        buyPrice/buyDate/sellPrice/sellDate converted instead.

        Args:
            data: Holding payload
            asset_type: Bucket the payload was found in; overrides data["type"]
        """
        symbol = data.get("symbol")
        if not symbol:
            raise DataValidationError("Holding payload missing symbol", field="symbol")
        name = data.get("name") or ""

        if asset_type is None:
            asset_type = data.get("type") or classify_instrument(symbol, name)

        raw_transactions = data.get("transactions")
        if raw_transactions is not None:
            transactions = [Transaction.from_dict(t) for t in raw_transactions]
        else:
            transactions = legacy_transactions(
                buy_price=data.get("buyPrice"),
                buy_date=data.get("buyDate"),
                sell_price=data.get("sellPrice"),
                sell_date=data.get("sellDate"),
                shares=data.get("shares") or 1.0,
            )

        return cls(
            symbol=symbol,
            name=name,
            asset_type=asset_type,
            current_price=data.get("currentPrice"),
            currency=data.get("currency"),
            change_percent=data.get("changePercent") or 0.0,
            transactions=transactions,
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        price = f"{self.current_price:.2f}" if self.current_price is not None else "N/A"
        return (
            f"Holding(symbol={self.symbol}, type={self.asset_type.value}, "
            f"price={price} {self.currency}, transactions={len(self.transactions)})"
        )
