"""
Portfolio manager for the holdings list.

Holdings are kept in three buckets (stocks, funds, forex), each keyed by
symbol in insertion order. The manager owns every holding's transactions;
valuation is delegated to the position calculator.
"""

from typing import Dict, List, Optional, Iterable, Union, Any
from datetime import datetime
import pandas as pd
import structlog

from ..exceptions import (
    DataError,
    DataValidationError,
    DuplicateHoldingError,
    HoldingNotFoundError,
    PortfolioError,
)
from ..market.quote import Quote
from ..ticker_utils import AssetType
from .holding import Holding
from .position import Position
from .transaction import Transaction

logger = structlog.get_logger(__name__)

SUMMARY_COLUMNS = [
    "symbol", "name", "type", "currency", "current_price", "change_percent",
    "current_shares", "average_buy_price", "market_value",
    "realized_pl", "unrealized_pl", "total_pl", "return_pct",
]


class PortfolioManager:
    """
    Manages the holdings list, bucketed by asset type.

    Example:
        >>> manager = PortfolioManager()
        >>> holding = manager.add_holding(Quote("AAPL", "Apple Inc", 150.0))
        >>> manager.set_transactions("AAPL", AssetType.STOCK, [create_buy_transaction(100.0, 10, "2024-01-02")])
        >>> manager.positions()["stock:AAPL"].unrealized_pl
        500.0
    """

    def __init__(self, name: str = "Portfolio"):
        """
        Initialize portfolio manager.

        Args:
            name: Portfolio name
        """
        self.name = name
        self._buckets: Dict[AssetType, Dict[str, Holding]] = {
            asset_type: {} for asset_type in AssetType
        }

        logger.debug("portfolio_manager_initialized", name=self.name)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def holdings(self, asset_type: Optional[Union[AssetType, str]] = None) -> List[Holding]:
        """
        List holdings in insertion order.

        Args:
            asset_type: Restrict to one bucket (optional)
        """
        if asset_type is not None:
            return list(self._buckets[AssetType.parse(asset_type)].values())
        return [h for bucket in self._buckets.values() for h in bucket.values()]

    def add_holding(self, item: Union[Quote, Holding]) -> Holding:
        """
        Add an accepted search result (or a ready-made holding) to its bucket.

        Args:
            item: Quote from a search, or a Holding

        Returns:
            The holding stored in the portfolio

        Raises:
            DuplicateHoldingError: If the symbol is already in that bucket
        """
        if isinstance(item, Quote):
            holding = Holding(
                symbol=item.symbol,
                name=item.name,
                asset_type=item.asset_type,
                current_price=item.current_price,
                currency=item.currency,
                change_percent=item.change_percent,
                last_updated=datetime.now(),
            )
        else:
            holding = item

        bucket = self._buckets[holding.asset_type]
        if holding.symbol in bucket:
            raise DuplicateHoldingError(
                f"{holding.symbol} is already in {holding.asset_type.bucket}",
                details={"symbol": holding.symbol, "type": holding.asset_type.value}
            )

        bucket[holding.symbol] = holding
        logger.info(
            "holding_added",
            symbol=holding.symbol,
            type=holding.asset_type.value,
            currency=holding.currency,
            price=holding.current_price
        )
        return holding

    def get_holding(self, symbol: str, asset_type: Union[AssetType, str]) -> Holding:
        """
        Get a holding by symbol and bucket.

        Raises:
            HoldingNotFoundError: If the holding doesn't exist
        """
        asset_type = AssetType.parse(asset_type)
        symbol = symbol.strip().upper()
        holding = self._buckets[asset_type].get(symbol)
        if holding is None:
            raise HoldingNotFoundError(
                f"No {asset_type.value} holding for {symbol}",
                details={"symbol": symbol, "type": asset_type.value}
            )
        return holding

    def has_holding(self, symbol: str, asset_type: Union[AssetType, str]) -> bool:
        return symbol.strip().upper() in self._buckets[AssetType.parse(asset_type)]

    def find_holdings(self, symbol: str) -> List[Holding]:
        """Find a symbol across all buckets."""
        symbol = symbol.strip().upper()
        return [bucket[symbol] for bucket in self._buckets.values() if symbol in bucket]

    def remove_holding(self, symbol: str, asset_type: Union[AssetType, str]) -> Holding:
        """
        Remove a holding and its transactions.

        Raises:
            HoldingNotFoundError: If the holding doesn't exist
        """
        holding = self.get_holding(symbol, asset_type)
        del self._buckets[holding.asset_type][holding.symbol]

        logger.info(
            "holding_removed",
            symbol=holding.symbol,
            type=holding.asset_type.value,
            transactions=len(holding.transactions)
        )
        return holding

    def set_transactions(
        self,
        symbol: str,
        asset_type: Union[AssetType, str],
        transactions: Iterable[Union[Transaction, Dict[str, Any]]]
    ) -> Holding:
        """
        Replace a holding's transaction list.

        Args:
            symbol: Holding symbol
            asset_type: Holding bucket
            transactions: Transactions or their API dicts

        Raises:
            HoldingNotFoundError: If the holding doesn't exist
            TransactionValidationError: If any transaction is invalid
        """
        holding = self.get_holding(symbol, asset_type)
        parsed = [
            t if isinstance(t, Transaction) else Transaction.from_dict(t)
            for t in transactions
        ]
        holding.transactions = parsed

        logger.info(
            "transactions_replaced",
            symbol=holding.symbol,
            type=holding.asset_type.value,
            count=len(parsed)
        )
        return holding

    def apply_quote(self, quote: Quote, timestamp: Optional[datetime] = None) -> int:
        """
        Update every holding of the quoted symbol with the new price.

        Returns:
            Number of holdings updated
        """
        updated = 0
        for holding in self.find_holdings(quote.symbol):
            holding.update_quote(
                quote.current_price,
                change_percent=quote.change_percent,
                currency=quote.currency,
                timestamp=timestamp
            )
            updated += 1
        if updated == 0:
            logger.debug("quote_for_unknown_symbol", symbol=quote.symbol)
        return updated

    def positions(self) -> Dict[str, Position]:
        """Valuation of every holding, keyed by "<type>:<symbol>"."""
        return {holding.key: holding.position for holding in self.holdings()}

    def summary_frame(self) -> pd.DataFrame:
        """
        Tabulate holdings and their positions.

        Returns:
            DataFrame with one row per holding and SUMMARY_COLUMNS columns
        """
        rows = []
        for holding in self.holdings():
            position = holding.position
            rows.append({
                "symbol": holding.symbol,
                "name": holding.name,
                "type": holding.asset_type.value,
                "currency": holding.currency,
                "current_price": holding.current_price,
                "change_percent": holding.change_percent,
                "current_shares": position.current_shares,
                "average_buy_price": position.average_buy_price,
                "market_value": position.market_value,
                "realized_pl": position.realized_pl,
                "unrealized_pl": position.unrealized_pl,
                "total_pl": position.total_pl,
                "return_pct": position.return_pct,
            })
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

    def totals_by_currency(self) -> Dict[str, Dict[str, float]]:
        """
        Sum market value and P&L per quote currency.

        Holdings in different currencies are never added together.
        """
        frame = self.summary_frame()
        if frame.empty:
            return {}
        grouped = frame.groupby("currency")[["market_value", "realized_pl", "unrealized_pl", "total_pl"]].sum()
        return {currency: {k: float(v) for k, v in row.items()} for currency, row in grouped.iterrows()}

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Convert to the `{stocks, funds, forex}` portfolio payload."""
        return {
            asset_type.bucket: [h.to_dict() for h in bucket.values()]
            for asset_type, bucket in self._buckets.items()
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        name: str = "Portfolio",
        skip_invalid: bool = False
    ) -> "PortfolioManager":
        """
        Build a manager from a `{stocks, funds, forex}` portfolio payload.

        Missing buckets are treated as empty.

        Args:
            data: Portfolio payload
            name: Portfolio name
            skip_invalid: Log and drop holdings that fail to parse instead
                of raising, so the rest of the portfolio still loads

        Raises:
            DataValidationError: If a holding is malformed (unless skip_invalid)
            TransactionValidationError: If a stored transaction is invalid (unless skip_invalid)
            DuplicateHoldingError: If a bucket lists a symbol twice (unless skip_invalid)
        """
        manager = cls(name=name)
        skipped = 0
        for asset_type in AssetType:
            for item in data.get(asset_type.bucket) or []:
                try:
                    if not isinstance(item, dict):
                        raise DataValidationError(
                            "Holding payload is not an object",
                            field=asset_type.bucket,
                            value=item
                        )
                    manager.add_holding(Holding.from_dict(item, asset_type=asset_type))
                except (DataError, PortfolioError) as e:
                    if not skip_invalid:
                        raise
                    skipped += 1
                    logger.warning(
                        "holding_skipped",
                        bucket=asset_type.bucket,
                        symbol=item.get("symbol") if isinstance(item, dict) else None,
                        error=str(e)
                    )

        logger.info(
            "portfolio_loaded",
            name=name,
            skipped=skipped,
            **{asset_type.bucket: len(manager._buckets[asset_type]) for asset_type in AssetType}
        )
        return manager

    def __repr__(self) -> str:
        counts = ", ".join(f"{t.bucket}={len(b)}" for t, b in self._buckets.items())
        return f"PortfolioManager(name={self.name}, {counts})"
