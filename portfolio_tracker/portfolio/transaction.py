"""
Buy/sell transaction records for portfolio holdings.

A holding's transaction list is the single input of the position calculator.
Older portfolio payloads stored one buy and one sell directly on the holding
(buyPrice/buyDate/sellPrice/sellDate); legacy_transactions() turns those into
regular transactions so nothing downstream has to special-case them.
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Union
import structlog

from ..exceptions import TransactionValidationError

logger = structlog.get_logger(__name__)

DateLike = Union[date, datetime, str]


class TransactionType(Enum):
    """
    Type of portfolio transaction.

    Attributes:
        BUY: Purchase of shares
        SELL: Sale of shares
    """
    BUY = "buy"
    SELL = "sell"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union["TransactionType", str]) -> "TransactionType":
        """Accept an enum member or its value in any case."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise TransactionValidationError(
                f"Transaction type must be 'buy' or 'sell', got {value!r}",
                field="type",
                value=value,
                cause=e
            )


def parse_date(value: DateLike) -> date:
    """
    Parse an ISO 8601 date or datetime into a calendar date.

    Example:
        >>> parse_date("2024-03-15")
        datetime.date(2024, 3, 15)
        >>> parse_date("2024-03-15T09:30:00Z")
        datetime.date(2024, 3, 15)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise TransactionValidationError(
            f"Invalid transaction date: {value!r}",
            field="date",
            value=value,
            cause=e
        )


def generate_transaction_id() -> str:
    """Generate a unique transaction ID."""
    return uuid.uuid4().hex


@dataclass
class Transaction:
    """
    A single buy or sell of an instrument.

    Attributes:
        transaction_type: BUY or SELL
        price: Price per share in the instrument's quote currency
        shares: Number of shares (fractional allowed)
        date: Calendar date of the trade
        transaction_id: Unique identifier, generated when omitted

    Example:
        >>> buy = Transaction(TransactionType.BUY, price=150.0, shares=10, date="2024-01-02")
        >>> buy.amount
        1500.0
    """

    transaction_type: TransactionType
    price: float
    shares: float
    date: date
    transaction_id: str = field(default_factory=generate_transaction_id)

    def __post_init__(self):
        """Validate and normalize transaction data."""
        self.transaction_type = TransactionType.parse(self.transaction_type)
        self.date = parse_date(self.date)

        try:
            self.price = float(self.price)
            self.shares = float(self.shares)
        except (TypeError, ValueError) as e:
            raise TransactionValidationError(
                "Price and shares must be numeric",
                details={"price": self.price, "shares": self.shares},
                cause=e
            )

        if not math.isfinite(self.shares) or self.shares <= 0:
            raise TransactionValidationError(
                f"Shares must be positive for {self.transaction_type}, got {self.shares}",
                field="shares",
                value=self.shares
            )
        if not math.isfinite(self.price) or self.price < 0:
            raise TransactionValidationError(
                f"Price cannot be negative, got {self.price}",
                field="price",
                value=self.price
            )

        if not self.transaction_id:
            self.transaction_id = generate_transaction_id()

    @property
    def id(self) -> str:
        return self.transaction_id

    @property
    def amount(self) -> float:
        """Gross value of the trade (price * shares)."""
        return self.price * self.shares

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == TransactionType.BUY

    @property
    def is_sell(self) -> bool:
        return self.transaction_type == TransactionType.SELL

    def with_changes(self, **changes: Any) -> "Transaction":
        """
        Return a validated copy with some fields replaced.

        The transaction id is always preserved.

        Args:
            **changes: Any of transaction_type (or type), price, shares, date

        Returns:
            New Transaction instance

        Raises:
            TransactionValidationError: If the edited values are invalid
        """
        if "type" in changes:
            changes["transaction_type"] = changes.pop("type")
        changes.pop("transaction_id", None)
        changes.pop("id", None)
        unknown = set(changes) - {"transaction_type", "price", "shares", "date"}
        if unknown:
            raise TransactionValidationError(
                f"Unknown transaction fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)}
            )
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert transaction to its API representation.

        Example:
            >>> buy.to_dict()
            {'id': '...', 'type': 'buy', 'price': 150.0, 'shares': 10.0, 'date': '2024-01-02'}
        """
        return {
            "id": self.transaction_id,
            "type": self.transaction_type.value,
            "price": self.price,
            "shares": self.shares,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """
        Create a transaction from its API representation.

        Accepts the wire keys (id, type) as well as the attribute names
        (transaction_id, transaction_type).

        Raises:
            TransactionValidationError: If a required field is missing or invalid
        """
        try:
            transaction_type = data.get("type", data.get("transaction_type"))
            price = data["price"]
            shares = data["shares"]
            trade_date = data["date"]
        except KeyError as e:
            raise TransactionValidationError(
                f"Missing transaction field: {e.args[0]}",
                field=e.args[0],
                cause=e
            )
        if transaction_type is None:
            raise TransactionValidationError("Missing transaction field: type", field="type")

        return cls(
            transaction_type=transaction_type,
            price=price,
            shares=shares,
            date=trade_date,
            transaction_id=data.get("id") or data.get("transaction_id") or generate_transaction_id(),
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Transaction(id={self.transaction_id}, type={self.transaction_type.value}, "
            f"shares={self.shares:.4g}, price={self.price:.2f}, date={self.date.isoformat()})"
        )


def create_buy_transaction(
    price: float,
    shares: float,
    date: DateLike,
    transaction_id: Optional[str] = None
) -> Transaction:
    """
    Convenience function to create a BUY transaction.

    Example:
        >>> buy = create_buy_transaction(100.0, 10, "2024-01-02")
    """
    return Transaction(
        transaction_type=TransactionType.BUY,
        price=price,
        shares=shares,
        date=date,
        transaction_id=transaction_id or generate_transaction_id(),
    )


def create_sell_transaction(
    price: float,
    shares: float,
    date: DateLike,
    transaction_id: Optional[str] = None
) -> Transaction:
    """
    Convenience function to create a SELL transaction.

    Example:
        >>> sell = create_sell_transaction(120.0, 4, "2024-02-01")
    """
    return Transaction(
        transaction_type=TransactionType.SELL,
        price=price,
        shares=shares,
        date=date,
        transaction_id=transaction_id or generate_transaction_id(),
    )


def legacy_transactions(
    buy_price: Optional[float] = None,
    buy_date: Optional[DateLike] = None,
    sell_price: Optional[float] = None,
    sell_date: Optional[DateLike] = None,
    shares: float = 1.0,
    fallback_date: Optional[DateLike] = None
) -> List[Transaction]:
    """
    Convert legacy single buy/sell fields into transactions.

    A side is converted whenever its price is present, so a price-only record
    still counts towards the average price and P&L. A side without a date is
    dated `fallback_date` (today by default); history charts only draw a
    marker for it if that date falls inside the charted period. Legacy
    records carry no share count, so each side is recorded as `shares` shares.

    Args:
        buy_price: Legacy buyPrice
        buy_date: Legacy buyDate
        sell_price: Legacy sellPrice
        sell_date: Legacy sellDate
        shares: Share count to attribute to each side (default 1.0)
        fallback_date: Date for a side that has a price but no date

    Returns:
        Zero, one or two transactions (buy first)
    """
    transactions: List[Transaction] = []
    undated = [side for side, price, when in (("buy", buy_price, buy_date), ("sell", sell_price, sell_date))
               if price and not when]
    if undated:
        fallback_date = fallback_date or date.today()
        logger.debug("legacy_side_undated", sides=undated, fallback_date=str(fallback_date))

    if buy_price:
        transactions.append(create_buy_transaction(buy_price, shares, buy_date or fallback_date))
    if sell_price:
        transactions.append(create_sell_transaction(sell_price, shares, sell_date or fallback_date))

    if transactions:
        logger.debug(
            "legacy_transactions_converted",
            count=len(transactions),
            buy_price=buy_price,
            sell_price=sell_price
        )
    return transactions
