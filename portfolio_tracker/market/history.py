"""
Price history for the holding chart.

Covers everything about the chart that is not drawing: the selectable
periods and their refresh cadence, the period change shown above the chart,
the y-axis range, and where buy/sell markers sit on the price line.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Dict, Any, List, Iterable, Tuple
import pandas as pd
import structlog

from ..config import config
from ..exceptions import DataValidationError
from ..portfolio.transaction import TransactionType
from .quote import _optional_float

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TimePeriod:
    """A selectable chart period: button label and the value sent to the API."""
    label: str
    value: str


TIME_PERIODS: Tuple[TimePeriod, ...] = (
    TimePeriod("1D", "1D"),
    TimePeriod("1W", "1W"),
    TimePeriod("1M", "30D"),
    TimePeriod("3M", "90D"),
    TimePeriod("6M", "6M"),
    TimePeriod("YTD", "YTD"),
    TimePeriod("1Y", "1Y"),
    TimePeriod("2Y", "2Y"),
)

PERIOD_VALUES = tuple(p.value for p in TIME_PERIODS)

# Seconds between automatic refreshes, matching the data interval of each
# intraday period. Daily-resolution periods are not refreshed.
REFRESH_INTERVALS: Dict[str, int] = {
    "1D": 120,
    "1W": 300,
    "30D": 3600,
}

# Fraction of padding added below the minimum and above the maximum price
DEFAULT_DOMAIN_PADDING = 0.002


def default_period() -> str:
    """Configured default period, falling back to 6M if unrecognised."""
    if config.default_period in PERIOD_VALUES:
        return config.default_period
    logger.warning("unknown_default_period", period=config.default_period)
    return "6M"


def normalize_period(period: Optional[str]) -> str:
    """
    Map a period label or value to the API value.

    Raises:
        DataValidationError: If the period is not one of TIME_PERIODS
    """
    if not period:
        return default_period()
    text = period.strip().upper()
    for p in TIME_PERIODS:
        if text in (p.value, p.label):
            return p.value
    raise DataValidationError(
        f"Unknown chart period: {period}",
        field="period",
        value=period,
        expected=", ".join(PERIOD_VALUES)
    )


def refresh_interval(period: str) -> int:
    """Seconds between automatic refreshes for a period; 0 disables refresh."""
    return REFRESH_INTERVALS.get(normalize_period(period), 0)


def to_timestamp(value: Any) -> pd.Timestamp:
    """
    Parse a date, datetime or ISO string into a naive Timestamp.

    Timezone-aware values are converted to UTC before dropping the zone.

    Raises:
        DataValidationError: If the value cannot be parsed
    """
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Invalid date: {value!r}", field="date", value=value, cause=e)
    if pd.isna(ts):
        raise DataValidationError(f"Invalid date: {value!r}", field="date", value=value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


@dataclass(frozen=True)
class PricePoint:
    """
    One point on the price line.

    Attributes:
        timestamp: Time of the point (midnight for daily data)
        price: Price at that point
        label: Axis label; empty for points that get no tick
    """
    timestamp: pd.Timestamp
    price: float
    label: str = ""

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class TransactionMarker:
    """A buy or sell drawn on the price line at the nearest data point."""
    transaction_id: str
    transaction_type: TransactionType
    index: int
    timestamp: pd.Timestamp
    price: float

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == TransactionType.BUY


@dataclass
class PriceHistory:
    """
    Price series for one symbol over one period.

    Attributes:
        symbol: Ticker symbol
        period: Period value (see TIME_PERIODS)
        points: Price points in chronological order
        current_price: Latest price reported alongside the history
    """

    symbol: str
    period: str
    points: List[PricePoint] = field(default_factory=list)
    current_price: float = 0.0

    def __post_init__(self):
        self.symbol = self.symbol.strip().upper()
        self.points = sorted(self.points, key=lambda p: p.timestamp)

    @classmethod
    def from_api(cls, symbol: str, period: str, data: Dict[str, Any]) -> "PriceHistory":
        """
        Parse a `GET /api/stock/{symbol}/history?period=` response.

        Raises:
            DataValidationError: If a point has no usable date or price
        """
        points = []
        for raw in data.get("history") or []:
            price = _optional_float(raw.get("price"), "price")
            if price is None or not raw.get("date"):
                raise DataValidationError(
                    "History point missing date or price",
                    details={"symbol": symbol, "point": raw}
                )
            points.append(PricePoint(to_timestamp(raw["date"]), price, raw.get("name") or ""))

        return cls(
            symbol=symbol,
            period=normalize_period(period),
            points=points,
            current_price=_optional_float(data.get("currentPrice"), "currentPrice") or 0.0,
        )

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def first_price(self) -> float:
        return self.points[0].price if self.points else 0.0

    @property
    def last_price(self) -> float:
        """Last point's price, or the reported current price with no points."""
        return self.points[-1].price if self.points else self.current_price

    @property
    def change_percent(self) -> float:
        """Change from the first to the last price over the period, in percent."""
        first = self.first_price
        if first <= 0:
            return 0.0
        return (self.last_price - first) / first * 100.0

    @property
    def is_positive(self) -> bool:
        return self.last_price >= self.first_price

    @property
    def refresh_interval(self) -> int:
        return refresh_interval(self.period)

    def price_domain(self, padding: float = DEFAULT_DOMAIN_PADDING) -> Tuple[float, float]:
        """Y-axis range: the price range widened by `padding` on each side."""
        if not self.points:
            return (0.0, 0.0)
        prices = [p.price for p in self.points]
        return (min(prices) * (1 - padding), max(prices) * (1 + padding))

    def contains_date(self, value: Any) -> bool:
        """Check if a date falls between the first and last point, inclusive."""
        if not self.points or not value:
            return False
        target = to_timestamp(value)
        return self.points[0].timestamp <= target <= self.points[-1].timestamp

    def closest_point(self, value: Any) -> Optional[Tuple[int, PricePoint]]:
        """
        Find the point nearest in time to a date.

        Ties resolve to the earlier point.

        Returns:
            (index, point), or None for an empty history
        """
        if not self.points or not value:
            return None
        target = to_timestamp(value)
        index = min(
            range(len(self.points)),
            key=lambda i: abs(self.points[i].timestamp - target)
        )
        return index, self.points[index]

    def transaction_markers(self, transactions: Iterable[Any]) -> List[TransactionMarker]:
        """
        Place transactions on the price line.

        Transactions dated outside the history are left out; the rest are
        snapped to the nearest point.
        """
        markers = []
        for txn in transactions:
            if not self.contains_date(txn.date):
                continue
            index, point = self.closest_point(txn.date)
            markers.append(TransactionMarker(
                transaction_id=txn.transaction_id,
                transaction_type=txn.transaction_type,
                index=index,
                timestamp=point.timestamp,
                price=point.price,
            ))
        return markers

    def to_frame(self) -> pd.DataFrame:
        """Price points as a DataFrame indexed by timestamp."""
        frame = pd.DataFrame(
            [{"timestamp": p.timestamp, "price": p.price, "label": p.label} for p in self.points],
            columns=["timestamp", "price", "label"],
        )
        return frame.set_index("timestamp")
