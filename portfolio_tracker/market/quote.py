"""
Quote payloads returned by the stock lookup endpoint.
"""

import math
from dataclasses import dataclass
from typing import Optional, Dict, Any
import structlog

from ..config import config
from ..exceptions import DataValidationError
from ..ticker_utils import AssetType, classify_instrument

logger = structlog.get_logger(__name__)


def _optional_float(value: Any, field: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise DataValidationError(
            f"Expected a number for {field}",
            field=field,
            value=value,
            expected="number",
            cause=e
        )
    if not math.isfinite(number):
        raise DataValidationError(f"Non-finite value for {field}", field=field, value=value)
    return number


@dataclass(frozen=True)
class Quote:
    """
    Latest market quote for an instrument.

    Attributes:
        symbol: Ticker symbol as returned by the quote source
        name: Display name
        current_price: Latest price in the quote currency
        change_percent: Daily change in percent
        currency: Quote currency code
        asset_type: stock, fund or forex
    """

    symbol: str
    name: str
    current_price: float
    change_percent: float = 0.0
    currency: str = "USD"
    asset_type: AssetType = AssetType.STOCK

    @classmethod
    def from_api(cls, data: Dict[str, Any], requested_symbol: Optional[str] = None) -> "Quote":
        """
        Parse a `GET /api/stock/{symbol}` response.

        A missing type is inferred with the instrument classifier, a missing
        currency defaults to the configured default currency and a missing
        change to 0.

        Args:
            data: Response payload
            requested_symbol: Symbol used in the request, used when the
                payload omits its own

        Raises:
            DataValidationError: If the symbol or current price is missing or invalid
        """
        symbol = (data.get("symbol") or requested_symbol or "").strip().upper()
        if not symbol:
            raise DataValidationError("Quote payload missing symbol", field="symbol")

        current_price = _optional_float(data.get("currentPrice"), "currentPrice")
        if current_price is None or current_price < 0:
            raise DataValidationError(
                "Quote payload has no usable currentPrice",
                field="currentPrice",
                value=data.get("currentPrice"),
                expected="non-negative number",
                details={"symbol": symbol}
            )

        name = data.get("name") or symbol
        raw_type = data.get("type")
        try:
            asset_type = AssetType.parse(raw_type) if raw_type else classify_instrument(symbol, name)
        except ValueError:
            logger.warning("unknown_quote_type", symbol=symbol, type=raw_type)
            asset_type = classify_instrument(symbol, name)

        return cls(
            symbol=symbol,
            name=name,
            current_price=current_price,
            change_percent=_optional_float(data.get("changePercent"), "changePercent") or 0.0,
            currency=(data.get("currency") or config.default_currency).strip().upper(),
            asset_type=asset_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "currentPrice": self.current_price,
            "changePercent": self.change_percent,
            "currency": self.currency,
            "type": self.asset_type.value,
        }
