"""
Market-data and portfolio-store collaborators.

The quote source, history source and portfolio store are provided by the
host application (the `/api/stock/...` and `/api/portfolio/...` endpoints).
This module defines their interfaces and the workflows that consume them.
Collaborator failures are reported here and turned into empty or partial
results; they never reach the position calculator.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import structlog

from ..exceptions import is_recoverable
from ..ticker_utils import AssetType, format_symbol
from ..portfolio.holding import Holding
from ..portfolio.manager import PortfolioManager
from ..portfolio.transaction import Transaction
from .history import PriceHistory, normalize_period
from .quote import Quote

logger = structlog.get_logger(__name__)


class QuoteSource(ABC):
    """`GET /api/stock/{symbol}` -> {currentPrice, changePercent?, currency?}"""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote.

        Raises:
            TickerNotFoundError: If the symbol is unknown
            DataFetchError: If the request fails
        """


class HistorySource(ABC):
    """`GET /api/stock/{symbol}/history?period=` -> {history, currentPrice}"""

    @abstractmethod
    async def get_history(self, symbol: str, period: str) -> PriceHistory:
        """Fetch the price history of a symbol for a chart period."""


class PortfolioStore(ABC):
    """`/api/portfolio/...` persistence endpoints."""

    @abstractmethod
    async def load(self) -> Dict[str, List[Dict[str, Any]]]:
        """Return the `{stocks, funds, forex}` payload."""

    @abstractmethod
    async def add(self, holding: Holding) -> None:
        """Persist a newly added holding."""

    @abstractmethod
    async def remove(self, symbol: str, asset_type: AssetType) -> None:
        """Delete a holding."""

    @abstractmethod
    async def update_transactions(
        self,
        symbol: str,
        asset_type: AssetType,
        transactions: List[Transaction]
    ) -> None:
        """Replace the stored transactions of a holding."""


async def search_instrument(source: QuoteSource, query: str) -> List[Quote]:
    """
    Look up a search query.

    The query is normalised with format_symbol() first. Lookup failures
    yield an empty result so the dialog can show its "not found" message.

    Returns:
        A list with the matching quote, or an empty list
    """
    if not query or not query.strip():
        return []

    symbol = format_symbol(query)
    try:
        quote = await source.get_quote(symbol)
    except Exception as e:
        if not is_recoverable(e):
            raise
        logger.info("instrument_not_found", query=query, symbol=symbol, error=str(e))
        return []

    logger.debug("instrument_found", symbol=quote.symbol, type=quote.asset_type.value)
    return [quote]


async def load_portfolio(store: PortfolioStore, name: str = "Portfolio") -> PortfolioManager:
    """
    Load the holdings list from the portfolio store.

    A failed load yields an empty portfolio. Holdings that fail to parse are
    logged and left out; the rest of the payload still loads.
    """
    try:
        payload = await store.load()
    except Exception as e:
        if not is_recoverable(e):
            raise
        logger.error("portfolio_load_failed", error=str(e))
        return PortfolioManager(name=name)

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        logger.error("portfolio_payload_malformed", payload_type=type(payload).__name__)
        return PortfolioManager(name=name)
    return PortfolioManager.from_dict(payload, name=name, skip_invalid=True)


async def fetch_history(source: HistorySource, symbol: str, period: Optional[str] = None) -> Optional[PriceHistory]:
    """
    Fetch chart data for a symbol.

    Returns:
        The history, or None when it could not be fetched
    """
    period = normalize_period(period)
    try:
        return await source.get_history(symbol, period)
    except Exception as e:
        if not is_recoverable(e):
            raise
        logger.error("history_fetch_failed", symbol=symbol, period=period, error=str(e))
        return None


async def refresh_prices(manager: PortfolioManager, source: QuoteSource) -> int:
    """
    Refresh the price of every holding.

    Quotes are requested concurrently, one per distinct symbol. A holding
    whose quote fails keeps its previous (stale) price.

    Returns:
        Number of holdings updated
    """
    symbols = sorted({h.symbol for h in manager.holdings()})
    if not symbols:
        return 0

    results = await asyncio.gather(
        *(source.get_quote(symbol) for symbol in symbols),
        return_exceptions=True
    )

    updated = 0
    for symbol, result in zip(symbols, results):
        if isinstance(result, BaseException):
            if not is_recoverable(result):
                raise result
            logger.warning("price_refresh_failed", symbol=symbol, error=str(result))
            continue
        updated += manager.apply_quote(result)

    logger.info("prices_refreshed", symbols=len(symbols), updated=updated)
    return updated
