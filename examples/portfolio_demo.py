#!/usr/bin/env python3
"""
Portfolio Tracker Demo

This example walks through the portfolio tracker core with in-memory
collaborators standing in for the /api endpoints:
- Searching for instruments and adding them to the holdings list
- Recording buy and sell transactions
- Average-cost P&L, including an oversold history
- Debounced saving of inline transaction edits
- Price refresh and per-currency totals

Run this script to see the portfolio tracker in action.
"""

import asyncio
from typing import Any, Dict, List

from portfolio_tracker.currency import format_change, format_price
from portfolio_tracker.exceptions import TickerNotFoundError
from portfolio_tracker.market import PriceHistory, PricePoint, Quote
from portfolio_tracker.market.history import to_timestamp
from portfolio_tracker.market.sources import (
    HistorySource,
    PortfolioStore,
    QuoteSource,
    fetch_history,
    load_portfolio,
    refresh_prices,
    search_instrument,
)
from portfolio_tracker.portfolio import (
    AssetType,
    Holding,
    PortfolioManager,
    Transaction,
    TransactionAutosaver,
    create_buy_transaction,
    create_sell_transaction,
)


QUOTES = {
    "AAPL": Quote("AAPL", "Apple Inc", 110.0, 0.8, "USD", AssetType.STOCK),
    "7974.T": Quote("7974.T", "Nintendo Co., Ltd.", 8000.0, -1.2, "JPY", AssetType.STOCK),
    "03311187": Quote("03311187", "eMAXIS Slim All Country", 25000.0, 0.3, "JPY", AssetType.FUND),
    "EURUSD=X": Quote("EURUSD=X", "EUR/USD", 1.08, 0.1, "USD", AssetType.FOREX),
}


class DemoQuoteSource(QuoteSource, HistorySource):
    """Serves fixed quotes and a five-day history."""

    async def get_quote(self, symbol: str) -> Quote:
        if symbol not in QUOTES:
            raise TickerNotFoundError(f"Unknown symbol {symbol}", symbol=symbol)
        return QUOTES[symbol]

    async def get_history(self, symbol: str, period: str) -> PriceHistory:
        prices = [100.0, 102.0, 98.0, 105.0, 110.0]
        points = [
            PricePoint(to_timestamp(f"2024-01-0{day}"), price)
            for day, price in enumerate(prices, start=1)
        ]
        return PriceHistory(symbol, period, points, current_price=prices[-1])


class InMemoryStore(PortfolioStore):
    """Keeps the `{stocks, funds, forex}` payload in a dict."""

    def __init__(self):
        self.payload: Dict[str, List[Dict[str, Any]]] = {"stocks": [], "funds": [], "forex": []}

    async def load(self) -> Dict[str, List[Dict[str, Any]]]:
        return self.payload

    async def add(self, holding: Holding) -> None:
        self.payload[holding.asset_type.bucket].append(holding.to_dict())

    async def remove(self, symbol: str, asset_type: AssetType) -> None:
        bucket = self.payload[asset_type.bucket]
        self.payload[asset_type.bucket] = [h for h in bucket if h["symbol"] != symbol]

    async def update_transactions(self, symbol: str, asset_type: AssetType, transactions: List[Transaction]) -> None:
        for item in self.payload[asset_type.bucket]:
            if item["symbol"] == symbol:
                item["transactions"] = [t.to_dict() for t in transactions]


async def demo_search_and_add(store: InMemoryStore) -> PortfolioManager:
    """Demonstrate searching for instruments and adding them."""
    print("=" * 80)
    print("DEMO 1: Search and Add")
    print("=" * 80)

    manager = await load_portfolio(store, name="Demo Portfolio")
    source = DemoQuoteSource()

    for query in ["aapl", "7974", "03311187", "eurusd=x", "nope"]:
        results = await search_instrument(source, query)
        if not results:
            print(f"  {query:10s} -> not found")
            continue
        holding = manager.add_holding(results[0])
        await store.add(holding)
        print(f"  {query:10s} -> {holding.symbol:10s} [{holding.asset_type.bucket}] "
              f"{format_price(holding.current_price, holding.currency)}")

    return manager


def demo_transactions(manager: PortfolioManager):
    """Demonstrate average-cost P&L."""
    print("\n" + "=" * 80)
    print("DEMO 2: Transactions and P&L")
    print("=" * 80)

    manager.set_transactions("AAPL", AssetType.STOCK, [
        create_buy_transaction(100.0, 10, "2024-01-02", transaction_id="b1"),
        create_sell_transaction(120.0, 4, "2024-01-04", transaction_id="s1"),
    ])
    manager.set_transactions("7974.T", AssetType.STOCK, [
        create_buy_transaction(7000.0, 2, "2024-01-05"),
        create_sell_transaction(7500.0, 5, "2024-02-01"),
    ])

    for holding in manager.holdings(AssetType.STOCK):
        position = holding.position
        print(f"\n  {holding.symbol}: {position}")
        print(f"    Realized:   {format_price(position.realized_pl, holding.currency)}")
        print(f"    Unrealized: {format_price(position.unrealized_pl, holding.currency)}")
        if position.is_oversold:
            print(f"    Oversold by {position.oversold_shares:g} shares")


async def demo_autosave(manager: PortfolioManager, store: InMemoryStore):
    """Demonstrate debounced inline edits."""
    print("\n" + "=" * 80)
    print("DEMO 3: Inline Edits")
    print("=" * 80)

    holding = manager.get_holding("AAPL", AssetType.STOCK)
    saver = TransactionAutosaver(store, delay=0.05)

    saver.edit(holding, "b1", price=101.0)
    saver.edit(holding, "b1", shares=12)
    saver.edit(holding, "s1", price=125.0)
    await asyncio.sleep(0.2)

    print(f"\n  Saves after three edits to two transactions: {saver.saves}")
    print(f"  AAPL now: {holding.position}")


async def demo_chart_and_refresh(manager: PortfolioManager):
    """Demonstrate chart helpers, price refresh and per-currency totals."""
    print("\n" + "=" * 80)
    print("DEMO 4: Chart and Totals")
    print("=" * 80)

    source = DemoQuoteSource()
    holding = manager.get_holding("AAPL", AssetType.STOCK)
    history = await fetch_history(source, "AAPL", "1M")

    print(f"\n  Period change: {format_change(history.change_percent)}")
    for marker in history.transaction_markers(holding.transactions):
        print(f"  {marker.transaction_type.value:4s} marker at {marker.timestamp.date()} "
              f"({format_price(marker.price, holding.currency)})")

    updated = await refresh_prices(manager, source)
    print(f"\n  Refreshed {updated} holdings")

    print("\n" + manager.summary_frame().to_string(index=False))

    for currency, totals in manager.totals_by_currency().items():
        print(f"\n  {currency}: value {format_price(totals['market_value'], currency)}, "
              f"P&L {format_price(totals['total_pl'], currency)}")


async def main():
    """Run all demos."""
    store = InMemoryStore()

    manager = await demo_search_and_add(store)
    demo_transactions(manager)
    await demo_autosave(manager, store)
    await demo_chart_and_refresh(manager)

    print("\n" + "=" * 80)
    print("Demo Complete!")
    print("=" * 80)


if __name__ == "__main__":
    asyncio.run(main())
