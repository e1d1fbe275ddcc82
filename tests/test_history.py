"""
Unit tests for chart price history.

Tests cover:
- Period normalisation and refresh cadence
- Parsing history payloads
- Period change, direction and y-axis domain
- Date range checks and nearest-point lookup
- Transaction markers
- Quote payload parsing
"""

import pandas as pd
import pytest

from portfolio_tracker.exceptions import DataValidationError
from portfolio_tracker.market import (
    PriceHistory,
    PricePoint,
    Quote,
    TIME_PERIODS,
    normalize_period,
    refresh_interval,
)
from portfolio_tracker.portfolio import (
    AssetType,
    TransactionType,
    create_buy_transaction,
    create_sell_transaction,
)


@pytest.fixture
def history():
    """Five daily closes from 2024-01-01 to 2024-01-05."""
    return PriceHistory.from_api("aapl", "6M", {
        "history": [
            {"date": "2024-01-01", "price": 100.0, "name": "Jan"},
            {"date": "2024-01-02", "price": 102.0},
            {"date": "2024-01-03", "price": 98.0},
            {"date": "2024-01-04", "price": 105.0},
            {"date": "2024-01-05", "price": 110.0},
        ],
        "currentPrice": 111.0,
    })


class TestPeriods:
    """Chart period handling."""

    def test_period_buttons(self):
        assert [p.label for p in TIME_PERIODS] == ["1D", "1W", "1M", "3M", "6M", "YTD", "1Y", "2Y"]

    @pytest.mark.parametrize("period,expected", [
        ("1M", "30D"),
        ("30D", "30D"),
        ("3m", "90D"),
        ("ytd", "YTD"),
        (None, "6M"),
        ("", "6M"),
    ])
    def test_normalize(self, period, expected):
        assert normalize_period(period) == expected

    def test_normalize_unknown(self):
        with pytest.raises(DataValidationError):
            normalize_period("5Y")

    @pytest.mark.parametrize("period,seconds", [
        ("1D", 120),
        ("1W", 300),
        ("1M", 3600),
        ("3M", 0),
        ("6M", 0),
        ("2Y", 0),
    ])
    def test_refresh_interval(self, period, seconds):
        assert refresh_interval(period) == seconds


class TestPriceHistory:
    """Parsing and summary values."""

    def test_from_api(self, history):
        assert history.symbol == "AAPL"
        assert history.period == "6M"
        assert len(history) == 5
        assert history.points[0].label == "Jan"
        assert history.current_price == 111.0

    def test_points_sorted(self):
        history = PriceHistory.from_api("X", "1W", {"history": [
            {"date": "2024-01-03", "price": 3.0},
            {"date": "2024-01-01", "price": 1.0},
        ]})

        assert [p.price for p in history.points] == [1.0, 3.0]

    def test_change_percent(self, history):
        assert history.first_price == 100.0
        assert history.last_price == 110.0
        assert history.change_percent == pytest.approx(10.0)
        assert history.is_positive

    def test_empty_history_uses_current_price(self):
        history = PriceHistory.from_api("X", "1D", {"history": [], "currentPrice": 50.0})

        assert history.is_empty
        assert history.last_price == 50.0
        assert history.change_percent == 0.0
        assert history.price_domain() == (0.0, 0.0)

    def test_price_domain(self, history):
        low, high = history.price_domain()

        assert low == pytest.approx(98.0 * 0.998)
        assert high == pytest.approx(110.0 * 1.002)

    def test_refresh_interval_property(self, history):
        assert history.refresh_interval == 0

    def test_invalid_point(self):
        with pytest.raises(DataValidationError):
            PriceHistory.from_api("X", "6M", {"history": [{"date": "2024-01-01"}]})

    def test_invalid_date(self):
        with pytest.raises(DataValidationError):
            PriceHistory.from_api("X", "6M", {"history": [{"date": "not a date", "price": 1.0}]})

    def test_intraday_points(self):
        history = PriceHistory.from_api("X", "1D", {"history": [
            {"date": "2024-01-02T09:30:00Z", "price": 10.0},
            {"date": "2024-01-02T09:32:00Z", "price": 11.0},
        ]})

        assert history.points[1].timestamp == pd.Timestamp("2024-01-02 09:32:00")
        assert history.points[1].date.isoformat() == "2024-01-02"

    def test_to_frame(self, history):
        frame = history.to_frame()

        assert list(frame.columns) == ["price", "label"]
        assert frame.index[0] == pd.Timestamp("2024-01-01")
        assert frame["price"].max() == 110.0


class TestMarkers:
    """Placing transactions on the price line."""

    def test_contains_date(self, history):
        assert history.contains_date("2024-01-01")
        assert history.contains_date("2024-01-05")
        assert not history.contains_date("2023-12-31")
        assert not history.contains_date("2024-01-06")
        assert not history.contains_date(None)

    def test_closest_point(self, history):
        index, point = history.closest_point("2024-01-03")

        assert index == 2
        assert point.price == 98.0

    def test_closest_point_tie_prefers_earlier(self):
        history = PriceHistory("X", "6M", points=[
            PricePoint(pd.Timestamp("2024-01-01"), 1.0),
            PricePoint(pd.Timestamp("2024-01-03"), 3.0),
        ])

        index, _ = history.closest_point("2024-01-02")

        assert index == 0

    def test_closest_point_empty(self):
        assert PriceHistory("X", "6M").closest_point("2024-01-01") is None

    def test_transaction_markers(self, history):
        transactions = [
            create_buy_transaction(100.0, 10, "2024-01-02", transaction_id="b1"),
            create_sell_transaction(105.0, 4, "2024-01-04", transaction_id="s1"),
            create_buy_transaction(90.0, 1, "2023-06-01", transaction_id="old"),
        ]

        markers = history.transaction_markers(transactions)

        assert [m.transaction_id for m in markers] == ["b1", "s1"]
        assert markers[0].is_buy
        assert markers[1].transaction_type == TransactionType.SELL
        assert (markers[0].index, markers[0].price) == (1, 102.0)
        assert (markers[1].index, markers[1].price) == (3, 105.0)

    def test_markers_on_empty_history(self):
        txn = create_buy_transaction(1.0, 1, "2024-01-01")

        assert PriceHistory("X", "6M").transaction_markers([txn]) == []


class TestQuote:
    """Parsing lookup responses."""

    def test_full_payload(self):
        quote = Quote.from_api({
            "symbol": "AAPL",
            "name": "Apple Inc",
            "currentPrice": 150.25,
            "changePercent": 1.5,
            "currency": "usd",
            "type": "stock",
        })

        assert quote == Quote("AAPL", "Apple Inc", 150.25, 1.5, "USD", AssetType.STOCK)

    def test_defaults(self):
        quote = Quote.from_api({"symbol": "03311187", "name": "eMAXIS Slim", "currentPrice": 25000})

        assert quote.asset_type == AssetType.FUND
        assert quote.currency == "USD"
        assert quote.change_percent == 0.0

    def test_requested_symbol_fallback(self):
        quote = Quote.from_api({"currentPrice": "1.08"}, requested_symbol="eurusd=x")

        assert quote.symbol == "EURUSD=X"
        assert quote.name == "EURUSD=X"
        assert quote.asset_type == AssetType.FOREX

    def test_unknown_type_is_classified(self):
        quote = Quote.from_api({"symbol": "VT", "name": "World ETF", "currentPrice": 1, "type": "etf"})

        assert quote.asset_type == AssetType.FUND

    @pytest.mark.parametrize("payload", [
        {"symbol": "AAPL"},
        {"symbol": "AAPL", "currentPrice": None},
        {"symbol": "AAPL", "currentPrice": "abc"},
        {"symbol": "AAPL", "currentPrice": -1},
        {"currentPrice": 10.0},
    ])
    def test_invalid(self, payload):
        with pytest.raises(DataValidationError):
            Quote.from_api(payload)

    def test_to_dict(self):
        data = Quote("AAPL", "Apple Inc", 150.0).to_dict()

        assert data["type"] == "stock"
        assert data["currentPrice"] == 150.0
