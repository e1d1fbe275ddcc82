"""
Unit tests for instrument classification and currency helpers.

Tests cover:
- Rule order of the classifier
- Each classification rule
- Search query normalisation
- Currency inference from symbols
- Price and change formatting
"""

import pytest

from portfolio_tracker.currency import (
    NOT_AVAILABLE,
    currency_for_symbol,
    format_change,
    format_price,
)
from portfolio_tracker.ticker_utils import (
    CLASSIFICATION_RULES,
    AssetType,
    classify_instrument,
    format_symbol,
    is_fund_code,
    matching_rule,
)


# ============================================================================
# Classifier
# ============================================================================


class TestClassificationRules:
    """The rule table itself."""

    def test_rule_order(self):
        """Earlier rules take precedence."""
        assert [r.name for r in CLASSIFICATION_RULES] == [
            "fund_code", "forex_pair", "fund_keyword", "default",
        ]

    def test_last_rule_is_catch_all(self):
        default = CLASSIFICATION_RULES[-1]

        assert default.asset_type == AssetType.STOCK
        assert default.matches("", "")

    @pytest.mark.parametrize("rule", CLASSIFICATION_RULES, ids=lambda r: r.name)
    def test_each_rule_reachable(self, rule):
        """Every rule wins for at least one example."""
        examples = {
            "fund_code": ("03311187", ""),
            "forex_pair": ("EURUSD=X", ""),
            "fund_keyword": ("VT", "Vanguard Total World Stock ETF"),
            "default": ("AAPL", "Apple Inc"),
        }
        symbol, name = examples[rule.name]

        assert matching_rule(symbol, name) is rule


class TestClassifyInstrument:
    """Classification outcomes."""

    @pytest.mark.parametrize("symbol,name,expected", [
        ("03311187", "eMAXIS Slim All Country", AssetType.FUND),
        ("EURUSD=X", "EUR/USD", AssetType.FOREX),
        ("USDJPY=X", "", AssetType.FOREX),
        ("GBPCAD", "", AssetType.FOREX),
        ("SPY", "SPDR S&P 500 ETF Trust", AssetType.FUND),
        ("VFIAX", "Vanguard 500 Index Admiral", AssetType.FUND),
        ("XFUND", "", AssetType.FUND),
        ("0000X", "ひふみ投資信託", AssetType.FUND),
        ("AAPL", "Apple Inc", AssetType.STOCK),
        ("7974.T", "Nintendo Co., Ltd.", AssetType.STOCK),
    ])
    def test_examples(self, symbol, name, expected):
        assert classify_instrument(symbol, name) == expected

    def test_fund_code_beats_forex_keyword(self):
        """An 8-digit code is a fund even if the name mentions a currency."""
        assert classify_instrument("12345678", "USD Money Market") == AssetType.FUND

    def test_forex_beats_fund_keyword(self):
        assert classify_instrument("EURUSD=X", "Euro Index") == AssetType.FOREX

    def test_case_insensitive(self):
        assert classify_instrument("eurusd=x") == AssetType.FOREX
        assert classify_instrument("abc", "global etf") == AssetType.FUND

    def test_none_name(self):
        assert classify_instrument("AAPL", None) == AssetType.STOCK

    def test_nine_digits_is_not_fund_code(self):
        assert not is_fund_code("123456789")
        assert classify_instrument("123456789") == AssetType.STOCK


class TestAssetType:
    """Parsing asset types and bucket keys."""

    @pytest.mark.parametrize("value,expected", [
        ("stock", AssetType.STOCK),
        ("stocks", AssetType.STOCK),
        ("FUNDS", AssetType.FUND),
        ("forex", AssetType.FOREX),
        (AssetType.FUND, AssetType.FUND),
    ])
    def test_parse(self, value, expected):
        assert AssetType.parse(value) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            AssetType.parse("bond")

    def test_bucket(self):
        assert [t.bucket for t in AssetType] == ["stocks", "funds", "forex"]


class TestFormatSymbol:
    """Search query normalisation."""

    @pytest.mark.parametrize("query,expected", [
        ("7974", "7974.T"),
        (" 7974 ", "7974.T"),
        ("aapl", "AAPL"),
        ("eurusd=x", "EURUSD=X"),
        ("12345", "12345"),
        ("03311187", "03311187"),
        ("", ""),
    ])
    def test_examples(self, query, expected):
        assert format_symbol(query) == expected


# ============================================================================
# Currency
# ============================================================================


class TestCurrencyForSymbol:
    """Quote currency inference."""

    @pytest.mark.parametrize("symbol,expected", [
        ("03311187", "JPY"),
        ("7974.T", "JPY"),
        ("7974.t", "JPY"),
        ("AAPL", "USD"),
        ("EURUSD=X", "USD"),
        ("VOD.L", "USD"),
        ("", "USD"),
    ])
    def test_examples(self, symbol, expected):
        assert currency_for_symbol(symbol) == expected


class TestFormatPrice:
    """Price display."""

    @pytest.mark.parametrize("price,currency,expected", [
        (15320.4, "JPY", "¥15320"),
        (15320.6, "JPY", "¥15321"),
        (123.456, "USD", "$123.46"),
        (99.5, "EUR", "€99.50"),
        (7.0, "GBP", "£7.00"),
        (12.0, None, "$12.00"),
        (12.0, "CHF", "CHF 12.00"),
        (12.0, "hkd", "HKD 12.00"),
        (0.0, "USD", "$0.00"),
        (-5.5, "USD", "-$5.50"),
    ])
    def test_examples(self, price, currency, expected):
        assert format_price(price, currency) == expected

    @pytest.mark.parametrize("price", [None, float("nan"), float("inf"), float("-inf"), "n/a"])
    def test_not_available(self, price):
        assert format_price(price, "USD") == NOT_AVAILABLE


class TestFormatChange:
    """Signed percentage display."""

    def test_positive(self):
        assert format_change(1.254) == "+1.25%"

    def test_negative(self):
        assert format_change(-0.5) == "-0.50%"

    @pytest.mark.parametrize("value", [None, float("nan"), float("inf"), "n/a", object()])
    def test_not_available(self, value):
        """Unusable input renders like format_price does."""
        assert format_change(value) == NOT_AVAILABLE

    def test_numeric_string(self):
        assert format_change("2") == "+2.00%"
