"""
Unit tests for transaction records.

Tests cover:
- Construction and validation
- Date parsing
- Editing with with_changes()
- API serialization
- Legacy single buy/sell fields
"""

from datetime import date, datetime

import pytest

from portfolio_tracker.exceptions import TransactionValidationError, PortfolioError
from portfolio_tracker.portfolio import (
    Transaction,
    TransactionType,
    compute_position,
    create_buy_transaction,
    create_sell_transaction,
    legacy_transactions,
)
from portfolio_tracker.portfolio.transaction import parse_date


class TestTransactionValidation:
    """Construction rules."""

    def test_buy_transaction(self):
        txn = create_buy_transaction(150.0, 10, "2024-01-02")

        assert txn.transaction_type == TransactionType.BUY
        assert txn.is_buy and not txn.is_sell
        assert txn.amount == 1500.0
        assert txn.date == date(2024, 1, 2)
        assert txn.id == txn.transaction_id

    def test_fractional_shares(self):
        txn = create_sell_transaction(10.0, 0.125, date(2024, 1, 2))

        assert txn.shares == 0.125
        assert txn.amount == pytest.approx(1.25)

    def test_type_from_string(self):
        txn = Transaction("SELL", price=1.0, shares=1.0, date="2024-01-02")

        assert txn.transaction_type == TransactionType.SELL
        assert str(txn.transaction_type) == "sell"

    def test_ids_are_unique(self):
        ids = {create_buy_transaction(1.0, 1, "2024-01-02").transaction_id for _ in range(50)}

        assert len(ids) == 50

    def test_explicit_id_kept(self):
        assert create_buy_transaction(1.0, 1, "2024-01-02", transaction_id="abc").id == "abc"

    @pytest.mark.parametrize("shares", [0, -1, float("nan"), float("inf")])
    def test_rejects_bad_shares(self, shares):
        with pytest.raises(TransactionValidationError) as exc_info:
            create_buy_transaction(100.0, shares, "2024-01-02")

        assert exc_info.value.details["field"] == "shares"

    @pytest.mark.parametrize("price", [-0.01, float("nan")])
    def test_rejects_bad_price(self, price):
        with pytest.raises(TransactionValidationError):
            create_buy_transaction(price, 1, "2024-01-02")

    def test_zero_price_allowed(self):
        assert create_buy_transaction(0.0, 1, "2024-01-02").price == 0.0

    def test_rejects_unknown_type(self):
        with pytest.raises(TransactionValidationError):
            Transaction("dividend", price=1.0, shares=1.0, date="2024-01-02")

    def test_rejects_non_numeric(self):
        with pytest.raises(TransactionValidationError):
            create_buy_transaction("cheap", 1, "2024-01-02")

    def test_validation_error_is_portfolio_error(self):
        with pytest.raises(PortfolioError):
            create_buy_transaction(1.0, 0, "2024-01-02")


class TestParseDate:
    """ISO date handling."""

    def test_plain_date(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_datetime_string(self):
        assert parse_date("2024-03-15T09:30:00Z") == date(2024, 3, 15)

    def test_datetime_object(self):
        assert parse_date(datetime(2024, 3, 15, 9, 30)) == date(2024, 3, 15)

    def test_invalid(self):
        with pytest.raises(TransactionValidationError):
            parse_date("15/03/2024")


class TestWithChanges:
    """Inline edits."""

    def test_changes_fields_and_keeps_id(self):
        original = create_buy_transaction(100.0, 10, "2024-01-02")

        edited = original.with_changes(price=101.5, shares=12)

        assert edited.transaction_id == original.transaction_id
        assert edited.price == 101.5
        assert edited.shares == 12
        assert original.price == 100.0

    def test_type_alias(self):
        edited = create_buy_transaction(100.0, 10, "2024-01-02").with_changes(type="sell")

        assert edited.is_sell

    def test_id_cannot_change(self):
        original = create_buy_transaction(100.0, 10, "2024-01-02")

        assert original.with_changes(id="other").id == original.id

    def test_revalidates(self):
        with pytest.raises(TransactionValidationError):
            create_buy_transaction(100.0, 10, "2024-01-02").with_changes(shares=0)

    def test_unknown_field(self):
        with pytest.raises(TransactionValidationError):
            create_buy_transaction(100.0, 10, "2024-01-02").with_changes(fees=1.0)


class TestSerialization:
    """API dict representation."""

    def test_to_dict(self):
        txn = create_sell_transaction(120.0, 4, "2024-02-01", transaction_id="t1")

        assert txn.to_dict() == {
            "id": "t1",
            "type": "sell",
            "price": 120.0,
            "shares": 4.0,
            "date": "2024-02-01",
        }

    def test_from_api_dict(self):
        txn = Transaction.from_dict(
            {"id": "t9", "type": "buy", "price": "99.5", "shares": 3, "date": "2024-05-06"}
        )

        assert txn.transaction_id == "t9"
        assert txn.price == 99.5
        assert txn.date == date(2024, 5, 6)

    def test_from_dict_generates_missing_id(self):
        txn = Transaction.from_dict({"type": "buy", "price": 1, "shares": 1, "date": "2024-05-06"})

        assert txn.transaction_id

    @pytest.mark.parametrize("missing", ["type", "price", "shares", "date"])
    def test_from_dict_missing_field(self, missing):
        data = {"type": "buy", "price": 1, "shares": 1, "date": "2024-05-06"}
        del data[missing]

        with pytest.raises(TransactionValidationError):
            Transaction.from_dict(data)


class TestLegacyTransactions:
    """Conversion of buyPrice/buyDate/sellPrice/sellDate."""

    def test_buy_and_sell(self):
        txns = legacy_transactions(100.0, "2024-01-02", 130.0, "2024-03-01")

        assert [t.transaction_type for t in txns] == [TransactionType.BUY, TransactionType.SELL]
        assert [t.shares for t in txns] == [1.0, 1.0]

    def test_buy_only(self):
        txns = legacy_transactions(buy_price=100.0, buy_date="2024-01-02", shares=5)

        assert len(txns) == 1
        assert txns[0].shares == 5

    def test_side_needs_price(self):
        assert legacy_transactions(sell_date="2024-01-02") == []
        assert legacy_transactions() == []

    def test_price_without_date_still_counts(self):
        """A buyPrice with no buyDate still sets the average buy price."""
        txns = legacy_transactions(buy_price=100.0, fallback_date="2024-06-30")

        assert len(txns) == 1
        assert txns[0].is_buy
        assert txns[0].date == date(2024, 6, 30)
        assert compute_position(txns, 110.0).average_buy_price == 100.0

    def test_undated_side_defaults_to_today(self):
        txns = legacy_transactions(buy_price=100.0, buy_date="2024-01-02", sell_price=120.0)

        assert [t.date for t in txns] == [date(2024, 1, 2), date.today()]
        assert compute_position(txns, 110.0).realized_pl == pytest.approx(20.0)
