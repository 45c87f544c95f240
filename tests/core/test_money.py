"""
Tests for core.primitives.money and core.errors.
"""

from decimal import Decimal

import pytest

from core.errors import (
    DuplicateOrderLoan,
    MissingLoanCustomer,
    OrderNotFound,
    RmsError,
    StoreWriteFailure,
    TransactionConflict,
    ValidationError,
)
from core.primitives.money import ZERO, format_money, quantize, to_decimal, to_store, total


class TestToDecimal:
    @pytest.mark.parametrize("raw, expected", [
        ("12.50", Decimal("12.50")),
        (5, Decimal("5")),
        (2.5, Decimal("2.5")),
        (Decimal("1.1"), Decimal("1.1")),
    ])
    def test_accepts_numbers_and_strings(self, raw, expected):
        assert to_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "", "abc", "NaN", "Infinity"])
    def test_bad_values_fall_back(self, raw):
        assert to_decimal(raw) == ZERO
        assert to_decimal(raw, default=None) is None


class TestFormatting:
    def test_half_up(self):
        assert quantize(Decimal("0.125")) == Decimal("0.13")
        assert format_money(Decimal("2.675")) == "2.68"

    def test_two_decimals(self):
        assert format_money(Decimal("10")) == "10.00"

    def test_to_store(self):
        assert to_store(Decimal("12.50")) == "12.5"
        assert to_store(Decimal("100")) == "100"
        assert to_store(ZERO) == "0"

    def test_total(self):
        assert total([Decimal("1.10"), Decimal("2.20")]) == Decimal("3.30")
        assert total([]) == ZERO


class TestErrors:
    def test_validation_family(self):
        err = OrderNotFound("order009")
        assert isinstance(err, ValidationError)
        assert isinstance(err, ValueError)
        assert err.code == "ORDER_NOT_FOUND"
        assert err.field == "order_id"

    def test_missing_loan_customer(self):
        err = MissingLoanCustomer("order001")
        assert err.field == "loan_customer_id"
        assert "order001" in str(err)

    def test_duplicate_order_loan_carries_owner(self):
        err = DuplicateOrderLoan("order001", "cust-x", "loan-1")
        assert isinstance(err, RmsError)
        assert not isinstance(err, ValidationError)
        assert err.customer_id == "cust-x"

    def test_transaction_conflict_is_write_failure(self):
        err = TransactionConflict(("orders",), 5)
        assert isinstance(err, StoreWriteFailure)
        assert "5" in str(err)
