"""
Tests for transaction-derived monthly cash flow.
"""

from datetime import date

import pytest

from networth_planner.models.accounts import Transaction
from networth_planner.models.cashflow import (
    calculate_monthly_cashflow,
    transactions_to_dataframe,
)


class TestMonthlyCashflow:
    """Test monthly averages."""

    def test_averages_over_distinct_months(self, transactions_factory):
        """Test totals divided by months covered."""
        cashflow = calculate_monthly_cashflow(transactions_factory(6000, 4000, months=3))

        assert cashflow.months_covered == 3
        assert cashflow.average_income == pytest.approx(6000)
        assert cashflow.average_expenses == pytest.approx(4000)
        assert cashflow.average_savings == pytest.approx(2000)

    def test_uneven_months(self):
        """Test that months are counted, not transactions."""
        transactions = [
            Transaction(id="1", date=date(2024, 1, 1), amount=3000),
            Transaction(id="2", date=date(2024, 1, 15), amount=3000),
            Transaction(id="3", date=date(2024, 2, 1), amount=-1000),
        ]
        cashflow = calculate_monthly_cashflow(transactions)

        assert cashflow.months_covered == 2
        assert cashflow.average_income == pytest.approx(3000)
        assert cashflow.average_expenses == pytest.approx(500)

    def test_transfers_excluded(self):
        """Test that transfers are not cash flow."""
        transactions = [
            Transaction(id="1", date=date(2024, 1, 1), amount=5000),
            Transaction(id="2", date=date(2024, 1, 2), amount=-2000, is_transfer=True),
        ]

        cashflow = calculate_monthly_cashflow(transactions)

        assert cashflow.average_income == pytest.approx(5000)
        assert cashflow.average_expenses == 0.0

    def test_empty_history(self):
        """Test that no transactions average to zero."""
        cashflow = calculate_monthly_cashflow([])

        assert cashflow.months_covered == 0
        assert cashflow.average_income == 0
        assert transactions_to_dataframe([]).empty
