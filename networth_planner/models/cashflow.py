"""Average monthly income and expenses derived from transaction history."""

from typing import List

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from .accounts import Transaction


class MonthlyCashflow(BaseModel):
    """Average monthly inflow and outflow over the months covered by the data."""

    model_config = ConfigDict(frozen=True)

    average_income: float = Field(default=0.0, ge=0)
    average_expenses: float = Field(default=0.0, ge=0)
    months_covered: int = Field(default=0, ge=0)

    @property
    def average_savings(self) -> float:
        return self.average_income - self.average_expenses


def transactions_to_dataframe(transactions: List[Transaction]) -> pd.DataFrame:
    """Non-transfer transactions as a DataFrame with a monthly period column."""
    rows = [
        {"date": t.date, "amount": t.amount, "category": t.category}
        for t in transactions
        if not t.is_transfer
    ]
    df = pd.DataFrame(rows, columns=["date", "amount", "category"])
    if not df.empty:
        df["period"] = pd.to_datetime(df["date"]).dt.to_period("M")
    return df


def calculate_monthly_cashflow(transactions: List[Transaction]) -> MonthlyCashflow:
    """
    Average monthly income and expenses.

    Totals are divided by the number of distinct calendar months present in
    the history. Transfers are excluded. An empty history averages to zero.

    Args:
        transactions: Categorized transactions

    Returns:
        The averaged cash flow
    """
    df = transactions_to_dataframe(transactions)
    if df.empty:
        return MonthlyCashflow()

    months = int(df["period"].nunique())
    income = float(df.loc[df["amount"] > 0, "amount"].sum())
    expenses = float(-df.loc[df["amount"] < 0, "amount"].sum())
    return MonthlyCashflow(
        average_income=income / months,
        average_expenses=expenses / months,
        months_covered=months,
    )
