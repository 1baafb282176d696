"""
Projection result models.

A projection produces one immutable snapshot per month, yearly rollups of
those snapshots and a summary. The result offers helpers to export the
monthly series to numpy and pandas for charting and analysis.
"""

import json
from datetime import date as Date, datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field


class ProjectionMonth(BaseModel):
    """State of the household at the end of one projected month."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., description="Calendar year")
    month: int = Field(..., ge=1, le=12, description="Calendar month")
    date: Date = Field(..., description="Date of this tick")

    # Balance sheet
    total_assets: float = Field(..., description="Sum of asset balances")
    cash_assets: float = Field(default=0.0, description="Cash and chequing")
    investment_assets: float = Field(default=0.0, description="Investment accounts")
    real_estate_assets: float = Field(default=0.0, description="Home and rental property")
    other_assets: float = Field(default=0.0, description="Other assets")
    total_liabilities: float = Field(..., ge=0, description="Sum of liability balances")
    mortgage_balance: float = Field(default=0.0, ge=0)
    other_debt: float = Field(default=0.0, ge=0)
    net_worth: float = Field(..., description="Assets minus liabilities")
    net_worth_change: float = Field(default=0.0, description="Change from prior month")

    # Cash flow
    income: float = Field(default=0.0)
    expenses: float = Field(default=0.0)
    savings: float = Field(default=0.0)
    savings_rate: float = Field(default=0.0, description="Savings / income, percent")

    # Investments
    investment_gross_return: float = Field(default=0.0, description="Pre-tax return")
    investment_growth: float = Field(default=0.0, description="After-tax return")
    investment_dividends: float = Field(default=0.0, description="After-tax dividends")
    investment_tax_paid: float = Field(default=0.0, ge=0)
    investment_contributions: float = Field(default=0.0)

    # Debt
    debt_payments: float = Field(default=0.0, ge=0)
    principal_paydown: float = Field(default=0.0, ge=0)
    interest_paid: float = Field(default=0.0, ge=0)

    # Retirement
    is_retired: bool = Field(default=False)
    cpp_income: float = Field(default=0.0, ge=0)
    oas_income: float = Field(default=0.0, ge=0)
    withdrawal_income: float = Field(default=0.0, ge=0)
    resp_grant: float = Field(default=0.0, ge=0)
    rrsp_room_remaining: Optional[float] = Field(default=None)
    tfsa_room_remaining: Optional[float] = Field(default=None)

    account_balances: Dict[str, float] = Field(
        default_factory=dict, description="Balance of every account this month"
    )


class ProjectionYear(BaseModel):
    """Rollup of the months falling in one calendar year."""

    model_config = ConfigDict(frozen=True)

    year: int
    starting_net_worth: float
    ending_net_worth: float
    net_worth_change: float
    total_income: float
    total_expenses: float
    total_savings: float
    average_savings_rate: float = Field(..., description="Percent of income saved")
    investment_growth: float
    debt_paydown: float


class ProjectionSummary(BaseModel):
    """Headline figures for a projection."""

    model_config = ConfigDict(frozen=True)

    starting_net_worth: float
    ending_net_worth: float
    total_growth: float
    average_annual_growth: float = Field(..., description="CAGR in percent")
    peak_net_worth: float
    peak_net_worth_year: int
    debt_free_date: Optional[Date] = Field(
        default=None, description="First month with no meaningful debt"
    )


class ProjectionResult(BaseModel):
    """
    Complete output of a net worth projection.

    Example:
        ```python
        result = project_net_worth(accounts, transactions, scenario)
        series = result.net_worth_series()
        df = result.to_dataframe()
        ```
    """

    model_config = ConfigDict(frozen=True)

    scenario_id: str
    calculated_at: datetime = Field(default_factory=datetime.now)
    monthly_data: List[ProjectionMonth]
    yearly_data: List[ProjectionYear]
    summary: ProjectionSummary
    warnings: List[str] = Field(
        default_factory=list, description="Non-fatal guards triggered during the run"
    )

    def net_worth_series(self) -> NDArray[np.float64]:
        """Monthly net worth as a numpy array."""
        return np.array([m.net_worth for m in self.monthly_data], dtype=np.float64)

    def to_dataframe(self) -> pd.DataFrame:
        """Monthly data as a DataFrame indexed by date, without per-account balances."""
        rows = [m.model_dump(exclude={"account_balances"}) for m in self.monthly_data]
        df = pd.DataFrame(rows)
        if not df.empty:
            df = df.set_index(pd.to_datetime(df["date"])).drop(columns=["date"])
        return df

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
