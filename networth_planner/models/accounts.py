"""
Household accounts, holdings and transactions.

These models describe the household's current financial position. They are
frozen: the projection simulator copies balances into its own ledger and never
mutates the caller's accounts.
"""

from datetime import date as Date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .rates import Rate, coerce_rate

AccountKind = Literal["asset", "liability"]
AccountType = Literal[
    "cash",
    "chequing",
    "tfsa",
    "rrsp",
    "dcpp",
    "resp",
    "non_registered",
    "primary_home",
    "rental_property",
    "mortgage",
    "loan",
    "credit_card",
]
DividendType = Literal["canadian_eligible", "canadian_non_eligible", "foreign", "none"]
Currency = Literal["CAD", "USD"]
Owner = Literal["person1", "person2", "joint"]

CASH_TICKER = "CASH"

INVESTMENT_ACCOUNT_TYPES = frozenset({"tfsa", "rrsp", "dcpp", "resp", "non_registered"})
REGISTERED_ACCOUNT_TYPES = frozenset({"tfsa", "rrsp", "dcpp", "resp"})
CASH_ACCOUNT_TYPES = frozenset({"cash", "chequing"})
REAL_ESTATE_ACCOUNT_TYPES = frozenset({"primary_home", "rental_property"})
LIABILITY_ACCOUNT_TYPES = frozenset({"mortgage", "loan", "credit_card"})


class Holding(BaseModel):
    """A position held inside an investment account."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Holding identifier")
    ticker: str = Field(..., min_length=1, description="Ticker symbol or CASH")
    shares: float = Field(..., ge=0, description="Number of shares held")
    current_price: float = Field(default=0.0, ge=0, description="Latest unit price")
    currency: Currency = Field(default="CAD", description="Quote currency")
    last_price_update: Optional[datetime] = Field(
        default=None, description="When the price was last refreshed"
    )
    growth_rate: Optional[Rate] = Field(
        default=None, description="Annual growth override (decimal)"
    )
    dividend_yield: Optional[Rate] = Field(
        default=None, description="Annual dividend yield override (decimal)"
    )
    dividend_type: Optional[DividendType] = Field(
        default=None, description="Tax character of the dividends"
    )

    @field_validator("growth_rate", "dividend_yield", mode="before")
    @classmethod
    def coerce_decimal_rates(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")

    @model_validator(mode="before")
    @classmethod
    def pin_cash_price(cls, data: Any) -> Any:
        """A CASH holding is always worth 1.0 per unit."""
        if isinstance(data, dict):
            ticker = str(data.get("ticker", "")).upper()
            if ticker == CASH_TICKER:
                data = {**data, "ticker": CASH_TICKER, "current_price": 1.0}
        return data

    @property
    def is_cash(self) -> bool:
        return self.ticker == CASH_TICKER

    @property
    def market_value(self) -> float:
        return self.shares * self.current_price


class Account(BaseModel):
    """A household asset or liability account."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Account identifier")
    name: str = Field(..., description="Display name")
    kind: AccountKind = Field(..., description="Asset or liability")
    type: AccountType = Field(..., description="Account type")
    balance: float = Field(default=0.0, description="Current balance")
    currency: Currency = Field(default="CAD", description="Account currency")
    interest_rate: Optional[Rate] = Field(
        default=None, description="Annual interest rate (percent, 5.5 means 5.5%)"
    )
    monthly_payment: Optional[float] = Field(
        default=None, ge=0, description="Scheduled monthly payment for liabilities"
    )
    term_remaining_months: Optional[int] = Field(
        default=None, ge=0, description="Months remaining on the amortization"
    )
    holdings: List[Holding] = Field(
        default_factory=list, description="Positions held in the account"
    )
    investment_growth_rate: Optional[Rate] = Field(
        default=None, description="Account-level annual growth rate (decimal)"
    )
    investment_dividend_yield: Optional[Rate] = Field(
        default=None, description="Account-level annual dividend yield (decimal)"
    )
    owner: Owner = Field(default="joint", description="Which household member owns it")

    @field_validator("interest_rate", mode="before")
    @classmethod
    def coerce_percent_rate(cls, v: Any) -> Any:
        return coerce_rate(v, "percent")

    @field_validator("investment_growth_rate", "investment_dividend_yield", mode="before")
    @classmethod
    def coerce_decimal_rates(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")

    @model_validator(mode="after")
    def validate_kind_and_balance(self) -> "Account":
        is_liability_type = self.type in LIABILITY_ACCOUNT_TYPES
        if is_liability_type and self.kind != "liability":
            raise ValueError(f"Account type '{self.type}' must have kind 'liability'")
        if not is_liability_type and self.kind != "asset":
            raise ValueError(f"Account type '{self.type}' must have kind 'asset'")
        if self.kind == "liability" and self.balance < 0:
            raise ValueError("Liability balance cannot be negative")
        return self

    @property
    def is_liability(self) -> bool:
        return self.kind == "liability"

    @property
    def is_investment(self) -> bool:
        return self.type in INVESTMENT_ACCOUNT_TYPES

    @property
    def is_registered(self) -> bool:
        return self.type in REGISTERED_ACCOUNT_TYPES

    @property
    def is_cash(self) -> bool:
        return self.type in CASH_ACCOUNT_TYPES

    @property
    def is_real_estate(self) -> bool:
        return self.type in REAL_ESTATE_ACCOUNT_TYPES

    @property
    def holdings_value(self) -> float:
        return sum(h.market_value for h in self.holdings)


class Transaction(BaseModel):
    """A single categorized bank transaction."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Transaction identifier")
    date: Date = Field(..., description="Posting date")
    description: str = Field(default="", description="Bank description")
    amount: float = Field(
        ..., description="Signed amount: positive is an inflow, negative an outflow"
    )
    category: Optional[str] = Field(default=None, description="Spending category")
    account_id: Optional[str] = Field(default=None, description="Source account")
    is_transfer: bool = Field(
        default=False, description="Transfers between own accounts are not cash flow"
    )
