"""
Investment return and tax engine.

Resolves the growth rate, dividend yield and dividend type for an account
(holding overrides, then scenario overrides, then account-stored rates, then
scenario-wide rates), turns them into a monthly return, and applies Canadian
tax to returns earned outside registered accounts.

Monthly rates are the geometric twelfth root of the annual return; dividing
the annual rate by 12 would compound 5% to about 5.12% a year.
"""

import logging
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .accounts import Account, DividendType, Holding
from .rates import UNUSUAL_RATE_THRESHOLD, Rate
from .scenario import AccountRateOverride, ProjectionAssumptions
from .tax_rates import (
    calculate_capital_gains_tax,
    calculate_eligible_dividend_tax,
    calculate_foreign_dividend_tax,
    calculate_non_eligible_dividend_tax,
)

logger = logging.getLogger(__name__)

DEFAULT_DIVIDEND_TYPE: DividendType = "canadian_eligible"


class ResolvedRates(BaseModel):
    """Annual rates in effect for one account."""

    model_config = ConfigDict(frozen=True)

    growth_rate: float = Field(..., description="Annual growth rate (decimal)")
    dividend_yield: float = Field(..., description="Annual dividend yield (decimal)")
    dividend_type: DividendType = Field(default=DEFAULT_DIVIDEND_TYPE)

    @property
    def total_rate(self) -> float:
        return self.growth_rate + self.dividend_yield

    @property
    def is_unusual(self) -> bool:
        return (
            abs(self.growth_rate) > UNUSUAL_RATE_THRESHOLD
            or abs(self.dividend_yield) > UNUSUAL_RATE_THRESHOLD
        )


class MonthlyReturn(BaseModel):
    """Pre-tax return earned in one month."""

    model_config = ConfigDict(frozen=True)

    growth: float = 0.0
    dividends: float = 0.0

    @property
    def total(self) -> float:
        return self.growth + self.dividends


class AfterTaxReturn(BaseModel):
    """Return kept after tax in one month."""

    model_config = ConfigDict(frozen=True)

    growth: float = 0.0
    dividends: float = 0.0
    tax_paid: float = 0.0
    gross_total: float = 0.0

    @property
    def total(self) -> float:
        return self.growth + self.dividends


def _first_rate(*candidates: Optional[Rate]) -> Optional[float]:
    for candidate in candidates:
        if candidate is not None:
            return candidate.as_decimal()
    return None


def _account_level_rates(
    account: Account,
    override: Optional[AccountRateOverride],
    assumptions: ProjectionAssumptions,
) -> Tuple[float, float]:
    growth = _first_rate(
        override.growth_rate if override else None,
        account.investment_growth_rate,
    )
    dividend = _first_rate(
        override.dividend_yield if override else None,
        account.investment_dividend_yield,
    )
    if growth is None:
        growth = assumptions.resolve_global_growth_rate()
    if dividend is None:
        dividend = assumptions.resolve_global_dividend_yield()
    return growth, dividend


def resolve_dividend_type(
    account: Account, assumptions: ProjectionAssumptions
) -> DividendType:
    """
    Dividend type for an account.

    Args:
        account: The investment account
        assumptions: Scenario assumptions holding per-account overrides

    Returns:
        The override if set, else the type carrying the largest share of
        holding value, else canadian_eligible
    """
    override = assumptions.account_overrides.get(account.id)
    if override is not None and override.dividend_type is not None:
        return override.dividend_type

    weights = {}
    for holding in account.holdings:
        if holding.dividend_type is None:
            continue
        weights[holding.dividend_type] = (
            weights.get(holding.dividend_type, 0.0) + holding.market_value
        )
    if weights:
        return max(weights, key=weights.get)
    return DEFAULT_DIVIDEND_TYPE


def resolve_account_rates(
    account: Account, assumptions: ProjectionAssumptions
) -> ResolvedRates:
    """
    Resolve annual growth and dividend rates for an account.

    Each holding uses its own override where set and the account-level chain
    otherwise. Multi-holding accounts are value-weighted; when holdings have
    no value the account-level chain applies directly.
    """
    override = assumptions.account_overrides.get(account.id)
    account_growth, account_dividend = _account_level_rates(account, override, assumptions)
    dividend_type = resolve_dividend_type(account, assumptions)

    holdings: List[Holding] = account.holdings
    total_value = account.holdings_value
    if not holdings or total_value <= 0:
        return ResolvedRates(
            growth_rate=account_growth,
            dividend_yield=account_dividend,
            dividend_type=dividend_type,
        )

    weighted_growth = 0.0
    weighted_dividend = 0.0
    for holding in holdings:
        weight = holding.market_value / total_value
        growth = (
            holding.growth_rate.as_decimal()
            if holding.growth_rate is not None
            else account_growth
        )
        dividend = (
            holding.dividend_yield.as_decimal()
            if holding.dividend_yield is not None
            else account_dividend
        )
        weighted_growth += growth * weight
        weighted_dividend += dividend * weight

    return ResolvedRates(
        growth_rate=weighted_growth,
        dividend_yield=weighted_dividend,
        dividend_type=dividend_type,
    )


def monthly_rates(growth_rate: float, dividend_yield: float) -> Tuple[float, float]:
    """
    Convert annual rates to monthly rates.

    The combined monthly rate is the geometric equivalent of the combined
    annual rate, so twelve months compound to exactly the annual rate. It is
    split between growth and dividends in proportion to the annual rates.
    """
    annual_total = growth_rate + dividend_yield
    if annual_total == 0:
        return growth_rate / 12, dividend_yield / 12

    monthly_total = max(0.0, 1 + annual_total) ** (1 / 12) - 1
    return (
        monthly_total * growth_rate / annual_total,
        monthly_total * dividend_yield / annual_total,
    )


def calculate_monthly_return(balance: float, rates: ResolvedRates) -> MonthlyReturn:
    growth_monthly, dividend_monthly = monthly_rates(rates.growth_rate, rates.dividend_yield)
    return MonthlyReturn(growth=balance * growth_monthly, dividends=balance * dividend_monthly)


def calculate_dividend_tax(
    dividends: float, dividend_type: DividendType, annual_income: float, province: str
) -> float:
    if dividends <= 0 or dividend_type == "none":
        return 0.0
    if dividend_type == "canadian_eligible":
        return calculate_eligible_dividend_tax(dividends, annual_income, province)
    if dividend_type == "canadian_non_eligible":
        return calculate_non_eligible_dividend_tax(dividends, annual_income, province)
    return calculate_foreign_dividend_tax(dividends, annual_income, province)


def calculate_after_tax_return(
    account: Account,
    monthly_return: MonthlyReturn,
    dividend_type: DividendType,
    annual_income: float,
    province: str,
) -> AfterTaxReturn:
    """
    Apply tax to a month's return.

    Args:
        account: Account that earned the return
        monthly_return: Pre-tax growth and dividends
        dividend_type: Tax character of the dividends
        annual_income: Household taxable income for marginal-rate lookup
        province: Two-letter province code

    Returns:
        After-tax growth and dividends and the tax withheld
    """
    if account.is_registered:
        return AfterTaxReturn(
            growth=monthly_return.growth,
            dividends=monthly_return.dividends,
            tax_paid=0.0,
            gross_total=monthly_return.total,
        )

    growth_tax = max(
        0.0, calculate_capital_gains_tax(monthly_return.growth, annual_income, province)
    )
    dividend_tax = max(
        0.0,
        calculate_dividend_tax(monthly_return.dividends, dividend_type, annual_income, province),
    )
    return AfterTaxReturn(
        growth=monthly_return.growth - growth_tax,
        dividends=monthly_return.dividends - dividend_tax,
        tax_paid=growth_tax + dividend_tax,
        gross_total=monthly_return.total,
    )
