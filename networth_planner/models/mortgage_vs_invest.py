"""
Prepay-the-mortgage versus invest-the-surplus comparison.

Both strategies run over the same horizon: the number of months it takes to
retire the mortgage when the surplus is applied as a prepayment every month.
Net worth is compared at that point.
"""

import logging
from datetime import date
from typing import Literal, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field

from .accounts import Account
from .debt_amortization import DebtCalculator
from .errors import InvalidInput
from .scenario import ProjectionAssumptions
from .time_grid import CurrencyFormatter

logger = logging.getLogger(__name__)

MAX_PAYOFF_MONTHS = 600
# Differences within this share of the mortgage balance are a wash
RECOMMENDATION_THRESHOLD = 0.10

Recommendation = Literal["mortgage", "invest", "hybrid"]


class MortgageVsInvestComparison(BaseModel):
    """Outcome of comparing mortgage prepayment with investing."""

    model_config = ConfigDict(frozen=True)

    months_to_payoff: int = Field(..., ge=0, description="Months to payoff with prepayment")
    mortgage_payoff_date: date = Field(..., description="Payoff date when prepaying")
    invest_payoff_date: date = Field(..., description="Comparison date for investing")
    investment_balance: float = Field(..., description="Invested surplus at that date")
    remaining_mortgage_balance: float = Field(
        ..., ge=0, description="Mortgage left at that date without prepayment"
    )
    mortgage_scenario_net_worth: float
    invest_scenario_net_worth: float
    net_worth_difference: float = Field(
        ..., description="Invest net worth minus prepay net worth"
    )
    recommendation: Recommendation
    reasoning: str


def compare_mortgage_vs_invest(
    mortgage: Account,
    monthly_surplus: float,
    assumptions: ProjectionAssumptions,
    as_of: Optional[date] = None,
) -> MortgageVsInvestComparison:
    """
    Compare prepaying a mortgage with investing the same monthly surplus.

    Args:
        mortgage: Mortgage account with a monthly payment and interest rate
        monthly_surplus: Amount available each month
        assumptions: Scenario assumptions supplying the investment return
        as_of: Date the comparison starts from (defaults to today)

    Returns:
        The comparison and a recommendation

    Raises:
        InvalidInput: If the mortgage has no payment or interest rate
    """
    if not mortgage.monthly_payment or mortgage.interest_rate is None:
        raise InvalidInput("Mortgage must have a monthly payment and interest rate")
    mortgage_rate = mortgage.interest_rate.as_decimal()
    if mortgage_rate == 0:
        raise InvalidInput("Mortgage must have a monthly payment and interest rate")

    investment_rate = assumptions.investment_return_rate.as_decimal()
    payment = mortgage.monthly_payment
    as_of = as_of or date.today()

    prepay = DebtCalculator.generate_payoff_schedule(
        mortgage.balance,
        mortgage_rate,
        payment,
        extra_payment=monthly_surplus,
        max_months=MAX_PAYOFF_MONTHS,
    )
    months = prepay.months
    if not prepay.paid_off:
        logger.warning(
            f"Mortgage {mortgage.id} is not paid off within {MAX_PAYOFF_MONTHS} months"
        )

    investment_balance = 0.0
    for _ in range(months):
        investment_balance = investment_balance * (1 + investment_rate / 12) + monthly_surplus

    remaining = DebtCalculator.amortize_months(mortgage.balance, mortgage_rate, payment, months)

    mortgage_net_worth = -prepay.ending_balance
    invest_net_worth = investment_balance - remaining
    difference = invest_net_worth - mortgage_net_worth

    formatter = CurrencyFormatter()
    threshold = mortgage.balance * RECOMMENDATION_THRESHOLD
    investment_pct = formatter.format_percentage(investment_rate)
    mortgage_pct = formatter.format_percentage(mortgage_rate)

    recommendation: Recommendation
    if difference > threshold:
        recommendation = "invest"
        reasoning = (
            f"Investing provides {formatter.format_currency(difference)} more net worth "
            f"at mortgage payoff. Investment returns ({investment_pct}) exceed the "
            f"mortgage rate ({mortgage_pct})."
        )
    elif difference < -threshold:
        recommendation = "mortgage"
        reasoning = (
            f"Paying down the mortgage provides "
            f"{formatter.format_currency(abs(difference))} more net worth. The mortgage "
            f"rate ({mortgage_pct}) exceeds expected investment returns ({investment_pct})."
        )
    else:
        recommendation = "hybrid"
        reasoning = (
            f"Both strategies are similar (difference: "
            f"{formatter.format_currency(abs(difference))}) with investment returns of "
            f"{investment_pct} against a mortgage rate of {mortgage_pct}. Consider "
            f"splitting the surplus between prepayment and investing."
        )

    payoff_date = as_of + relativedelta(months=months)
    logger.info(
        f"Mortgage vs invest for {mortgage.id}: {months} months, "
        f"difference {difference:.2f}, recommend {recommendation}"
    )

    return MortgageVsInvestComparison(
        months_to_payoff=months,
        mortgage_payoff_date=payoff_date,
        invest_payoff_date=payoff_date,
        investment_balance=investment_balance,
        remaining_mortgage_balance=remaining,
        mortgage_scenario_net_worth=mortgage_net_worth,
        invest_scenario_net_worth=invest_net_worth,
        net_worth_difference=difference,
        recommendation=recommendation,
        reasoning=reasoning,
    )
