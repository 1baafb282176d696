"""
Month-by-month net worth projection.

The simulator walks the projection horizon one month at a time over a balance
ledger it owns. Each month it:

1. derives the calendar date and retirement state,
2. grows income and expenses (or switches to retirement spending, government
   benefits and portfolio withdrawals),
3. applies life events to the month's savings,
4. credits after-tax investment returns and routes savings into investments,
5. handles RESP contributions, grants and education withdrawals,
6. debits retirement withdrawals and credits the cash share of savings,
7. amortizes debts,

and records an immutable snapshot. The caller's accounts are never modified.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from ..accounts import Account, Transaction
from ..cashflow import calculate_monthly_cashflow
from ..debt_amortization import PAID_OFF_THRESHOLD, DebtCalculator
from ..errors import InvalidScenarioConfig
from ..government_benefits import calculate_cpp_benefit, calculate_oas_benefit
from ..investment_returns import (
    ResolvedRates,
    calculate_after_tax_return,
    calculate_monthly_return,
    resolve_account_rates,
)
from ..scenario import ProjectionScenario
from ..time_grid import ProjectionCalendar, compound
from ..withdrawal_strategy import (
    RRSP_POOL_TYPES,
    TFSA_POOL_TYPES,
    WithdrawalPlan,
    debit_proportionally,
    plan_withdrawal,
)
from .result import ProjectionMonth, ProjectionResult, ProjectionSummary, ProjectionYear

logger = logging.getLogger(__name__)

MIN_PROJECTION_YEARS = 1
MAX_PROJECTION_YEARS = 60

# Positive savings are split between investments and cash
INVESTMENT_SAVINGS_SHARE = 0.70
CASH_SAVINGS_SHARE = 1 - INVESTMENT_SAVINGS_SHARE


class _MonthTotals:
    """Flows accumulated while processing one month."""

    def __init__(self) -> None:
        self.gross_return = 0.0
        self.after_tax_return = 0.0
        self.dividends = 0.0
        self.tax_paid = 0.0
        self.contributions = 0.0
        self.resp_grant = 0.0
        self.withdrawn = 0.0
        self.debt_payments = 0.0
        self.principal_paydown = 0.0
        self.interest_paid = 0.0


class NetWorthProjector:
    """Runs a single projection for a set of accounts, transactions and a scenario."""

    def __init__(
        self,
        accounts: List[Account],
        transactions: List[Transaction],
        scenario: ProjectionScenario,
    ) -> None:
        years = scenario.config.projection_years
        if not MIN_PROJECTION_YEARS <= years <= MAX_PROJECTION_YEARS:
            raise InvalidScenarioConfig(
                f"projection_years must be between {MIN_PROJECTION_YEARS} and "
                f"{MAX_PROJECTION_YEARS}, got {years}"
            )
        account_ids = [a.id for a in accounts]
        if len(set(account_ids)) != len(account_ids):
            raise InvalidScenarioConfig("Account ids must be unique")

        self.accounts = list(accounts)
        self.scenario = scenario
        self.assumptions = scenario.assumptions
        self.calendar = ProjectionCalendar(
            start_date=scenario.config.start_date, months=years * 12
        )
        self.warnings: List[str] = []

        cashflow = calculate_monthly_cashflow(transactions)
        self.avg_income = cashflow.average_income
        self.avg_expenses = cashflow.average_expenses

        self.investment_accounts = [a for a in self.accounts if a.is_investment]
        self.cash_accounts = [a for a in self.accounts if a.is_cash]
        self.resp_accounts = [a for a in self.investment_accounts if a.type == "resp"]
        self.liabilities = [a for a in self.accounts if a.is_liability]
        self.account_types = {a.id: a.type for a in self.accounts}

        self.rates: Dict[str, ResolvedRates] = {}
        for account in self.investment_accounts:
            rates = resolve_account_rates(account, self.assumptions)
            if rates.is_unusual:
                self._warn(
                    f"Unusual annual rate for account {account.id}: growth "
                    f"{rates.growth_rate:.2%}, dividends {rates.dividend_yield:.2%}"
                )
            self.rates[account.id] = rates

        self.cpp_benefits = [
            (inputs.start_age, calculate_cpp_benefit(inputs))
            for inputs in self.assumptions.cpp.people
        ]
        self.payments = {a.id: self._scheduled_payment(a) for a in self.liabilities}

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def _scheduled_payment(self, account: Account) -> float:
        if account.monthly_payment:
            return account.monthly_payment
        if account.interest_rate is not None and account.term_remaining_months:
            return DebtCalculator.calculate_monthly_payment(
                account.balance,
                account.interest_rate.as_decimal(),
                account.term_remaining_months,
            )
        return 0.0

    def _pool_balances(self, ledger: Dict[str, float], types: frozenset) -> Dict[str, float]:
        return {a.id: ledger[a.id] for a in self.investment_accounts if a.type in types}

    def _benefit_started(self, start_age: float, tick: int) -> bool:
        retirement = self.assumptions.retirement
        if retirement is None or retirement.current_age is None:
            return True
        return retirement.age_at(tick) >= start_age

    def run(self) -> ProjectionResult:
        """
        Run the projection.

        Returns:
            Monthly snapshots, yearly rollups, summary and any warnings
        """
        assumptions = self.assumptions
        retirement = assumptions.retirement
        resp = assumptions.resp
        rooms = assumptions.contribution_rooms
        province = assumptions.province
        inflation = assumptions.inflation_rate.as_decimal()
        salary_growth = assumptions.salary_growth_rate.as_decimal()

        ledger: Dict[str, float] = {a.id: a.balance for a in self.accounts}
        rrsp_room = rooms.rrsp_total if rooms else None
        tfsa_room = rooms.tfsa_total if rooms else None
        resp_room = rooms.resp_total if rooms else None
        cesg_eligible = rooms.cesg_eligible if rooms else True
        room_warned = set()

        starting_net_worth = self._net_worth(ledger)
        logger.info(
            f"Starting projection {self.scenario.id}: {self.calendar.months} months, "
            f"starting net worth {starting_net_worth:.2f}"
        )

        monthly: List[ProjectionMonth] = []
        is_retired = False

        for tick in self.calendar.ticks():
            current = self.calendar.date_at(tick)
            years_elapsed = self.calendar.years_elapsed(tick)
            totals = _MonthTotals()

            if retirement is not None and retirement.is_retired_at(tick):
                if not is_retired:
                    logger.info(f"Retirement begins in {current.year}-{current.month:02d}")
                is_retired = True

            cpp_income = 0.0
            oas_income = 0.0
            plan = WithdrawalPlan()

            if not is_retired:
                income = assumptions.income.resolve_monthly_income(
                    self.avg_income, years_elapsed, salary_growth
                )
                expenses = compound(self.avg_expenses, inflation, years_elapsed)
            else:
                expenses = (
                    compound(self.avg_expenses, inflation, years_elapsed)
                    * retirement.retirement_expense_ratio
                    + retirement.healthcare_costs / 12
                    + retirement.long_term_care_costs / 12
                )
                rrsp_pool = sum(self._pool_balances(ledger, RRSP_POOL_TYPES).values())
                tfsa_pool = sum(self._pool_balances(ledger, TFSA_POOL_TYPES).values())
                investment_balance = sum(ledger[a.id] for a in self.investment_accounts)
                target = max(0.0, investment_balance) * retirement.withdrawal_rate.as_decimal() / 12
                plan = plan_withdrawal(
                    target, rrsp_pool, tfsa_pool, retirement.withdrawal_strategy
                )

                cpp_income = sum(
                    benefit
                    for start_age, benefit in self.cpp_benefits
                    if self._benefit_started(start_age, tick)
                )
                oas_test_income = (cpp_income + plan.total) * 12
                oas_income = sum(
                    calculate_oas_benefit(inputs, oas_test_income)
                    for inputs in assumptions.oas.people
                    if self._benefit_started(inputs.start_age, tick)
                )
                income = cpp_income + oas_income + plan.total

            savings = income - expenses
            for event in self.scenario.life_events:
                if event.applies_at(current.year, current.month):
                    savings += event.savings_delta()

            # Investment returns
            annual_income = income * 12
            for account in self.investment_accounts:
                rates = self.rates[account.id]
                monthly_return = calculate_monthly_return(ledger[account.id], rates)
                after_tax = calculate_after_tax_return(
                    account, monthly_return, rates.dividend_type, annual_income, province
                )
                ledger[account.id] += after_tax.total
                totals.gross_return += after_tax.gross_total
                totals.after_tax_return += after_tax.total
                totals.dividends += after_tax.dividends
                totals.tax_paid += after_tax.tax_paid
                if tick == 0:
                    logger.debug(
                        f"Account {account.id}: growth {rates.growth_rate:.4f}, "
                        f"dividends {rates.dividend_yield:.4f}, "
                        f"after-tax return {after_tax.total:.2f}"
                    )

            # Route the investment share of savings
            cash_share_base = 0.0
            if savings > 0:
                to_invest = savings * INVESTMENT_SAVINGS_SHARE
                if self.investment_accounts:
                    routed = self._route_contribution(ledger, to_invest)
                    totals.contributions += to_invest
                    if rrsp_room is not None:
                        rrsp_room -= self._routed_to(routed, "rrsp")
                    if tfsa_room is not None:
                        tfsa_room -= self._routed_to(routed, "tfsa")
                else:
                    cash_share_base = to_invest

            # RESP contributions and grants
            if (
                resp is not None
                and not is_retired
                and resp.annual_contribution > 0
                and self.resp_accounts
            ):
                contribution = resp.annual_contribution / 12
                grant = contribution * resp.cesg_match if cesg_eligible else 0.0
                per_account = len(self.resp_accounts)
                for account in self.resp_accounts:
                    ledger[account.id] += (contribution + grant) / per_account
                savings -= contribution
                totals.contributions += contribution
                totals.resp_grant = grant
                if resp_room is not None:
                    resp_room -= contribution
                    if resp_room < 0 and "resp" not in room_warned:
                        room_warned.add("resp")
                        self._warn("RESP contributions exceed the remaining lifetime room")

            # RESP education withdrawals
            if resp is not None and resp.education_costs > 0 and resp.is_in_school(current.year):
                resp_balances = {a.id: ledger[a.id] for a in self.resp_accounts}
                monthly_cost = resp.education_costs / 12
                withdrawn = debit_proportionally(resp_balances, monthly_cost)
                if withdrawn > 0:
                    ledger.update(resp_balances)
                    savings += withdrawn
                    expenses -= monthly_cost

            # Retirement withdrawals
            if plan.total > 0:
                rrsp_balances = self._pool_balances(ledger, RRSP_POOL_TYPES)
                tfsa_balances = self._pool_balances(ledger, TFSA_POOL_TYPES)
                totals.withdrawn += debit_proportionally(rrsp_balances, plan.from_rrsp)
                totals.withdrawn += debit_proportionally(tfsa_balances, plan.from_tfsa)
                ledger.update(rrsp_balances)
                ledger.update(tfsa_balances)

            # Cash share of remaining savings
            if savings > 0:
                cash_share_base += savings * CASH_SAVINGS_SHARE
            if cash_share_base > 0 and self.cash_accounts:
                per_account = cash_share_base / len(self.cash_accounts)
                for account in self.cash_accounts:
                    ledger[account.id] += per_account

            # Debt amortization
            for account in self.liabilities:
                payment = self.payments[account.id]
                if payment <= 0 or ledger[account.id] <= 0:
                    continue
                rate = account.interest_rate.as_decimal() if account.interest_rate else 0.0
                step = DebtCalculator.amortize_month(ledger[account.id], rate, payment)
                ledger[account.id] = step.ending_balance
                totals.debt_payments += step.payment
                totals.principal_paydown += step.principal_paid
                totals.interest_paid += step.interest_paid

            for label, room in (("rrsp", rrsp_room), ("tfsa", tfsa_room)):
                if room is not None and room < 0 and label not in room_warned:
                    room_warned.add(label)
                    self._warn(
                        f"{label.upper()} contributions exceed available room "
                        f"in {current.year}-{current.month:02d}"
                    )

            monthly.append(
                self._snapshot(
                    current,
                    ledger,
                    monthly[-1].net_worth if monthly else None,
                    income=income,
                    expenses=expenses,
                    savings=savings,
                    totals=totals,
                    is_retired=is_retired,
                    cpp_income=cpp_income,
                    oas_income=oas_income,
                    rrsp_room=rrsp_room,
                    tfsa_room=tfsa_room,
                )
            )

        negative_months = sum(1 for m in monthly if m.savings < 0)
        if negative_months:
            self._warn(
                f"Savings were negative in {negative_months} months; "
                "shortfalls are not drawn from any account"
            )

        yearly = aggregate_yearly(monthly)
        summary = self._summarize(monthly, starting_net_worth)
        logger.info(
            f"Completed projection {self.scenario.id}: ending net worth "
            f"{summary.ending_net_worth:.2f}"
        )
        return ProjectionResult(
            scenario_id=self.scenario.id,
            monthly_data=monthly,
            yearly_data=yearly,
            summary=summary,
            warnings=list(self.warnings),
        )

    def _routed_to(self, routed: Dict[str, float], account_type: str) -> float:
        return sum(v for k, v in routed.items() if self.account_types[k] == account_type)

    def _route_contribution(self, ledger: Dict[str, float], amount: float) -> Dict[str, float]:
        """Spread a contribution across investment accounts by post-return balance."""
        balances = {a.id: max(0.0, ledger[a.id]) for a in self.investment_accounts}
        total = sum(balances.values())
        if total > 0:
            routed = {k: amount * v / total for k, v in balances.items()}
        else:
            routed = {k: amount / len(balances) for k in balances}
        for account_id, value in routed.items():
            ledger[account_id] += value
        return routed

    def _net_worth(self, ledger: Dict[str, float]) -> float:
        assets = sum(ledger[a.id] for a in self.accounts if not a.is_liability)
        liabilities = sum(ledger[a.id] for a in self.liabilities)
        return assets - liabilities

    def _snapshot(
        self,
        current: date,
        ledger: Dict[str, float],
        previous_net_worth: Optional[float],
        income: float,
        expenses: float,
        savings: float,
        totals: _MonthTotals,
        is_retired: bool,
        cpp_income: float,
        oas_income: float,
        rrsp_room: Optional[float],
        tfsa_room: Optional[float],
    ) -> ProjectionMonth:
        cash = investments = real_estate = other = 0.0
        for account in self.accounts:
            if account.is_liability:
                continue
            if account.is_cash:
                cash += ledger[account.id]
            elif account.is_investment:
                investments += ledger[account.id]
            elif account.is_real_estate:
                real_estate += ledger[account.id]
            else:
                other += ledger[account.id]

        mortgage = sum(ledger[a.id] for a in self.liabilities if a.type == "mortgage")
        other_debt = sum(ledger[a.id] for a in self.liabilities if a.type != "mortgage")
        total_assets = cash + investments + real_estate + other
        total_liabilities = mortgage + other_debt
        net_worth = total_assets - total_liabilities

        return ProjectionMonth(
            year=current.year,
            month=current.month,
            date=current,
            total_assets=total_assets,
            cash_assets=cash,
            investment_assets=investments,
            real_estate_assets=real_estate,
            other_assets=other,
            total_liabilities=total_liabilities,
            mortgage_balance=mortgage,
            other_debt=other_debt,
            net_worth=net_worth,
            net_worth_change=(
                0.0 if previous_net_worth is None else net_worth - previous_net_worth
            ),
            income=income,
            expenses=expenses,
            savings=savings,
            savings_rate=savings / income * 100 if income > 0 else 0.0,
            investment_gross_return=totals.gross_return,
            investment_growth=totals.after_tax_return,
            investment_dividends=totals.dividends,
            investment_tax_paid=totals.tax_paid,
            investment_contributions=totals.contributions,
            debt_payments=totals.debt_payments,
            principal_paydown=totals.principal_paydown,
            interest_paid=totals.interest_paid,
            is_retired=is_retired,
            cpp_income=cpp_income,
            oas_income=oas_income,
            withdrawal_income=totals.withdrawn,
            resp_grant=totals.resp_grant,
            rrsp_room_remaining=rrsp_room,
            tfsa_room_remaining=tfsa_room,
            account_balances=dict(ledger),
        )

    def _summarize(
        self, monthly: List[ProjectionMonth], starting_net_worth: float
    ) -> ProjectionSummary:
        ending = monthly[-1].net_worth
        years = len(monthly) / 12
        if starting_net_worth <= 0 or years <= 0:
            cagr = 0.0
            self._warn("Starting net worth is not positive; average annual growth set to 0")
        elif ending <= 0:
            # no real annual rate reaches a non-positive ending value
            cagr = -100.0
            self._warn("Ending net worth is not positive; average annual growth set to -100%")
        else:
            cagr = ((ending / starting_net_worth) ** (1 / years) - 1) * 100

        peak = starting_net_worth
        peak_year = self.calendar.start_date.year
        for month in monthly:
            if month.net_worth > peak:
                peak = month.net_worth
                peak_year = month.year

        debt_free = next(
            (m.date for m in monthly if m.total_liabilities <= PAID_OFF_THRESHOLD), None
        )

        return ProjectionSummary(
            starting_net_worth=starting_net_worth,
            ending_net_worth=ending,
            total_growth=ending - starting_net_worth,
            average_annual_growth=cagr,
            peak_net_worth=peak,
            peak_net_worth_year=peak_year,
            debt_free_date=debt_free,
        )


def aggregate_yearly(monthly: List[ProjectionMonth]) -> List[ProjectionYear]:
    """Roll monthly snapshots up into calendar years."""
    by_year: Dict[int, List[ProjectionMonth]] = {}
    for month in monthly:
        by_year.setdefault(month.year, []).append(month)

    yearly = []
    for year in sorted(by_year):
        months = by_year[year]
        total_income = sum(m.income for m in months)
        total_savings = sum(m.savings for m in months)
        yearly.append(
            ProjectionYear(
                year=year,
                starting_net_worth=months[0].net_worth,
                ending_net_worth=months[-1].net_worth,
                net_worth_change=months[-1].net_worth - months[0].net_worth,
                total_income=total_income,
                total_expenses=sum(m.expenses for m in months),
                total_savings=total_savings,
                average_savings_rate=(
                    total_savings / total_income * 100 if total_income > 0 else 0.0
                ),
                investment_growth=sum(m.investment_growth for m in months),
                debt_paydown=sum(m.principal_paydown for m in months),
            )
        )
    return yearly


def project_net_worth(
    accounts: List[Account],
    transactions: List[Transaction],
    scenario: ProjectionScenario,
) -> ProjectionResult:
    """
    Project household net worth month by month.

    Args:
        accounts: Current accounts; never modified
        transactions: History used to derive average income and expenses
        scenario: Assumptions, horizon and life events

    Returns:
        The complete projection

    Raises:
        InvalidScenarioConfig: If projection_years is outside [1, 60]
    """
    return NetWorthProjector(accounts, transactions, scenario).run()
