"""
Tests for the monthly net worth projection.

This module covers compounding, the balance ledger invariants, savings
routing, retirement drawdown with CPP and OAS, RESP flows, debt amortization
and the summary figures.
"""

from datetime import date

import pytest

from networth_planner.models.accounts import Account
from networth_planner.models.errors import InvalidScenarioConfig
from networth_planner.models.projection import project_net_worth
from networth_planner.models.scenario import (
    ContributionRooms,
    CPPAssumptions,
    CPPInputs,
    LifeEvent,
    OASAssumptions,
    OASInputs,
    PersonRooms,
    RESPAssumptions,
    RetirementAssumptions,
)


def _flat_account(account_id, account_type, balance):
    return Account(
        id=account_id,
        name=account_id,
        kind="asset",
        type=account_type,
        balance=balance,
        investment_growth_rate=0.0,
        investment_dividend_yield=0.0,
    )


def _net_worth_from_balances(accounts, balances):
    total = 0.0
    for account in accounts:
        sign = -1 if account.is_liability else 1
        total += sign * balances[account.id]
    return total


class TestCompounding:
    """Test investment growth over the horizon."""

    def test_flat_registered_growth(self, tfsa_account, scenario_factory):
        """Test that 5% a year for ten years compounds exactly."""
        result = project_net_worth([tfsa_account], [], scenario_factory(years=10))

        assert len(result.monthly_data) == 120
        assert result.summary.ending_net_worth == pytest.approx(10000 * 1.05**10)
        assert result.summary.average_annual_growth == pytest.approx(5.0)
        assert all(m.investment_tax_paid == 0 for m in result.monthly_data)

    def test_non_registered_returns_are_taxed(self, non_registered_account, scenario_factory):
        """Test that a 6% non-registered return keeps less than it earns."""
        result = project_net_worth([non_registered_account], [], scenario_factory(years=1))

        gross = sum(m.investment_gross_return for m in result.monthly_data)
        after_tax = sum(m.investment_growth for m in result.monthly_data)
        tax = sum(m.investment_tax_paid for m in result.monthly_data)

        assert gross == pytest.approx(600, abs=5)
        assert tax > 0
        assert after_tax == pytest.approx(gross - tax)
        assert after_tax < gross

    def test_non_registered_growth_taxed_as_capital_gains(self, scenario_factory):
        """Test that 6% pure growth earns about 600 and keeps less after tax."""
        account = Account(
            id="brokerage",
            name="Brokerage",
            kind="asset",
            type="non_registered",
            balance=10000,
            investment_growth_rate=0.06,
            investment_dividend_yield=0.0,
        )
        result = project_net_worth([account], [], scenario_factory(years=1))

        gross = sum(m.investment_gross_return for m in result.monthly_data)
        after_tax = sum(m.investment_growth for m in result.monthly_data)

        assert gross == pytest.approx(600, abs=10)
        assert all(m.investment_dividends == 0 for m in result.monthly_data)
        assert 0 < after_tax < gross


class TestLedgerInvariants:
    """Test properties that hold every month."""

    @pytest.fixture
    def household_result(self, household_accounts, transactions_factory, scenario_factory):
        scenario = scenario_factory(
            years=5,
            retirement=RetirementAssumptions(current_age=62, target_retirement_age=65),
            cpp=CPPAssumptions(person1=CPPInputs(contribution_years=35, contribution_level=0.8)),
            oas=OASAssumptions(person1=OASInputs()),
        )
        return project_net_worth(household_accounts, transactions_factory(8000, 5000), scenario)

    def test_net_worth_matches_account_balances(self, household_accounts, household_result):
        """Test that net worth is assets minus liabilities every month."""
        for month in household_result.monthly_data:
            assert month.net_worth == pytest.approx(
                _net_worth_from_balances(household_accounts, month.account_balances)
            )
            assert month.net_worth == pytest.approx(
                month.total_assets - month.total_liabilities
            )

    def test_liabilities_never_increase(self, household_result):
        """Test that debt balances only go down and never below zero."""
        previous = None
        for month in household_result.monthly_data:
            assert month.total_liabilities >= 0
            if previous is not None:
                assert month.total_liabilities <= previous + 1e-9
            previous = month.total_liabilities

    def test_retirement_latches(self, household_result):
        """Test that retirement never switches back off."""
        flags = [m.is_retired for m in household_result.monthly_data]
        first = flags.index(True)

        assert first == 36
        assert all(flags[first:])
        assert not any(flags[:first])

        months = household_result.monthly_data
        assert all(m.withdrawal_income == 0 and m.cpp_income == 0 for m in months[:first])
        for month in months[first:]:
            assert month.withdrawal_income > 0
            assert month.cpp_income > 0
            assert month.income == pytest.approx(
                month.cpp_income + month.oas_income + month.withdrawal_income
            )
            assert month.income < months[first - 1].income

    def test_inputs_not_modified(self, household_accounts, transactions_factory, scenario_factory):
        """Test that the caller's accounts are left untouched."""
        before = [a.model_dump() for a in household_accounts]
        project_net_worth(household_accounts, transactions_factory(8000, 5000), scenario_factory(years=2))

        assert [a.model_dump() for a in household_accounts] == before

    def test_deterministic(self, household_accounts, transactions_factory, scenario_factory):
        """Test that identical inputs give identical results."""
        transactions = transactions_factory(8000, 5000)
        scenario = scenario_factory(years=3)
        first = project_net_worth(household_accounts, transactions, scenario)
        second = project_net_worth(household_accounts, transactions, scenario)

        assert first.model_dump(exclude={"calculated_at"}) == second.model_dump(
            exclude={"calculated_at"}
        )


class TestScenarioValidation:
    """Test horizon validation."""

    @pytest.mark.parametrize("years", [0, 61])
    def test_out_of_range_years(self, tfsa_account, scenario_factory, years):
        """Test that horizons outside 1 to 60 years are rejected."""
        with pytest.raises(InvalidScenarioConfig):
            project_net_worth([tfsa_account], [], scenario_factory(years=years))

    def test_duplicate_account_ids(self, tfsa_account, scenario_factory):
        """Test that account ids must be unique."""
        with pytest.raises(InvalidScenarioConfig):
            project_net_worth([tfsa_account, tfsa_account], [], scenario_factory())

    def test_sixty_years_allowed(self, tfsa_account, scenario_factory):
        """Test the upper bound."""
        result = project_net_worth([tfsa_account], [], scenario_factory(years=60))
        assert len(result.monthly_data) == 720


class TestSavingsRouting:
    """Test where monthly savings go."""

    def test_split_between_investments_and_cash(self, transactions_factory, scenario_factory):
        """Test the 70/30 split of positive savings."""
        accounts = [_flat_account("tfsa", "tfsa", 10000), _flat_account("chq", "chequing", 5000)]
        scenario = scenario_factory(inflation_rate=0.0, salary_growth_rate=0.0)
        result = project_net_worth(accounts, transactions_factory(5000, 3000), scenario)

        first = result.monthly_data[0]
        assert first.savings == pytest.approx(2000)
        assert first.account_balances["tfsa"] == pytest.approx(11400)
        assert first.account_balances["chq"] == pytest.approx(5600)
        assert first.investment_contributions == pytest.approx(1400)

    def test_contributions_by_balance(self, transactions_factory, scenario_factory):
        """Test that contributions follow account size."""
        accounts = [
            _flat_account("tfsa", "tfsa", 30000),
            _flat_account("rrsp", "rrsp", 10000),
        ]
        scenario = scenario_factory(inflation_rate=0.0, salary_growth_rate=0.0)
        result = project_net_worth(accounts, transactions_factory(5000, 3000), scenario)

        balances = result.monthly_data[0].account_balances
        assert balances["tfsa"] == pytest.approx(30000 + 1050)
        assert balances["rrsp"] == pytest.approx(10000 + 350)

    def test_no_investment_accounts_saves_to_cash(self, transactions_factory, scenario_factory):
        """Test that every dollar saved lands in cash without investment accounts."""
        accounts = [_flat_account("chq", "chequing", 5000)]
        scenario = scenario_factory(inflation_rate=0.0, salary_growth_rate=0.0)
        result = project_net_worth(accounts, transactions_factory(5000, 3000), scenario)

        assert result.monthly_data[0].account_balances["chq"] == pytest.approx(7000)
        assert result.summary.ending_net_worth == pytest.approx(5000 + 12 * 2000)

    def test_negative_savings_not_withdrawn(self, transactions_factory, scenario_factory):
        """Test that shortfalls are reported but not debited."""
        accounts = [_flat_account("chq", "chequing", 5000)]
        scenario = scenario_factory(inflation_rate=0.0, salary_growth_rate=0.0)
        result = project_net_worth(accounts, transactions_factory(1000, 3000), scenario)

        assert result.monthly_data[-1].account_balances["chq"] == pytest.approx(5000)
        assert any("negative in 12 months" in w for w in result.warnings)

    def test_contribution_room_tracked(self, transactions_factory, scenario_factory):
        """Test that TFSA room is consumed and overruns are warned about once."""
        accounts = [_flat_account("tfsa", "tfsa", 10000), _flat_account("chq", "chequing", 0)]
        scenario = scenario_factory(
            inflation_rate=0.0,
            salary_growth_rate=0.0,
            contribution_rooms=ContributionRooms(person1=PersonRooms(tfsa=1000, rrsp=5000)),
        )
        result = project_net_worth(accounts, transactions_factory(5000, 3000), scenario)

        first = result.monthly_data[0]
        assert first.tfsa_room_remaining == pytest.approx(-400)
        assert first.rrsp_room_remaining == pytest.approx(5000)
        assert sum("TFSA contributions exceed" in w for w in result.warnings) == 1


class TestLifeEvents:
    """Test life events."""

    def test_one_time_and_recurring_events(self, scenario_factory):
        """Test one-time income and a recurring expense change."""
        events = [
            LifeEvent(id="bonus", type="one_time_income", amount=1200, year=2025, month=3),
            LifeEvent(
                id="daycare",
                type="expense_change",
                amount=100,
                year=2025,
                month=6,
                recurring=True,
            ),
        ]
        accounts = [_flat_account("chq", "chequing", 1000)]
        result = project_net_worth(accounts, [], scenario_factory(life_events=events))

        savings = [m.savings for m in result.monthly_data]
        assert savings[2] == pytest.approx(1200)
        assert savings[:2] == [0, 0]
        assert savings[3:5] == [0, 0]
        assert all(s == pytest.approx(-100) for s in savings[5:])


class TestRetirement:
    """Test retirement spending, benefits and withdrawals."""

    def _retired_scenario(self, scenario_factory, strategy, **retirement):
        return scenario_factory(
            inflation_rate=0.0,
            retirement=RetirementAssumptions(
                current_age=65,
                target_retirement_age=65,
                retirement_expense_ratio=1.0,
                withdrawal_strategy=strategy,
                **retirement,
            ),
        )

    @pytest.mark.parametrize(
        "strategy,expected_rrsp,expected_tfsa",
        [
            ("rrsp_first", 119400, 60000),
            ("tfsa_first", 120000, 59400),
            ("balanced", 119600, 59800),
            ("tax_optimized", 119600, 59800),
        ],
    )
    def test_withdrawal_strategies(
        self, scenario_factory, transactions_factory, strategy, expected_rrsp, expected_tfsa
    ):
        """Test that the first month's withdrawal is sourced per strategy."""
        accounts = [_flat_account("rrsp", "rrsp", 120000), _flat_account("tfsa", "tfsa", 60000)]
        scenario = self._retired_scenario(scenario_factory, strategy)
        result = project_net_worth(accounts, transactions_factory(0, 600), scenario)

        first = result.monthly_data[0]
        assert first.is_retired
        assert first.withdrawal_income == pytest.approx(600)
        assert first.income == pytest.approx(600)
        assert first.savings == pytest.approx(0)
        assert first.account_balances["rrsp"] == pytest.approx(expected_rrsp)
        assert first.account_balances["tfsa"] == pytest.approx(expected_tfsa)

    def test_retirement_expenses(self, scenario_factory, transactions_factory):
        """Test spending ratio plus healthcare and long-term care costs."""
        scenario = scenario_factory(
            inflation_rate=0.0,
            retirement=RetirementAssumptions(
                current_age=70,
                target_retirement_age=65,
                retirement_expense_ratio=0.5,
                healthcare_costs=1200,
                long_term_care_costs=2400,
            ),
        )
        accounts = [_flat_account("chq", "chequing", 10000)]
        result = project_net_worth(accounts, transactions_factory(8000, 4000), scenario)

        assert result.monthly_data[0].expenses == pytest.approx(2000 + 100 + 200)
        assert result.monthly_data[0].income == 0

    def test_government_benefits(self, scenario_factory):
        """Test CPP and OAS paid once retired."""
        scenario = scenario_factory(
            retirement=RetirementAssumptions(current_age=65, target_retirement_age=65),
            cpp=CPPAssumptions(person1=CPPInputs(monthly_override=1000)),
            oas=OASAssumptions(person1=OASInputs()),
        )
        accounts = [_flat_account("chq", "chequing", 0)]
        result = project_net_worth(accounts, [], scenario)

        first = result.monthly_data[0]
        assert first.cpp_income == pytest.approx(1000)
        assert first.oas_income == pytest.approx(713.34)
        assert first.income == pytest.approx(1713.34)
        assert first.account_balances["chq"] == pytest.approx(1713.34)

    def test_benefits_wait_for_start_age(self, scenario_factory):
        """Test that CPP starts at its start age, not at retirement."""
        scenario = scenario_factory(
            retirement=RetirementAssumptions(current_age=64.5, target_retirement_age=64.5),
            cpp=CPPAssumptions(person1=CPPInputs(monthly_override=1000, start_age=65)),
        )
        accounts = [_flat_account("chq", "chequing", 0)]
        result = project_net_worth(accounts, [], scenario)

        cpp = [m.cpp_income for m in result.monthly_data]
        assert cpp[:6] == [0] * 6
        assert cpp[6:] == [1000] * 6

    def test_oas_clawed_back_on_large_withdrawals(self, scenario_factory):
        """Test that withdrawals push income over the clawback threshold."""
        scenario = scenario_factory(
            retirement=RetirementAssumptions(
                current_age=65, target_retirement_age=65, withdrawal_rate=0.10
            ),
            oas=OASAssumptions(person1=OASInputs()),
        )
        accounts = [_flat_account("rrsp", "rrsp", 2000000)]
        result = project_net_worth(accounts, [], scenario)

        # 200,000 a year withdrawn is far above the threshold
        assert result.monthly_data[0].oas_income == 0


class TestRESP:
    """Test RESP contributions, grants and education withdrawals."""

    def test_contribution_and_grant(self, scenario_factory):
        """Test the monthly contribution and 20% CESG."""
        accounts = [_flat_account("resp", "resp", 0)]
        scenario = scenario_factory(resp=RESPAssumptions(annual_contribution=2400))
        result = project_net_worth(accounts, [], scenario)

        first = result.monthly_data[0]
        assert first.account_balances["resp"] == pytest.approx(240)
        assert first.resp_grant == pytest.approx(40)
        assert first.savings == pytest.approx(-200)

    def test_no_grant_when_ineligible(self, scenario_factory):
        """Test that CESG stops when no longer eligible."""
        accounts = [_flat_account("resp", "resp", 0)]
        scenario = scenario_factory(
            resp=RESPAssumptions(annual_contribution=2400),
            contribution_rooms=ContributionRooms(cesg_eligible=False, resp_total=100),
        )
        result = project_net_worth(accounts, [], scenario)

        assert result.monthly_data[0].account_balances["resp"] == pytest.approx(200)
        assert result.monthly_data[0].resp_grant == 0
        assert any("RESP contributions exceed" in w for w in result.warnings)

    def test_education_withdrawals(self, scenario_factory):
        """Test that education costs are paid from the RESP."""
        accounts = [_flat_account("resp", "resp", 10000), _flat_account("chq", "chequing", 5000)]
        scenario = scenario_factory(
            resp=RESPAssumptions(expected_education_start=2025, education_costs=12000)
        )
        result = project_net_worth(accounts, [], scenario)

        first = result.monthly_data[0]
        assert first.account_balances["resp"] == pytest.approx(9000)
        assert first.account_balances["chq"] == pytest.approx(5300)
        assert first.savings == pytest.approx(1000)


class TestDebt:
    """Test debt amortization in the projection."""

    def test_debt_free_date(self, scenario_factory):
        """Test the first month with no debt."""
        loan = Account(
            id="loan",
            name="Car loan",
            kind="liability",
            type="loan",
            balance=1000,
            interest_rate=0.0,
            monthly_payment=500,
        )
        result = project_net_worth([loan], [], scenario_factory())

        assert result.monthly_data[0].total_liabilities == pytest.approx(500)
        assert result.summary.debt_free_date == date(2025, 2, 1)

    def test_payment_derived_from_term(self, scenario_factory):
        """Test that a missing payment is derived from rate and term."""
        loan = Account(
            id="loan",
            name="Loan",
            kind="liability",
            type="loan",
            balance=12000,
            interest_rate=0.0,
            term_remaining_months=12,
        )
        result = project_net_worth([loan], [], scenario_factory())

        assert result.monthly_data[0].account_balances["loan"] == pytest.approx(11000)
        assert result.monthly_data[-1].account_balances["loan"] == pytest.approx(0)

    def test_mortgage_interest_and_principal(self, mortgage_account, scenario_factory):
        """Test the first mortgage payment split."""
        result = project_net_worth([mortgage_account], [], scenario_factory())

        first = result.monthly_data[0]
        assert first.interest_paid == pytest.approx(1250)
        assert first.principal_paydown == pytest.approx(494.82)
        assert first.mortgage_balance == pytest.approx(300000 - 494.82)
        assert result.summary.debt_free_date is None


class TestSummary:
    """Test summary figures and yearly rollups."""

    def test_non_positive_start(self, scenario_factory):
        """Test that growth is reported as 0 when starting underwater."""
        loan = Account(
            id="loan", name="Loan", kind="liability", type="loan", balance=1000, monthly_payment=100
        )
        result = project_net_worth([loan], [], scenario_factory())

        assert result.summary.starting_net_worth == -1000
        assert result.summary.average_annual_growth == 0
        assert any("not positive" in w for w in result.warnings)

    def test_negative_end_after_positive_start(self, transactions_factory, scenario_factory):
        """Test that ending underwater over several years reports -100% growth."""
        accounts = [
            _flat_account("rrsp", "rrsp", 100000),
            Account(id="loan", name="Loan", kind="liability", type="loan", balance=90000),
        ]
        scenario = scenario_factory(
            years=10,
            retirement=RetirementAssumptions(current_age=65, target_retirement_age=65),
        )
        result = project_net_worth(accounts, transactions_factory(100, 5000), scenario)

        assert result.summary.starting_net_worth == 10000
        assert result.summary.ending_net_worth < 0
        assert result.summary.average_annual_growth == -100.0
        assert any("Ending net worth is not positive" in w for w in result.warnings)

    def test_peak_defaults_to_start(self, scenario_factory):
        """Test the peak when net worth never rises above the start."""
        accounts = [_flat_account("chq", "chequing", 1000)]
        events = [LifeEvent(id="x", type="one_time_expense", amount=500, year=2025, month=1)]
        result = project_net_worth(accounts, [], scenario_factory(life_events=events))

        assert result.summary.peak_net_worth == 1000
        assert result.summary.peak_net_worth_year == 2025

    def test_yearly_rollup(self, tfsa_account, transactions_factory, scenario_factory):
        """Test one yearly entry per calendar year."""
        result = project_net_worth(
            [tfsa_account], transactions_factory(5000, 3000), scenario_factory(years=2)
        )

        assert [y.year for y in result.yearly_data] == [2025, 2026]
        first_year = result.yearly_data[0]
        assert first_year.starting_net_worth == result.monthly_data[0].net_worth
        assert first_year.ending_net_worth == result.monthly_data[11].net_worth
        assert first_year.total_income == pytest.approx(
            sum(m.income for m in result.monthly_data[:12])
        )

    def test_mid_year_start(self, tfsa_account, scenario_factory):
        """Test that a mid-year start spans an extra calendar year."""
        result = project_net_worth(
            [tfsa_account], [], scenario_factory(years=1, start_date=date(2025, 7, 1))
        )

        assert [y.year for y in result.yearly_data] == [2025, 2026]
        assert result.monthly_data[-1].date == date(2026, 6, 1)
