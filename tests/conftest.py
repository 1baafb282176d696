"""
Pytest configuration and shared fixtures for the net worth planner tests.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from networth_planner.config import reset_global_settings
from networth_planner.models.accounts import Account, Holding, Transaction
from networth_planner.models.scenario import (
    ProjectionAssumptions,
    ProjectionConfig,
    ProjectionScenario,
)


def make_scenario(
    years: int = 1,
    start_date: date = date(2025, 1, 1),
    scenario_id: str = "test-scenario",
    life_events=None,
    **assumptions,
) -> ProjectionScenario:
    """Build a scenario with explicit assumptions and horizon."""
    return ProjectionScenario(
        id=scenario_id,
        name="Test Scenario",
        assumptions=ProjectionAssumptions(**assumptions),
        config=ProjectionConfig(projection_years=years, start_date=start_date),
        life_events=life_events or [],
    )


def make_monthly_transactions(
    income: float, expenses: float, months: int = 3, year: int = 2024
):
    """One income and one expense transaction per month."""
    transactions = []
    for month in range(1, months + 1):
        transactions.append(
            Transaction(
                id=f"in-{month}",
                date=date(year, month, 15),
                description="Payroll",
                amount=income,
                category="income",
            )
        )
        transactions.append(
            Transaction(
                id=f"out-{month}",
                date=date(year, month, 20),
                description="Groceries and rent",
                amount=-expenses,
                category="living",
            )
        )
    return transactions


@pytest.fixture
def tfsa_account():
    return Account(
        id="tfsa-1",
        name="TFSA",
        kind="asset",
        type="tfsa",
        balance=10000,
        investment_growth_rate=0.05,
        investment_dividend_yield=0.0,
    )


@pytest.fixture
def non_registered_account():
    return Account(
        id="nonreg-1",
        name="Brokerage",
        kind="asset",
        type="non_registered",
        balance=10000,
        investment_growth_rate=0.04,
        investment_dividend_yield=0.02,
    )


@pytest.fixture
def chequing_account():
    return Account(id="chq-1", name="Chequing", kind="asset", type="chequing", balance=5000)


@pytest.fixture
def mortgage_account():
    return Account(
        id="mtg-1",
        name="Mortgage",
        kind="liability",
        type="mortgage",
        balance=300000,
        interest_rate=5.0,
        monthly_payment=1744.82,
    )


@pytest.fixture
def household_accounts(tfsa_account, non_registered_account, chequing_account, mortgage_account):
    rrsp = Account(
        id="rrsp-1",
        name="RRSP",
        kind="asset",
        type="rrsp",
        balance=50000,
        holdings=[
            Holding(id="h-1", ticker="XEQT", shares=1000, current_price=30.0),
            Holding(id="h-2", ticker="CASH", shares=20000),
        ],
    )
    home = Account(
        id="home-1", name="Home", kind="asset", type="primary_home", balance=600000
    )
    return [tfsa_account, non_registered_account, chequing_account, mortgage_account, rrsp, home]


@pytest.fixture
def settings_env():
    """Environment with the settings required to build the app."""
    env = {"SECRET_KEY": "test-secret-key", "APP_ENV": "testing", "LOG_LEVEL": "WARNING"}
    with patch.dict(os.environ, env, clear=True):
        reset_global_settings()
        yield env
    reset_global_settings()


@pytest.fixture
def client(settings_env):
    from networth_planner import create_app

    app = create_app("testing")
    return app.test_client()


@pytest.fixture
def scenario_factory():
    return make_scenario


@pytest.fixture
def transactions_factory():
    return make_monthly_transactions
