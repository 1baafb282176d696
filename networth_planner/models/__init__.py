"""Data models and calculators for household net worth projections."""

from .accounts import Account, Holding, Transaction
from .errors import InvalidInput, InvalidScenarioConfig, ProjectionError
from .mortgage_vs_invest import MortgageVsInvestComparison, compare_mortgage_vs_invest
from .projection import ProjectionResult, project_net_worth
from .rates import Rate
from .scenario import (
    AccountRateOverride,
    ContributionRooms,
    CPPAssumptions,
    CPPInputs,
    IncomeAssumptions,
    LifeEvent,
    OASAssumptions,
    OASInputs,
    PersonIncome,
    ProjectionAssumptions,
    ProjectionConfig,
    ProjectionScenario,
    RESPAssumptions,
    RetirementAssumptions,
    create_default_scenario,
)

__all__ = [
    "Account",
    "AccountRateOverride",
    "ContributionRooms",
    "CPPAssumptions",
    "CPPInputs",
    "Holding",
    "IncomeAssumptions",
    "InvalidInput",
    "InvalidScenarioConfig",
    "LifeEvent",
    "MortgageVsInvestComparison",
    "OASAssumptions",
    "OASInputs",
    "PersonIncome",
    "ProjectionAssumptions",
    "ProjectionConfig",
    "ProjectionError",
    "ProjectionResult",
    "ProjectionScenario",
    "RESPAssumptions",
    "Rate",
    "RetirementAssumptions",
    "Transaction",
    "compare_mortgage_vs_invest",
    "create_default_scenario",
    "project_net_worth",
]
