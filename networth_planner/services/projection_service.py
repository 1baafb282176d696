"""
Projection service for running and comparing net worth projections.

This service is the entry point used by the HTTP layer. It runs single
projections, compares several scenarios over the same household data and
evaluates mortgage prepayment against investing, logging and timing each run.
"""

import logging
import time
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.accounts import Account, Transaction
from ..models.mortgage_vs_invest import MortgageVsInvestComparison, compare_mortgage_vs_invest
from ..models.projection import ProjectionResult, project_net_worth
from ..models.scenario import ProjectionAssumptions, ProjectionScenario

logger = logging.getLogger(__name__)


class ScenarioOutcome(BaseModel):
    """Headline results for one scenario in a comparison."""

    scenario_id: str
    scenario_name: str
    ending_net_worth: float
    average_annual_growth: float
    peak_net_worth: float
    debt_free_date: Optional[date] = None
    retirement_date: Optional[date] = Field(
        default=None, description="First retired month, if retirement is reached"
    )


class ScenarioComparison(BaseModel):
    """Side-by-side outcomes of several scenarios over the same household."""

    outcomes: List[ScenarioOutcome]
    best_scenario_id: Optional[str] = Field(
        default=None, description="Scenario with the highest ending net worth"
    )


class ProjectionService:
    """Service for running net worth projections."""

    def __init__(self) -> None:
        """Initialize the projection service."""
        self.logger = logging.getLogger(__name__)

    def run_projection(
        self,
        accounts: List[Account],
        transactions: List[Transaction],
        scenario: ProjectionScenario,
    ) -> ProjectionResult:
        """Run a single projection.

        Args:
            accounts: Household accounts
            transactions: Transaction history for income and expense averages
            scenario: Scenario to project

        Returns:
            The projection result

        Raises:
            InvalidScenarioConfig: If the scenario horizon is out of range
        """
        self.logger.info(
            f"Running projection for scenario {scenario.id} "
            f"({len(accounts)} accounts, {len(transactions)} transactions)"
        )
        started = time.perf_counter()
        try:
            result = project_net_worth(accounts, transactions, scenario)
        except Exception as e:
            self.logger.error(f"Projection for scenario {scenario.id} failed: {str(e)}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.info(
            f"Completed projection for scenario {scenario.id} in {elapsed_ms:.1f} ms"
        )
        return result

    def compare_scenarios(
        self,
        accounts: List[Account],
        transactions: List[Transaction],
        scenarios: List[ProjectionScenario],
    ) -> ScenarioComparison:
        """Run each scenario against the same household data and compare outcomes.

        Args:
            accounts: Household accounts
            transactions: Transaction history
            scenarios: Scenarios to compare

        Returns:
            One outcome per scenario, in input order
        """
        outcomes = []
        for scenario in scenarios:
            result = self.run_projection(accounts, transactions, scenario)
            retirement_date = next(
                (m.date for m in result.monthly_data if m.is_retired), None
            )
            outcomes.append(
                ScenarioOutcome(
                    scenario_id=scenario.id,
                    scenario_name=scenario.name,
                    ending_net_worth=result.summary.ending_net_worth,
                    average_annual_growth=result.summary.average_annual_growth,
                    peak_net_worth=result.summary.peak_net_worth,
                    debt_free_date=result.summary.debt_free_date,
                    retirement_date=retirement_date,
                )
            )

        best = max(outcomes, key=lambda o: o.ending_net_worth, default=None)
        return ScenarioComparison(
            outcomes=outcomes, best_scenario_id=best.scenario_id if best else None
        )

    def compare_mortgage_vs_invest(
        self,
        mortgage: Account,
        monthly_surplus: float,
        assumptions: ProjectionAssumptions,
        as_of: Optional[date] = None,
    ) -> MortgageVsInvestComparison:
        """Compare prepaying a mortgage with investing the surplus."""
        self.logger.info(
            f"Comparing mortgage prepayment for {mortgage.id} with a "
            f"{monthly_surplus:.2f} monthly surplus"
        )
        return compare_mortgage_vs_invest(mortgage, monthly_surplus, assumptions, as_of)
