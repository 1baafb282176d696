"""
Projection blueprint.

This module provides API endpoints for running net worth projections,
comparing scenarios and comparing mortgage prepayment with investing.
Request bodies are validated with the pydantic models; validation failures
and out-of-range scenarios are reported as 400 responses.
"""

from typing import Any, List

from flask import Blueprint, current_app, jsonify, request
from pydantic import BaseModel, Field, ValidationError

from networth_planner.models.accounts import Account, Transaction
from networth_planner.models.errors import InvalidScenarioConfig
from networth_planner.models.scenario import ProjectionAssumptions, ProjectionScenario
from networth_planner.services.projection_service import ProjectionService

projections_bp = Blueprint("projections", __name__, url_prefix="/api")


class ProjectionRequest(BaseModel):
    accounts: List[Account] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    scenario: ProjectionScenario


class ComparisonRequest(BaseModel):
    accounts: List[Account] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    scenarios: List[ProjectionScenario] = Field(..., min_length=1)


class MortgageVsInvestRequest(BaseModel):
    mortgage: Account
    monthly_surplus: float = Field(..., ge=0)
    assumptions: ProjectionAssumptions = Field(default_factory=ProjectionAssumptions)


@projections_bp.errorhandler(ValidationError)
def handle_validation_error(error: ValidationError) -> Any:
    return (
        jsonify(
            {
                "error": "Invalid request",
                "details": error.errors(include_url=False, include_context=False),
            }
        ),
        400,
    )


@projections_bp.errorhandler(InvalidScenarioConfig)
def handle_invalid_scenario(error: InvalidScenarioConfig) -> Any:
    return jsonify({"error": str(error)}), 400


@projections_bp.route("/projections", methods=["POST"])
def run_projection() -> Any:
    """Run a net worth projection.

    Returns:
        JSON projection result
    """
    payload = ProjectionRequest.model_validate(request.get_json(silent=True) or {})
    result = ProjectionService().run_projection(
        payload.accounts, payload.transactions, payload.scenario
    )
    current_app.logger.info(f"Projection {payload.scenario.id} served")
    return jsonify(result.to_dict()), 200


@projections_bp.route("/projections/compare", methods=["POST"])
def compare_projections() -> Any:
    """Run several scenarios against the same household and compare outcomes.

    Returns:
        JSON comparison with one outcome per scenario
    """
    payload = ComparisonRequest.model_validate(request.get_json(silent=True) or {})
    comparison = ProjectionService().compare_scenarios(
        payload.accounts, payload.transactions, payload.scenarios
    )
    return jsonify(comparison.model_dump(mode="json")), 200


@projections_bp.route("/mortgage-vs-invest", methods=["POST"])
def mortgage_vs_invest() -> Any:
    """Compare prepaying a mortgage with investing the monthly surplus.

    Returns:
        JSON comparison and recommendation
    """
    payload = MortgageVsInvestRequest.model_validate(request.get_json(silent=True) or {})
    comparison = ProjectionService().compare_mortgage_vs_invest(
        payload.mortgage, payload.monthly_surplus, payload.assumptions
    )
    return jsonify(comparison.model_dump(mode="json")), 200
