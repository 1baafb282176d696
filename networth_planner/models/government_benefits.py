"""
Canada Pension Plan (CPP/QPP) and Old Age Security (OAS) estimators.

Simplified Service Canada methodology using 2024 maximums. Out-of-range inputs
are clamped rather than rejected, so the estimators are always safe to call
from inside a projection.
"""

import logging
from typing import Dict

from .scenario import CPPInputs, OASInputs

logger = logging.getLogger(__name__)

MAX_CPP_MONTHLY_BENEFIT = 1306.57
YMPE = 68500.0
CPP_CONTRIBUTION_RATE = 0.0595
CPP_DROP_OUT_YEARS = 8
CPP_STANDARD_AGE = 65
CPP_STANDARD_YEARS = 40 - CPP_DROP_OUT_YEARS
CPP_EARLY_REDUCTION_PER_MONTH = 0.006
CPP_LATE_INCREASE_PER_MONTH = 0.007
CPP_MAX_ADJUSTMENT_FACTOR = 1.42

MAX_OAS_MONTHLY_BENEFIT = 713.34
OAS_FULL_YEARS = 40
OAS_STANDARD_AGE = 65
OAS_CLAWBACK_THRESHOLD = 86912.0
OAS_CLAWBACK_RATE = 0.15
OAS_ADJUSTMENT_PER_MONTH = 0.006
OAS_MAX_ADJUSTMENT_FACTOR = 1.36

# Deferral credits stop accruing at age 70
MAX_DEFERRAL_MONTHS = 60


def calculate_cpp_benefit(inputs: CPPInputs) -> float:
    """
    Estimate the monthly CPP benefit.

    Args:
        inputs: Contribution history, start age and optional known benefit

    Returns:
        Monthly benefit rounded to the cent, or 0 when history is missing
    """
    if inputs.monthly_override is not None and inputs.monthly_override > 0:
        return inputs.monthly_override

    if not inputs.contribution_years or not inputs.contribution_level:
        logger.warning("Insufficient CPP contribution data, estimating benefit as 0")
        return 0.0

    level = min(1.0, max(0.0, inputs.contribution_level))
    adjusted_years = max(0.0, inputs.contribution_years - CPP_DROP_OUT_YEARS)
    earnings_ratio = min(1.0, adjusted_years / CPP_STANDARD_YEARS * level)
    benefit = MAX_CPP_MONTHLY_BENEFIT * earnings_ratio

    if inputs.start_age < CPP_STANDARD_AGE:
        months_early = (CPP_STANDARD_AGE - inputs.start_age) * 12
        benefit *= 1 - months_early * CPP_EARLY_REDUCTION_PER_MONTH
    elif inputs.start_age > CPP_STANDARD_AGE:
        months_late = min(MAX_DEFERRAL_MONTHS, (inputs.start_age - CPP_STANDARD_AGE) * 12)
        benefit *= 1 + months_late * CPP_LATE_INCREASE_PER_MONTH

    benefit = max(0.0, min(MAX_CPP_MONTHLY_BENEFIT * CPP_MAX_ADJUSTMENT_FACTOR, benefit))
    return round(benefit, 2)


def calculate_oas_benefit(inputs: OASInputs, annual_income: float = 0.0) -> float:
    """
    Estimate the monthly OAS benefit after the recovery tax (clawback).

    A known benefit replaces the residence-based estimate, but the start-age
    adjustment and clawback still apply to it.

    Args:
        inputs: Residence, start age, optional known benefit and threshold
        annual_income: Annual income used to test the clawback

    Returns:
        Monthly benefit rounded to the cent
    """
    if inputs.monthly_override is not None and inputs.monthly_override > 0:
        benefit = inputs.monthly_override
    else:
        years = inputs.years_in_canada if inputs.years_in_canada is not None else OAS_FULL_YEARS
        benefit = MAX_OAS_MONTHLY_BENEFIT * min(1.0, years / OAS_FULL_YEARS)

    if inputs.start_age < OAS_STANDARD_AGE:
        months_early = (OAS_STANDARD_AGE - inputs.start_age) * 12
        benefit *= 1 - months_early * OAS_ADJUSTMENT_PER_MONTH
    elif inputs.start_age > OAS_STANDARD_AGE:
        months_late = min(MAX_DEFERRAL_MONTHS, (inputs.start_age - OAS_STANDARD_AGE) * 12)
        benefit *= 1 + months_late * OAS_ADJUSTMENT_PER_MONTH

    threshold = (
        inputs.clawback_threshold
        if inputs.clawback_threshold is not None
        else OAS_CLAWBACK_THRESHOLD
    )
    monthly_clawback = calculate_oas_clawback(annual_income, threshold) / 12
    benefit = max(0.0, benefit - monthly_clawback)

    benefit = max(0.0, min(MAX_OAS_MONTHLY_BENEFIT * OAS_MAX_ADJUSTMENT_FACTOR, benefit))
    return round(benefit, 2)


def calculate_oas_clawback(
    annual_income: float, threshold: float = OAS_CLAWBACK_THRESHOLD
) -> float:
    """Annual OAS recovery tax: 15% of income above the threshold."""
    if annual_income <= threshold:
        return 0.0
    return (annual_income - threshold) * OAS_CLAWBACK_RATE


def estimate_cpp_contribution_level(annual_income: float) -> float:
    """Pensionable earnings as a fraction of the YMPE, clamped to [0, 1]."""
    if annual_income <= 0:
        return 0.0
    return min(annual_income, YMPE) / YMPE


def get_cpp_maximums() -> Dict[str, float]:
    return {
        "max_monthly_benefit": MAX_CPP_MONTHLY_BENEFIT,
        "ympe": YMPE,
        "contribution_rate": CPP_CONTRIBUTION_RATE,
        "standard_age": CPP_STANDARD_AGE,
    }


def get_oas_maximums() -> Dict[str, float]:
    return {
        "max_monthly_benefit": MAX_OAS_MONTHLY_BENEFIT,
        "full_years": OAS_FULL_YEARS,
        "standard_age": OAS_STANDARD_AGE,
        "clawback_threshold": OAS_CLAWBACK_THRESHOLD,
        "clawback_rate": OAS_CLAWBACK_RATE,
    }
