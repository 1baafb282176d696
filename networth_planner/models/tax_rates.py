"""
Canadian federal and provincial income tax tables (2024).

This module holds the static bracket tables and the rate functions built on
them: marginal and average rates, tax on capital gains and on the different
kinds of dividends, and a stacked income-tax calculation that taxes each
income source on top of the ones before it.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

CAPITAL_GAINS_INCLUSION_RATE = 0.5
ELIGIBLE_DIVIDEND_GROSS_UP = 1.38
NON_ELIGIBLE_DIVIDEND_GROSS_UP = 1.15
FEDERAL_ELIGIBLE_DIVIDEND_CREDIT = 0.150198
NON_ELIGIBLE_DIVIDEND_FACTOR = 0.9

QUEBEC_ELIGIBLE_DIVIDEND_GROSS_UP = 1.15
QUEBEC_TOP_RATE = 0.2575
QUEBEC_DIVIDEND_CREDIT = 0.115


class TaxBracket(BaseModel):
    """A single income tax bracket. The top bracket has no upper bound."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0, description="Lower bound of the bracket")
    max: Optional[float] = Field(default=None, description="Upper bound, None if open")
    rate: float = Field(..., ge=0, le=1, description="Rate applied within the bracket")


def _brackets(*rows: tuple) -> List[TaxBracket]:
    return [TaxBracket(min=lo, max=hi, rate=rate) for lo, hi, rate in rows]


FEDERAL_BRACKETS = _brackets(
    (0, 55867, 0.15),
    (55867, 111733, 0.205),
    (111733, 173205, 0.26),
    (173205, 246752, 0.29),
    (246752, None, 0.33),
)

PROVINCIAL_BRACKETS: Dict[str, List[TaxBracket]] = {
    "AB": _brackets(
        (0, 148506, 0.10),
        (148506, 177922, 0.12),
        (177922, 237230, 0.13),
        (237230, 355845, 0.14),
        (355845, None, 0.15),
    ),
    "BC": _brackets(
        (0, 47937, 0.0506),
        (47937, 95875, 0.077),
        (95875, 110076, 0.105),
        (110076, 133664, 0.1229),
        (133664, 181232, 0.147),
        (181232, 252752, 0.168),
        (252752, None, 0.205),
    ),
    "MB": _brackets(
        (0, 47000, 0.108),
        (47000, 100000, 0.1275),
        (100000, None, 0.174),
    ),
    "NB": _brackets(
        (0, 49958, 0.094),
        (49958, 99916, 0.14),
        (99916, 185064, 0.16),
        (185064, None, 0.195),
    ),
    "NL": _brackets(
        (0, 43198, 0.087),
        (43198, 86395, 0.145),
        (86395, 154244, 0.158),
        (154244, 215943, 0.173),
        (215943, None, 0.183),
    ),
    "NS": _brackets(
        (0, 29590, 0.0879),
        (29590, 59180, 0.1495),
        (59180, 93000, 0.1667),
        (93000, 150000, 0.175),
        (150000, None, 0.21),
    ),
    "NT": _brackets(
        (0, 50877, 0.059),
        (50877, 101754, 0.086),
        (101754, 165429, 0.122),
        (165429, None, 0.1405),
    ),
    "NU": _brackets(
        (0, 50877, 0.04),
        (50877, 101754, 0.07),
        (101754, 165429, 0.09),
        (165429, None, 0.115),
    ),
    "ON": _brackets(
        (0, 51446, 0.0505),
        (51446, 102894, 0.0915),
        (102894, 150000, 0.1116),
        (150000, 220000, 0.1216),
        (220000, None, 0.1316),
    ),
    "PE": _brackets(
        (0, 32656, 0.098),
        (32656, 65312, 0.138),
        (65312, 105000, 0.167),
        (105000, 140000, 0.18),
        (140000, None, 0.18),
    ),
    "QC": _brackets(
        (0, 51780, 0.14),
        (51780, 103545, 0.19),
        (103545, 126000, 0.24),
        (126000, None, 0.2575),
    ),
    "SK": _brackets(
        (0, 52057, 0.105),
        (52057, 148734, 0.125),
        (148734, None, 0.145),
    ),
    "YT": _brackets(
        (0, 55867, 0.064),
        (55867, 111733, 0.09),
        (111733, 173205, 0.109),
        (173205, 500000, 0.128),
        (500000, None, 0.15),
    ),
}

PROVINCIAL_DIVIDEND_CREDITS: Dict[str, float] = {
    "AB": 0.10,
    "BC": 0.12,
    "MB": 0.08,
    "NB": 0.14,
    "NL": 0.30,
    "NS": 0.08,
    "NT": 0.11,
    "NU": 0.04,
    "ON": 0.10,
    "PE": 0.10,
    "QC": 0.115,
    "SK": 0.11,
    "YT": 0.12,
}

PROVINCE_NAMES: Dict[str, str] = {
    "AB": "Alberta",
    "BC": "British Columbia",
    "MB": "Manitoba",
    "NB": "New Brunswick",
    "NL": "Newfoundland and Labrador",
    "NS": "Nova Scotia",
    "NT": "Northwest Territories",
    "NU": "Nunavut",
    "ON": "Ontario",
    "PE": "Prince Edward Island",
    "QC": "Quebec",
    "SK": "Saskatchewan",
    "YT": "Yukon",
}


def _provincial_brackets(province: str) -> List[TaxBracket]:
    try:
        return PROVINCIAL_BRACKETS[province]
    except KeyError:
        raise ValueError(f"Unknown province: {province}") from None


def _bracket_rate(income: float, brackets: List[TaxBracket]) -> float:
    for bracket in brackets:
        if income >= bracket.min and (bracket.max is None or income <= bracket.max):
            return bracket.rate
    return 0.0


def _progressive_tax(income: float, brackets: List[TaxBracket]) -> float:
    tax = 0.0
    remaining = income
    for bracket in brackets:
        if remaining <= 0:
            break
        width = remaining if bracket.max is None else bracket.max - bracket.min
        taxable = min(remaining, width)
        tax += taxable * bracket.rate
        remaining -= taxable
    return tax


def calculate_marginal_tax_rate(income: float, province: str) -> float:
    """
    Combined federal and provincial marginal rate at the given income.

    Args:
        income: Annual taxable income
        province: Two-letter province code

    Returns:
        Marginal rate as a decimal

    Raises:
        ValueError: If the province code is unknown
    """
    provincial = _provincial_brackets(province)
    return _bracket_rate(income, FEDERAL_BRACKETS) + _bracket_rate(income, provincial)


def calculate_average_tax_rate(income: float, province: str) -> float:
    """Combined average rate, integrating each bracket progressively."""
    provincial = _provincial_brackets(province)
    if income <= 0:
        return 0.0
    total = _progressive_tax(income, FEDERAL_BRACKETS) + _progressive_tax(
        income, provincial
    )
    return total / income


def calculate_capital_gains_tax(
    capital_gain: float, other_income: float, province: str
) -> float:
    """
    Tax on a capital gain stacked on top of other income.

    Half the gain is included in income and taxed at the marginal rate that
    applies once it is added.
    """
    included = capital_gain * CAPITAL_GAINS_INCLUSION_RATE
    rate = calculate_marginal_tax_rate(other_income + included, province)
    return max(0.0, included * rate)


def calculate_eligible_dividend_tax(
    dividend: float, other_income: float, province: str
) -> float:
    """
    Tax on eligible Canadian dividends after gross-up and dividend tax credits.

    Args:
        dividend: Cash dividend received
        other_income: Other taxable income for the year
        province: Two-letter province code

    Returns:
        Net tax, never negative
    """
    if province == "QC":
        grossed_up = dividend * QUEBEC_ELIGIBLE_DIVIDEND_GROSS_UP
        tax = grossed_up * QUEBEC_TOP_RATE - grossed_up * QUEBEC_DIVIDEND_CREDIT
        return max(0.0, tax)

    grossed_up = dividend * ELIGIBLE_DIVIDEND_GROSS_UP
    rate = calculate_marginal_tax_rate(other_income + grossed_up, province)
    tax = grossed_up * rate
    tax -= grossed_up * FEDERAL_ELIGIBLE_DIVIDEND_CREDIT
    tax -= grossed_up * PROVINCIAL_DIVIDEND_CREDITS.get(province, 0.0)
    return max(0.0, tax)


def calculate_foreign_dividend_tax(
    dividend: float, other_income: float, province: str
) -> float:
    """Foreign dividends are taxed as ordinary income with no credit."""
    rate = calculate_marginal_tax_rate(other_income + dividend, province)
    return max(0.0, dividend * rate)


def calculate_non_eligible_dividend_tax(
    dividend: float, other_income: float, province: str
) -> float:
    """Non-eligible dividends are approximated at 90% of the ordinary-income tax."""
    return (
        calculate_foreign_dividend_tax(dividend, other_income, province)
        * NON_ELIGIBLE_DIVIDEND_FACTOR
    )


def get_province_name(province: str) -> str:
    try:
        return PROVINCE_NAMES[province]
    except KeyError:
        raise ValueError(f"Unknown province: {province}") from None


def get_all_provinces() -> List[Dict[str, str]]:
    """Province codes and names, in code order."""
    return [{"code": code, "name": name} for code, name in PROVINCE_NAMES.items()]


class TaxableIncomeSources(BaseModel):
    """Annual income by tax character for one taxpayer."""

    employment_income: float = Field(default=0.0, ge=0)
    rental_income: float = Field(default=0.0, ge=0)
    rrsp_withdrawals: float = Field(default=0.0, ge=0)
    interest_income: float = Field(default=0.0, ge=0)
    capital_gains: float = Field(default=0.0, ge=0, description="Realized gains")
    eligible_dividends: float = Field(default=0.0, ge=0)
    non_eligible_dividends: float = Field(default=0.0, ge=0)
    foreign_dividends: float = Field(default=0.0, ge=0)

    def total_taxable_income(self) -> float:
        """Taxable income after inclusion and gross-up."""
        return (
            self.employment_income
            + self.rental_income
            + self.rrsp_withdrawals
            + self.interest_income
            + self.capital_gains * CAPITAL_GAINS_INCLUSION_RATE
            + self.eligible_dividends * ELIGIBLE_DIVIDEND_GROSS_UP
            + self.non_eligible_dividends * NON_ELIGIBLE_DIVIDEND_GROSS_UP
            + self.foreign_dividends
        )


class TaxBreakdown(BaseModel):
    employment_tax: float = 0.0
    rental_tax: float = 0.0
    rrsp_tax: float = 0.0
    interest_tax: float = 0.0
    capital_gains_tax: float = 0.0
    dividend_tax: float = 0.0


class TaxCalculationResult(BaseModel):
    """Result of a stacked income-tax calculation."""

    total_tax: float = Field(..., ge=0)
    effective_marginal_rate: float = Field(..., ge=0)
    average_rate: float = Field(..., ge=0)
    total_taxable_income: float = Field(..., ge=0)
    breakdown: TaxBreakdown
    income_sources: TaxableIncomeSources


def _ordinary_income_tax(amount: float, existing_income: float, province: str) -> float:
    if amount <= 0:
        return 0.0
    return amount * calculate_marginal_tax_rate(existing_income + amount, province)


def calculate_income_tax(
    sources: TaxableIncomeSources, province: str
) -> TaxCalculationResult:
    """
    Tax each income source at the marginal rate reached by stacking it on the
    sources taxed before it.

    Ordinary income is stacked first (employment, rental, RRSP withdrawals,
    interest), then capital gains and dividends.

    Args:
        sources: Annual income by tax character
        province: Two-letter province code

    Returns:
        Total tax, rates and a per-source breakdown
    """
    _provincial_brackets(province)
    cumulative = 0.0

    employment_tax = _ordinary_income_tax(sources.employment_income, cumulative, province)
    cumulative += sources.employment_income
    rental_tax = _ordinary_income_tax(sources.rental_income, cumulative, province)
    cumulative += sources.rental_income
    rrsp_tax = _ordinary_income_tax(sources.rrsp_withdrawals, cumulative, province)
    cumulative += sources.rrsp_withdrawals
    interest_tax = _ordinary_income_tax(sources.interest_income, cumulative, province)
    cumulative += sources.interest_income

    capital_gains_tax = calculate_capital_gains_tax(
        sources.capital_gains, cumulative, province
    )
    cumulative += sources.capital_gains * CAPITAL_GAINS_INCLUSION_RATE

    eligible_tax = calculate_eligible_dividend_tax(
        sources.eligible_dividends, cumulative, province
    )
    gross_up = (
        QUEBEC_ELIGIBLE_DIVIDEND_GROSS_UP if province == "QC" else ELIGIBLE_DIVIDEND_GROSS_UP
    )
    cumulative += sources.eligible_dividends * gross_up

    non_eligible_tax = calculate_non_eligible_dividend_tax(
        sources.non_eligible_dividends, cumulative, province
    )
    cumulative += sources.non_eligible_dividends * NON_ELIGIBLE_DIVIDEND_GROSS_UP

    foreign_tax = calculate_foreign_dividend_tax(
        sources.foreign_dividends, cumulative, province
    )

    breakdown = TaxBreakdown(
        employment_tax=employment_tax,
        rental_tax=rental_tax,
        rrsp_tax=rrsp_tax,
        interest_tax=interest_tax,
        capital_gains_tax=capital_gains_tax,
        dividend_tax=eligible_tax + non_eligible_tax + foreign_tax,
    )
    total_tax = (
        employment_tax
        + rental_tax
        + rrsp_tax
        + interest_tax
        + capital_gains_tax
        + breakdown.dividend_tax
    )
    total_taxable = sources.total_taxable_income()

    return TaxCalculationResult(
        total_tax=total_tax,
        effective_marginal_rate=(
            calculate_marginal_tax_rate(total_taxable, province) if total_taxable > 0 else 0.0
        ),
        average_rate=total_tax / total_taxable if total_taxable > 0 else 0.0,
        total_taxable_income=total_taxable,
        breakdown=breakdown,
        income_sources=sources,
    )


def calculate_tax_by_owner(
    sources_by_owner: Dict[str, TaxableIncomeSources], province: str
) -> Dict[str, TaxCalculationResult]:
    """Run the stacked calculation separately for each owner."""
    return {
        owner: calculate_income_tax(sources, province)
        for owner, sources in sources_by_owner.items()
    }
