"""
Projection scenario models.

A scenario bundles the financial assumptions (returns, inflation, salary growth,
retirement, government benefits, RESP savings and contribution room) together
with the projection horizon and any life events. Every sub-config is a typed
model with its own defaults, so the simulator never probes nested dictionaries.
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .accounts import DividendType
from .rates import Rate, coerce_rate

Province = Literal[
    "AB", "BC", "MB", "NB", "NL", "NS", "NT", "NU", "ON", "PE", "QC", "SK", "YT"
]
WithdrawalStrategyName = Literal["rrsp_first", "tfsa_first", "balanced", "tax_optimized"]
LifeEventType = Literal[
    "income_change", "expense_change", "one_time_income", "one_time_expense"
]

# Share of the total return treated as growth when only a total rate is known
DEFAULT_GROWTH_SHARE = 0.70


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class PersonIncome(_FrozenModel):
    """Employment income for one household member."""

    annual_income: float = Field(default=0.0, ge=0, description="Gross annual income")
    salary_growth_rate: Optional[Rate] = Field(
        default=None, description="Annual raise for this person (decimal)"
    )

    @field_validator("salary_growth_rate", mode="before")
    @classmethod
    def coerce_decimal_rate(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")


class IncomeAssumptions(_FrozenModel):
    """Per-person income. When set, it replaces the transaction-derived average."""

    person1: Optional[PersonIncome] = Field(default=None, description="Person 1 income")
    person2: Optional[PersonIncome] = Field(default=None, description="Person 2 income")

    @property
    def people(self) -> List[PersonIncome]:
        return [p for p in (self.person1, self.person2) if p is not None]

    def resolve_monthly_income(
        self, fallback_monthly: float, years_elapsed: float, default_growth: float
    ) -> float:
        """
        Monthly pre-retirement income after salary growth.

        Args:
            fallback_monthly: Average monthly income derived from transactions
            years_elapsed: Years since the projection start
            default_growth: Scenario-wide salary growth (decimal)

        Returns:
            Grown monthly income
        """
        people = self.people
        if not people:
            return fallback_monthly * (1 + default_growth) ** years_elapsed

        total = 0.0
        for person in people:
            growth = (
                person.salary_growth_rate.as_decimal()
                if person.salary_growth_rate is not None
                else default_growth
            )
            total += person.annual_income / 12 * (1 + growth) ** years_elapsed
        return total


class CPPInputs(_FrozenModel):
    """Canada/Quebec Pension Plan inputs for one person."""

    contribution_years: Optional[float] = Field(
        default=None, description="Years of CPP contributions"
    )
    contribution_level: Optional[float] = Field(
        default=None, description="Average contributions as a fraction of YMPE (0-1)"
    )
    monthly_override: Optional[float] = Field(
        default=None, description="Known monthly benefit, used as-is when positive"
    )
    start_age: float = Field(default=65, description="Age benefits start (60-70)")


class OASInputs(_FrozenModel):
    """Old Age Security inputs for one person."""

    years_in_canada: Optional[float] = Field(
        default=None, description="Years of residence after age 18"
    )
    monthly_override: Optional[float] = Field(
        default=None, description="Known monthly base benefit before clawback"
    )
    start_age: float = Field(default=65, description="Age benefits start (65-70)")
    clawback_threshold: Optional[float] = Field(
        default=None, description="Annual income above which OAS is clawed back"
    )


class CPPAssumptions(_FrozenModel):
    person1: Optional[CPPInputs] = None
    person2: Optional[CPPInputs] = None

    @property
    def people(self) -> List[CPPInputs]:
        return [p for p in (self.person1, self.person2) if p is not None]


class OASAssumptions(_FrozenModel):
    person1: Optional[OASInputs] = None
    person2: Optional[OASInputs] = None

    @property
    def people(self) -> List[OASInputs]:
        return [p for p in (self.person1, self.person2) if p is not None]


class RetirementAssumptions(_FrozenModel):
    """Retirement timing, spending and drawdown assumptions."""

    target_retirement_age: Optional[float] = Field(
        default=None, description="Age at which employment income stops"
    )
    current_age: Optional[float] = Field(
        default=None,
        description="Age at the projection start; unknown means elapsed years only",
    )
    retirement_expense_ratio: float = Field(
        default=0.70, ge=0, description="Retirement spending as a share of today's"
    )
    withdrawal_rate: Rate = Field(
        default=Rate(value=0.04), description="Annual withdrawal rate (decimal)"
    )
    withdrawal_strategy: WithdrawalStrategyName = Field(
        default="tax_optimized", description="Order in which pools are drawn down"
    )
    healthcare_costs: float = Field(
        default=0.0, ge=0, description="Additional annual healthcare costs"
    )
    long_term_care_costs: float = Field(
        default=0.0, ge=0, description="Additional annual long-term care costs"
    )

    @field_validator("withdrawal_rate", mode="before")
    @classmethod
    def coerce_decimal_rate(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")

    def age_at(self, tick: int) -> float:
        """Household age after `tick` months."""
        return (self.current_age or 0.0) + tick / 12

    def is_retired_at(self, tick: int) -> bool:
        if self.target_retirement_age is None or self.target_retirement_age <= 0:
            return False
        return self.age_at(tick) >= self.target_retirement_age


class RESPAssumptions(_FrozenModel):
    """Registered Education Savings Plan assumptions."""

    annual_contribution: float = Field(
        default=0.0, ge=0, description="Annual family contribution"
    )
    cesg_match: float = Field(
        default=0.20, ge=0, le=1, description="Canada Education Savings Grant match"
    )
    expected_education_start: Optional[int] = Field(
        default=None, description="Calendar year post-secondary education starts"
    )
    education_costs: float = Field(
        default=0.0, ge=0, description="Annual education costs while in school"
    )

    def is_in_school(self, year: int) -> bool:
        """Education runs for four years from the start year."""
        if self.expected_education_start is None:
            return False
        start = self.expected_education_start
        return start <= year < start + 4


class PersonRooms(_FrozenModel):
    rrsp: float = Field(default=0.0, ge=0, description="Unused RRSP room")
    tfsa: float = Field(default=0.0, ge=0, description="Unused TFSA room")


class ContributionRooms(_FrozenModel):
    """Registered contribution room available at the projection start."""

    person1: PersonRooms = Field(default_factory=PersonRooms)
    person2: PersonRooms = Field(default_factory=PersonRooms)
    resp_total: float = Field(default=0.0, ge=0, description="Remaining RESP lifetime room")
    cesg_eligible: bool = Field(default=True, description="Whether CESG is still payable")

    @property
    def rrsp_total(self) -> float:
        return self.person1.rrsp + self.person2.rrsp

    @property
    def tfsa_total(self) -> float:
        return self.person1.tfsa + self.person2.tfsa


class AccountRateOverride(_FrozenModel):
    """Scenario-specific rates for a single account."""

    growth_rate: Optional[Rate] = Field(default=None, description="Annual growth (decimal)")
    dividend_yield: Optional[Rate] = Field(
        default=None, description="Annual dividend yield (decimal)"
    )
    dividend_type: Optional[DividendType] = Field(
        default=None, description="Tax character of the dividends"
    )

    @field_validator("growth_rate", "dividend_yield", mode="before")
    @classmethod
    def coerce_decimal_rates(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")


class ProjectionAssumptions(_FrozenModel):
    """All financial assumptions driving a projection."""

    investment_return_rate: Rate = Field(
        default=Rate(value=0.06), description="Total annual return (decimal)"
    )
    investment_growth_rate: Optional[Rate] = Field(
        default=None, description="Global annual growth rate (decimal)"
    )
    investment_dividend_yield: Optional[Rate] = Field(
        default=None, description="Global annual dividend yield (decimal)"
    )
    inflation_rate: Rate = Field(
        default=Rate(value=0.02), description="Annual inflation (decimal)"
    )
    salary_growth_rate: Rate = Field(
        default=Rate(value=0.03), description="Annual salary growth (decimal)"
    )
    province: Province = Field(default="ON", description="Province of residence")
    income: IncomeAssumptions = Field(default_factory=IncomeAssumptions)
    retirement: Optional[RetirementAssumptions] = Field(default=None)
    cpp: CPPAssumptions = Field(default_factory=CPPAssumptions)
    oas: OASAssumptions = Field(default_factory=OASAssumptions)
    resp: Optional[RESPAssumptions] = Field(default=None)
    contribution_rooms: Optional[ContributionRooms] = Field(default=None)
    account_overrides: Dict[str, AccountRateOverride] = Field(
        default_factory=dict, description="Per-account rate overrides by account id"
    )

    @field_validator(
        "investment_return_rate",
        "investment_growth_rate",
        "investment_dividend_yield",
        "inflation_rate",
        "salary_growth_rate",
        mode="before",
    )
    @classmethod
    def coerce_decimal_rates(cls, v: Any) -> Any:
        return coerce_rate(v, "decimal")

    def resolve_global_growth_rate(self) -> float:
        """Global growth rate, or the growth share of the total return."""
        if self.investment_growth_rate is not None:
            return self.investment_growth_rate.as_decimal()
        return self.investment_return_rate.as_decimal() * DEFAULT_GROWTH_SHARE

    def resolve_global_dividend_yield(self) -> float:
        """Global dividend yield, or the dividend share of the total return."""
        if self.investment_dividend_yield is not None:
            return self.investment_dividend_yield.as_decimal()
        return self.investment_return_rate.as_decimal() * (1 - DEFAULT_GROWTH_SHARE)


class ProjectionConfig(_FrozenModel):
    """Projection horizon."""

    projection_years: int = Field(default=30, description="Years to project (1-60)")
    start_date: date = Field(default_factory=date.today, description="First projected month")


class LifeEvent(_FrozenModel):
    """A dated change to the household's savings."""

    id: str = Field(..., description="Event identifier")
    name: str = Field(default="", description="Display name")
    type: LifeEventType = Field(..., description="Kind of event")
    amount: float = Field(..., description="Monthly change or one-time amount")
    year: int = Field(..., description="Calendar year the event triggers")
    month: int = Field(default=1, ge=1, le=12, description="Calendar month it triggers")
    recurring: bool = Field(
        default=False, description="Change events repeat every month after triggering"
    )

    def applies_at(self, year: int, month: int) -> bool:
        if (year, month) == (self.year, self.month):
            return True
        is_change = self.type in ("income_change", "expense_change")
        return is_change and self.recurring and (year, month) > (self.year, self.month)

    def savings_delta(self) -> float:
        """Signed effect on the month's savings."""
        if self.type in ("income_change", "one_time_income"):
            return self.amount
        return -abs(self.amount)


class ProjectionScenario(_FrozenModel):
    """A named set of assumptions, horizon and life events."""

    id: str = Field(..., description="Scenario identifier")
    name: str = Field(default="", description="Display name")
    assumptions: ProjectionAssumptions = Field(default_factory=ProjectionAssumptions)
    config: ProjectionConfig = Field(default_factory=ProjectionConfig)
    life_events: List[LifeEvent] = Field(default_factory=list)


def create_default_scenario(
    scenario_id: str = "base-case", province: Province = "ON"
) -> ProjectionScenario:
    """A ten-year base case with a 6% return split 70/30 into growth and dividends."""
    return ProjectionScenario(
        id=scenario_id,
        name="Base Case",
        assumptions=ProjectionAssumptions(
            investment_return_rate=0.06,
            investment_growth_rate=0.042,
            investment_dividend_yield=0.018,
            inflation_rate=0.02,
            salary_growth_rate=0.03,
            province=province,
        ),
        config=ProjectionConfig(projection_years=10),
    )
