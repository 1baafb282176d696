"""
Rate values with an explicit unit.

Rates enter the system from several places (account interest rates, scenario
assumptions, holding overrides). Each boundary declares the unit it accepts, so
a rate is never guessed from its magnitude.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RateUnit = Literal["decimal", "percent"]

# Annual magnitudes above this are flagged as unusual but still used
UNUSUAL_RATE_THRESHOLD = 0.50


class Rate(BaseModel):
    """An annual rate tagged with its unit."""

    model_config = ConfigDict(frozen=True)

    value: float = Field(..., description="Rate value in the given unit")
    unit: RateUnit = Field(default="decimal", description="Unit of the value")

    @classmethod
    def decimal(cls, value: float) -> "Rate":
        return cls(value=value, unit="decimal")

    @classmethod
    def percent(cls, value: float) -> "Rate":
        return cls(value=value, unit="percent")

    def as_decimal(self) -> float:
        """Return the rate as a decimal fraction (0.05 for 5%)."""
        if self.unit == "percent":
            return self.value / 100.0
        return self.value

    def as_percent(self) -> float:
        """Return the rate in percent (5.0 for 5%)."""
        return self.as_decimal() * 100.0

    def is_unusual(self) -> bool:
        return abs(self.as_decimal()) > UNUSUAL_RATE_THRESHOLD


def coerce_rate(value: Any, unit: RateUnit) -> Any:
    """Coerce a bare number into a Rate with the boundary's declared unit.

    Args:
        value: Raw field input (number, Rate, dict or None)
        unit: Unit to assume when the input is a bare number

    Returns:
        A Rate for numeric input, otherwise the input unchanged for pydantic
        to validate
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return Rate(value=float(value), unit=unit)
    return value
