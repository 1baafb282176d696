"""
Calendar and growth helpers for monthly projections.

This module maps projection ticks to calendar dates, compounds values over
elapsed years and formats currency and percentage values for display.
"""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field


class ProjectionCalendar(BaseModel):
    """Maps month ticks to calendar dates from a fixed start date."""

    model_config = ConfigDict(frozen=True)

    start_date: date = Field(..., description="Date of tick 0")
    months: int = Field(..., ge=1, description="Number of ticks")

    def date_at(self, tick: int) -> date:
        """Start date plus `tick` months, clamped to the end of short months."""
        return self.start_date + relativedelta(months=tick)

    def years_elapsed(self, tick: int) -> float:
        return tick / 12

    def ticks(self) -> range:
        return range(self.months)


def compound(value: float, annual_rate: float, years: float) -> float:
    """Grow a value at an annual rate over (possibly fractional) years."""
    return value * (1 + annual_rate) ** years


class CurrencyFormatter(BaseModel):
    """Formats currency and percentage values for display."""

    currency_symbol: str = Field(default="$", description="Currency symbol")
    decimal_places: int = Field(
        default=0, ge=0, le=10, description="Number of decimal places"
    )

    def format_currency(self, amount: float, show_symbol: Optional[bool] = True) -> str:
        """
        Format a currency amount for display.

        Args:
            amount: The amount to format
            show_symbol: Whether to prefix the currency symbol

        Returns:
            Formatted currency string
        """
        rounded = round(amount, self.decimal_places)
        sign = "-" if rounded < 0 else ""
        magnitude = abs(rounded)

        if self.decimal_places > 0:
            formatted = f"{magnitude:,.{self.decimal_places}f}"
        else:
            formatted = f"{int(magnitude):,}"

        if show_symbol:
            return f"{sign}{self.currency_symbol}{formatted}"
        return f"{sign}{formatted}"

    def format_percentage(self, value: float, decimal_places: int = 1) -> str:
        """Format a decimal fraction as a percentage (0.05 -> '5.0%')."""
        return f"{value * 100:.{decimal_places}f}%"
