"""
Debt amortization calculations.

Level-payment formula and single-month amortization steps for mortgages,
loans and credit cards, plus a payoff schedule with optional monthly
prepayments used by the mortgage-versus-invest comparison.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

# Balances at or below this are treated as paid off
PAID_OFF_THRESHOLD = 0.01


class AmortizationStep(BaseModel):
    """Breakdown of a single month's payment."""

    model_config = ConfigDict(frozen=True)

    beginning_balance: float = Field(..., ge=0, description="Balance before payment")
    interest_paid: float = Field(..., ge=0, description="Interest portion of payment")
    principal_paid: float = Field(..., ge=0, description="Scheduled principal portion")
    extra_payment: float = Field(default=0.0, ge=0, description="Prepaid principal")
    ending_balance: float = Field(..., ge=0, description="Balance after payment")

    @property
    def payment(self) -> float:
        return self.interest_paid + self.principal_paid + self.extra_payment


class PayoffSchedule(BaseModel):
    """Month-by-month payoff of a debt."""

    steps: List[AmortizationStep] = Field(default_factory=list)
    paid_off: bool = Field(..., description="Whether the balance reached zero")

    @property
    def months(self) -> int:
        return len(self.steps)

    @property
    def total_interest(self) -> float:
        return sum(step.interest_paid for step in self.steps)

    @property
    def ending_balance(self) -> float:
        return self.steps[-1].ending_balance if self.steps else 0.0


class DebtCalculator:
    """Calculator for debt payments and amortization."""

    @staticmethod
    def calculate_monthly_payment(
        principal: float, annual_rate: float, term_months: int
    ) -> float:
        """
        Calculate the level monthly payment using the standard formula.

        Args:
            principal: Outstanding balance
            annual_rate: Annual interest rate (as decimal, e.g., 0.055 for 5.5%)
            term_months: Remaining term in months

        Returns:
            Monthly payment amount
        """
        if principal <= 0 or term_months <= 0:
            return 0.0
        if annual_rate <= 0:
            return round(principal / term_months, 2)

        monthly_rate = annual_rate / 12
        payment = (
            principal
            * (monthly_rate * (1 + monthly_rate) ** term_months)
            / ((1 + monthly_rate) ** term_months - 1)
        )

        return round(payment, 2)

    @staticmethod
    def calculate_interest_payment(balance: float, annual_rate: float) -> float:
        """Interest accrued on the balance for one month (annual_rate as decimal)."""
        return balance * annual_rate / 12

    @staticmethod
    def amortize_month(
        balance: float, annual_rate: float, payment: float, extra_payment: float = 0.0
    ) -> AmortizationStep:
        """
        Apply one month's payment to a debt.

        Interest accrues first; the rest of the payment reduces principal. The
        principal portion is never negative and never exceeds the balance, and
        any extra payment is capped at what remains after it.

        Args:
            balance: Balance at the start of the month
            annual_rate: Annual interest rate (as decimal)
            payment: Scheduled payment
            extra_payment: Additional principal prepayment

        Returns:
            The month's breakdown
        """
        balance = max(0.0, balance)
        interest = DebtCalculator.calculate_interest_payment(balance, annual_rate)
        interest_paid = min(interest, payment)
        principal = min(max(payment - interest, 0.0), balance)
        prepayment = min(max(extra_payment, 0.0), balance - principal)
        ending = max(0.0, balance - principal - prepayment)

        return AmortizationStep(
            beginning_balance=balance,
            interest_paid=interest_paid,
            principal_paid=principal,
            extra_payment=prepayment,
            ending_balance=ending,
        )

    @staticmethod
    def generate_payoff_schedule(
        balance: float,
        annual_rate: float,
        payment: float,
        extra_payment: float = 0.0,
        max_months: int = 600,
    ) -> PayoffSchedule:
        """
        Amortize until the balance is paid off or `max_months` have elapsed.

        Args:
            balance: Starting balance
            annual_rate: Annual interest rate (as decimal)
            payment: Scheduled monthly payment
            extra_payment: Monthly prepayment on top of the scheduled payment
            max_months: Upper bound on the number of months simulated

        Returns:
            The payoff schedule
        """
        steps: List[AmortizationStep] = []
        current = balance
        while current > PAID_OFF_THRESHOLD and len(steps) < max_months:
            step = DebtCalculator.amortize_month(current, annual_rate, payment, extra_payment)
            steps.append(step)
            current = step.ending_balance

        return PayoffSchedule(steps=steps, paid_off=current <= PAID_OFF_THRESHOLD)

    @staticmethod
    def amortize_months(
        balance: float, annual_rate: float, payment: float, months: int
    ) -> float:
        """Balance remaining after `months` ordinary payments."""
        current = balance
        for _ in range(months):
            if current <= PAID_OFF_THRESHOLD:
                break
            current = DebtCalculator.amortize_month(current, annual_rate, payment).ending_balance
        return current
