"""
Retirement withdrawal sourcing.

Decides how much of a month's withdrawal comes from the RRSP pool (RRSP and
DCPP accounts) and how much from the TFSA pool. `tax_optimized` currently
draws exactly like `balanced`; there is no tax-aware optimizer behind it.
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from .scenario import WithdrawalStrategyName

RRSP_POOL_TYPES = frozenset({"rrsp", "dcpp"})
TFSA_POOL_TYPES = frozenset({"tfsa"})


class WithdrawalPlan(BaseModel):
    """Amounts to debit from each pool this month."""

    model_config = ConfigDict(frozen=True)

    from_rrsp: float = Field(default=0.0, ge=0)
    from_tfsa: float = Field(default=0.0, ge=0)

    @property
    def total(self) -> float:
        return self.from_rrsp + self.from_tfsa


def plan_withdrawal(
    target: float, rrsp_pool: float, tfsa_pool: float, strategy: WithdrawalStrategyName
) -> WithdrawalPlan:
    """
    Split a withdrawal target between the RRSP and TFSA pools.

    Args:
        target: Desired monthly withdrawal
        rrsp_pool: Combined RRSP and DCPP balance
        tfsa_pool: Combined TFSA balance
        strategy: Which pool to draw first

    Returns:
        Per-pool amounts; never more than either pool holds
    """
    rrsp_pool = max(0.0, rrsp_pool)
    tfsa_pool = max(0.0, tfsa_pool)
    if target <= 0:
        return WithdrawalPlan()

    if strategy == "rrsp_first":
        from_rrsp = min(target, rrsp_pool)
        from_tfsa = min(target - from_rrsp, tfsa_pool)
        return WithdrawalPlan(from_rrsp=from_rrsp, from_tfsa=from_tfsa)

    if strategy == "tfsa_first":
        from_tfsa = min(target, tfsa_pool)
        from_rrsp = min(target - from_tfsa, rrsp_pool)
        return WithdrawalPlan(from_rrsp=from_rrsp, from_tfsa=from_tfsa)

    # balanced and tax_optimized
    total_pool = rrsp_pool + tfsa_pool
    if total_pool <= 0:
        return WithdrawalPlan()
    amount = min(target, total_pool)
    return WithdrawalPlan(
        from_rrsp=amount * rrsp_pool / total_pool,
        from_tfsa=amount * tfsa_pool / total_pool,
    )


def debit_proportionally(balances: Dict[str, float], amount: float) -> float:
    """
    Remove `amount` from the given balances in proportion to their size.

    The dict is updated in place. Returns the amount actually debited, which is
    capped at the combined positive balance.
    """
    available = sum(b for b in balances.values() if b > 0)
    if amount <= 0 or available <= 0:
        return 0.0
    amount = min(amount, available)
    for account_id, balance in balances.items():
        if balance > 0:
            balances[account_id] = balance - amount * balance / available
    return amount
