"""Expense allocation into Emergency / Investment / Fun buckets"""

import logging
from typing import Optional

from sparely_core.domain.models import (
    AllocationBreakdown,
    Expense,
    ExpenseInput,
    RiskLevel,
    SavingsPercentages,
)
from sparely_core.utils.money import allocate_cents, scale_cents, to_cents

logger = logging.getLogger(__name__)


def taxable_base(amount: float, tax_rate: float, includes_tax: bool) -> float:
    """
    Amount the savings split is computed on.

    A tax-inclusive amount is reduced to its pre-tax base: amount / (1 + rate).
    Anything else passes through untouched.
    """
    if not includes_tax or tax_rate <= 0.0:
        return amount
    return amount / (1.0 + tax_rate)


def calculate_allocation(amount: float, percentages: SavingsPercentages) -> AllocationBreakdown:
    """
    Split one expense amount into bucket amounts.

    Requirements:
    - Total set aside = amount * (emergency + invest + fun), half-up to the cent
    - The three buckets share that total by the largest-remainder method, so
      they always add up to it exactly (each within one cent of its own
      independently rounded value)
    - safe = investment * safe_investment_split (half-up), high-risk takes the
      rest so safe + high-risk == investment exactly

    Example:
        $10.01 at 0.15/0.05/0.05 -> 250 cents set aside -> 150 / 50 / 50
    """
    amount_cents = to_cents(amount)
    if amount_cents <= 0:
        return AllocationBreakdown(0, 0, 0, 0, 0)

    set_aside_cents = scale_cents(amount_cents, percentages.total)
    emergency, investment, fun = allocate_cents(
        set_aside_cents,
        [percentages.emergency, percentages.invest, percentages.fun],
    )

    safe = scale_cents(investment, percentages.safe_investment_split)
    high_risk = investment - safe

    return AllocationBreakdown(
        emergency_cents=emergency,
        investment_cents=investment,
        fun_cents=fun,
        safe_investment_cents=safe,
        high_risk_investment_cents=high_risk,
    )


def create_expense(
    expense_input: ExpenseInput,
    percentages: SavingsPercentages,
    risk_level: RiskLevel,
    auto_recommended: bool,
    tax_rate: Optional[float] = None,
    expense_id: Optional[int] = None,
) -> Expense:
    """
    Build the Expense record with its allocation attached.

    tax_rate is only consulted when the input is tax-inclusive; pass None to
    allocate on the raw amount.
    """
    base = expense_input.amount
    if tax_rate is not None:
        base = taxable_base(expense_input.amount, tax_rate, expense_input.includes_tax)

    allocation = calculate_allocation(base, percentages)
    logger.debug(
        "Allocated expense",
        extra={
            "category": expense_input.category.value,
            "amount_cents": to_cents(expense_input.amount),
            "set_aside_cents": allocation.total_set_aside_cents,
        },
    )

    return Expense(
        id=expense_id,
        description=expense_input.description,
        amount=expense_input.amount,
        category=expense_input.category,
        date=expense_input.date,
        includes_tax=expense_input.includes_tax,
        allocation=allocation,
        applied_percentages=percentages,
        auto_recommended=auto_recommended,
        risk_level_used=risk_level,
    )
