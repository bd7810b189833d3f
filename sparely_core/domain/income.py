"""Paycheck automation - save rate and saving-tax rate recommendations"""

from dataclasses import dataclass
from typing import List, Optional

from sparely_core.domain.models import PayInterval, UserProfile

_PAYCHECKS_PER_MONTH = {
    PayInterval.WEEKLY: 52.0 / 12.0,
    PayInterval.BIWEEKLY: 26.0 / 12.0,
    PayInterval.SEMI_MONTHLY: 2.0,
    PayInterval.MONTHLY: 1.0,
}


@dataclass(frozen=True)
class IncomeRecommendation:
    save_rate: float
    saving_tax_rate: float
    rationale: List[str]


def paychecks_per_month(interval: PayInterval, custom_days_between: Optional[int] = None) -> float:
    if interval == PayInterval.CUSTOM:
        return 30.0 / max(1, custom_days_between) if custom_days_between else 1.0
    return _PAYCHECKS_PER_MONTH[interval]


def saving_tax_rate_for(save_rate: float, residual_ratio: float, expense_coverage_ratio: float) -> float:
    """A quarter of the save rate, boosted by spare income, reduced by tight budgets; capped at 25%"""
    rate = save_rate * 0.25 + residual_ratio * 0.1 - expense_coverage_ratio * 0.05
    return min(0.25, max(0.0, rate))


def recommend_income_rates(
    pay_amount: float,
    interval: PayInterval,
    profile: UserProfile,
    monthly_expenses: float,
    default_save_rate: float = 0.15,
    custom_days_between: Optional[int] = None,
) -> IncomeRecommendation:
    """
    Suggest how much of a paycheck to save and how hard to skim expenses.

    The save rate starts from the profile's target, grows with the share of
    income left after expenses and is capped at what this paycheck can afford
    once per-pay expenses plus a buffer are covered.
    """
    if pay_amount <= 0.0:
        return IncomeRecommendation(
            save_rate=min(1.0, max(0.0, default_save_rate)),
            saving_tax_rate=min(1.0, max(0.0, profile.saving_tax_rate)),
            rationale=["Pay amount unavailable; keeping existing rates."],
        )

    per_month = paychecks_per_month(interval, custom_days_between)
    projected_income = max(pay_amount * per_month, profile.monthly_income)
    monthly_expenses = max(0.0, monthly_expenses)
    buffer_floor = monthly_expenses * 0.15 + 150.0
    residual = max(0.0, projected_income - monthly_expenses)

    coverage_ratio = min(1.0, monthly_expenses / projected_income) if projected_income > 0 else 0.0
    residual_ratio = min(1.0, residual / projected_income) if projected_income > 0 else 0.0

    save_rate = profile.target_savings_rate + residual_ratio * 0.35 - coverage_ratio * 0.1
    save_rate = min(0.65, max(0.05, save_rate))

    expense_per_pay = monthly_expenses / per_month
    max_affordable = 1.0 - (expense_per_pay + buffer_floor / per_month) / pay_amount
    save_rate = min(save_rate, min(0.8, max(0.1, max_affordable)))
    save_rate = min(0.6, max(0.05, save_rate))

    saving_tax_rate = saving_tax_rate_for(save_rate, residual_ratio, coverage_ratio)

    rationale = [
        f"Monthly income baseline: {projected_income:,.0f}",
        f"Average monthly expenses: {monthly_expenses:,.0f}",
        f"Residual buffer: {residual:,.0f}",
        f"Applied save rate: {save_rate * 100:.1f}%",
        f"Saving tax skim: {saving_tax_rate * 100:.1f}%",
    ]

    return IncomeRecommendation(save_rate=save_rate, saving_tax_rate=saving_tax_rate, rationale=rationale)
