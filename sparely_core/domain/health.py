"""Financial health scorer - five weighted sub-scores mapped onto fixed bands"""

import logging
from typing import Dict, List, Optional, Sequence

from sparely_core.domain.models import (
    BudgetHealthStatus,
    BudgetStatus,
    BudgetSummary,
    FinancialHealthScore,
    Goal,
    HealthLevel,
    ImprovementTip,
    Priority,
)

logger = logging.getLogger(__name__)

SAVINGS = "Savings Rate"
EMERGENCY = "Emergency Fund"
BUDGET = "Budget Adherence"
GOALS = "Goal Progress"
DEBT = "Debt Management"

WEIGHTS = {
    SAVINGS: 0.30,
    EMERGENCY: 0.25,
    BUDGET: 0.20,
    GOALS: 0.15,
    DEBT: 0.10,
}

# Neutral scores when there is nothing to measure
NEUTRAL_SAVINGS = 50
NEUTRAL_EMERGENCY = 50
NEUTRAL_BUDGET = 70
NEUTRAL_GOALS = 60

STRENGTH_THRESHOLD = 75
IMPROVEMENT_THRESHOLD = 70
IMPROVEMENT_TARGET = 80
MAX_STRENGTHS = 3

_STRENGTH_LABELS = {
    SAVINGS: "Excellent savings rate",
    EMERGENCY: "Strong emergency fund",
    BUDGET: "Great budget discipline",
    GOALS: "Solid goal progress",
    DEBT: "Good debt management",
}

_TIPS = {
    SAVINGS: (
        "Increase Your Savings Rate",
        "You set aside less than your target share of what you spend.",
        "Raise your emergency or investment percentage by 2-3 points",
    ),
    EMERGENCY: (
        "Build Your Emergency Fund",
        "Your emergency fund covers fewer months than recommended for your situation.",
        "Route this month's saving tax into the emergency vault",
    ),
    BUDGET: (
        "Tighten Your Budgets",
        "Some categories are running close to or over their limits.",
        "Review the over-budget categories and apply the suggested limits",
    ),
    GOALS: (
        "Move Your Goals Forward",
        "Your active goals are still far from their targets.",
        "Schedule an automatic deposit toward your top-priority goal",
    ),
    DEBT: (
        "Reduce Debt Payments",
        "Debt payments take a large share of your monthly income.",
        "Put any windfall toward the highest-interest balance first",
    ),
}


def _clamp_score(value: float) -> int:
    return max(0, min(100, int(value + 0.5)))


def savings_rate_score(total_saved: float, total_spent: float, target_rate: float) -> int:
    """Saved/spent ratio against the target rate; neutral with no spending"""
    if total_spent <= 0:
        return NEUTRAL_SAVINGS
    target = target_rate if target_rate > 0 else 0.2
    return _clamp_score(max(0.0, total_saved) / total_spent / target * 100)


def emergency_fund_score(balance: float, monthly_expenses: float, recommended_months: float) -> int:
    """Months of expenses covered against the recommended months"""
    if monthly_expenses <= 0 or recommended_months <= 0:
        return NEUTRAL_EMERGENCY
    months_covered = max(0.0, balance) / monthly_expenses
    return _clamp_score(months_covered / recommended_months * 100)


def _status_score(status: BudgetStatus) -> float:
    if status.status == BudgetHealthStatus.HEALTHY:
        return 100.0
    if status.status == BudgetHealthStatus.WARNING:
        return 85.0
    if status.status == BudgetHealthStatus.CRITICAL:
        return 70.0
    if status.limit <= 0:
        return 0.0
    return max(0.0, 50.0 - (status.percentage_used - 1.0) * 100)


def budget_adherence_score(summary: Optional[BudgetSummary]) -> int:
    """Average of per-category tier scores; neutral without budgets"""
    if summary is None or not summary.category_statuses:
        return NEUTRAL_BUDGET
    scores = [_status_score(s) for s in summary.category_statuses]
    return _clamp_score(sum(scores) / len(scores))


def goal_progress_score(goals: Sequence[Goal]) -> int:
    active = [g for g in goals if not g.archived]
    if not active:
        return NEUTRAL_GOALS
    return _clamp_score(sum(g.progress_percent for g in active) / len(active) * 100)


def debt_ratio_score(monthly_debt_payments: float, monthly_income: float, has_debts: bool) -> int:
    """100 minus 2.5 points per percent of income spent on debt"""
    if monthly_income <= 0:
        return 60 if has_debts or monthly_debt_payments > 0 else 100
    ratio = max(0.0, monthly_debt_payments) / monthly_income
    return _clamp_score(100 - ratio * 250)


def top_strengths(scores: Dict[str, int]) -> List[str]:
    ranked = sorted(
        (area for area, score in scores.items() if score >= STRENGTH_THRESHOLD),
        key=lambda area: (-scores[area], list(WEIGHTS).index(area)),
    )
    return [_STRENGTH_LABELS[area] for area in ranked[:MAX_STRENGTHS]]


def improvement_tips(scores: Dict[str, int]) -> List[ImprovementTip]:
    """Lowest sub-scores first, each with the points gained by reaching the target score"""
    weak = sorted(
        (area for area, score in scores.items() if score < IMPROVEMENT_THRESHOLD),
        key=lambda area: (scores[area], list(WEIGHTS).index(area)),
    )
    tips = []
    for area in weak:
        score = scores[area]
        if score < 40:
            priority = Priority.HIGH
        elif score < 60:
            priority = Priority.MEDIUM
        else:
            priority = Priority.LOW
        title, description, actionable = _TIPS[area]
        tips.append(
            ImprovementTip(
                area=area,
                title=title,
                description=description,
                priority=priority,
                potential_score_gain=max(1, int(WEIGHTS[area] * (IMPROVEMENT_TARGET - score) + 0.5)),
                actionable=actionable,
            )
        )
    return tips


def calculate_health_score(
    total_saved: float,
    total_spent: float,
    target_savings_rate: float,
    emergency_balance: float,
    monthly_expenses: float,
    recommended_emergency_months: float,
    budget_summary: Optional[BudgetSummary] = None,
    goals: Sequence[Goal] = (),
    monthly_debt_payments: float = 0.0,
    monthly_income: float = 0.0,
    has_debts: bool = False,
) -> FinancialHealthScore:
    """
    Composite 0-100 score from savings, emergency fund, budgets, goals and debt.

    Requirements:
    - Weights: savings 30%, emergency 25%, budget 20%, goals 15%, debt 10%
    - Missing inputs score neutral instead of failing; `has_sufficient_data`
      is False when there is no spending history to judge

    Example:
        >>> calculate_health_score(0, 0, 0.15, 0, 0, 6).has_sufficient_data
        False
    """
    scores = {
        SAVINGS: savings_rate_score(total_saved, total_spent, target_savings_rate),
        EMERGENCY: emergency_fund_score(emergency_balance, monthly_expenses, recommended_emergency_months),
        BUDGET: budget_adherence_score(budget_summary),
        GOALS: goal_progress_score(goals),
        DEBT: debt_ratio_score(monthly_debt_payments, monthly_income, has_debts),
    }
    overall = _clamp_score(sum(scores[area] * weight for area, weight in WEIGHTS.items()))
    has_data = total_spent > 0

    logger.debug("Health score computed", extra={"overall_score": overall, "has_sufficient_data": has_data})

    return FinancialHealthScore(
        overall_score=overall,
        savings_rate_score=scores[SAVINGS],
        emergency_fund_score=scores[EMERGENCY],
        budget_adherence_score=scores[BUDGET],
        goal_progress_score=scores[GOALS],
        debt_ratio_score=scores[DEBT],
        health_level=HealthLevel.from_score(overall),
        top_strengths=top_strengths(scores),
        improvement_areas=improvement_tips(scores),
        has_sufficient_data=has_data,
    )
