"""Percentage recommendation engine - profile to Emergency/Invest/Fun split"""

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional

from sparely_core.domain.country import country_or_default
from sparely_core.domain.emergency_fund import emergency_coverage as compute_coverage
from sparely_core.domain.models import (
    Expense,
    RecommendationResult,
    RiskLevel,
    SavingsCategory,
    SavingsPercentages,
    SavingsPlan,
    SavingsPlanEntry,
    UserProfile,
)
from sparely_core.utils.money import round_currency

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 30

_BASE_EMERGENCY = {
    RiskLevel.CONSERVATIVE: 0.22,
    RiskLevel.BALANCED: 0.18,
    RiskLevel.AGGRESSIVE: 0.14,
}

_BASE_INVEST = {
    RiskLevel.CONSERVATIVE: 0.06,
    RiskLevel.BALANCED: 0.09,
    RiskLevel.AGGRESSIVE: 0.13,
}

# Share of the invest bucket that goes to safe vehicles
_BASE_SAFE_SPLIT = {
    RiskLevel.CONSERVATIVE: 0.80,
    RiskLevel.BALANCED: 0.65,
    RiskLevel.AGGRESSIVE: 0.50,
}


def recent_expenses(expenses: Iterable[Expense], today: date) -> List[Expense]:
    window_start = today - timedelta(days=RECENT_WINDOW_DAYS)
    return [e for e in expenses if window_start <= e.date <= today]


def compute_safe_split(profile: UserProfile) -> float:
    """Risk-level base, nudged towards safety for debt holders and older users"""
    split = _BASE_SAFE_SPLIT[profile.risk_level]
    if profile.has_debts:
        split += 0.05
    if profile.age > 55:
        split += 0.05
    return min(0.95, max(0.30, split))


def compute_auto_percentages(
    profile: UserProfile,
    coverage: float,
    spend_to_income: float,
) -> SavingsPercentages:
    """
    Naive (uncapped) split for the profile.

    Emergency widens with debts, youth (< 25) and emergency coverage below 1.0;
    once coverage reaches the target, share shifts from Emergency to Invest.
    Fun fills up to the country's anchor total with a 5% floor.
    """
    emergency = _BASE_EMERGENCY[profile.risk_level]
    invest = _BASE_INVEST[profile.risk_level]

    if profile.has_debts:
        emergency += 0.03
    if profile.age < 25:
        emergency += 0.02
    elif profile.age > 55:
        emergency += 0.02
        invest -= 0.02

    if coverage < 1.0:
        emergency += 0.08 * (1.0 - max(0.0, coverage))
    else:
        shift = min(0.08, 0.03 + 0.05 * (coverage - 1.0))
        emergency -= shift
        invest += shift

    if spend_to_income > 0.9:
        emergency += 0.02
    elif spend_to_income < 0.6:
        invest += 0.01

    emergency = min(0.35, max(0.05, emergency))
    invest = min(0.22, max(0.03, invest))

    anchor_total = 0.30 + country_or_default(profile.country_code).typical_savings_rate * 0.25
    fun = max(0.05, anchor_total - (emergency + invest))

    return SavingsPercentages.clamped(emergency, invest, fun, compute_safe_split(profile))


def build_savings_plan(
    percentages: SavingsPercentages,
    monthly_income: float,
    recent: List[Expense],
) -> SavingsPlan:
    """Monthly bucket targets against what the last 30 days already set aside"""
    emergency_reserved = sum(e.allocation.emergency_amount for e in recent)
    investment_reserved = sum(e.allocation.investment_amount for e in recent)
    fun_reserved = sum(e.allocation.fun_amount for e in recent)

    income = max(0.0, monthly_income)
    emergency_target = round_currency(income * percentages.emergency)
    investment_target = round_currency(income * percentages.invest)
    fun_target = round_currency(income * percentages.fun)
    safe_target = round_currency(investment_target * percentages.safe_investment_split)

    return SavingsPlan(
        entries=[
            SavingsPlanEntry(SavingsCategory.EMERGENCY, emergency_target, round_currency(emergency_reserved)),
            SavingsPlanEntry(
                SavingsCategory.INVESTMENT,
                investment_target,
                round_currency(investment_reserved),
                recommended_safe_amount=safe_target,
                recommended_high_risk_amount=round_currency(investment_target - safe_target),
            ),
            SavingsPlanEntry(SavingsCategory.FUN, fun_target, round_currency(fun_reserved)),
        ]
    )


def _rationale(
    percentages: SavingsPercentages,
    spend_to_income: float,
    coverage: float,
    plan: SavingsPlan,
    auto: bool,
    auto_adjusted: bool,
) -> str:
    parts = [f"Spending is {spend_to_income * 100:.0f}% of income."]
    if auto:
        parts.append(
            f"Emergency fund covers {min(coverage, 9.99) * 100:.0f}% of its target, so focus on "
            f"{percentages.emergency * 100:.0f}% emergency, {percentages.invest * 100:.0f}% investing "
            f"and {percentages.fun * 100:.0f}% fun."
        )
    else:
        parts.append("Using your custom mix to guide this month's targets.")
    if auto_adjusted:
        parts.append("The mix was scaled down to stay within your savings ceiling.")
    safe = percentages.safe_investment_split
    parts.append(
        f"Investment mix aims for {safe * 100:.0f}% in broad ETFs/bonds "
        f"and {(1 - safe) * 100:.0f}% in higher-volatility assets."
    )
    if plan.total_remaining > 0.0:
        parts.append(f"Set aside roughly {plan.total_remaining:.2f} more this month to stay on track.")
    return " ".join(parts)


def recommend_percentages(
    profile: UserProfile,
    expenses: Iterable[Expense] = (),
    current: Optional[SavingsPercentages] = None,
    emergency_coverage: Optional[float] = None,
    budget_cap: float = 0.45,
    today: Optional[date] = None,
) -> RecommendationResult:
    """
    Main entry point: recommended percentages plus plan and rationale.

    When auto recommendations are off, the user's own mix (`current`, else the
    profile default) is used and only capped. `auto_adjusted` is True whenever
    the computed split exceeded `budget_cap` and had to be rescaled.
    """
    today = today or date.today()
    recent = recent_expenses(expenses, today)
    monthly_spending = sum(e.amount for e in recent)
    income = max(profile.monthly_income, 1.0)
    spend_to_income = min(1.5, max(0.0, monthly_spending / income))

    if emergency_coverage is None:
        emergency_coverage = compute_coverage(profile, monthly_spending)

    auto = profile.auto_recommendations_enabled
    if auto:
        naive = compute_auto_percentages(profile, emergency_coverage, spend_to_income)
    else:
        naive = current or profile.default_percentages

    recommended = naive.adjust_within_budget(budget_cap)
    auto_adjusted = naive.total > budget_cap

    plan = build_savings_plan(recommended, profile.monthly_income, recent)
    safe_share = recommended.safe_investment_split

    logger.debug(
        "Recommendation computed",
        extra={
            "risk_level": profile.risk_level.value,
            "coverage": round(emergency_coverage, 3),
            "total_fraction": round(recommended.total, 4),
            "auto_adjusted": auto_adjusted,
        },
    )

    return RecommendationResult(
        recommended_percentages=recommended,
        safe_investment_ratio=safe_share,
        high_risk_investment_ratio=1.0 - safe_share,
        rationale=_rationale(recommended, spend_to_income, emergency_coverage, plan, auto, auto_adjusted),
        savings_plan=plan,
        auto_adjusted=auto_adjusted,
    )
