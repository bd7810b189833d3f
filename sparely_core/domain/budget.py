"""
Budget advisor - category status, monthly summary, limit suggestions and overrun prompts.

Health tiers are lower-inclusive and compared in integer cents:
    HEALTHY      used < 70%
    WARNING      70% <= used < 90%
    CRITICAL     90% <= used <= 100%
    OVER_BUDGET  used > 100%
"""

import logging
import statistics
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from sparely_core.domain.models import (
    BudgetHealthStatus,
    BudgetOverrunPrompt,
    BudgetPromptReason,
    BudgetStatus,
    BudgetSuggestion,
    BudgetSummary,
    CategoryBudget,
    EducationStatus,
    EmploymentStatus,
    Expense,
    ExpenseCategory,
    SuggestionConfidence,
    UserProfile,
)
from sparely_core.utils.date_utils import month_start, trailing_months
from sparely_core.utils.money import from_cents, round_currency, to_cents

logger = logging.getLogger(__name__)

STABLE_VARIATION = 0.35  # coefficient of variation
AGREEMENT_TOLERANCE = 0.25
RELIABLE_HISTORY_MONTHS = 3

ONE_OFF_OVERSPEND_SHARE = 0.6
ONE_OFF_LIMIT_SHARE = 0.45

BASE_CATEGORY_SHARES = {
    ExpenseCategory.GROCERIES: 0.18,
    ExpenseCategory.DINING: 0.08,
    ExpenseCategory.TRANSPORTATION: 0.12,
    ExpenseCategory.ENTERTAINMENT: 0.08,
    ExpenseCategory.UTILITIES: 0.17,
    ExpenseCategory.HEALTH: 0.08,
    ExpenseCategory.EDUCATION: 0.07,
    ExpenseCategory.SHOPPING: 0.10,
    ExpenseCategory.TRAVEL: 0.07,
    ExpenseCategory.OTHER: 0.05,
}

_EMPLOYMENT_SHARE_BOOSTS = {
    EmploymentStatus.STUDENT: {
        ExpenseCategory.EDUCATION: 1.4,
        ExpenseCategory.DINING: 0.9,
        ExpenseCategory.TRAVEL: 0.8,
    },
    EmploymentStatus.SELF_EMPLOYED: {
        ExpenseCategory.UTILITIES: 1.1,
        ExpenseCategory.TRANSPORTATION: 1.1,
        ExpenseCategory.TRAVEL: 0.85,
    },
    EmploymentStatus.PART_TIME: {
        ExpenseCategory.GROCERIES: 1.05,
        ExpenseCategory.ENTERTAINMENT: 0.9,
        ExpenseCategory.TRANSPORTATION: 1.05,
    },
    EmploymentStatus.UNEMPLOYED: {
        ExpenseCategory.GROCERIES: 1.1,
        ExpenseCategory.UTILITIES: 1.1,
        ExpenseCategory.SHOPPING: 0.8,
        ExpenseCategory.TRAVEL: 0.75,
    },
    EmploymentStatus.RETIRED: {
        ExpenseCategory.HEALTH: 1.2,
        ExpenseCategory.TRAVEL: 1.1,
        ExpenseCategory.TRANSPORTATION: 0.85,
    },
}

_EDUCATION_SHARE_BOOSTS = {
    EducationStatus.HIGH_SCHOOL: {ExpenseCategory.EDUCATION: 1.15},
    EducationStatus.UNIVERSITY: {ExpenseCategory.EDUCATION: 1.35},
}

_EMPLOYMENT_FACTOR = {
    EmploymentStatus.SELF_EMPLOYED: 1.12,
    EmploymentStatus.UNEMPLOYED: 1.05,
    EmploymentStatus.PART_TIME: 1.03,
    EmploymentStatus.STUDENT: 0.98,
    EmploymentStatus.RETIRED: 1.02,
}


def classify_usage(spent: float, limit: float) -> BudgetHealthStatus:
    """Tier for spent vs limit; with no limit any spending is already over budget"""
    spent_cents = to_cents(max(0.0, spent))
    limit_cents = to_cents(max(0.0, limit))
    if limit_cents <= 0:
        return BudgetHealthStatus.OVER_BUDGET if spent_cents > 0 else BudgetHealthStatus.HEALTHY
    if spent_cents > limit_cents:
        return BudgetHealthStatus.OVER_BUDGET
    if spent_cents * 10 >= limit_cents * 9:
        return BudgetHealthStatus.CRITICAL
    if spent_cents * 10 >= limit_cents * 7:
        return BudgetHealthStatus.WARNING
    return BudgetHealthStatus.HEALTHY


def _month_expenses(expenses: Iterable[Expense], month: date) -> List[Expense]:
    first = month_start(month)
    return [e for e in expenses if month_start(e.date) == first]


def _spent_cents(expenses: Iterable[Expense]) -> int:
    return sum(to_cents(e.amount) for e in expenses)


def calculate_budget_status(budget: CategoryBudget, expenses: Iterable[Expense], month: Optional[date] = None) -> BudgetStatus:
    """Spending against one category budget for the month; a zero limit reads as 0% used"""
    month = month_start(month or budget.month)
    spent_cents = _spent_cents(e for e in _month_expenses(expenses, month) if e.category == budget.category)
    limit_cents = to_cents(max(0.0, budget.monthly_limit))
    percentage_used = min(2.0, spent_cents / limit_cents) if limit_cents > 0 else 0.0

    return BudgetStatus(
        category=budget.category,
        limit=from_cents(limit_cents),
        spent=from_cents(spent_cents),
        remaining=from_cents(max(0, limit_cents - spent_cents)),
        percentage_used=percentage_used,
        status=classify_usage(from_cents(spent_cents), from_cents(limit_cents)),
        month=month,
    )


def overall_health(statuses: Sequence[BudgetStatus]) -> BudgetHealthStatus:
    tiers = [s.status for s in statuses]
    if BudgetHealthStatus.OVER_BUDGET in tiers:
        return BudgetHealthStatus.OVER_BUDGET
    if tiers.count(BudgetHealthStatus.CRITICAL) >= 2:
        return BudgetHealthStatus.CRITICAL
    if BudgetHealthStatus.CRITICAL in tiers or BudgetHealthStatus.WARNING in tiers:
        return BudgetHealthStatus.WARNING
    return BudgetHealthStatus.HEALTHY


def generate_budget_summary(
    budgets: Iterable[CategoryBudget],
    expenses: Iterable[Expense],
    month: date,
) -> BudgetSummary:
    """Statuses of the month's active budgets plus totals; no budgets gives an empty HEALTHY summary"""
    month = month_start(month)
    expenses = list(expenses)
    statuses = [
        calculate_budget_status(b, expenses, month)
        for b in budgets
        if b.is_active and month_start(b.month) == month
    ]
    total_budget_cents = sum(to_cents(s.limit) for s in statuses)
    total_spent_cents = sum(to_cents(s.spent) for s in statuses)

    return BudgetSummary(
        total_budget=from_cents(total_budget_cents),
        total_spent=from_cents(total_spent_cents),
        total_remaining=from_cents(max(0, total_budget_cents - total_spent_cents)),
        category_statuses=statuses,
        overall_health=overall_health(statuses),
        month=month,
    )


def _boost(shares: Dict[ExpenseCategory, float], boosts: Dict[ExpenseCategory, float]) -> None:
    for category, factor in boosts.items():
        shares[category] = max(0.01, shares[category] * factor)


def _age_boosts(age: int) -> Dict[ExpenseCategory, float]:
    if age < 25:
        return {
            ExpenseCategory.DINING: 1.15,
            ExpenseCategory.ENTERTAINMENT: 1.12,
            ExpenseCategory.TRAVEL: 1.1,
            ExpenseCategory.HEALTH: 0.85,
            ExpenseCategory.UTILITIES: 0.9,
        }
    if age <= 40:
        return {ExpenseCategory.SHOPPING: 1.05}
    if age <= 55:
        return {
            ExpenseCategory.HEALTH: 1.12,
            ExpenseCategory.TRAVEL: 1.05,
            ExpenseCategory.ENTERTAINMENT: 0.9,
        }
    return {
        ExpenseCategory.HEALTH: 1.2,
        ExpenseCategory.UTILITIES: 1.05,
        ExpenseCategory.SHOPPING: 0.85,
        ExpenseCategory.DINING: 0.9,
    }


def category_shares(profile: UserProfile) -> Dict[ExpenseCategory, float]:
    """Share of spendable income per category, adjusted for age, employment and education; sums to 1"""
    shares = dict(BASE_CATEGORY_SHARES)
    _boost(shares, _age_boosts(profile.age))
    _boost(shares, _EMPLOYMENT_SHARE_BOOSTS.get(profile.employment_status, {}))
    _boost(shares, _EDUCATION_SHARE_BOOSTS.get(profile.education_status, {}))
    total = sum(shares.values())
    return {category: share / total for category, share in shares.items()}


def spendable_income(profile: UserProfile, budget_cap: float = 0.5) -> float:
    """Income left after the profile's default savings split"""
    if profile.monthly_income <= 0:
        return 0.0
    savings_fraction = min(0.95, max(0.0, profile.default_percentages.adjust_within_budget(budget_cap).total))
    return profile.monthly_income * (1.0 - savings_fraction)


def _history_weight(months_with_spending: int, window: int, average: float) -> float:
    if months_with_spending >= window:
        return 0.8
    if months_with_spending >= 4:
        return 0.75
    if months_with_spending >= 2:
        return 0.6
    if months_with_spending == 1:
        return 0.45
    return 0.35 if average > 0 else 0.0


def _volatility_factor(months_with_spending: int) -> float:
    if months_with_spending >= 4:
        return 1.05
    if months_with_spending >= 2:
        return 1.1
    if months_with_spending == 1:
        return 1.15
    return 1.2


def _category_factor(category: ExpenseCategory, profile: UserProfile) -> float:
    if category == ExpenseCategory.UTILITIES:
        return 1.05
    if category == ExpenseCategory.HEALTH:
        return 1.1
    if category == ExpenseCategory.EDUCATION and profile.education_status == EducationStatus.UNIVERSITY:
        return 1.12
    if category == ExpenseCategory.TRAVEL:
        return 0.95
    if category == ExpenseCategory.ENTERTAINMENT and profile.age > 45:
        return 0.9
    return 1.0


def is_stable(monthly_totals: Sequence[float]) -> bool:
    """Coefficient of variation of the monthly totals at or below the stability band"""
    if len(monthly_totals) < 2:
        return False
    mean = statistics.fmean(monthly_totals)
    if mean <= 0:
        return False
    return statistics.pstdev(monthly_totals) / mean <= STABLE_VARIATION


def anchors_agree(historical_average: float, profile_target: float) -> bool:
    if historical_average <= 0 or profile_target <= 0:
        return False
    return abs(historical_average - profile_target) / max(historical_average, profile_target) <= AGREEMENT_TOLERANCE


def suggestion_confidence(
    months_with_spending: int,
    stable: bool,
    historical_average: float,
    profile_target: float,
) -> SuggestionConfidence:
    """
    HIGH   >= 3 months of stable history that agrees with the profile target
    MEDIUM one anchor is reliable: stable history, or >= 2 months backed by a profile target
    LOW    anything thinner, including < 2 months of history
    """
    reliable_history = months_with_spending >= RELIABLE_HISTORY_MONTHS and stable
    if reliable_history and anchors_agree(historical_average, profile_target):
        return SuggestionConfidence.HIGH
    if reliable_history or (months_with_spending >= 2 and profile_target > 0):
        return SuggestionConfidence.MEDIUM
    return SuggestionConfidence.LOW


def _rationale(
    category: ExpenseCategory,
    months_with_spending: int,
    historical_average: float,
    profile_target: float,
    spendable: float,
    share: float,
) -> str:
    name = category.value.lower()
    parts = []
    if months_with_spending > 0 and historical_average > 0:
        parts.append(f"You average {historical_average:,.2f} on {name} each month.")
    else:
        parts.append(f"No consistent history for {name}, so the limit leans on your profile.")
    if spendable > 0:
        parts.append(f"About {share * 100:.0f}% of the {spendable:,.2f} left for spending fits {name}.")
    if historical_average > 0 and profile_target > 0:
        parts.append(f"History and profile target ({profile_target:,.2f}) were blended for a realistic limit.")
    return " ".join(parts)


def suggest_budget_adjustments(
    current_budgets: Iterable[CategoryBudget],
    expenses: Iterable[Expense],
    profile: UserProfile,
    current_month: date,
    months_to_analyze: int = 6,
    budget_cap: float = 0.5,
) -> List[BudgetSuggestion]:
    """
    Suggest a monthly limit per category from spending history and the profile.

    Requirements:
    - History window is the trailing `months_to_analyze` months including the current one
    - Historical average covers the months from the first month with spending onward
    - Suggested limit blends history with the profile target, then is scaled for
      volatility, employment and category and capped at a share of spendable income
    - Empty history never fails: suggestions fall back to profile targets at LOW confidence

    Returns:
        Suggestions ordered by how far they move from the current limit (or average)
    """
    current_month = month_start(current_month)
    window = max(1, months_to_analyze)
    months = trailing_months(current_month, window)
    expenses = [e for e in expenses if months[0] <= month_start(e.date) <= current_month]
    budgets = list(current_budgets)

    if not budgets and not expenses and profile.monthly_income <= 0:
        return []

    spendable = spendable_income(profile, budget_cap)
    shares = category_shares(profile)
    budget_by_category = {
        b.category: b for b in budgets if b.is_active and month_start(b.month) == current_month
    }

    suggestions = []
    for category in ExpenseCategory:
        totals_by_month = {m: 0 for m in months}
        for e in expenses:
            if e.category == category:
                totals_by_month[month_start(e.date)] += to_cents(e.amount)
        monthly_totals = [from_cents(totals_by_month[m]) for m in months]

        months_with_spending = sum(1 for t in monthly_totals if t > 0)
        if months_with_spending:
            first = next(i for i, t in enumerate(monthly_totals) if t > 0)
            observed = monthly_totals[first:]
        else:
            observed = []
        historical_average = sum(observed) / len(observed) if observed else 0.0
        recent_peak = max(monthly_totals)

        share = shares[category]
        profile_target = spendable * share
        current_budget = budget_by_category.get(category)

        if historical_average <= 0 and profile_target <= 0 and current_budget is None:
            continue

        history_weight = _history_weight(months_with_spending, window, historical_average)
        if history_weight > 0 and profile_target > 0:
            blended = historical_average * history_weight + profile_target * (1.0 - history_weight)
        elif history_weight > 0:
            blended = historical_average
        else:
            blended = profile_target
        if recent_peak > 0:
            blended = max(blended, recent_peak * 0.9)

        suggested = (
            blended
            * _volatility_factor(months_with_spending)
            * _EMPLOYMENT_FACTOR.get(profile.employment_status, 1.0)
            * _category_factor(category, profile)
        )
        if spendable > 0:
            suggested = min(suggested, spendable * min(0.5, max(share * 1.8, share + 0.05)))

        if current_budget is not None:
            minimum = 0.0
        elif spendable > 0:
            minimum = min(35.0, spendable * 0.015)
        else:
            minimum = 10.0
        if suggested < minimum and historical_average < minimum and profile_target < minimum:
            continue
        if suggested <= 0:
            continue

        suggestions.append(
            BudgetSuggestion(
                category=category,
                suggested_limit=round_currency(suggested),
                current_limit=current_budget.monthly_limit if current_budget else None,
                historical_average=round_currency(historical_average),
                profile_target=round_currency(profile_target),
                months_of_history=months_with_spending,
                rationale=_rationale(category, months_with_spending, historical_average, profile_target, spendable, share),
                confidence=suggestion_confidence(
                    months_with_spending, is_stable(observed), historical_average, profile_target
                ),
            )
        )

    def movement(s: BudgetSuggestion) -> float:
        baseline = s.current_limit if s.current_limit is not None else s.historical_average
        return abs(s.suggested_limit - baseline)

    return sorted(suggestions, key=lambda s: (-movement(s), s.category.value))


def classify_overrun(status: BudgetStatus, largest_expense: Optional[Expense]) -> BudgetPromptReason:
    """Unplanned without a limit; one-off when a single expense dominates; trending otherwise"""
    if status.limit <= 0:
        return BudgetPromptReason.UNPLANNED_CATEGORY
    overspend = max(0.0, status.spent - status.limit)
    if largest_expense is not None:
        dominates_overspend = overspend > 0 and largest_expense.amount >= overspend * ONE_OFF_OVERSPEND_SHARE
        dominates_limit = largest_expense.amount >= status.limit * ONE_OFF_LIMIT_SHARE
        if dominates_overspend or dominates_limit:
            return BudgetPromptReason.POTENTIAL_ONE_OFF
    return BudgetPromptReason.TRENDING_HIGH


def detect_budget_prompts(
    summary: BudgetSummary,
    expenses: Iterable[Expense],
    suggestions: Sequence[BudgetSuggestion] = (),
) -> List[BudgetOverrunPrompt]:
    """
    Overrun prompts for the summary's month.

    Over-budget categories prompt, and so does spending in a category that had
    no budget at all, once the user budgets anything that month.
    """
    if not summary.category_statuses:
        return []

    month_expenses = _month_expenses(expenses, summary.month)
    by_suggestion = {s.category: s for s in suggestions}
    budgeted = {s.category for s in summary.category_statuses}

    statuses = [s for s in summary.category_statuses if s.is_over_budget]
    for category in ExpenseCategory:
        if category in budgeted:
            continue
        spent_cents = _spent_cents(e for e in month_expenses if e.category == category)
        if spent_cents > 0:
            statuses.append(
                BudgetStatus(
                    category=category,
                    limit=0.0,
                    spent=from_cents(spent_cents),
                    remaining=0.0,
                    percentage_used=0.0,
                    status=BudgetHealthStatus.OVER_BUDGET,
                    month=summary.month,
                )
            )

    prompts = []
    for status in statuses:
        category_expenses = [e for e in month_expenses if e.category == status.category]
        if not category_expenses:
            continue
        largest = max(category_expenses, key=lambda e: e.amount)
        prompts.append(
            BudgetOverrunPrompt(
                category=status.category,
                month=status.month,
                status=status,
                overspend_amount=from_cents(max(0, to_cents(status.spent) - to_cents(status.limit))),
                largest_expense=largest,
                suggestion=by_suggestion.get(status.category),
                reason=classify_overrun(status, largest),
            )
        )

    logger.debug("Budget prompts detected", extra={"month": summary.month.isoformat(), "prompts": len(prompts)})
    return prompts
