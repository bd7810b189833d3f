"""Unit tests for the budget advisor"""

import pytest
from datetime import date
from sparely_core.domain.budget import (
    calculate_budget_status,
    category_shares,
    classify_usage,
    detect_budget_prompts,
    generate_budget_summary,
    suggest_budget_adjustments,
)
from sparely_core.domain.models import (
    BudgetHealthStatus,
    BudgetPromptReason,
    CategoryBudget,
    EmploymentStatus,
    ExpenseCategory,
    SuggestionConfidence,
    UserProfile,
)

JUNE = date(2024, 6, 1)


def budget(category: ExpenseCategory, limit: float, month: date = JUNE, **kwargs) -> CategoryBudget:
    return CategoryBudget(category=category, monthly_limit=limit, month=month, **kwargs)


@pytest.mark.parametrize(
    "spent,status",
    [
        (0.0, BudgetHealthStatus.HEALTHY),
        (69.99, BudgetHealthStatus.HEALTHY),
        (70.0, BudgetHealthStatus.WARNING),
        (89.99, BudgetHealthStatus.WARNING),
        (90.0, BudgetHealthStatus.CRITICAL),
        (100.0, BudgetHealthStatus.CRITICAL),
        (100.01, BudgetHealthStatus.OVER_BUDGET),
    ],
)
def test_health_tier_boundaries(spent, status):
    """Test tiers are lower-inclusive and exactly 100% is not over budget"""
    assert classify_usage(spent, 100.0) == status


def test_zero_limit_tiers():
    """Test a zero limit is over budget only once something is spent"""
    assert classify_usage(0.0, 0.0) == BudgetHealthStatus.HEALTHY
    assert classify_usage(5.0, 0.0) == BudgetHealthStatus.OVER_BUDGET


def test_budget_status_counts_only_category_and_month(make_expense):
    """Test spending from other months and categories is ignored"""
    expenses = [
        make_expense(50.0, on=date(2024, 6, 3)),
        make_expense(20.0, on=date(2024, 6, 20)),
        make_expense(500.0, on=date(2024, 5, 30)),
        make_expense(500.0, on=date(2024, 6, 5), category=ExpenseCategory.TRAVEL),
    ]

    status = calculate_budget_status(budget(ExpenseCategory.GROCERIES, 100.0), expenses)

    assert status.spent == 70.0
    assert status.remaining == 30.0
    assert status.percentage_used == pytest.approx(0.7)
    assert status.status == BudgetHealthStatus.WARNING


def test_budget_status_zero_limit_has_no_percentage(make_expense):
    """Test a zero limit reports 0% used instead of dividing by zero"""
    status = calculate_budget_status(budget(ExpenseCategory.GROCERIES, 0.0), [make_expense(10.0, on=JUNE)])

    assert status.percentage_used == 0.0
    assert status.status == BudgetHealthStatus.OVER_BUDGET


def test_summary_overall_health(make_expense):
    """Test one over-budget category makes the month over budget"""
    budgets = [budget(ExpenseCategory.GROCERIES, 100.0), budget(ExpenseCategory.DINING, 100.0)]
    expenses = [make_expense(120.0, on=JUNE), make_expense(10.0, on=JUNE, category=ExpenseCategory.DINING)]

    summary = generate_budget_summary(budgets, expenses, JUNE)

    assert summary.overall_health == BudgetHealthStatus.OVER_BUDGET
    assert summary.total_budget == 200.0
    assert summary.total_spent == 130.0
    assert summary.total_remaining == 70.0
    assert summary.categories_over_budget == 1


def test_summary_critical_escalation(make_expense):
    """Test one CRITICAL reads as WARNING overall, two as CRITICAL"""
    budgets = [budget(ExpenseCategory.GROCERIES, 100.0), budget(ExpenseCategory.DINING, 100.0)]
    one = [make_expense(95.0, on=JUNE)]
    two = one + [make_expense(95.0, on=JUNE, category=ExpenseCategory.DINING)]

    assert generate_budget_summary(budgets, one, JUNE).overall_health == BudgetHealthStatus.WARNING
    assert generate_budget_summary(budgets, two, JUNE).overall_health == BudgetHealthStatus.CRITICAL


def test_summary_skips_inactive_and_other_months(make_expense):
    """Test only active budgets for the month are summarised"""
    budgets = [
        budget(ExpenseCategory.GROCERIES, 100.0, is_active=False),
        budget(ExpenseCategory.DINING, 100.0, month=date(2024, 5, 1)),
    ]

    summary = generate_budget_summary(budgets, [make_expense(50.0, on=JUNE)], JUNE)

    assert summary.category_statuses == []
    assert summary.total_budget == 0.0
    assert summary.percentage_used == 0.0
    assert summary.overall_health == BudgetHealthStatus.HEALTHY


def test_category_shares_normalised():
    """Test adjusted shares still sum to one and follow the profile"""
    student = UserProfile(age=20, employment_status=EmploymentStatus.STUDENT)
    employed = UserProfile(age=30)

    student_shares = category_shares(student)

    assert sum(student_shares.values()) == pytest.approx(1.0)
    assert student_shares[ExpenseCategory.EDUCATION] > category_shares(employed)[ExpenseCategory.EDUCATION]


def test_suggestions_without_history_lean_on_profile():
    """Test empty history still yields LOW-confidence profile targets"""
    suggestions = suggest_budget_adjustments([], [], UserProfile(monthly_income=4500.0), JUNE)

    assert suggestions
    assert all(s.confidence == SuggestionConfidence.LOW for s in suggestions)
    assert all(s.historical_average == 0.0 and s.months_of_history == 0 for s in suggestions)
    assert all(s.suggested_limit > 0 for s in suggestions)


def test_no_income_no_history_no_suggestions():
    """Test nothing to go on returns an empty list"""
    assert suggest_budget_adjustments([], [], UserProfile(monthly_income=0.0), JUNE) == []


def test_stable_history_agreeing_with_profile_is_high_confidence(make_expense):
    """Test four steady months close to the profile target give HIGH confidence"""
    expenses = [make_expense(540.0, on=date(2024, month, 10)) for month in (3, 4, 5, 6)]

    suggestions = suggest_budget_adjustments([], expenses, UserProfile(monthly_income=4500.0), JUNE)
    groceries = next(s for s in suggestions if s.category == ExpenseCategory.GROCERIES)

    assert groceries.confidence == SuggestionConfidence.HIGH
    assert groceries.months_of_history == 4
    assert groceries.historical_average == 540.0
    assert groceries.suggested_limit >= 540.0


def test_volatile_history_is_medium_confidence(make_expense):
    """Test erratic spending backed by a profile target is MEDIUM"""
    expenses = [
        make_expense(100.0, on=date(2024, 4, 10)),
        make_expense(900.0, on=date(2024, 5, 10)),
        make_expense(200.0, on=date(2024, 6, 10)),
    ]

    suggestions = suggest_budget_adjustments([], expenses, UserProfile(monthly_income=4500.0), JUNE)
    groceries = next(s for s in suggestions if s.category == ExpenseCategory.GROCERIES)

    assert groceries.confidence == SuggestionConfidence.MEDIUM


def test_single_month_is_low_confidence(make_expense):
    """Test one month of data is an emerging pattern"""
    suggestions = suggest_budget_adjustments(
        [], [make_expense(300.0, on=date(2024, 6, 2))], UserProfile(monthly_income=4500.0), JUNE
    )
    groceries = next(s for s in suggestions if s.category == ExpenseCategory.GROCERIES)

    assert groceries.confidence == SuggestionConfidence.LOW
    assert groceries.months_of_history == 1


def test_suggestions_sorted_by_movement(make_expense):
    """Test the biggest change from the current limit comes first"""
    budgets = [budget(ExpenseCategory.GROCERIES, 50.0), budget(ExpenseCategory.DINING, 1000.0)]
    expenses = [make_expense(400.0, on=date(2024, m, 5)) for m in (4, 5, 6)]

    suggestions = suggest_budget_adjustments(budgets, expenses, UserProfile(monthly_income=4500.0), JUNE)

    def movement(s):
        baseline = s.current_limit if s.current_limit is not None else s.historical_average
        return abs(s.suggested_limit - baseline)

    moves = [movement(s) for s in suggestions]
    assert moves == sorted(moves, reverse=True)
    assert next(s for s in suggestions if s.category == ExpenseCategory.GROCERIES).current_limit == 50.0


def test_prompt_trending_high(make_expense):
    """Test overspend spread over many small purchases trends high"""
    budgets = [budget(ExpenseCategory.GROCERIES, 100.0)]
    expenses = [make_expense(20.0, on=date(2024, 6, day)) for day in range(1, 9)]
    summary = generate_budget_summary(budgets, expenses, JUNE)

    prompts = detect_budget_prompts(summary, expenses)

    assert len(prompts) == 1
    assert prompts[0].reason == BudgetPromptReason.TRENDING_HIGH
    assert prompts[0].overspend_amount == 60.0


def test_prompt_potential_one_off(make_expense):
    """Test a single large purchase dominating the overspend is a one-off"""
    budgets = [budget(ExpenseCategory.GROCERIES, 100.0)]
    expenses = [make_expense(20.0, on=JUNE), make_expense(20.0, on=JUNE), make_expense(150.0, on=JUNE)]
    summary = generate_budget_summary(budgets, expenses, JUNE)

    prompts = detect_budget_prompts(summary, expenses)

    assert prompts[0].reason == BudgetPromptReason.POTENTIAL_ONE_OFF
    assert prompts[0].largest_expense.amount == 150.0


def test_prompt_unplanned_category(make_expense):
    """Test spending in a category with no budget is flagged as unplanned"""
    budgets = [budget(ExpenseCategory.GROCERIES, 500.0)]
    expenses = [make_expense(50.0, on=JUNE), make_expense(300.0, on=JUNE, category=ExpenseCategory.TRAVEL)]
    summary = generate_budget_summary(budgets, expenses, JUNE)

    prompts = detect_budget_prompts(summary, expenses)

    assert [p.category for p in prompts] == [ExpenseCategory.TRAVEL]
    assert prompts[0].reason == BudgetPromptReason.UNPLANNED_CATEGORY
    assert prompts[0].overspend_amount == 300.0


def test_no_budgets_no_prompts(make_expense):
    """Test users who do not budget are never prompted"""
    expenses = [make_expense(999.0, on=JUNE)]
    summary = generate_budget_summary([], expenses, JUNE)

    assert detect_budget_prompts(summary, expenses) == []
