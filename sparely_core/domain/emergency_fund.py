"""Emergency fund target sizing"""

import math

from sparely_core.domain.country import country_or_default
from sparely_core.domain.models import (
    EmergencyFundGoal,
    EmploymentStatus,
    LivingSituation,
    UserProfile,
)

MIN_TARGET_AMOUNT = 500.0
MIN_MONTHLY_BASELINE = 1000.0

_LIVING_ADJUSTMENT = {
    LivingSituation.WITH_PARENTS: -1.2,
    LivingSituation.RENTING: 0.5,
    LivingSituation.HOMEOWNER: 1.5,
    LivingSituation.OTHER: 0.0,
}

_EMPLOYMENT_ADJUSTMENT = {
    EmploymentStatus.STUDENT: -0.8,
    EmploymentStatus.PART_TIME: -0.3,
    EmploymentStatus.EMPLOYED: 0.0,
    EmploymentStatus.SELF_EMPLOYED: 2.0,
    EmploymentStatus.UNEMPLOYED: 1.2,
    EmploymentStatus.RETIRED: 0.8,
}


def target_months(profile: UserProfile) -> float:
    """
    Months of expenses to hold, anchored on the country norm.

    Adjusted for living situation, job stability, debts, age and income;
    clamped to [1, 9].
    """
    months = float(country_or_default(profile.country_code).recommended_emergency_months)
    months += _LIVING_ADJUSTMENT[profile.living_situation]
    months += _EMPLOYMENT_ADJUSTMENT[profile.employment_status]
    if profile.has_debts:
        months += 0.6
    if profile.age < 22:
        months -= 0.6
    elif profile.age > 50:
        months += 0.6
    if profile.monthly_income > 8000.0:
        months += 0.5
    elif profile.monthly_income < 2500.0:
        months -= 0.4
    return min(9.0, max(1.0, months))


def monthly_baseline(profile: UserProfile, monthly_expense_estimate: float) -> float:
    income_based = profile.monthly_income * 0.65 if profile.monthly_income > 0 else 0.0
    return max(monthly_expense_estimate, income_based, MIN_MONTHLY_BASELINE)


def calculate_emergency_fund(
    profile: UserProfile,
    monthly_expense_estimate: float = 0.0,
    existing_emergency: float = 0.0,
) -> EmergencyFundGoal:
    """Target, shortfall and monthly contribution for the emergency fund"""
    months = target_months(profile)
    target = max(months * monthly_baseline(profile, monthly_expense_estimate), MIN_TARGET_AMOUNT)
    existing = max(existing_emergency, profile.current_emergency_fund, 0.0)
    shortfall = max(0.0, target - existing)
    contribution = shortfall / math.ceil(months)

    return EmergencyFundGoal(
        target_months=months,
        target_amount=target,
        shortfall_amount=shortfall,
        recommended_monthly_contribution=contribution,
    )


def emergency_coverage(profile: UserProfile, monthly_expense_estimate: float = 0.0) -> float:
    """Current emergency balance divided by the target; 1.0 means fully covered, may exceed 1"""
    goal = calculate_emergency_fund(profile, monthly_expense_estimate)
    if goal.target_amount <= 0.0:
        return 1.0
    return max(0.0, profile.current_emergency_fund) / goal.target_amount
