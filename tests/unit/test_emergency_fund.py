"""Unit tests for emergency fund sizing and the country table"""

import pytest
from sparely_core.domain.country import country_or_default, effective_income_tax_rate, get_country
from sparely_core.domain.emergency_fund import calculate_emergency_fund, emergency_coverage, target_months
from sparely_core.domain.models import EmploymentStatus, LivingSituation, UserProfile


def test_target_months_defaults_to_country_norm(profile):
    """Test an average employed profile gets the country's months"""
    assert target_months(profile) == 6.0


def test_target_months_clamped_high():
    """Test stacked risk factors are capped at nine months"""
    profile = UserProfile(
        age=52,
        monthly_income=9000.0,
        has_debts=True,
        employment_status=EmploymentStatus.SELF_EMPLOYED,
        living_situation=LivingSituation.HOMEOWNER,
    )
    assert target_months(profile) == 9.0


def test_target_months_student_living_with_parents():
    """Test a young student at home needs fewer months"""
    profile = UserProfile(
        age=20,
        monthly_income=1500.0,
        employment_status=EmploymentStatus.STUDENT,
        living_situation=LivingSituation.WITH_PARENTS,
    )
    assert target_months(profile) == pytest.approx(3.0)


def test_calculate_emergency_fund(profile):
    """Test target, shortfall and monthly contribution for a half-funded profile"""
    goal = calculate_emergency_fund(profile)

    assert goal.target_amount == pytest.approx(15600.0)
    assert goal.shortfall_amount == pytest.approx(7800.0)
    assert goal.recommended_monthly_contribution == pytest.approx(1300.0)
    assert goal.coverage_ratio == pytest.approx(0.5)


def test_emergency_coverage_uses_expense_estimate(profile):
    """Test higher spending raises the target and lowers coverage"""
    assert emergency_coverage(profile) == pytest.approx(0.5)
    assert emergency_coverage(profile, monthly_expense_estimate=5200.0) == pytest.approx(0.25)


def test_target_floor_for_zero_income():
    """Test the target never drops below the floor"""
    profile = UserProfile(monthly_income=0.0)
    goal = calculate_emergency_fund(profile)
    assert goal.target_amount >= 500.0


def test_country_lookup():
    """Test lookups are case-insensitive and unknown codes fall back to US"""
    assert get_country("gb").currency == "GBP"
    assert get_country("ZZ") is None
    assert country_or_default("ZZ").country_code == "US"


def test_effective_income_tax_rate():
    """Test custom override, then country rate, then fallback"""
    assert effective_income_tax_rate("FR") == 0.30
    assert effective_income_tax_rate("FR", custom_rate=0.1) == 0.1
    assert effective_income_tax_rate(None) == 0.22
