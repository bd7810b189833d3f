"""Unit tests for paycheck automation"""

import pytest
from sparely_core.domain.income import paychecks_per_month, recommend_income_rates, saving_tax_rate_for
from sparely_core.domain.models import PayInterval, UserProfile


def test_paychecks_per_month():
    """Test paycheck frequency per interval"""
    assert paychecks_per_month(PayInterval.WEEKLY) == pytest.approx(52 / 12)
    assert paychecks_per_month(PayInterval.SEMI_MONTHLY) == 2.0
    assert paychecks_per_month(PayInterval.CUSTOM, custom_days_between=14) == pytest.approx(30 / 14)
    assert paychecks_per_month(PayInterval.CUSTOM) == 1.0


def test_recommend_rates_with_comfortable_residual():
    """Test save rate grows with spare income and saving tax follows it"""
    profile = UserProfile(monthly_income=4000.0, target_savings_rate=0.15)

    result = recommend_income_rates(4000.0, PayInterval.MONTHLY, profile, monthly_expenses=2000.0)

    assert result.save_rate == pytest.approx(0.275)
    assert result.saving_tax_rate == pytest.approx(0.09375)
    assert len(result.rationale) == 5


def test_recommend_rates_tight_budget():
    """Test heavy expenses keep the save rate near the floor"""
    profile = UserProfile(monthly_income=4000.0, target_savings_rate=0.15)

    result = recommend_income_rates(4000.0, PayInterval.MONTHLY, profile, monthly_expenses=3900.0)

    assert 0.05 <= result.save_rate < 0.1


def test_recommend_rates_without_pay_amount():
    """Test a missing pay amount keeps existing rates"""
    profile = UserProfile(saving_tax_rate=0.04)

    result = recommend_income_rates(0.0, PayInterval.MONTHLY, profile, monthly_expenses=1000.0, default_save_rate=0.2)

    assert result.save_rate == 0.2
    assert result.saving_tax_rate == 0.04


def test_saving_tax_rate_capped():
    """Test the derived saving tax never exceeds 25%"""
    assert saving_tax_rate_for(0.8, 1.0, 0.0) == 0.25
    assert saving_tax_rate_for(0.0, 0.0, 1.0) == 0.0
