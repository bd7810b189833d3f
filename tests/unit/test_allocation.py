"""Unit tests for expense allocation"""

import pytest
from datetime import date
from sparely_core.domain.allocation import calculate_allocation, create_expense, taxable_base
from sparely_core.domain.models import ExpenseCategory, ExpenseInput, RiskLevel, SavingsPercentages
from sparely_core.utils.money import scale_cents, to_cents


def test_allocation_exact_split():
    """Test $100 at 22/10/5 with a 65% safe split"""
    breakdown = calculate_allocation(100.0, SavingsPercentages(0.22, 0.10, 0.05, safe_investment_split=0.65))

    assert breakdown.emergency_cents == 2200
    assert breakdown.investment_cents == 1000
    assert breakdown.fun_cents == 500
    assert breakdown.safe_investment_cents == 650
    assert breakdown.high_risk_investment_cents == 350
    assert breakdown.safe_investment_amount == 6.5
    assert breakdown.high_risk_investment_amount == 3.5
    assert breakdown.total_set_aside == 37.0


def test_allocation_buckets_sum_to_rounded_total():
    """Test bucket cents always add up to the half-up rounded set-aside total"""
    percentages = SavingsPercentages(0.18, 0.07, 0.05, safe_investment_split=0.73)
    for amount in [0.01, 0.99, 10.01, 13.37, 99.99, 1234.56]:
        breakdown = calculate_allocation(amount, percentages)

        expected = scale_cents(to_cents(amount), percentages.total)
        assert breakdown.total_set_aside_cents == expected
        assert breakdown.safe_investment_cents + breakdown.high_risk_investment_cents == breakdown.investment_cents


def test_allocation_each_bucket_within_one_cent():
    """Test largest remainder keeps every bucket within a cent of its exact share"""
    percentages = SavingsPercentages(0.18, 0.07, 0.05)
    breakdown = calculate_allocation(33.33, percentages)

    assert abs(breakdown.emergency_cents - 3333 * 0.18) <= 1
    assert abs(breakdown.investment_cents - 3333 * 0.07) <= 1
    assert abs(breakdown.fun_cents - 3333 * 0.05) <= 1


def test_allocation_zero_amount():
    """Test a zero amount allocates nothing"""
    breakdown = calculate_allocation(0.0, SavingsPercentages(0.2, 0.1, 0.1))
    assert breakdown.total_set_aside_cents == 0
    assert breakdown.safe_investment_cents == 0


def test_taxable_base():
    """Test tax-inclusive amounts are reduced to their pre-tax base"""
    assert taxable_base(112.0, 0.12, includes_tax=True) == pytest.approx(100.0)
    assert taxable_base(112.0, 0.12, includes_tax=False) == 112.0
    assert taxable_base(112.0, 0.0, includes_tax=True) == 112.0


def test_create_expense_with_tax_rate():
    """Test a tax rate only changes the allocation base, never the stored amount"""
    expense_input = ExpenseInput(
        description="Laptop bag",
        amount=120.0,
        category=ExpenseCategory.SHOPPING,
        date=date(2024, 6, 1),
        includes_tax=True,
    )
    percentages = SavingsPercentages(0.1, 0.1, 0.0)

    with_tax = create_expense(expense_input, percentages, RiskLevel.BALANCED, auto_recommended=False, tax_rate=0.2)
    without_tax = create_expense(expense_input, percentages, RiskLevel.BALANCED, auto_recommended=False)

    assert with_tax.amount == 120.0
    assert with_tax.allocation.total_set_aside_cents == 2000
    assert without_tax.allocation.total_set_aside_cents == 2400
    assert with_tax.applied_percentages == percentages
    assert with_tax.risk_level_used == RiskLevel.BALANCED
