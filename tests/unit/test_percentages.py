"""Unit tests for savings percentages and health bands"""

import math
import pytest
from sparely_core.domain.exceptions import InvalidInputError
from sparely_core.domain.models import HealthLevel, SavingsPercentages


def test_normalized_sums_to_one():
    """Test normalization rescales the three buckets to 1"""
    for emergency, invest, fun in [(0.2, 0.1, 0.05), (0.01, 0.0, 0.0), (0.5, 0.3, 0.2), (0.33, 0.33, 0.01)]:
        result = SavingsPercentages(emergency, invest, fun).normalized()
        assert math.isclose(result.total, 1.0, abs_tol=1e-9)


def test_normalized_zero_total_falls_back_to_default():
    """Test an all-zero split returns the fixed 0.15/0.05/0.05 triple"""
    result = SavingsPercentages(0.0, 0.0, 0.0, safe_investment_split=0.8).normalized()

    assert (result.emergency, result.invest, result.fun) == (0.15, 0.05, 0.05)
    assert result.safe_investment_split == 0.8


def test_adjust_within_budget_keeps_ratios():
    """Test proportional shrink down to the ceiling"""
    original = SavingsPercentages(0.3, 0.2, 0.1)
    adjusted = original.adjust_within_budget(0.5)

    assert adjusted.total == pytest.approx(0.5)
    assert adjusted.emergency / adjusted.invest == pytest.approx(1.5)
    assert adjusted.invest / adjusted.fun == pytest.approx(2.0)


def test_adjust_within_budget_noop_under_ceiling():
    """Test a split already under the ceiling is returned unchanged"""
    original = SavingsPercentages(0.1, 0.1, 0.1)
    assert original.adjust_within_budget() is original


@pytest.mark.parametrize("value", [-0.01, 1.01, float("nan")])
def test_out_of_range_fraction_rejected(value):
    """Test user-supplied fractions outside [0, 1] raise InvalidInputError"""
    with pytest.raises(InvalidInputError):
        SavingsPercentages(value, 0.1, 0.1)


def test_clamped_coerces_derived_ratios():
    """Test derived ratios are clamped instead of rejected"""
    result = SavingsPercentages.clamped(1.4, -0.2, 0.1, 1.2)
    assert (result.emergency, result.invest, result.fun, result.safe_investment_split) == (1.0, 0.0, 0.1, 1.0)


@pytest.mark.parametrize(
    "score,level",
    [
        (100, HealthLevel.EXCELLENT),
        (90, HealthLevel.EXCELLENT),
        (89, HealthLevel.GOOD),
        (75, HealthLevel.GOOD),
        (74, HealthLevel.FAIR),
        (60, HealthLevel.FAIR),
        (59, HealthLevel.NEEDS_WORK),
        (40, HealthLevel.NEEDS_WORK),
        (39, HealthLevel.CRITICAL),
        (0, HealthLevel.CRITICAL),
    ],
)
def test_health_level_band_boundaries(score, level):
    """Test bands are contiguous with inclusive bounds"""
    assert HealthLevel.from_score(score) == level


def test_health_level_clamps_out_of_range_scores():
    """Test scores outside 0..100 still map to a band"""
    assert HealthLevel.from_score(150) == HealthLevel.EXCELLENT
    assert HealthLevel.from_score(-5) == HealthLevel.CRITICAL
