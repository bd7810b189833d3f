"""Unit tests for integer-cent money and month helpers"""

from datetime import date
from sparely_core.utils.money import allocate_cents, from_cents, round_currency, scale_cents, to_cents
from sparely_core.utils.date_utils import add_months, generate_month_range, months_between, trailing_months


def test_to_cents_rounds_half_up():
    """Test half-up rounding on the third decimal"""
    assert to_cents(10.005) == 1001
    assert to_cents(10.004) == 1000
    assert to_cents(0.1) == 10


def test_round_currency_half_up():
    """Test 2.675 rounds up despite its binary representation"""
    assert round_currency(2.675) == 2.68


def test_scale_cents():
    """Test fraction of cents rounds to whole cents"""
    assert scale_cents(1000, 0.65) == 650
    assert scale_cents(1001, 0.5) == 501  # 500.5 -> 501
    assert from_cents(650) == 6.5


def test_allocate_cents_largest_remainder():
    """Test leftover cent goes to the earliest largest remainder"""
    assert allocate_cents(100, [1, 1, 1]) == [34, 33, 33]
    assert sum(allocate_cents(1001, [0.18, 0.07, 0.05])) == 1001


def test_allocate_cents_zero_weight_gets_nothing():
    """Test zero-weight slots never receive leftover cents"""
    assert allocate_cents(10, [0, 1]) == [0, 10]
    assert allocate_cents(7, [0, 0]) == [0, 0]


def test_allocate_cents_non_positive_total():
    """Test nothing to split returns zeros"""
    assert allocate_cents(0, [1, 2]) == [0, 0]
    assert allocate_cents(-5, [1]) == [0]


def test_add_months_returns_month_start():
    """Test month shifting across year boundaries"""
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 1)
    assert add_months(date(2024, 1, 15), -1) == date(2023, 12, 1)


def test_months_between():
    """Test calendar month distance, negative when going back"""
    assert months_between(date(2023, 11, 5), date(2024, 2, 1)) == 3
    assert months_between(date(2024, 2, 1), date(2023, 11, 5)) == -3


def test_month_ranges():
    """Test inclusive month range and trailing window"""
    assert generate_month_range(date(2024, 1, 20), date(2024, 3, 2)) == [
        date(2024, 1, 1),
        date(2024, 2, 1),
        date(2024, 3, 1),
    ]
    assert trailing_months(date(2024, 3, 10), 3) == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
