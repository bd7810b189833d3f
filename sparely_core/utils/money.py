"""Integer-cent money helpers.

Cents are the unit of truth everywhere amounts are accumulated or split;
floats only appear at the read boundary.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

CENT = Decimal("0.01")


def to_cents(amount: float) -> int:
    """Convert a currency amount to integer cents (half-up)"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> float:
    return cents / 100.0


def round_currency(amount: float) -> float:
    """Round to currency precision using half-up"""
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def scale_cents(cents: int, fraction: float) -> int:
    """cents * fraction rounded half-up to a whole cent"""
    return int((Decimal(cents) * Decimal(str(fraction))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def allocate_cents(total_cents: int, weights: Sequence[float]) -> List[int]:
    """
    Split total_cents proportionally to weights using the largest-remainder method.

    Every share is floored first; leftover cents go one at a time to the
    largest fractional remainders. Ties go to the earlier position, so callers
    control tie-breaking through the order of `weights`.

    Example:
        allocate_cents(100, [1, 1, 1]) -> [34, 33, 33]
    """
    if total_cents <= 0 or not weights:
        return [0] * len(weights)

    clean = [w if w > 0 else 0.0 for w in weights]
    weight_total = sum(clean)
    if weight_total <= 0:
        return [0] * len(weights)

    raw = [total_cents * w / weight_total for w in clean]
    shares = [int(r) for r in raw]
    leftover = total_cents - sum(shares)

    # Zero-weight slots never receive cents
    order = sorted(
        (i for i in range(len(raw)) if clean[i] > 0),
        key=lambda i: (-(raw[i] - shares[i]), i),
    )
    idx = 0
    while leftover > 0:
        shares[order[idx % len(order)]] += 1
        leftover -= 1
        idx += 1

    return shares
