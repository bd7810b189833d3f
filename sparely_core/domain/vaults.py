"""Smart vault contribution distribution - manual shares, weighted dynamic split and scheduled deposits"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sparely_core.domain.models import (
    AutoDepositFrequency,
    AutoDepositSchedule,
    SmartVault,
    VaultAllocationMode,
    VaultContribution,
    VaultContributionSource,
    VaultPriority,
)
from sparely_core.utils.date_utils import months_between
from sparely_core.utils.money import allocate_cents, from_cents, scale_cents, to_cents

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS = {
    VaultPriority.LOW: 1.0,
    VaultPriority.MEDIUM: 2.0,
    VaultPriority.HIGH: 3.0,
    VaultPriority.CRITICAL: 5.0,
}

MAX_URGENCY_MULTIPLIER = 2.0
WEIGHT_TIE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class DistributionResult:
    """Per-vault cents plus whatever could not be placed"""

    contributions: Dict[int, int] = field(default_factory=dict)
    unallocated_cents: int = 0

    @property
    def allocated_cents(self) -> int:
        return sum(self.contributions.values())

    def amount_for(self, vault_id: int) -> float:
        return from_cents(self.contributions.get(vault_id, 0))


def months_until(target: Optional[date], today: date) -> int:
    """Whole calendar months from today to target, never negative; 0 without a target"""
    if target is None:
        return 0
    return max(0, months_between(today, target))


def total_need(vault: SmartVault) -> float:
    """monthly_need over its start/end window when defined, else target minus balance"""
    if vault.monthly_need is not None and vault.start_date and vault.end_date:
        months = max(0, months_between(vault.start_date, vault.end_date))
        return max(0.0, vault.monthly_need * months)
    return vault.remaining_need


def monthly_contribution(vault: SmartVault, today: date) -> float:
    """Suggested monthly deposit: explicit monthly_need, else need spread to the target date"""
    if vault.monthly_need is not None:
        return vault.monthly_need
    if vault.target_date is not None:
        return vault.remaining_need / max(1, months_until(vault.target_date, today))
    return 0.0


def urgency_multiplier(vault: SmartVault, today: date) -> float:
    """1 + 1/months-to-target, clamped to [1, 2]; 1 when the vault has no target date"""
    if vault.target_date is None:
        return 1.0
    months = months_until(vault.target_date, today)
    if months <= 0:
        return MAX_URGENCY_MULTIPLIER
    return min(MAX_URGENCY_MULTIPLIER, 1.0 + 1.0 / months)


def dynamic_weight(vault: SmartVault, today: date) -> float:
    """priority weight x urgency x (1 - progress); fully funded vaults weigh 0"""
    if vault.is_fully_funded:
        return 0.0
    return PRIORITY_WEIGHTS[vault.priority] * urgency_multiplier(vault, today) * (1.0 - vault.progress_percent)


def _is_manual(vault: SmartVault) -> bool:
    return vault.allocation_mode == VaultAllocationMode.MANUAL and vault.manual_allocation_percent is not None


def override_multiplier(base_rate: Optional[float], override: Optional[float]) -> float:
    """A vault's own saving-tax rate relative to the global one; 1 without an override"""
    if override is None or base_rate is None or base_rate <= 0.0:
        return 1.0
    ratio = override / base_rate
    if not math.isfinite(ratio):
        return 1.0
    return max(0.0, ratio)


def tie_break_weights(vaults: Sequence[SmartVault], weights: Sequence[float]) -> List[float]:
    """
    Re-split each group of (nearly) equal weights by remaining need.

    A tied group keeps its combined weight; members share it in proportion to
    target minus balance. Equal needs stay equal and the caller's id order
    decides the odd cent.
    """
    adjusted = list(weights)
    seen = set()
    for i, weight in enumerate(weights):
        if i in seen:
            continue
        group = [
            j
            for j in range(i, len(weights))
            if j not in seen and math.isclose(weight, weights[j], rel_tol=WEIGHT_TIE_TOLERANCE)
        ]
        seen.update(group)
        if len(group) < 2 or weight <= 0.0:
            continue
        needs = [vaults[j].remaining_need for j in group]
        need_total = sum(needs)
        if need_total <= 0.0:
            continue
        group_weight = sum(weights[j] for j in group)
        for j, need in zip(group, needs):
            adjusted[j] = group_weight * need / need_total
    return adjusted


def _distribute_dynamic(
    pool_cents: int,
    vaults: List[SmartVault],
    today: date,
    base_rate: Optional[float],
) -> Dict[int, int]:
    """Weighted largest-remainder split of the whole pool"""
    candidates = sorted(vaults, key=lambda v: v.id)
    weights = [
        dynamic_weight(v, today) * override_multiplier(base_rate, v.saving_tax_rate_override) for v in candidates
    ]
    weights = tie_break_weights(candidates, weights)

    # Leftover cents prefer the heavier vault, then the lower id
    order = sorted(range(len(candidates)), key=lambda i: (-weights[i], candidates[i].id))
    split = allocate_cents(pool_cents, [weights[i] for i in order])
    return {candidates[i].id: cents for i, cents in zip(order, split) if cents > 0}


def distribute_pool(
    pool_cents: int,
    vaults: Sequence[SmartVault],
    today: Optional[date] = None,
    global_mode: VaultAllocationMode = VaultAllocationMode.DYNAMIC_AUTO,
    saving_tax_rate: Optional[float] = None,
) -> DistributionResult:
    """
    Spread a pool of money across the active vaults.

    Requirements:
    - Archived and fully funded vaults receive nothing
    - MANUAL vaults each take manual_allocation_percent of the pool, in id
      order, independent of one another (never more than what is left)
    - DYNAMIC_AUTO vaults split the rest by priority x urgency x (1 - progress),
      scaled by saving_tax_rate_override / saving_tax_rate when both are given
    - global_mode MANUAL treats every vault as manual; vaults without a
      percent take an equal 1/n share and nothing is split dynamically
    - contributions + unallocated == pool, exactly, in cents
    """
    today = today or date.today()
    if pool_cents <= 0:
        return DistributionResult({}, max(0, pool_cents))

    active = sorted((v for v in vaults if not v.archived and not v.is_fully_funded), key=lambda v: v.id)
    if global_mode == VaultAllocationMode.MANUAL:
        fallback = 1.0 / len(active) if active else 0.0
        manual = [(v, v.manual_allocation_percent if v.manual_allocation_percent is not None else fallback) for v in active]
        dynamic: List[SmartVault] = []
    else:
        manual = [(v, v.manual_allocation_percent) for v in active if _is_manual(v)]
        dynamic = [v for v in active if v.allocation_mode == VaultAllocationMode.DYNAMIC_AUTO]

    contributions: Dict[int, int] = {}
    remaining = pool_cents

    for vault, percent in manual:
        share = min(scale_cents(pool_cents, min(1.0, max(0.0, percent))), remaining)
        if share > 0:
            contributions[vault.id] = share
            remaining -= share

    if remaining > 0 and dynamic:
        for vault_id, cents in _distribute_dynamic(remaining, dynamic, today, saving_tax_rate).items():
            contributions[vault_id] = contributions.get(vault_id, 0) + cents
            remaining -= cents

    if remaining > 0:
        logger.debug("Pool left partly unallocated", extra={"unallocated_cents": remaining})

    return DistributionResult(contributions=contributions, unallocated_cents=remaining)


def saving_tax_pool_cents(expense_amount: float, saving_tax_rate: float) -> int:
    """Saving-tax skim of one expense, half-up to the cent"""
    if expense_amount <= 0 or saving_tax_rate <= 0:
        return 0
    return scale_cents(to_cents(expense_amount), min(1.0, saving_tax_rate))


def income_pool_cents(pay_amount: float, save_rate: float) -> int:
    """Save-rate portion of a paycheck, half-up to the cent"""
    if pay_amount <= 0 or save_rate <= 0:
        return 0
    return scale_cents(to_cents(pay_amount), min(1.0, save_rate))


def build_contributions(
    result: DistributionResult,
    source: VaultContributionSource,
    on: date,
    note: Optional[str] = None,
) -> List[VaultContribution]:
    """Pending-batch ledger entries for a distribution, ordered by vault id"""
    return [
        VaultContribution(vault_id=vault_id, amount_cents=cents, date=on, source=source, note=note)
        for vault_id, cents in sorted(result.contributions.items())
        if cents > 0
    ]


def apply_contributions(vaults: Iterable[SmartVault], contributions: Iterable[VaultContribution]) -> List[SmartVault]:
    """New vault values with the contribution amounts added to their balances"""
    totals: Dict[int, int] = {}
    for c in contributions:
        totals[c.vault_id] = totals.get(c.vault_id, 0) + c.amount_cents
    return [
        replace(v, current_balance=from_cents(to_cents(v.current_balance) + totals[v.id])) if v.id in totals else v
        for v in vaults
    ]


def auto_deposit_due(schedule: AutoDepositSchedule, today: date) -> bool:
    """
    Whether a scheduled deposit runs today.

    Weekly and biweekly count days since the last run; monthly runs once per
    calendar month. Without a previous run, the day before start_date stands in.
    """
    if today < schedule.start_date:
        return False
    if schedule.end_date is not None and today >= schedule.end_date:
        return False

    last = schedule.last_execution_date or schedule.start_date - timedelta(days=1)
    if schedule.frequency == AutoDepositFrequency.WEEKLY:
        return (today - last).days >= 7
    if schedule.frequency == AutoDepositFrequency.BIWEEKLY:
        return (today - last).days >= 14
    return (today.year, today.month) > (last.year, last.month)


def due_auto_deposits(vaults: Iterable[SmartVault], today: date) -> List[VaultContribution]:
    """AUTO_DEPOSIT ledger entries for every active vault whose schedule is due, by vault id"""
    due = []
    for vault in sorted(vaults, key=lambda v: v.id):
        schedule = vault.auto_deposit_schedule
        if vault.archived or schedule is None or schedule.amount <= 0:
            continue
        if auto_deposit_due(schedule, today):
            due.append(
                VaultContribution(
                    vault_id=vault.id,
                    amount_cents=to_cents(schedule.amount),
                    date=today,
                    source=VaultContributionSource.AUTO_DEPOSIT,
                    note=f"auto_deposit:{schedule.frequency.value}",
                )
            )
    return due
