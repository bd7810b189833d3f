"""Prometheus metrics for monitoring allocations, vault distribution and transfer nudges"""

from prometheus_client import Counter, Histogram

from sparely_core.domain.models import AllocationBreakdown

# Allocation metrics
expense_counter = Counter(
    "sparely_expenses_allocated_total",
    "Total expenses run through the allocator",
    ["mode"],  # auto | manual
)

set_aside_cents_counter = Counter(
    "sparely_set_aside_cents_total",
    "Cents set aside per savings bucket",
    ["bucket"],  # emergency | investment | fun
)

# Vault metrics
vault_distributed_cents_counter = Counter(
    "sparely_vault_distributed_cents_total",
    "Cents distributed to vaults",
    ["source"],  # SAVING_TAX | INCOME | AUTO_DEPOSIT
)

vault_unallocated_cents_counter = Counter(
    "sparely_vault_unallocated_cents_total",
    "Pool cents no vault could take",
    ["source"],
)

# Smart transfer metrics
transfer_action_counter = Counter(
    "sparely_smart_transfer_actions_total",
    "Smart transfer user actions",
    ["action"],  # confirm | mark_done | return_to_pending | dismiss
)

completed_transfer_histogram = Histogram(
    "sparely_completed_transfer_cents",
    "Size of transfers marked done",
    buckets=[1000, 2500, 5000, 10_000, 25_000, 50_000, 100_000],
)

# Advice
health_score_histogram = Histogram(
    "sparely_health_score",
    "Overall financial health scores computed",
    buckets=[40, 60, 75, 90, 100],
)


def record_allocation(breakdown: AllocationBreakdown, auto_recommended: bool) -> None:
    """Record one expense allocation split by bucket"""
    expense_counter.labels(mode="auto" if auto_recommended else "manual").inc()
    set_aside_cents_counter.labels(bucket="emergency").inc(breakdown.emergency_cents)
    set_aside_cents_counter.labels(bucket="investment").inc(breakdown.investment_cents)
    set_aside_cents_counter.labels(bucket="fun").inc(breakdown.fun_cents)


def record_distribution(source: str, allocated_cents: int, unallocated_cents: int) -> None:
    vault_distributed_cents_counter.labels(source=source).inc(allocated_cents)
    vault_unallocated_cents_counter.labels(source=source).inc(unallocated_cents)


def record_transfer_action(action: str, completed_cents: int = 0) -> None:
    transfer_action_counter.labels(action=action).inc()
    if completed_cents > 0:
        completed_transfer_histogram.observe(completed_cents)


def record_health_score(score: int) -> None:
    health_score_histogram.observe(score)
