"""Smart transfer aggregation - batches small pending savings into one transfer nudge.

State machine (pending bucket):
    STANDBY       below threshold and no expense inside the batch window
    ACCUMULATING  an expense landed inside the batch window
    READY         at/above threshold and the batch window has elapsed
AWAITING_CONFIRMATION overrides all of them while the awaiting bucket holds money.

Time-based transitions are evaluated lazily against `now`; nothing is scheduled.
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional, Protocol, Tuple

from sparely_core.domain.models import (
    CompletedTransfer,
    SmartTransferRecommendation,
    SmartTransferSnapshot,
    SmartTransferStatus,
)
from sparely_core.utils.date_utils import now_epoch_millis
from sparely_core.utils.money import from_cents

logger = logging.getLogger(__name__)

DEFAULT_MIN_TRANSFER_CENTS = 1000  # $10.00
DEFAULT_BATCH_WINDOW_MILLIS = 3 * 60_000

Mutation = Callable[[SmartTransferSnapshot], SmartTransferSnapshot]


def record_allocation(
    snapshot: SmartTransferSnapshot,
    emergency_cents: int,
    investment_cents: int,
    now_millis: int,
    batch_window_millis: int = DEFAULT_BATCH_WINDOW_MILLIS,
) -> SmartTransferSnapshot:
    """Add one allocation event to the pending bucket and restart the batch window"""
    emergency_cents = max(0, emergency_cents)
    investment_cents = max(0, investment_cents)
    if emergency_cents == 0 and investment_cents == 0:
        return snapshot

    return replace(
        snapshot,
        pending_emergency_cents=snapshot.pending_emergency_cents + emergency_cents,
        pending_investment_cents=snapshot.pending_investment_cents + investment_cents,
        pending_expense_count=snapshot.pending_expense_count + 1,
        last_expense_epoch_millis=now_millis,
        hold_until_epoch_millis=now_millis + batch_window_millis,
    )


def pending_status(
    snapshot: SmartTransferSnapshot,
    now_millis: int,
    min_transfer_cents: int = DEFAULT_MIN_TRANSFER_CENTS,
) -> SmartTransferStatus:
    """Status of the pending bucket alone, ignoring any awaiting confirmation"""
    if not snapshot.has_pending:
        return SmartTransferStatus.STANDBY
    hold_until = snapshot.hold_until_epoch_millis
    if hold_until is not None and hold_until > now_millis:
        return SmartTransferStatus.ACCUMULATING
    if snapshot.pending_cents >= min_transfer_cents:
        return SmartTransferStatus.READY
    return SmartTransferStatus.STANDBY


def derive_status(
    snapshot: SmartTransferSnapshot,
    now_millis: int,
    min_transfer_cents: int = DEFAULT_MIN_TRANSFER_CENTS,
) -> SmartTransferStatus:
    if snapshot.is_awaiting_confirmation:
        return SmartTransferStatus.AWAITING_CONFIRMATION
    return pending_status(snapshot, now_millis, min_transfer_cents)


def evaluate(
    snapshot: SmartTransferSnapshot,
    now_millis: int,
    min_transfer_cents: int = DEFAULT_MIN_TRANSFER_CENTS,
) -> SmartTransferRecommendation:
    """Project a snapshot into the recommendation shown to the user"""
    status = derive_status(snapshot, now_millis, min_transfer_cents)
    if status == SmartTransferStatus.AWAITING_CONFIRMATION:
        total, emergency, investment = (
            snapshot.awaiting_cents,
            snapshot.awaiting_emergency_cents,
            snapshot.awaiting_investment_cents,
        )
    else:
        total, emergency, investment = (
            snapshot.pending_cents,
            snapshot.pending_emergency_cents,
            snapshot.pending_investment_cents,
        )

    return SmartTransferRecommendation(
        status=status,
        total_amount=from_cents(total),
        emergency_portion=from_cents(emergency),
        investment_portion=from_cents(investment),
        pending_expense_count=snapshot.pending_expense_count,
        active_expense_count=snapshot.active_expense_count,
        minimum_transfer_amount=from_cents(min_transfer_cents),
        hold_until_epoch_millis=snapshot.hold_until_epoch_millis,
        last_expense_epoch_millis=snapshot.last_expense_epoch_millis,
        awaiting_confirmation_amount=from_cents(snapshot.awaiting_cents),
        awaiting_emergency_amount=from_cents(snapshot.awaiting_emergency_cents),
        awaiting_investment_amount=from_cents(snapshot.awaiting_investment_cents),
        confirmation_started_epoch_millis=snapshot.confirmation_started_epoch_millis,
    )


def begin_transfer(
    snapshot: SmartTransferSnapshot,
    now_millis: int,
    min_transfer_cents: int = DEFAULT_MIN_TRANSFER_CENTS,
) -> SmartTransferSnapshot:
    """
    "Move now": pending totals go to the awaiting-confirmation bucket.

    Only allowed from READY or ACCUMULATING; anything else is a no-op.
    """
    status = pending_status(snapshot, now_millis, min_transfer_cents)
    if status not in (SmartTransferStatus.READY, SmartTransferStatus.ACCUMULATING):
        return snapshot

    return replace(
        snapshot,
        awaiting_emergency_cents=snapshot.awaiting_emergency_cents + snapshot.pending_emergency_cents,
        awaiting_investment_cents=snapshot.awaiting_investment_cents + snapshot.pending_investment_cents,
        awaiting_expense_count=snapshot.awaiting_expense_count + snapshot.pending_expense_count,
        confirmation_started_epoch_millis=now_millis,
        pending_emergency_cents=0,
        pending_investment_cents=0,
        pending_expense_count=0,
        hold_until_epoch_millis=None,
    )


def complete_transfer(snapshot: SmartTransferSnapshot) -> Tuple[SmartTransferSnapshot, Optional[CompletedTransfer]]:
    """
    "Mark done": clear the awaiting bucket and report what was moved.

    A repeated tap with nothing awaiting returns the snapshot unchanged and None.
    """
    if not snapshot.is_awaiting_confirmation:
        return snapshot, None

    completed = CompletedTransfer(
        emergency_cents=snapshot.awaiting_emergency_cents,
        investment_cents=snapshot.awaiting_investment_cents,
        expense_count=snapshot.awaiting_expense_count,
    )
    cleared = replace(
        snapshot,
        awaiting_emergency_cents=0,
        awaiting_investment_cents=0,
        awaiting_expense_count=0,
        confirmation_started_epoch_millis=None,
    )
    return cleared, completed


def return_to_pending(snapshot: SmartTransferSnapshot) -> SmartTransferSnapshot:
    """Undo "move now": awaiting amounts and their expense count go back to pending"""
    if not snapshot.is_awaiting_confirmation:
        return snapshot

    return replace(
        snapshot,
        pending_emergency_cents=snapshot.pending_emergency_cents + snapshot.awaiting_emergency_cents,
        pending_investment_cents=snapshot.pending_investment_cents + snapshot.awaiting_investment_cents,
        pending_expense_count=snapshot.pending_expense_count + snapshot.awaiting_expense_count,
        awaiting_emergency_cents=0,
        awaiting_investment_cents=0,
        awaiting_expense_count=0,
        confirmation_started_epoch_millis=None,
        hold_until_epoch_millis=None,
    )


def dismiss_pending(snapshot: SmartTransferSnapshot) -> SmartTransferSnapshot:
    """Stop nudging: drop the pending totals without recording a transfer"""
    if not snapshot.has_pending and snapshot.pending_expense_count == 0:
        return snapshot

    return replace(
        snapshot,
        pending_emergency_cents=0,
        pending_investment_cents=0,
        pending_expense_count=0,
        hold_until_epoch_millis=None,
    )


class SnapshotStore(Protocol):
    """Owner of the persisted snapshot; update() must apply the mutation atomically"""

    def load(self) -> SmartTransferSnapshot: ...

    def update(self, mutate: Mutation) -> SmartTransferSnapshot: ...


class InMemorySnapshotStore:
    """Single-process store; a lock serialises read-modify-write"""

    def __init__(self, snapshot: Optional[SmartTransferSnapshot] = None):
        self._snapshot = snapshot or SmartTransferSnapshot()
        self._lock = threading.Lock()

    def load(self) -> SmartTransferSnapshot:
        with self._lock:
            return self._snapshot

    def update(self, mutate: Mutation) -> SmartTransferSnapshot:
        with self._lock:
            self._snapshot = mutate(self._snapshot)
            return self._snapshot


class SmartTransferAggregator:
    """
    Sole writer of one user's snapshot.

    Every action is a pure snapshot transformation pushed through the store's
    atomic update, so concurrent expense submissions never lose cents.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        min_transfer_cents: int = DEFAULT_MIN_TRANSFER_CENTS,
        batch_window_millis: int = DEFAULT_BATCH_WINDOW_MILLIS,
        clock: Callable[[], int] = now_epoch_millis,
    ):
        self.store = store or InMemorySnapshotStore()
        self.min_transfer_cents = min_transfer_cents
        self.batch_window_millis = batch_window_millis
        self.clock = clock

    @property
    def snapshot(self) -> SmartTransferSnapshot:
        return self.store.load()

    def add_allocation(self, emergency_cents: int, investment_cents: int) -> SmartTransferSnapshot:
        now = self.clock()
        return self.store.update(
            lambda s: record_allocation(s, emergency_cents, investment_cents, now, self.batch_window_millis)
        )

    def recommendation(self) -> SmartTransferRecommendation:
        return evaluate(self.store.load(), self.clock(), self.min_transfer_cents)

    def confirm(self) -> SmartTransferSnapshot:
        now = self.clock()
        return self.store.update(lambda s: begin_transfer(s, now, self.min_transfer_cents))

    def mark_done(self) -> Optional[CompletedTransfer]:
        outcome = []

        def mutate(snapshot: SmartTransferSnapshot) -> SmartTransferSnapshot:
            cleared, completed = complete_transfer(snapshot)
            outcome.append(completed)
            return cleared

        self.store.update(mutate)
        if outcome[-1] is None:
            logger.info("Mark done ignored: nothing awaiting confirmation")
        return outcome[-1]

    def return_to_pending(self) -> SmartTransferSnapshot:
        return self.store.update(return_to_pending)

    def dismiss(self) -> SmartTransferSnapshot:
        return self.store.update(dismiss_pending)
