"""Data access layer mapping ORM rows to domain dataclasses"""

from dataclasses import fields, replace
from datetime import date
from typing import Callable, Iterable, List, Optional
from sqlalchemy.orm import Session
from sparely_core.infrastructure.database.models import (
    CategoryBudgetRecord,
    ExpenseRecord,
    SmartTransferSnapshotRecord,
    SmartVaultRecord,
    VaultContributionRecord,
)
from sparely_core.domain.models import (
    AllocationBreakdown,
    AutoDepositFrequency,
    AutoDepositSchedule,
    CategoryBudget,
    ContributionBatch,
    Expense,
    ExpenseCategory,
    RiskLevel,
    SavingsPercentages,
    SmartTransferSnapshot,
    SmartVault,
    VaultAllocationMode,
    VaultContribution,
    VaultContributionSource,
    VaultPriority,
    VaultType,
)
from sparely_core.utils.money import from_cents, to_cents

_SNAPSHOT_FIELDS = [f.name for f in fields(SmartTransferSnapshot)]


def _optional_cents(amount: Optional[float]) -> Optional[int]:
    return to_cents(amount) if amount is not None else None


def _optional_amount(cents: Optional[int]) -> Optional[float]:
    return from_cents(cents) if cents is not None else None


class ExpenseRepository:
    """Repository for logged expenses"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: str, expense: Expense) -> Expense:
        """Persist an allocated expense and return it with its id"""
        allocation = expense.allocation
        percentages = expense.applied_percentages
        record = ExpenseRecord(
            user_id=user_id,
            description=expense.description,
            amount_cents=to_cents(expense.amount),
            category=expense.category.value,
            date=expense.date,
            includes_tax=expense.includes_tax,
            emergency_cents=allocation.emergency_cents,
            investment_cents=allocation.investment_cents,
            fun_cents=allocation.fun_cents,
            safe_investment_cents=allocation.safe_investment_cents,
            high_risk_investment_cents=allocation.high_risk_investment_cents,
            emergency_pct=percentages.emergency,
            invest_pct=percentages.invest,
            fun_pct=percentages.fun,
            safe_split=percentages.safe_investment_split,
            auto_recommended=expense.auto_recommended,
            risk_level_used=expense.risk_level_used.value,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return replace(expense, id=record.id)

    def list_for_user(self, user_id: str, since: Optional[date] = None) -> List[Expense]:
        """Expenses ordered by date, oldest first"""
        query = self.db.query(ExpenseRecord).filter(ExpenseRecord.user_id == user_id)
        if since is not None:
            query = query.filter(ExpenseRecord.date >= since)
        return [self._to_domain(r) for r in query.order_by(ExpenseRecord.date, ExpenseRecord.id).all()]

    @staticmethod
    def _to_domain(record: ExpenseRecord) -> Expense:
        return Expense(
            id=record.id,
            description=record.description,
            amount=from_cents(record.amount_cents),
            category=ExpenseCategory(record.category),
            date=record.date,
            includes_tax=record.includes_tax,
            allocation=AllocationBreakdown(
                emergency_cents=record.emergency_cents,
                investment_cents=record.investment_cents,
                fun_cents=record.fun_cents,
                safe_investment_cents=record.safe_investment_cents,
                high_risk_investment_cents=record.high_risk_investment_cents,
            ),
            applied_percentages=SavingsPercentages(
                emergency=record.emergency_pct,
                invest=record.invest_pct,
                fun=record.fun_pct,
                safe_investment_split=record.safe_split,
            ),
            auto_recommended=record.auto_recommended,
            risk_level_used=RiskLevel(record.risk_level_used),
        )


class VaultRepository:
    """Repository for smart vaults"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: str, vault: SmartVault) -> SmartVault:
        schedule = vault.auto_deposit_schedule
        record = SmartVaultRecord(
            user_id=user_id,
            name=vault.name,
            target_cents=to_cents(vault.target_amount),
            balance_cents=to_cents(vault.current_balance),
            priority=vault.priority.value,
            type=vault.type.value,
            allocation_mode=vault.allocation_mode.value,
            manual_allocation_percent=vault.manual_allocation_percent,
            target_date=vault.target_date,
            start_date=vault.start_date,
            end_date=vault.end_date,
            monthly_need_cents=_optional_cents(vault.monthly_need),
            saving_tax_rate_override=vault.saving_tax_rate_override,
            auto_deposit_cents=to_cents(schedule.amount) if schedule else None,
            auto_deposit_frequency=schedule.frequency.value if schedule else None,
            auto_deposit_start=schedule.start_date if schedule else None,
            auto_deposit_end=schedule.end_date if schedule else None,
            auto_deposit_last_run=schedule.last_execution_date if schedule else None,
            archived=vault.archived,
        )
        self.db.add(record)
        self.db.flush()
        return replace(vault, id=record.id)

    def list_for_user(self, user_id: str, include_archived: bool = False) -> List[SmartVault]:
        query = self.db.query(SmartVaultRecord).filter(SmartVaultRecord.user_id == user_id)
        if not include_archived:
            query = query.filter(SmartVaultRecord.archived.is_(False))
        return [self._to_domain(r) for r in query.order_by(SmartVaultRecord.id).all()]

    def save_balances(self, vaults: Iterable[SmartVault]) -> None:
        """Write back current balances of the given vaults"""
        for vault in vaults:
            record = self.db.get(SmartVaultRecord, vault.id)
            if record is not None:
                record.balance_cents = to_cents(vault.current_balance)
        self.db.flush()

    def mark_auto_deposit_run(self, vault_id: int, on: date) -> None:
        """Remember the last scheduled deposit so it is not repeated"""
        record = self.db.get(SmartVaultRecord, vault_id)
        if record is not None:
            record.auto_deposit_last_run = on
            self.db.flush()

    def archive(self, vault_id: int) -> None:
        record = self.db.get(SmartVaultRecord, vault_id)
        if record is not None:
            record.archived = True
            self.db.flush()

    @staticmethod
    def _to_domain(record: SmartVaultRecord) -> SmartVault:
        schedule = None
        if record.auto_deposit_cents is not None and record.auto_deposit_frequency and record.auto_deposit_start:
            schedule = AutoDepositSchedule(
                amount=from_cents(record.auto_deposit_cents),
                frequency=AutoDepositFrequency(record.auto_deposit_frequency),
                start_date=record.auto_deposit_start,
                end_date=record.auto_deposit_end,
                last_execution_date=record.auto_deposit_last_run,
            )
        return SmartVault(
            id=record.id,
            name=record.name,
            target_amount=from_cents(record.target_cents),
            current_balance=from_cents(record.balance_cents),
            priority=VaultPriority(record.priority),
            type=VaultType(record.type),
            allocation_mode=VaultAllocationMode(record.allocation_mode),
            manual_allocation_percent=record.manual_allocation_percent,
            target_date=record.target_date,
            start_date=record.start_date,
            end_date=record.end_date,
            monthly_need=_optional_amount(record.monthly_need_cents),
            saving_tax_rate_override=record.saving_tax_rate_override,
            auto_deposit_schedule=schedule,
            archived=record.archived,
        )


class ContributionRepository:
    """Repository for the vault contribution ledger"""

    def __init__(self, db: Session):
        self.db = db

    def add_all(self, user_id: str, contributions: Iterable[VaultContribution]) -> List[VaultContribution]:
        saved = []
        for contribution in contributions:
            record = VaultContributionRecord(
                user_id=user_id,
                vault_id=contribution.vault_id,
                amount_cents=contribution.amount_cents,
                date=contribution.date,
                source=contribution.source.value,
                batch=contribution.batch.value,
                note=contribution.note,
            )
            self.db.add(record)
            self.db.flush()
            saved.append(replace(contribution, id=record.id))
        return saved

    def list_in_batch(self, user_id: str, batch: ContributionBatch) -> List[VaultContribution]:
        records = (
            self.db.query(VaultContributionRecord)
            .filter(VaultContributionRecord.user_id == user_id)
            .filter(VaultContributionRecord.batch == batch.value)
            .order_by(VaultContributionRecord.id)
            .all()
        )
        return [self._to_domain(r) for r in records]

    def list_for_vault(self, vault_id: int) -> List[VaultContribution]:
        records = (
            self.db.query(VaultContributionRecord)
            .filter(VaultContributionRecord.vault_id == vault_id)
            .order_by(VaultContributionRecord.id)
            .all()
        )
        return [self._to_domain(r) for r in records]

    def move_batch(self, user_id: str, source: ContributionBatch, target: ContributionBatch) -> int:
        """Move every entry of one batch to another; returns how many rows changed"""
        updated = (
            self.db.query(VaultContributionRecord)
            .filter(VaultContributionRecord.user_id == user_id)
            .filter(VaultContributionRecord.batch == source.value)
            .update({VaultContributionRecord.batch: target.value}, synchronize_session=False)
        )
        self.db.flush()
        return updated

    @staticmethod
    def _to_domain(record: VaultContributionRecord) -> VaultContribution:
        return VaultContribution(
            vault_id=record.vault_id,
            amount_cents=record.amount_cents,
            date=record.date,
            source=VaultContributionSource(record.source),
            batch=ContributionBatch(record.batch),
            id=record.id,
            note=record.note,
        )


class BudgetRepository:
    """Repository for category budgets"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: str, budget: CategoryBudget) -> CategoryBudget:
        record = CategoryBudgetRecord(
            user_id=user_id,
            category=budget.category.value,
            monthly_limit_cents=to_cents(budget.monthly_limit),
            month=budget.month.replace(day=1),
            is_active=budget.is_active,
        )
        self.db.add(record)
        self.db.flush()
        return replace(budget, id=record.id)

    def list_for_user(self, user_id: str, month: Optional[date] = None) -> List[CategoryBudget]:
        query = self.db.query(CategoryBudgetRecord).filter(CategoryBudgetRecord.user_id == user_id)
        if month is not None:
            query = query.filter(CategoryBudgetRecord.month == month.replace(day=1))
        return [
            CategoryBudget(
                category=ExpenseCategory(r.category),
                monthly_limit=from_cents(r.monthly_limit_cents),
                month=r.month,
                is_active=r.is_active,
                id=r.id,
            )
            for r in query.order_by(CategoryBudgetRecord.id).all()
        ]


class SmartTransferRepository:
    """Repository for the per-user smart transfer snapshot"""

    def __init__(self, db: Session):
        self.db = db

    def load(self, user_id: str) -> SmartTransferSnapshot:
        record = self.db.get(SmartTransferSnapshotRecord, user_id)
        return self._to_domain(record) if record is not None else SmartTransferSnapshot()

    def update(
        self,
        user_id: str,
        mutate: Callable[[SmartTransferSnapshot], SmartTransferSnapshot],
    ) -> SmartTransferSnapshot:
        """
        Read-modify-write of the snapshot row under SELECT ... FOR UPDATE.

        The row lock holds until the caller commits, so two writers for the
        same user cannot both read the old pending totals.
        """
        record = (
            self.db.query(SmartTransferSnapshotRecord)
            .filter(SmartTransferSnapshotRecord.user_id == user_id)
            .with_for_update()
            .one_or_none()
        )
        if record is None:
            record = SmartTransferSnapshotRecord(user_id=user_id)
            self.db.add(record)
            current = SmartTransferSnapshot()
        else:
            current = self._to_domain(record)

        updated = mutate(current)
        for name in _SNAPSHOT_FIELDS:
            setattr(record, name, getattr(updated, name))
        self.db.flush()
        return updated

    def for_user(self, user_id: str) -> "UserSnapshotStore":
        return UserSnapshotStore(self, user_id)

    @staticmethod
    def _to_domain(record: SmartTransferSnapshotRecord) -> SmartTransferSnapshot:
        return SmartTransferSnapshot(**{name: getattr(record, name) for name in _SNAPSHOT_FIELDS})


class UserSnapshotStore:
    """Snapshot store bound to one user, for SmartTransferAggregator"""

    def __init__(self, repository: SmartTransferRepository, user_id: str):
        self.repository = repository
        self.user_id = user_id

    def load(self) -> SmartTransferSnapshot:
        return self.repository.load(self.user_id)

    def update(self, mutate: Callable[[SmartTransferSnapshot], SmartTransferSnapshot]) -> SmartTransferSnapshot:
        return self.repository.update(self.user_id, mutate)
