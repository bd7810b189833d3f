"""SparelyEngine - per-user orchestration of allocation, vaults, transfers and advice"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from sparely_core.application.schemas import ExpenseRequest, PaycheckRequest, validate_payload
from sparely_core.config import Settings, settings as default_settings
from sparely_core.domain.allocation import create_expense
from sparely_core.domain.budget import detect_budget_prompts, generate_budget_summary, suggest_budget_adjustments
from sparely_core.domain.country import effective_income_tax_rate
from sparely_core.domain.emergency_fund import calculate_emergency_fund
from sparely_core.domain.health import calculate_health_score
from sparely_core.domain.income import recommend_income_rates
from sparely_core.domain.models import (
    BudgetOverrunPrompt,
    BudgetSuggestion,
    BudgetSummary,
    CompletedTransfer,
    ContributionBatch,
    Expense,
    FinancialHealthScore,
    Goal,
    SmartTransferRecommendation,
    UserProfile,
    VaultContribution,
    VaultContributionSource,
)
from sparely_core.domain.recommendation import recommend_percentages
from sparely_core.domain.smart_transfer import SmartTransferAggregator
from sparely_core.domain.vaults import (
    apply_contributions,
    build_contributions,
    distribute_pool,
    due_auto_deposits,
    income_pool_cents,
    saving_tax_pool_cents,
)
from sparely_core.infrastructure.database.repositories import (
    BudgetRepository,
    ContributionRepository,
    ExpenseRepository,
    SmartTransferRepository,
    VaultRepository,
)
from sparely_core.infrastructure.observability.logging import log_expense_allocated, log_transfer_transition
from sparely_core.infrastructure.observability.metrics import (
    record_allocation,
    record_distribution,
    record_health_score,
    record_transfer_action,
)
from sparely_core.utils.date_utils import add_months, month_start, now_epoch_millis

logger = logging.getLogger(__name__)

RECENT_DAYS = 30

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def user_lock(user_id: str) -> threading.Lock:
    """One mutex per user account, shared by every engine in the process"""
    with _locks_guard:
        return _locks.setdefault(user_id, threading.Lock())


@dataclass(frozen=True)
class ExpenseOutcome:
    expense: Expense
    contributions: List[VaultContribution]
    unallocated_cents: int
    recommendation: SmartTransferRecommendation


@dataclass(frozen=True)
class IncomeOutcome:
    save_rate: float
    saving_tax_rate: float
    pool_cents: int
    contributions: List[VaultContribution]
    unallocated_cents: int
    rationale: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BudgetOverview:
    summary: BudgetSummary
    suggestions: List[BudgetSuggestion]
    prompts: List[BudgetOverrunPrompt]


class SparelyEngine:
    """
    Runs the expense -> allocation -> vaults -> smart transfer flow for one user.

    Writes happen under the user's mutex and commit once per operation;
    any failure rolls the session back and propagates.
    """

    def __init__(
        self,
        db: Session,
        user_id: str,
        config: Settings = default_settings,
        clock: Callable[[], int] = now_epoch_millis,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.user_id = user_id
        self.config = config
        self.today = today
        self.expenses = ExpenseRepository(db)
        self.vaults = VaultRepository(db)
        self.contributions = ContributionRepository(db)
        self.budgets = BudgetRepository(db)
        self.transfers = SmartTransferRepository(db)
        self.aggregator = SmartTransferAggregator(
            store=self.transfers.for_user(user_id),
            min_transfer_cents=config.min_transfer_cents,
            batch_window_millis=config.batch_window_millis,
            clock=clock,
        )
        self._lock = user_lock(user_id)

    def default_profile(self) -> UserProfile:
        """Profile used until the user fills in their own"""
        return UserProfile(country_code=self.config.default_country_code, saving_tax_rate=self.config.saving_tax_rate)

    def _recent_expenses(self, today: date) -> List[Expense]:
        return self.expenses.list_for_user(self.user_id, since=today - timedelta(days=RECENT_DAYS))

    def log_expense(
        self,
        request: Union[ExpenseRequest, Dict[str, Any]],
        profile: Optional[UserProfile] = None,
    ) -> ExpenseOutcome:
        """
        Allocate and persist one expense.

        Flow:
        1. Validate the payload (InvalidInputError on bad input)
        2. Pick percentages: manual, auto-recommended, or the profile default
        3. Allocate the expense and store it
        4. Distribute the saving-tax skim across vaults as pending contributions
        5. Add emergency (plus vault) and investment cents to the smart transfer snapshot
        """
        start_time = time.time()
        expense_input = validate_payload(ExpenseRequest, request).to_input()
        profile = profile or self.default_profile()
        today = self.today()

        with self._lock:
            try:
                if expense_input.manual_percentages is not None:
                    percentages = expense_input.manual_percentages.adjust_within_budget(self.config.allocation_budget_cap)
                    auto = False
                elif profile.auto_recommendations_enabled:
                    result = recommend_percentages(
                        profile,
                        self._recent_expenses(today),
                        budget_cap=self.config.recommendation_budget_cap,
                        today=today,
                    )
                    percentages = result.recommended_percentages
                    auto = True
                else:
                    percentages = profile.default_percentages.adjust_within_budget(self.config.allocation_budget_cap)
                    auto = False

                tax_rate = None
                if self.config.adjust_for_included_tax:
                    tax_rate = effective_income_tax_rate(profile.country_code, profile.custom_income_tax_rate)

                expense = create_expense(expense_input, percentages, profile.risk_level, auto, tax_rate=tax_rate)
                expense = self.expenses.add(self.user_id, expense)

                pool_cents = saving_tax_pool_cents(expense.amount, profile.saving_tax_rate)
                distribution = distribute_pool(
                    pool_cents,
                    self.vaults.list_for_user(self.user_id),
                    today,
                    global_mode=profile.vault_allocation_mode,
                    saving_tax_rate=profile.saving_tax_rate,
                )
                contributions = self.contributions.add_all(
                    self.user_id,
                    build_contributions(
                        distribution, VaultContributionSource.SAVING_TAX, expense.date, note=f"expense:{expense.id}"
                    ),
                )

                allocation = expense.allocation
                self.aggregator.add_allocation(
                    allocation.emergency_cents + distribution.allocated_cents,
                    allocation.investment_cents,
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

            recommendation = self.aggregator.recommendation()

        duration_ms = (time.time() - start_time) * 1000
        record_allocation(expense.allocation, auto)
        record_distribution(VaultContributionSource.SAVING_TAX.value, distribution.allocated_cents, distribution.unallocated_cents)
        log_expense_allocated(
            self.user_id,
            expense.id,
            expense.allocation.total_set_aside_cents,
            pool_cents,
            distribution.unallocated_cents,
            duration_ms,
        )

        return ExpenseOutcome(
            expense=expense,
            contributions=contributions,
            unallocated_cents=distribution.unallocated_cents,
            recommendation=recommendation,
        )

    def record_paycheck(
        self,
        request: Union[PaycheckRequest, Dict[str, Any]],
        profile: Optional[UserProfile] = None,
    ) -> IncomeOutcome:
        """Skim the paycheck's save-rate portion into vaults as INCOME contributions"""
        paycheck = validate_payload(PaycheckRequest, request)
        profile = profile or self.default_profile()
        today = self.today()

        with self._lock:
            try:
                monthly_expenses = sum(e.amount for e in self._recent_expenses(today))
                rates = recommend_income_rates(
                    paycheck.amount,
                    paycheck.pay_interval,
                    profile,
                    monthly_expenses,
                    default_save_rate=profile.target_savings_rate,
                    custom_days_between=paycheck.custom_days_between,
                )
                save_rate = paycheck.save_rate if paycheck.save_rate is not None else rates.save_rate

                pool_cents = income_pool_cents(paycheck.amount, save_rate)
                distribution = distribute_pool(
                    pool_cents, self.vaults.list_for_user(self.user_id), today, global_mode=profile.vault_allocation_mode
                )
                contributions = self.contributions.add_all(
                    self.user_id,
                    build_contributions(distribution, VaultContributionSource.INCOME, paycheck.date, note="paycheck"),
                )
                self.aggregator.add_allocation(distribution.allocated_cents, 0)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        record_distribution(VaultContributionSource.INCOME.value, distribution.allocated_cents, distribution.unallocated_cents)
        logger.info(
            "Paycheck recorded",
            extra={"user_id": self.user_id, "pool_cents": pool_cents, "save_rate": round(save_rate, 4)},
        )

        return IncomeOutcome(
            save_rate=save_rate,
            saving_tax_rate=rates.saving_tax_rate,
            pool_cents=pool_cents,
            contributions=contributions,
            unallocated_cents=distribution.unallocated_cents,
            rationale=rates.rationale,
        )

    def run_auto_deposits(self) -> List[VaultContribution]:
        """
        Record every scheduled vault deposit due today as a pending AUTO_DEPOSIT
        contribution and remember the run date on its schedule.
        """
        today = self.today()

        with self._lock:
            try:
                contributions = self.contributions.add_all(
                    self.user_id, due_auto_deposits(self.vaults.list_for_user(self.user_id), today)
                )
                for contribution in contributions:
                    self.vaults.mark_auto_deposit_run(contribution.vault_id, today)
                total_cents = sum(c.amount_cents for c in contributions)
                if total_cents > 0:
                    self.aggregator.add_allocation(total_cents, 0)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        record_distribution(VaultContributionSource.AUTO_DEPOSIT.value, total_cents, 0)
        logger.info(
            "Auto deposits recorded",
            extra={"user_id": self.user_id, "deposits": len(contributions), "total_cents": total_cents},
        )
        return contributions

    def transfer_recommendation(self) -> SmartTransferRecommendation:
        """Current nudge; time-based states are evaluated against the clock on every call"""
        return self.aggregator.recommendation()

    def _transfer_action(self, action: str, run: Callable[[], Any]) -> Any:
        with self._lock:
            try:
                outcome = run()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            recommendation = self.aggregator.recommendation()

        snapshot = self.aggregator.snapshot
        completed = outcome.total_cents if isinstance(outcome, CompletedTransfer) else 0
        record_transfer_action(action, completed)
        log_transfer_transition(
            self.user_id, action, recommendation.status.value, snapshot.pending_cents, snapshot.awaiting_cents
        )
        return outcome

    def confirm_transfer(self) -> SmartTransferRecommendation:
        """'Move now': pending totals and their vault contributions become awaiting confirmation"""

        def move() -> None:
            snapshot = self.aggregator.confirm()
            if snapshot.pending_cents == 0:
                self.contributions.move_batch(self.user_id, ContributionBatch.PENDING, ContributionBatch.AWAITING)

        self._transfer_action("confirm", move)
        return self.transfer_recommendation()

    def mark_transfer_done(self) -> Optional[CompletedTransfer]:
        """
        Clear the awaiting bucket, reconcile the contributions behind it and
        apply them to vault balances. A repeated call returns None.
        """

        def complete() -> Optional[CompletedTransfer]:
            completed = self.aggregator.mark_done()
            if completed is None:
                return None
            awaiting = self.contributions.list_in_batch(self.user_id, ContributionBatch.AWAITING)
            vaults = self.vaults.list_for_user(self.user_id, include_archived=True)
            self.vaults.save_balances(apply_contributions(vaults, awaiting))
            self.contributions.move_batch(self.user_id, ContributionBatch.AWAITING, ContributionBatch.RECONCILED)
            return completed

        return self._transfer_action("mark_done", complete)

    def return_transfer_to_pending(self) -> SmartTransferRecommendation:
        def undo() -> None:
            self.aggregator.return_to_pending()
            self.contributions.move_batch(self.user_id, ContributionBatch.AWAITING, ContributionBatch.PENDING)

        self._transfer_action("return_to_pending", undo)
        return self.transfer_recommendation()

    def dismiss_transfer(self) -> SmartTransferRecommendation:
        """Stop nudging; pending vault contributions are dropped and never reach a balance"""

        def dismiss() -> None:
            self.aggregator.dismiss()
            self.contributions.move_batch(self.user_id, ContributionBatch.PENDING, ContributionBatch.DISMISSED)

        self._transfer_action("dismiss", dismiss)
        return self.transfer_recommendation()

    def budget_overview(self, profile: Optional[UserProfile] = None, month: Optional[date] = None) -> BudgetOverview:
        """Summary, limit suggestions and overrun prompts for one month"""
        profile = profile or self.default_profile()
        month = month_start(month or self.today())
        window_start = add_months(month, -(self.config.budget_history_months - 1))
        history = [e for e in self.expenses.list_for_user(self.user_id, since=window_start) if e.date < add_months(month, 1)]
        budgets = self.budgets.list_for_user(self.user_id, month=month)

        summary = generate_budget_summary(budgets, history, month)
        suggestions = suggest_budget_adjustments(
            budgets,
            history,
            profile,
            month,
            months_to_analyze=self.config.budget_history_months,
            budget_cap=self.config.allocation_budget_cap,
        )
        prompts = detect_budget_prompts(summary, history, suggestions)
        return BudgetOverview(summary=summary, suggestions=suggestions, prompts=prompts)

    def health_score(
        self,
        profile: Optional[UserProfile] = None,
        goals: Sequence[Goal] = (),
        monthly_debt_payments: float = 0.0,
    ) -> FinancialHealthScore:
        """Composite score over all logged expenses, the current budgets and the given goals"""
        profile = profile or self.default_profile()
        today = self.today()
        expenses = self.expenses.list_for_user(self.user_id)
        total_spent = sum(e.amount for e in expenses)
        total_saved = sum(e.allocation.total_set_aside for e in expenses)
        monthly_expenses = sum(e.amount for e in expenses if e.date >= today - timedelta(days=RECENT_DAYS))

        goal = calculate_emergency_fund(profile, monthly_expenses)
        summary = generate_budget_summary(self.budgets.list_for_user(self.user_id, month=today), expenses, today)
        baseline = goal.target_amount / goal.target_months

        score = calculate_health_score(
            total_saved=total_saved,
            total_spent=total_spent,
            target_savings_rate=profile.target_savings_rate,
            emergency_balance=profile.current_emergency_fund,
            monthly_expenses=baseline,
            recommended_emergency_months=goal.target_months,
            budget_summary=summary,
            goals=goals,
            monthly_debt_payments=monthly_debt_payments,
            monthly_income=profile.monthly_income,
            has_debts=profile.has_debts,
        )
        record_health_score(score.overall_score)
        logger.info(
            "Health score computed",
            extra={"user_id": self.user_id, "overall_score": score.overall_score},
        )
        return score
