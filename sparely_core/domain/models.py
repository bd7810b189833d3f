"""Domain models - pure Python dataclasses representing savings entities"""

import math
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from sparely_core.domain.exceptions import InvalidInputError
from sparely_core.utils.money import from_cents


class RiskLevel(str, Enum):
    CONSERVATIVE = "CONSERVATIVE"
    BALANCED = "BALANCED"
    AGGRESSIVE = "AGGRESSIVE"


class SavingsCategory(str, Enum):
    EMERGENCY = "EMERGENCY"
    INVESTMENT = "INVESTMENT"
    FUN = "FUN"


class ExpenseCategory(str, Enum):
    GROCERIES = "GROCERIES"
    DINING = "DINING"
    TRANSPORTATION = "TRANSPORTATION"
    ENTERTAINMENT = "ENTERTAINMENT"
    UTILITIES = "UTILITIES"
    HEALTH = "HEALTH"
    EDUCATION = "EDUCATION"
    SHOPPING = "SHOPPING"
    TRAVEL = "TRAVEL"
    OTHER = "OTHER"


class EmploymentStatus(str, Enum):
    STUDENT = "STUDENT"
    EMPLOYED = "EMPLOYED"
    PART_TIME = "PART_TIME"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    UNEMPLOYED = "UNEMPLOYED"
    RETIRED = "RETIRED"


class EducationStatus(str, Enum):
    HIGH_SCHOOL = "HIGH_SCHOOL"
    UNIVERSITY = "UNIVERSITY"
    GRADUATED = "GRADUATED"
    OTHER = "OTHER"


class LivingSituation(str, Enum):
    WITH_PARENTS = "WITH_PARENTS"
    RENTING = "RENTING"
    HOMEOWNER = "HOMEOWNER"
    OTHER = "OTHER"


class VaultPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class VaultType(str, Enum):
    SHORT_TERM = "SHORT_TERM"
    LONG_TERM = "LONG_TERM"
    PASSIVE_INVESTMENT = "PASSIVE_INVESTMENT"


class VaultAllocationMode(str, Enum):
    DYNAMIC_AUTO = "DYNAMIC_AUTO"
    MANUAL = "MANUAL"


class VaultContributionSource(str, Enum):
    INCOME = "INCOME"
    SAVING_TAX = "SAVING_TAX"
    AUTO_DEPOSIT = "AUTO_DEPOSIT"
    MANUAL = "MANUAL"
    TRANSFER = "TRANSFER"


class ContributionBatch(str, Enum):
    PENDING = "PENDING"  # behind the pending transfer bucket
    AWAITING = "AWAITING"  # behind a confirmed transfer not yet marked done
    RECONCILED = "RECONCILED"
    DISMISSED = "DISMISSED"  # nudge dismissed, money stayed in the main account


class AutoDepositFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class PayInterval(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    SEMI_MONTHLY = "SEMI_MONTHLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


class SmartTransferStatus(str, Enum):
    STANDBY = "STANDBY"  # below threshold, nothing recent
    ACCUMULATING = "ACCUMULATING"  # inside the batch window
    READY = "READY"  # above threshold and quiet
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"  # user started moving the money


class BudgetHealthStatus(str, Enum):
    HEALTHY = "HEALTHY"  # < 70% used
    WARNING = "WARNING"  # 70% .. < 90%
    CRITICAL = "CRITICAL"  # 90% .. 100% inclusive
    OVER_BUDGET = "OVER_BUDGET"  # > 100%


class SuggestionConfidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class BudgetPromptReason(str, Enum):
    POTENTIAL_ONE_OFF = "POTENTIAL_ONE_OFF"
    TRENDING_HIGH = "TRENDING_HIGH"
    UNPLANNED_CATEGORY = "UNPLANNED_CATEGORY"


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class HealthLevel(Enum):
    """Score bands; contiguous and exhaustive over 0..100"""

    EXCELLENT = (90, 100, "Excellent")
    GOOD = (75, 89, "Good")
    FAIR = (60, 74, "Fair")
    NEEDS_WORK = (40, 59, "Needs Work")
    CRITICAL = (0, 39, "Critical")

    def __init__(self, min_score: int, max_score: int, label: str):
        self.min_score = min_score
        self.max_score = max_score
        self.label = label

    @classmethod
    def from_score(cls, score: int) -> "HealthLevel":
        clamped = max(0, min(100, score))
        return next(level for level in cls if level.min_score <= clamped <= level.max_score)


DEFAULT_PERCENTAGES = (0.15, 0.05, 0.05)
DEFAULT_SAFE_SPLIT = 0.65


def _check_fraction(name: str, value: float) -> None:
    if value is None or math.isnan(value) or value < 0.0 or value > 1.0:
        raise InvalidInputError(f"{name} must be a fraction in [0, 1], got {value!r}")


@dataclass(frozen=True)
class SavingsPercentages:
    """
    How each expense is split into savings buckets, as fractions of the amount.

    Immutable: every transformation returns a new instance.
    """

    emergency: float
    invest: float
    fun: float
    safe_investment_split: float = DEFAULT_SAFE_SPLIT

    def __post_init__(self) -> None:
        _check_fraction("emergency", self.emergency)
        _check_fraction("invest", self.invest)
        _check_fraction("fun", self.fun)
        _check_fraction("safe_investment_split", self.safe_investment_split)

    @property
    def total(self) -> float:
        return self.emergency + self.invest + self.fun

    @classmethod
    def clamped(
        cls, emergency: float, invest: float, fun: float, safe_investment_split: float = DEFAULT_SAFE_SPLIT
    ) -> "SavingsPercentages":
        """Build from derived ratios, coercing each into [0, 1]"""

        def clamp(value: float) -> float:
            return min(1.0, max(0.0, value))

        return cls(clamp(emergency), clamp(invest), clamp(fun), clamp(safe_investment_split))

    def normalized(self) -> "SavingsPercentages":
        """Rescale so the three buckets sum to 1, or fall back to the default triple"""
        total = self.total
        if total <= 0.0:
            emergency, invest, fun = DEFAULT_PERCENTAGES
            return replace(self, emergency=emergency, invest=invest, fun=fun)
        return SavingsPercentages(
            emergency=self.emergency / total,
            invest=self.invest / total,
            fun=self.fun / total,
            safe_investment_split=self.safe_investment_split,
        )

    def adjust_within_budget(self, max_total: float = 0.5) -> "SavingsPercentages":
        """Proportionally shrink so total <= max_total, keeping relative ratios"""
        total = self.total
        if total <= max_total:
            return self
        scale = max_total / total
        return SavingsPercentages(
            emergency=self.emergency * scale,
            invest=self.invest * scale,
            fun=self.fun * scale,
            safe_investment_split=self.safe_investment_split,
        )


@dataclass(frozen=True)
class AllocationBreakdown:
    """Currency split of one expense; cents are authoritative"""

    emergency_cents: int
    investment_cents: int
    fun_cents: int
    safe_investment_cents: int
    high_risk_investment_cents: int

    @property
    def emergency_amount(self) -> float:
        return from_cents(self.emergency_cents)

    @property
    def investment_amount(self) -> float:
        return from_cents(self.investment_cents)

    @property
    def fun_amount(self) -> float:
        return from_cents(self.fun_cents)

    @property
    def safe_investment_amount(self) -> float:
        return from_cents(self.safe_investment_cents)

    @property
    def high_risk_investment_amount(self) -> float:
        return from_cents(self.high_risk_investment_cents)

    @property
    def total_set_aside_cents(self) -> int:
        return self.emergency_cents + self.investment_cents + self.fun_cents

    @property
    def total_set_aside(self) -> float:
        return from_cents(self.total_set_aside_cents)


@dataclass(frozen=True)
class ExpenseInput:
    """Validated user payload for a new expense"""

    description: str
    amount: float
    category: ExpenseCategory
    date: date
    includes_tax: bool = False
    manual_percentages: Optional[SavingsPercentages] = None


@dataclass(frozen=True)
class Expense:
    """Expense with its computed savings allocation"""

    id: Optional[int]
    description: str
    amount: float
    category: ExpenseCategory
    date: date
    includes_tax: bool
    allocation: AllocationBreakdown
    applied_percentages: SavingsPercentages
    auto_recommended: bool
    risk_level_used: RiskLevel


@dataclass
class UserProfile:
    """Profile and settings fields read by the engines"""

    age: int = 30
    risk_level: RiskLevel = RiskLevel.BALANCED
    monthly_income: float = 4500.0
    has_debts: bool = False
    country_code: str = "US"
    custom_income_tax_rate: Optional[float] = None
    employment_status: EmploymentStatus = EmploymentStatus.EMPLOYED
    education_status: EducationStatus = EducationStatus.OTHER
    living_situation: LivingSituation = LivingSituation.OTHER
    current_emergency_fund: float = 0.0
    target_savings_rate: float = 0.15
    saving_tax_rate: float = 0.04
    vault_allocation_mode: VaultAllocationMode = VaultAllocationMode.DYNAMIC_AUTO
    auto_recommendations_enabled: bool = True
    default_percentages: SavingsPercentages = field(
        default_factory=lambda: SavingsPercentages(emergency=0.18, invest=0.07, fun=0.05)
    )


@dataclass(frozen=True)
class SavingsPlanEntry:
    category: SavingsCategory
    target_amount: float
    already_set_aside: float
    recommended_safe_amount: Optional[float] = None
    recommended_high_risk_amount: Optional[float] = None

    @property
    def remaining_amount(self) -> float:
        return max(0.0, self.target_amount - self.already_set_aside)


@dataclass(frozen=True)
class SavingsPlan:
    """Monthly guidance on how much to set aside per bucket"""

    entries: List[SavingsPlanEntry]

    @property
    def total_target(self) -> float:
        return sum(e.target_amount for e in self.entries)

    @property
    def total_already_set_aside(self) -> float:
        return sum(e.already_set_aside for e in self.entries)

    @property
    def total_remaining(self) -> float:
        return sum(e.remaining_amount for e in self.entries)


@dataclass(frozen=True)
class RecommendationResult:
    recommended_percentages: SavingsPercentages
    safe_investment_ratio: float
    high_risk_investment_ratio: float
    rationale: str
    savings_plan: SavingsPlan
    auto_adjusted: bool


@dataclass(frozen=True)
class EmergencyFundGoal:
    target_months: float
    target_amount: float
    shortfall_amount: float
    recommended_monthly_contribution: float

    @property
    def coverage_ratio(self) -> float:
        if self.target_amount <= 0.0:
            return 1.0
        return max(0.0, self.target_amount - self.shortfall_amount) / self.target_amount


@dataclass(frozen=True)
class AutoDepositSchedule:
    amount: float
    frequency: AutoDepositFrequency
    start_date: date
    end_date: Optional[date] = None
    last_execution_date: Optional[date] = None


@dataclass(frozen=True)
class SmartVault:
    """Named savings destination"""

    id: int
    name: str
    target_amount: float
    current_balance: float = 0.0
    priority: VaultPriority = VaultPriority.MEDIUM
    type: VaultType = VaultType.SHORT_TERM
    allocation_mode: VaultAllocationMode = VaultAllocationMode.DYNAMIC_AUTO
    manual_allocation_percent: Optional[float] = None
    target_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_need: Optional[float] = None
    saving_tax_rate_override: Optional[float] = None
    auto_deposit_schedule: Optional[AutoDepositSchedule] = None
    archived: bool = False

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(1.0, max(0.0, self.current_balance / self.target_amount))

    @property
    def is_fully_funded(self) -> bool:
        return self.current_balance >= self.target_amount

    @property
    def remaining_need(self) -> float:
        return max(0.0, self.target_amount - self.current_balance)


@dataclass(frozen=True)
class VaultContribution:
    """Append-only ledger entry that follows its transfer batch until reconciled"""

    vault_id: int
    amount_cents: int
    date: date
    source: VaultContributionSource
    batch: ContributionBatch = ContributionBatch.PENDING
    id: Optional[int] = None
    note: Optional[str] = None

    @property
    def reconciled(self) -> bool:
        return self.batch == ContributionBatch.RECONCILED

    @property
    def amount(self) -> float:
        return from_cents(self.amount_cents)


@dataclass(frozen=True)
class SmartTransferSnapshot:
    """
    Persisted accumulator for the smart transfer helper.

    All amounts are integer cents; float amounts are derived on read.
    """

    pending_emergency_cents: int = 0
    pending_investment_cents: int = 0
    pending_expense_count: int = 0
    last_expense_epoch_millis: Optional[int] = None
    hold_until_epoch_millis: Optional[int] = None
    awaiting_emergency_cents: int = 0
    awaiting_investment_cents: int = 0
    awaiting_expense_count: int = 0
    confirmation_started_epoch_millis: Optional[int] = None

    @property
    def pending_cents(self) -> int:
        return self.pending_emergency_cents + self.pending_investment_cents

    @property
    def awaiting_cents(self) -> int:
        return self.awaiting_emergency_cents + self.awaiting_investment_cents

    @property
    def has_pending(self) -> bool:
        return self.pending_cents > 0

    @property
    def is_awaiting_confirmation(self) -> bool:
        return self.awaiting_cents > 0

    @property
    def active_expense_count(self) -> int:
        return self.awaiting_expense_count if self.is_awaiting_confirmation else self.pending_expense_count


@dataclass(frozen=True)
class SmartTransferRecommendation:
    """Read-only projection of a snapshot for display"""

    status: SmartTransferStatus
    total_amount: float
    emergency_portion: float
    investment_portion: float
    pending_expense_count: int
    active_expense_count: int
    minimum_transfer_amount: float
    hold_until_epoch_millis: Optional[int]
    last_expense_epoch_millis: Optional[int]
    awaiting_confirmation_amount: float
    awaiting_emergency_amount: float
    awaiting_investment_amount: float
    confirmation_started_epoch_millis: Optional[int]

    @property
    def shortfall_to_threshold(self) -> float:
        return max(0.0, self.minimum_transfer_amount - self.total_amount)


@dataclass(frozen=True)
class CompletedTransfer:
    """Amounts that left the awaiting-confirmation bucket on 'mark done'"""

    emergency_cents: int
    investment_cents: int
    expense_count: int

    @property
    def total_cents(self) -> int:
        return self.emergency_cents + self.investment_cents


@dataclass(frozen=True)
class CategoryBudget:
    category: ExpenseCategory
    monthly_limit: float
    month: date  # first day of the budgeted month
    is_active: bool = True
    id: Optional[int] = None


@dataclass(frozen=True)
class BudgetStatus:
    category: ExpenseCategory
    limit: float
    spent: float
    remaining: float
    percentage_used: float
    status: BudgetHealthStatus
    month: date

    @property
    def is_over_budget(self) -> bool:
        return self.status == BudgetHealthStatus.OVER_BUDGET


@dataclass(frozen=True)
class BudgetSummary:
    total_budget: float
    total_spent: float
    total_remaining: float
    category_statuses: List[BudgetStatus]
    overall_health: BudgetHealthStatus
    month: date

    @property
    def percentage_used(self) -> float:
        return self.total_spent / self.total_budget if self.total_budget > 0 else 0.0

    @property
    def categories_over_budget(self) -> int:
        return sum(1 for s in self.category_statuses if s.is_over_budget)


@dataclass(frozen=True)
class BudgetSuggestion:
    category: ExpenseCategory
    suggested_limit: float
    current_limit: Optional[float]
    historical_average: float
    profile_target: float
    months_of_history: int
    rationale: str
    confidence: SuggestionConfidence


@dataclass(frozen=True)
class BudgetOverrunPrompt:
    category: ExpenseCategory
    month: date
    status: BudgetStatus
    overspend_amount: float
    largest_expense: Optional[Expense]
    suggestion: Optional[BudgetSuggestion]
    reason: BudgetPromptReason


@dataclass(frozen=True)
class Goal:
    id: int
    title: str
    target_amount: float
    progress_amount: float = 0.0
    target_date: Optional[date] = None
    archived: bool = False

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(1.0, max(0.0, self.progress_amount / self.target_amount))


@dataclass(frozen=True)
class ImprovementTip:
    area: str
    title: str
    description: str
    priority: Priority
    potential_score_gain: int
    actionable: str


@dataclass(frozen=True)
class FinancialHealthScore:
    overall_score: int
    savings_rate_score: int
    emergency_fund_score: int
    budget_adherence_score: int
    goal_progress_score: int
    debt_ratio_score: int
    health_level: HealthLevel
    top_strengths: List[str]
    improvement_areas: List[ImprovementTip]
    has_sufficient_data: bool = True

    @property
    def score_breakdown(self) -> Dict[str, int]:
        return {
            "Savings Rate": self.savings_rate_score,
            "Emergency Fund": self.emergency_fund_score,
            "Budget Adherence": self.budget_adherence_score,
            "Goal Progress": self.goal_progress_score,
            "Debt Management": self.debt_ratio_score,
        }
