"""SQLAlchemy ORM models for expenses, vaults, budgets and the smart transfer snapshot"""

from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class ExpenseRecord(Base):
    """Logged expense with its stored allocation"""

    __tablename__ = "expense"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(String(32), nullable=False)
    date = Column(Date, nullable=False, index=True)
    includes_tax = Column(Boolean, nullable=False, default=False)
    emergency_cents = Column(BigInteger, nullable=False)
    investment_cents = Column(BigInteger, nullable=False)
    fun_cents = Column(BigInteger, nullable=False)
    safe_investment_cents = Column(BigInteger, nullable=False)
    high_risk_investment_cents = Column(BigInteger, nullable=False)
    emergency_pct = Column(Float, nullable=False)
    invest_pct = Column(Float, nullable=False)
    fun_pct = Column(Float, nullable=False)
    safe_split = Column(Float, nullable=False)
    auto_recommended = Column(Boolean, nullable=False)
    risk_level_used = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SmartVaultRecord(Base):
    """Savings vault; archived instead of deleted once contributions reference it"""

    __tablename__ = "smart_vault"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    target_cents = Column(BigInteger, nullable=False)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    priority = Column(String(16), nullable=False)
    type = Column(String(32), nullable=False)
    allocation_mode = Column(String(16), nullable=False)
    manual_allocation_percent = Column(Float, nullable=True)
    target_date = Column(Date, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    monthly_need_cents = Column(BigInteger, nullable=True)
    saving_tax_rate_override = Column(Float, nullable=True)
    auto_deposit_cents = Column(BigInteger, nullable=True)
    auto_deposit_frequency = Column(String(16), nullable=True)
    auto_deposit_start = Column(Date, nullable=True)
    auto_deposit_end = Column(Date, nullable=True)
    auto_deposit_last_run = Column(Date, nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contributions = relationship("VaultContributionRecord", back_populates="vault")


class VaultContributionRecord(Base):
    """Append-only contribution ledger"""

    __tablename__ = "vault_contribution"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    vault_id = Column(Integer, ForeignKey("smart_vault.id"), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False)
    source = Column(String(16), nullable=False)
    batch = Column(String(16), nullable=False, default="PENDING", index=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    vault = relationship("SmartVaultRecord", back_populates="contributions")


class CategoryBudgetRecord(Base):
    """Monthly spending limit for one category"""

    __tablename__ = "category_budget"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    category = Column(String(32), nullable=False)
    monthly_limit_cents = Column(BigInteger, nullable=False)
    month = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class SmartTransferSnapshotRecord(Base):
    """One accumulator row per user"""

    __tablename__ = "smart_transfer_snapshot"

    user_id = Column(Text, primary_key=True)
    pending_emergency_cents = Column(BigInteger, nullable=False, default=0)
    pending_investment_cents = Column(BigInteger, nullable=False, default=0)
    pending_expense_count = Column(Integer, nullable=False, default=0)
    last_expense_epoch_millis = Column(BigInteger, nullable=True)
    hold_until_epoch_millis = Column(BigInteger, nullable=True)
    awaiting_emergency_cents = Column(BigInteger, nullable=False, default=0)
    awaiting_investment_cents = Column(BigInteger, nullable=False, default=0)
    awaiting_expense_count = Column(Integer, nullable=False, default=0)
    confirmation_started_epoch_millis = Column(BigInteger, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
