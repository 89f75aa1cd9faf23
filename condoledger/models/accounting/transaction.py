"""Accounting Transaction and Transaction Entry models."""

from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, Date, DateTime, Enum, ForeignKey, Index, Integer, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship

from condoledger.models.base import Base, TimestampMixin
from condoledger.domain.accounting.enums import ReferenceType, TransactionStatus
from condoledger.domain.accounting.references import TransactionReference

if TYPE_CHECKING:
    from .chart_of_accounts import ChartOfAccount


class AccountingTransaction(Base, TimestampMixin):
    """Accounting transaction (journal entry header)."""

    __tablename__ = "accounting_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conjunto_id: Mapped[int] = mapped_column(Integer, nullable=False)

    transaction_number: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    reference_type: Mapped[ReferenceType] = mapped_column(
        Enum(ReferenceType, native_enum=False, length=20),
        default=ReferenceType.MANUAL,
        nullable=False
    )
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False, length=20),
        default=TransactionStatus.DRAFT,
        nullable=False
    )

    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    posted_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    entries: Mapped[list[AccountingTransactionEntry]] = relationship(
        "AccountingTransactionEntry",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="AccountingTransactionEntry.id"
    )

    __table_args__ = (
        UniqueConstraint("conjunto_id", "transaction_number", name="uq_accounting_transactions_number"),
        Index("idx_accounting_transactions_conjunto_date", "conjunto_id", "transaction_date"),
        Index("idx_accounting_transactions_reference", "reference_type", "reference_id"),
    )

    @property
    def reference(self) -> TransactionReference:
        return TransactionReference(self.reference_type, self.reference_id)

    @reference.setter
    def reference(self, value: TransactionReference) -> None:
        self.reference_type = value.type
        self.reference_id = value.id

    @property
    def total_debit(self) -> Decimal:
        return sum((e.debit_amount or Decimal("0") for e in self.entries), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((e.credit_amount or Decimal("0") for e in self.entries), Decimal("0"))

    @property
    def is_draft(self) -> bool:
        return self.status == TransactionStatus.DRAFT

    @property
    def is_posted(self) -> bool:
        return self.status == TransactionStatus.POSTED

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.total_debit - self.total_credit) <= tolerance

    def __repr__(self) -> str:
        return f"<AccountingTransaction {self.transaction_number} {self.status.value}>"


class AccountingTransactionEntry(Base, TimestampMixin):
    """One debit or credit line of a transaction."""

    __tablename__ = "accounting_transaction_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounting_transactions.id", ondelete="CASCADE"),
        nullable=False
    )

    # Relationship
    transaction: Mapped[AccountingTransaction] = relationship(
        "AccountingTransaction", back_populates="entries"
    )

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chart_of_accounts.id"),
        nullable=False
    )
    account: Mapped[ChartOfAccount] = relationship("ChartOfAccount")

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    debit_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    credit_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    third_party_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    third_party_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("debit_amount >= 0", name="check_entry_debit_non_negative"),
        CheckConstraint("credit_amount >= 0", name="check_entry_credit_non_negative"),
        CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) OR (debit_amount = 0 AND credit_amount > 0)",
            name="check_entry_one_side"
        ),
        Index("idx_accounting_entries_account", "account_id"),
        Index("idx_accounting_entries_transaction", "transaction_id"),
    )

    @property
    def is_debit(self) -> bool:
        return (self.debit_amount or 0) > 0

    @property
    def amount(self) -> Decimal:
        return self.debit_amount if self.is_debit else self.credit_amount
