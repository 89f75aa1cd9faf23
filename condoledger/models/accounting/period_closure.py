"""Accounting period closure model."""

from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import mapped_column, Mapped, relationship

from condoledger.models.base import Base, TimestampMixin
from condoledger.domain.accounting.enums import ClosureStatus, PeriodType

if TYPE_CHECKING:
    from .transaction import AccountingTransaction


class AccountingPeriodClosure(Base, TimestampMixin):
    """Record of a fiscal year closure.

    A year counts as closed while a ``completed`` closure exists for it.
    Reversed closures are kept as history.
    """

    __tablename__ = "accounting_period_closures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conjunto_id: Mapped[int] = mapped_column(Integer, nullable=False)

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_type: Mapped[PeriodType] = mapped_column(
        Enum(PeriodType, native_enum=False, length=20),
        default=PeriodType.ANNUAL,
        nullable=False
    )
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    closure_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[ClosureStatus] = mapped_column(
        Enum(ClosureStatus, native_enum=False, length=20),
        default=ClosureStatus.COMPLETED,
        nullable=False
    )

    total_income: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_expenses: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    net_result: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    is_profit: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    closing_transaction_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounting_transactions.id"), nullable=True
    )
    closing_transaction: Mapped[AccountingTransaction | None] = relationship("AccountingTransaction")

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    closed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reversed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reversed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        # At most one completed closure per tenant and year
        Index(
            "uq_period_closures_completed_year",
            "conjunto_id",
            "fiscal_year",
            unique=True,
            postgresql_where=text("status = 'COMPLETED'"),
            sqlite_where=text("status = 'COMPLETED'"),
        ),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == ClosureStatus.COMPLETED

    def __repr__(self) -> str:
        return f"<AccountingPeriodClosure {self.fiscal_year} {self.status.value}>"
