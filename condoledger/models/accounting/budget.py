"""Budget and Budget Item models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import mapped_column, Mapped, relationship

from condoledger.models.base import Base, TimestampMixin
from condoledger.domain.accounting.enums import BudgetStatus, BudgetCategory, ExpenseType

if TYPE_CHECKING:
    from .chart_of_accounts import ChartOfAccount


MONTH_COLUMNS = (
    "jan_amount", "feb_amount", "mar_amount", "apr_amount", "may_amount", "jun_amount",
    "jul_amount", "aug_amount", "sep_amount", "oct_amount", "nov_amount", "dec_amount",
)


class Budget(Base, TimestampMixin):
    """Annual budget for a tenant."""

    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conjunto_id: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[BudgetStatus] = mapped_column(
        Enum(BudgetStatus, native_enum=False, length=20),
        default=BudgetStatus.DRAFT,
        nullable=False
    )

    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    items: Mapped[list[BudgetItem]] = relationship(
        "BudgetItem",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetItem.id"
    )

    __table_args__ = (
        Index("idx_budgets_conjunto_year", "conjunto_id", "fiscal_year"),
    )

    @property
    def total_budgeted_income(self) -> Decimal:
        return sum(
            (i.budgeted_amount for i in self.items if i.category == BudgetCategory.INCOME),
            Decimal("0")
        )

    @property
    def total_budgeted_expenses(self) -> Decimal:
        return sum(
            (i.budgeted_amount for i in self.items if i.category == BudgetCategory.EXPENSE),
            Decimal("0")
        )

    @property
    def budgeted_result(self) -> Decimal:
        return self.total_budgeted_income - self.total_budgeted_expenses


class BudgetItem(Base, TimestampMixin):
    """Budget line for one account, with the amount spread across twelve months."""

    __tablename__ = "budget_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False
    )
    budget: Mapped[Budget] = relationship("Budget", back_populates="items")

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chart_of_accounts.id"),
        nullable=False
    )
    account: Mapped[ChartOfAccount] = relationship("ChartOfAccount")

    category: Mapped[BudgetCategory] = mapped_column(
        Enum(BudgetCategory, native_enum=False, length=20), nullable=False
    )
    expense_type: Mapped[ExpenseType | None] = mapped_column(
        Enum(ExpenseType, native_enum=False, length=20), nullable=True
    )

    budgeted_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    jan_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    feb_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    mar_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    apr_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    may_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    jun_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    jul_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    aug_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    sep_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    oct_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    nov_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    dec_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_budget_items_budget", "budget_id"),
    )

    def get_amount_for_month(self, month: int) -> Decimal:
        if month < 1 or month > 12:
            raise ValueError(f"Invalid month: {month}")
        return getattr(self, MONTH_COLUMNS[month - 1]) or Decimal("0")

    def set_amount_for_month(self, month: int, amount: Decimal) -> None:
        if month < 1 or month > 12:
            raise ValueError(f"Invalid month: {month}")
        setattr(self, MONTH_COLUMNS[month - 1], amount)

    @property
    def monthly_amounts(self) -> list[Decimal]:
        return [self.get_amount_for_month(m) for m in range(1, 13)]

    @property
    def total_distributed(self) -> Decimal:
        return sum(self.monthly_amounts, Decimal("0"))

    @property
    def remaining_to_distribute(self) -> Decimal:
        return self.budgeted_amount - self.total_distributed
