"""Budget schemas."""

from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field

from condoledger.domain.accounting.enums import (
    AlertLevel,
    BudgetCategory,
    BudgetStatus,
    ExpenseType,
)


class BudgetCreate(BaseModel):
    """Schema for creating a budget."""
    name: str = Field(..., min_length=1, max_length=255)
    fiscal_year: int = Field(..., ge=1900, le=9999)
    description: Optional[str] = None


class BudgetItemCreate(BaseModel):
    """Schema for a budget line.

    When ``monthly_amounts`` is omitted the budgeted amount is spread
    equally across the year.
    """
    account_id: int
    category: BudgetCategory
    expense_type: Optional[ExpenseType] = None
    budgeted_amount: Decimal = Field(..., ge=0)
    monthly_amounts: Optional[list[Annotated[Decimal, Field(ge=0)]]] = Field(default=None, min_length=12, max_length=12)
    notes: Optional[str] = None


class BudgetResponse(BaseModel):
    """Schema for budget response."""
    id: int
    conjunto_id: int
    name: str
    fiscal_year: int
    status: BudgetStatus
    total_budgeted_income: Decimal
    total_budgeted_expenses: Decimal

    class Config:
        from_attributes = True


class ItemExecution(BaseModel):
    """Budgeted vs executed figures for one budget item over one period.

    Derived on request; never stored.
    """
    item_id: int
    account_id: int
    account_code: str
    account_name: str
    category: BudgetCategory
    month: Optional[int] = None
    year: int
    budgeted: Decimal
    executed: Decimal
    variance: Decimal
    variance_ratio: Optional[Decimal] = None
    alert_level: Optional[AlertLevel] = None


class ExecutionSummary(BaseModel):
    """Aggregated execution of a whole budget over one period."""
    budget_id: int
    month: Optional[int] = None
    through_month: Optional[int] = None
    year: int
    budgeted_income: Decimal
    executed_income: Decimal
    budgeted_expenses: Decimal
    executed_expenses: Decimal
    budgeted_result: Decimal
    executed_result: Decimal
    items: list[ItemExecution] = []
