"""Budget lifecycle and execution tracking.

Execution figures are read-side only: they are recomputed from the ledger
on every request and never stored.
"""

import calendar
import logging
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from condoledger.core.config import get_settings
from condoledger.db.session import atomic
from condoledger.models.accounting import Budget, BudgetItem, ChartOfAccount
from condoledger.schemas.budget import (
    BudgetCreate,
    BudgetItemCreate,
    ExecutionSummary,
    ItemExecution,
)
from condoledger.domain.accounting.enums import (
    AccountType,
    AlertLevel,
    BudgetCategory,
    BudgetStatus,
)
from condoledger.domain.accounting.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from condoledger.domain.accounting.balance_service import get_balance

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
RATIO_PLACES = Decimal("0.0001")

CATEGORY_ACCOUNT_TYPES = {
    BudgetCategory.INCOME: AccountType.INCOME,
    BudgetCategory.EXPENSE: AccountType.EXPENSE,
}


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    if month < 1 or month > 12:
        raise ValidationError(f"Invalid month: {month}")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def get_budget(db: Session, conjunto_id: int, budget_id: int) -> Budget:
    budget = db.query(Budget).filter(
        Budget.id == budget_id,
        Budget.conjunto_id == conjunto_id
    ).first()
    if not budget:
        raise NotFoundError(f"Budget {budget_id} not found for conjunto {conjunto_id}")
    return budget


def create_budget(
    db: Session,
    conjunto_id: int,
    data: BudgetCreate,
) -> Budget:
    """Create an empty draft budget."""
    budget = Budget(
        conjunto_id=conjunto_id,
        name=data.name,
        fiscal_year=data.fiscal_year,
        description=data.description,
        status=BudgetStatus.DRAFT,
    )
    with atomic(db):
        db.add(budget)
    db.refresh(budget)

    logger.info(f"Created budget '{budget.name}' ({budget.fiscal_year}) for conjunto {conjunto_id}")
    return budget


def distribute_equally(item: BudgetItem) -> None:
    """
    Spread the budgeted amount over twelve months.

    Each month gets the amount divided by 12 rounded to cents; the rounding
    remainder goes to January so the months add up exactly.
    """
    monthly = (item.budgeted_amount / 12).quantize(CENTS, rounding=ROUND_HALF_UP)
    remainder = item.budgeted_amount - monthly * 12

    for month in range(1, 13):
        item.set_amount_for_month(month, monthly)
    item.set_amount_for_month(1, monthly + remainder)


def add_budget_item(
    db: Session,
    budget: Budget,
    data: BudgetItemCreate,
) -> BudgetItem:
    """
    Add a line to a draft budget.

    Args:
        db: Database session
        budget: Draft budget
        data: Item fields; without monthly amounts the total is distributed equally

    Returns:
        Created BudgetItem

    Raises:
        InvalidStateError: If the budget is no longer a draft
        NotFoundError: If the account is not in the budget's tenant
        ValidationError: If the account type does not match the category, or monthly amounts do not add up
    """
    if budget.status != BudgetStatus.DRAFT:
        raise InvalidStateError(f"Items can only be added to draft budgets; budget is {budget.status.value}")

    account = db.query(ChartOfAccount).filter(
        ChartOfAccount.id == data.account_id,
        ChartOfAccount.conjunto_id == budget.conjunto_id
    ).first()
    if not account:
        raise NotFoundError(f"Account {data.account_id} not found for conjunto {budget.conjunto_id}")
    if account.account_type != CATEGORY_ACCOUNT_TYPES[data.category]:
        raise ValidationError(
            f"Account {account.code} is {account.account_type.value}; "
            f"{data.category.value} items need a {CATEGORY_ACCOUNT_TYPES[data.category].value} account"
        )
    if data.category == BudgetCategory.INCOME and data.expense_type is not None:
        raise ValidationError("Income items cannot have an expense type")

    item = BudgetItem(
        account_id=account.id,
        category=data.category,
        expense_type=data.expense_type,
        budgeted_amount=data.budgeted_amount,
        notes=data.notes,
    )
    item.account = account

    if data.monthly_amounts:
        total = sum(data.monthly_amounts, Decimal("0"))
        if abs(total - data.budgeted_amount) > get_settings().balance_tolerance:
            raise ValidationError(
                f"Monthly amounts add up to {total}, expected {data.budgeted_amount}"
            )
        for month, amount in enumerate(data.monthly_amounts, start=1):
            item.set_amount_for_month(month, amount)
    else:
        distribute_equally(item)

    with atomic(db):
        budget.items.append(item)
        db.flush()

    db.refresh(item)
    return item


def approve_budget(db: Session, budget: Budget, approved_by: int | None = None) -> Budget:
    """
    Approve a draft budget that has at least one item.

    Raises:
        InvalidStateError: If the budget is not a draft or has no items
    """
    if budget.status != BudgetStatus.DRAFT:
        raise InvalidStateError(f"Only draft budgets can be approved; budget is {budget.status.value}")
    if not budget.items:
        raise InvalidStateError("A budget needs at least one item to be approved")

    with atomic(db):
        budget.status = BudgetStatus.APPROVED
        budget.approved_by = approved_by
        budget.approved_at = datetime.utcnow()
    db.refresh(budget)

    logger.info(f"Approved budget {budget.id} ({budget.fiscal_year})")
    return budget


def activate_budget(db: Session, budget: Budget) -> Budget:
    """
    Activate an approved budget. Any other active budget of the same
    tenant and year is closed.

    Raises:
        InvalidStateError: If the budget is not approved
    """
    if budget.status != BudgetStatus.APPROVED:
        raise InvalidStateError(f"Only approved budgets can be activated; budget is {budget.status.value}")

    with atomic(db):
        others = db.query(Budget).filter(
            Budget.conjunto_id == budget.conjunto_id,
            Budget.fiscal_year == budget.fiscal_year,
            Budget.status == BudgetStatus.ACTIVE,
            Budget.id != budget.id
        ).all()
        for other in others:
            other.status = BudgetStatus.CLOSED
        budget.status = BudgetStatus.ACTIVE

    db.refresh(budget)
    logger.info(
        f"Activated budget {budget.id} ({budget.fiscal_year}); closed {len(others)} previous active budget(s)"
    )
    return budget


def close_budget(db: Session, budget: Budget) -> Budget:
    """Close an active budget."""
    if budget.status != BudgetStatus.ACTIVE:
        raise InvalidStateError(f"Only active budgets can be closed; budget is {budget.status.value}")

    with atomic(db):
        budget.status = BudgetStatus.CLOSED
    db.refresh(budget)
    return budget


def _alert_level(
    budgeted: Decimal,
    executed: Decimal,
    ratio: Decimal | None,
    alert_threshold: Decimal,
    warning_threshold: Decimal,
) -> AlertLevel | None:
    if budgeted == 0:
        # Activity on an account with nothing budgeted for the period
        return AlertLevel.DANGER if executed != 0 else None
    if ratio > alert_threshold:
        return AlertLevel.DANGER
    if ratio > warning_threshold:
        return AlertLevel.WARNING
    return None


def _build_execution(
    item: BudgetItem,
    budgeted: Decimal,
    executed: Decimal,
    year: int,
    month: int | None,
    alert_threshold: Decimal | None = None,
) -> ItemExecution:
    settings = get_settings()
    alert_threshold = settings.budget_alert_threshold if alert_threshold is None else alert_threshold
    warning_threshold = min(settings.budget_warning_threshold, alert_threshold)

    variance = executed - budgeted
    ratio = (abs(variance) / budgeted).quantize(RATIO_PLACES) if budgeted else None

    return ItemExecution(
        item_id=item.id,
        account_id=item.account_id,
        account_code=item.account.code,
        account_name=item.account.name,
        category=item.category,
        month=month,
        year=year,
        budgeted=budgeted,
        executed=executed,
        variance=variance,
        variance_ratio=ratio,
        alert_level=_alert_level(budgeted, executed, ratio, alert_threshold, warning_threshold),
    )


def get_item_execution(
    db: Session,
    item: BudgetItem,
    month: int,
    year: int,
    alert_threshold: Decimal | None = None,
) -> ItemExecution:
    """
    Budgeted vs executed amount of one item for one month.

    Executed is the account's accrual balance restricted to the month.
    """
    start, end = _month_bounds(year, month)
    budgeted = item.get_amount_for_month(month)
    executed = get_balance(db, item.account, start, end)
    return _build_execution(item, budgeted, executed, year, month, alert_threshold)


def _summarize(
    budget: Budget,
    executions: List[ItemExecution],
    year: int,
    month: int | None = None,
    through_month: int | None = None,
) -> ExecutionSummary:
    totals = {
        (category, field): Decimal("0.00")
        for category in BudgetCategory
        for field in ("budgeted", "executed")
    }
    for execution in executions:
        totals[(execution.category, "budgeted")] += execution.budgeted
        totals[(execution.category, "executed")] += execution.executed

    budgeted_income = totals[(BudgetCategory.INCOME, "budgeted")]
    executed_income = totals[(BudgetCategory.INCOME, "executed")]
    budgeted_expenses = totals[(BudgetCategory.EXPENSE, "budgeted")]
    executed_expenses = totals[(BudgetCategory.EXPENSE, "executed")]

    return ExecutionSummary(
        budget_id=budget.id,
        month=month,
        through_month=through_month,
        year=year,
        budgeted_income=budgeted_income,
        executed_income=executed_income,
        budgeted_expenses=budgeted_expenses,
        executed_expenses=executed_expenses,
        budgeted_result=budgeted_income - budgeted_expenses,
        executed_result=executed_income - executed_expenses,
        items=executions,
    )


def get_execution_summary(db: Session, budget: Budget, month: int, year: int) -> ExecutionSummary:
    """Budgeted vs executed income and expenses of a budget for one month."""
    executions = [get_item_execution(db, item, month, year) for item in budget.items]
    return _summarize(budget, executions, year, month=month)


def get_year_to_date_summary(
    db: Session,
    budget: Budget,
    year: int,
    through_month: int = 12,
) -> ExecutionSummary:
    """Budgeted vs executed from January through ``through_month`` inclusive."""
    _, end = _month_bounds(year, through_month)
    start = date(year, 1, 1)

    executions = []
    for item in budget.items:
        budgeted = sum(
            (item.get_amount_for_month(m) for m in range(1, through_month + 1)),
            Decimal("0.00")
        )
        executed = get_balance(db, item.account, start, end)
        executions.append(_build_execution(item, budgeted, executed, year, None))
    return _summarize(budget, executions, year, through_month=through_month)


def get_budget_alerts(
    db: Session,
    budget: Budget,
    month: int,
    year: int,
    threshold: Decimal | None = None,
) -> List[ItemExecution]:
    """
    Items whose execution deviates from budget for the month.

    Args:
        threshold: Ratio above which an item is a danger alert; defaults to settings

    Returns:
        Executions with an alert level, danger first
    """
    executions = [
        get_item_execution(db, item, month, year, alert_threshold=threshold)
        for item in budget.items
    ]
    alerts = [e for e in executions if e.alert_level is not None]
    alerts.sort(key=lambda e: (e.alert_level != AlertLevel.DANGER, e.account_code))

    if alerts:
        logger.warning(
            f"Budget {budget.id}: {len(alerts)} item(s) over threshold for {month:02d}/{year}"
        )
    return alerts


def get_cash_flow_projection(budget: Budget) -> List[Dict[str, Any]]:
    """Monthly budgeted income minus expenses with a running cumulative balance."""
    projection = []
    cumulative = Decimal("0.00")
    for month in range(1, 13):
        income = sum(
            (i.get_amount_for_month(month) for i in budget.items if i.category == BudgetCategory.INCOME),
            Decimal("0.00")
        )
        expenses = sum(
            (i.get_amount_for_month(month) for i in budget.items if i.category == BudgetCategory.EXPENSE),
            Decimal("0.00")
        )
        net = income - expenses
        cumulative += net
        projection.append({
            "month": month,
            "income": income,
            "expenses": expenses,
            "net": net,
            "cumulative": cumulative,
        })
    return projection
