"""Tests for budget lifecycle and execution tracking."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from condoledger.models.accounting import BudgetItem
from condoledger.schemas.budget import BudgetCreate, BudgetItemCreate, BudgetResponse
from condoledger.domain.accounting.enums import (
    AlertLevel,
    BudgetCategory,
    BudgetStatus,
    ExpenseType,
)
from condoledger.domain.accounting.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from condoledger.domain.accounting.chart_service import seed_default_chart, get_account_by_code
from condoledger.domain.accounting.budget_service import (
    activate_budget,
    add_budget_item,
    approve_budget,
    close_budget,
    create_budget,
    distribute_equally,
    get_budget,
    get_budget_alerts,
    get_cash_flow_projection,
    get_execution_summary,
    get_item_execution,
    get_year_to_date_summary,
)


@pytest.fixture
def budget(db: Session, conjunto_id: int, chart):
    return create_budget(db, conjunto_id, BudgetCreate(name="Presupuesto 2024", fiscal_year=2024))


@pytest.fixture
def active_budget(db: Session, chart, budget):
    """Income 1500/month and two expense lines of 100 and 50 per month."""
    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("417005").id,
        category=BudgetCategory.INCOME,
        budgeted_amount=Decimal("18000"),
    ))
    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("513505").id,
        category=BudgetCategory.EXPENSE,
        expense_type=ExpenseType.FIXED,
        budgeted_amount=Decimal("1200"),
    ))
    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("513510").id,
        category=BudgetCategory.EXPENSE,
        expense_type=ExpenseType.FIXED,
        budgeted_amount=Decimal("600"),
    ))
    approve_budget(db, budget, approved_by=1)
    return activate_budget(db, budget)


def _item(budget, code: str) -> BudgetItem:
    return next(i for i in budget.items if i.account.code == code)


def test_distribute_equally_puts_remainder_in_january():
    item = BudgetItem(budgeted_amount=Decimal("1000.00"))

    distribute_equally(item)

    assert item.get_amount_for_month(1) == Decimal("83.37")
    assert all(item.get_amount_for_month(m) == Decimal("83.33") for m in range(2, 13))
    assert item.total_distributed == Decimal("1000.00")
    assert item.remaining_to_distribute == Decimal("0.00")


def test_set_amount_for_invalid_month():
    item = BudgetItem(budgeted_amount=Decimal("10"))

    with pytest.raises(ValueError):
        item.set_amount_for_month(13, Decimal("1"))


def test_add_item_with_monthly_amounts(db: Session, chart, budget):
    amounts = [Decimal("100")] * 6 + [Decimal("200")] * 6

    item = add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("514505").id,
        category=BudgetCategory.EXPENSE,
        expense_type=ExpenseType.VARIABLE,
        budgeted_amount=Decimal("1800"),
        monthly_amounts=amounts,
    ))

    assert item.monthly_amounts == amounts
    assert budget.total_budgeted_expenses == Decimal("1800")


def test_add_item_rejects_monthly_amounts_that_do_not_add_up(db: Session, chart, budget):
    with pytest.raises(ValidationError):
        add_budget_item(db, budget, BudgetItemCreate(
            account_id=chart("514505").id,
            category=BudgetCategory.EXPENSE,
            budgeted_amount=Decimal("1800"),
            monthly_amounts=[Decimal("100")] * 12,
        ))


def test_add_item_rejects_category_mismatch(db: Session, chart, budget):
    with pytest.raises(ValidationError):
        add_budget_item(db, budget, BudgetItemCreate(
            account_id=chart("513505").id,
            category=BudgetCategory.INCOME,
            budgeted_amount=Decimal("100"),
        ))

    with pytest.raises(ValidationError):
        add_budget_item(db, budget, BudgetItemCreate(
            account_id=chart("417005").id,
            category=BudgetCategory.INCOME,
            expense_type=ExpenseType.FIXED,
            budgeted_amount=Decimal("100"),
        ))


def test_add_item_rejects_account_of_other_tenant(db: Session, chart, budget):
    seed_default_chart(db, 2)
    foreign = get_account_by_code(db, 2, "513505")

    with pytest.raises(NotFoundError):
        add_budget_item(db, budget, BudgetItemCreate(
            account_id=foreign.id,
            category=BudgetCategory.EXPENSE,
            budgeted_amount=Decimal("100"),
        ))


def test_budget_lifecycle(db: Session, conjunto_id: int, chart, budget):
    with pytest.raises(InvalidStateError):
        approve_budget(db, budget)

    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("417005").id,
        category=BudgetCategory.INCOME,
        budgeted_amount=Decimal("1200"),
    ))
    with pytest.raises(InvalidStateError):
        activate_budget(db, budget)

    approved = approve_budget(db, budget, approved_by=4)
    assert approved.status == BudgetStatus.APPROVED
    assert approved.approved_by == 4
    assert approved.approved_at is not None

    with pytest.raises(InvalidStateError):
        add_budget_item(db, budget, BudgetItemCreate(
            account_id=chart("513505").id,
            category=BudgetCategory.EXPENSE,
            budgeted_amount=Decimal("100"),
        ))
    with pytest.raises(InvalidStateError):
        close_budget(db, budget)

    assert activate_budget(db, budget).status == BudgetStatus.ACTIVE
    assert close_budget(db, budget).status == BudgetStatus.CLOSED

    response = BudgetResponse.model_validate(get_budget(db, conjunto_id, budget.id))
    assert response.total_budgeted_income == Decimal("1200")


def test_activating_a_budget_closes_the_previous_one(db: Session, conjunto_id: int, chart, active_budget):
    revised = create_budget(db, conjunto_id, BudgetCreate(name="Presupuesto 2024 revisado", fiscal_year=2024))
    add_budget_item(db, revised, BudgetItemCreate(
        account_id=chart("417005").id,
        category=BudgetCategory.INCOME,
        budgeted_amount=Decimal("20000"),
    ))
    approve_budget(db, revised)
    activate_budget(db, revised)

    assert get_budget(db, conjunto_id, active_budget.id).status == BudgetStatus.CLOSED
    assert get_budget(db, conjunto_id, revised.id).status == BudgetStatus.ACTIVE


def test_get_budget_is_scoped_per_tenant(db: Session, budget):
    with pytest.raises(NotFoundError):
        get_budget(db, 2, budget.id)


@pytest.mark.parametrize("spent,level", [
    (115, AlertLevel.DANGER),
    (107, AlertLevel.WARNING),
    (103, None),
    (97, None),
    (90, AlertLevel.WARNING),
])
def test_item_execution_alert_levels(db: Session, post, active_budget, spent, level):
    post(date(2024, 3, 10), [("513505", spent, 0), ("110505", 0, spent)])

    execution = get_item_execution(db, _item(active_budget, "513505"), 3, 2024)

    assert execution.budgeted == Decimal("100.00")
    assert execution.executed == Decimal(spent)
    assert execution.variance == Decimal(spent) - Decimal("100")
    assert execution.alert_level == level


def test_item_execution_underspending_beyond_threshold(db: Session, post, active_budget):
    post(date(2024, 3, 10), [("513505", 80, 0), ("110505", 0, 80)])

    execution = get_item_execution(db, _item(active_budget, "513505"), 3, 2024)

    assert execution.variance == Decimal("-20.00")
    assert execution.variance_ratio == Decimal("0.2000")
    assert execution.alert_level == AlertLevel.DANGER


def test_unbudgeted_activity_is_a_danger_alert(db: Session, conjunto_id: int, chart, post, budget):
    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("514505").id,
        category=BudgetCategory.EXPENSE,
        budgeted_amount=Decimal("300"),
        monthly_amounts=[Decimal("0")] * 11 + [Decimal("300")],
    ))
    post(date(2024, 3, 10), [("514505", 25, 0), ("110505", 0, 25)])

    execution = get_item_execution(db, budget.items[0], 3, 2024)

    assert execution.budgeted == Decimal("0")
    assert execution.variance_ratio is None
    assert execution.alert_level == AlertLevel.DANGER
    assert get_item_execution(db, budget.items[0], 4, 2024).alert_level is None


def test_item_execution_rejects_invalid_month(db: Session, active_budget):
    with pytest.raises(ValidationError):
        get_item_execution(db, _item(active_budget, "513505"), 13, 2024)


def test_execution_summary(db: Session, post, active_budget):
    post(date(2024, 3, 1), [("110505", 1400, 0), ("417005", 0, 1400)])
    post(date(2024, 3, 10), [("513505", 110, 0), ("110505", 0, 110)])
    post(date(2024, 3, 11), [("513510", 50, 0), ("110505", 0, 50)])
    post(date(2024, 4, 1), [("513510", 999, 0), ("110505", 0, 999)])

    summary = get_execution_summary(db, active_budget, 3, 2024)

    assert summary.month == 3
    assert summary.budgeted_income == Decimal("1500.00")
    assert summary.executed_income == Decimal("1400.00")
    assert summary.budgeted_expenses == Decimal("150.00")
    assert summary.executed_expenses == Decimal("160.00")
    assert summary.budgeted_result == Decimal("1350.00")
    assert summary.executed_result == Decimal("1240.00")
    assert len(summary.items) == 3


def test_year_to_date_summary(db: Session, post, active_budget):
    post(date(2024, 1, 15), [("513505", 100, 0), ("110505", 0, 100)])
    post(date(2024, 2, 15), [("513505", 100, 0), ("110505", 0, 100)])
    post(date(2024, 3, 15), [("513505", 130, 0), ("110505", 0, 130)])
    post(date(2024, 4, 15), [("513505", 500, 0), ("110505", 0, 500)])

    summary = get_year_to_date_summary(db, active_budget, 2024, through_month=3)
    cleaning = next(i for i in summary.items if i.account_code == "513505")

    assert summary.through_month == 3
    assert summary.month is None
    assert cleaning.budgeted == Decimal("300.00")
    assert cleaning.executed == Decimal("330.00")
    assert cleaning.variance_ratio == Decimal("0.1000")
    assert cleaning.alert_level == AlertLevel.WARNING


def test_budget_alerts(db: Session, post, active_budget):
    post(date(2024, 3, 10), [("513505", 107, 0), ("110505", 0, 107)])
    post(date(2024, 3, 10), [("513510", 80, 0), ("110505", 0, 80)])
    post(date(2024, 3, 1), [("110505", 1500, 0), ("417005", 0, 1500)])

    alerts = get_budget_alerts(db, active_budget, 3, 2024)

    assert [(a.account_code, a.alert_level) for a in alerts] == [
        ("513510", AlertLevel.DANGER),
        ("513505", AlertLevel.WARNING),
    ]

    relaxed = get_budget_alerts(db, active_budget, 3, 2024, threshold=Decimal("0.70"))
    assert [(a.account_code, a.alert_level) for a in relaxed] == [
        ("513505", AlertLevel.WARNING),
        ("513510", AlertLevel.WARNING),
    ]


def test_cash_flow_projection(active_budget):
    projection = get_cash_flow_projection(active_budget)

    assert len(projection) == 12
    assert projection[0] == {
        "month": 1,
        "income": Decimal("1500.00"),
        "expenses": Decimal("150.00"),
        "net": Decimal("1350.00"),
        "cumulative": Decimal("1350.00"),
    }
    assert projection[-1]["cumulative"] == Decimal("16200.00")


def test_monthly_amounts_cannot_be_negative(chart):
    amounts = [Decimal("100")] * 11 + [Decimal("-100")]

    with pytest.raises(PydanticValidationError):
        BudgetItemCreate(
            account_id=chart("514505").id,
            category=BudgetCategory.EXPENSE,
            budgeted_amount=Decimal("1000"),
            monthly_amounts=amounts,
        )


def test_approve_budget_rolls_back_when_commit_fails(db: Session, conjunto_id: int, chart, budget, monkeypatch):
    add_budget_item(db, budget, BudgetItemCreate(
        account_id=chart("417005").id,
        category=BudgetCategory.INCOME,
        budgeted_amount=Decimal("1200"),
    ))

    def fail():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "commit", fail)
    with pytest.raises(OperationalError):
        approve_budget(db, budget, approved_by=4)

    monkeypatch.undo()
    reloaded = get_budget(db, conjunto_id, budget.id)
    assert reloaded.status == BudgetStatus.DRAFT
    assert reloaded.approved_by is None
