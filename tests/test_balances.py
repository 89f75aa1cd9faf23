"""Tests for accrual and cash-basis balance calculations."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from condoledger.models.accounting import Invoice, PaymentApplication
from condoledger.schemas.accounting import AccountCreate, TransactionCreate
from condoledger.domain.accounting.enums import (
    AccountNature,
    AccountType,
    ApplicationStatus,
    IncomeBasis,
    ReferenceType,
)
from condoledger.domain.accounting.exceptions import ValidationError
from condoledger.domain.accounting.chart_service import create_account
from condoledger.domain.accounting.ledger_service import (
    cancel_transaction,
    create_transaction,
)
from condoledger.domain.accounting.balance_service import (
    get_account_balances,
    get_balance,
    get_cash_basis_income,
    get_movements,
    get_period_balance,
    signed_balance,
    to_money,
)


def _invoice(db: Session, conjunto_id: int, total: str, applications=()) -> Invoice:
    invoice = Invoice(
        conjunto_id=conjunto_id,
        invoice_number=f"FAC-{total}",
        billing_date=date(2024, 1, 5),
        total_amount=Decimal(total),
    )
    for amount, applied_date, *status in applications:
        invoice.applications.append(PaymentApplication(
            amount_applied=Decimal(amount),
            applied_date=applied_date,
            status=status[0] if status else ApplicationStatus.ACTIVE,
        ))
    db.add(invoice)
    db.commit()
    return invoice


def _bill(post, invoice_id: int, amount, txn_date=date(2024, 1, 5)):
    return post(
        txn_date,
        [("130505", amount, 0, ("UNIT", 101)), ("417005", 0, amount)],
        description="Cuota de administracion",
        reference_type=ReferenceType.INVOICE,
        reference_id=invoice_id,
    )


def test_to_money():
    assert to_money(None) == Decimal("0.00")
    assert to_money(1.005) == Decimal("1.01")
    assert to_money(Decimal("12.344")) == Decimal("12.34")
    assert to_money(7) == Decimal("7.00")


def test_signed_balance():
    assert signed_balance(AccountNature.DEBIT, Decimal("100"), Decimal("40")) == Decimal("60")
    assert signed_balance(AccountNature.CREDIT, Decimal("100"), Decimal("40")) == Decimal("-60")


def test_debit_nature_balance(db: Session, chart, post):
    post(date(2024, 3, 1), [("110505", 100, 0), ("417005", 0, 100)])
    post(date(2024, 3, 2), [("513505", 40, 0), ("110505", 0, 40)])

    assert get_balance(db, chart("110505")) == Decimal("60.00")
    assert get_movements(db, chart("110505")) == {"debit": Decimal("100.00"), "credit": Decimal("40.00")}
    assert get_balance(db, chart("417005")) == Decimal("100.00")
    assert get_balance(db, chart("513505")) == Decimal("40.00")


def test_balance_of_new_income_account(db: Session, conjunto_id: int, chart, post):
    create_account(db, conjunto_id, AccountCreate(code="110501", name="CAJA PRINCIPAL"))
    create_account(db, conjunto_id, AccountCreate(code="4201", name="INGRESOS VARIOS"))
    create_account(db, conjunto_id, AccountCreate(code="420101", name="ARRENDAMIENTOS"))

    post(date(2024, 3, 15), [("110501", 500, 0), ("420101", 0, 500)])

    assert get_balance(db, chart("110501")) == Decimal("500.00")
    assert get_balance(db, chart("420101")) == Decimal("500.00")
    assert get_balance(db, chart("420101"), date(2024, 3, 1), date(2024, 3, 31)) == Decimal("500.00")
    assert get_balance(db, chart("420101"), date(2024, 4, 1), date(2024, 4, 30)) == Decimal("0.00")


def test_drafts_and_cancelled_transactions_do_not_count(db: Session, conjunto_id: int, chart, post):
    create_transaction(db, conjunto_id, TransactionCreate(
        transaction_date=date(2024, 3, 1),
        description="Draft",
        entries=[
            {"account_id": chart("110505").id, "debit_amount": Decimal("70")},
            {"account_id": chart("417005").id, "credit_amount": Decimal("70")},
        ],
    ))
    cancelled = post(date(2024, 3, 1), [("110505", 30, 0), ("417005", 0, 30)])
    cancel_transaction(db, cancelled.id)
    post(date(2024, 3, 1), [("110505", 5, 0), ("417005", 0, 5)])

    assert get_balance(db, chart("110505")) == Decimal("5.00")


def test_date_bounds_are_inclusive(db: Session, chart, post):
    post(date(2024, 3, 1), [("110505", 10, 0), ("417005", 0, 10)])
    post(date(2024, 3, 31), [("110505", 20, 0), ("417005", 0, 20)])
    post(date(2024, 4, 1), [("110505", 40, 0), ("417005", 0, 40)])

    cash = chart("110505")
    assert get_balance(db, cash, date(2024, 3, 1), date(2024, 3, 31)) == Decimal("30.00")
    assert get_balance(db, cash, start_date=date(2024, 3, 31)) == Decimal("60.00")
    assert get_balance(db, cash, end_date=date(2024, 3, 1)) == Decimal("10.00")


def test_cash_basis_partial_collection(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [("400", date(2024, 1, 20))])
    _bill(post, invoice.id, 1000)

    income = chart("417005")
    start, end = date(2024, 1, 1), date(2024, 1, 31)

    assert get_cash_basis_income(db, income, start, end) == Decimal("400.00")
    assert get_balance(db, income, start, end) == Decimal("1000.00")
    assert get_period_balance(db, income, start, end, IncomeBasis.CASH) == Decimal("400.00")
    assert get_period_balance(db, income, start, end, IncomeBasis.ACCRUAL) == Decimal("1000.00")


def test_cash_basis_uses_collections_inside_the_period(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [
        ("400", date(2024, 1, 20)),
        ("600", date(2024, 2, 10)),
    ])
    _bill(post, invoice.id, 1000)

    income = chart("417005")
    assert get_cash_basis_income(db, income, date(2024, 2, 1), date(2024, 2, 29)) == Decimal("600.00")
    assert get_cash_basis_income(db, income, date(2024, 1, 1), date(2024, 2, 29)) == Decimal("1000.00")
    # Billed after the period ends
    assert get_cash_basis_income(db, income, date(2023, 12, 1), date(2023, 12, 31)) == Decimal("0.00")


def test_cash_basis_recognizes_prepaid_invoice_when_collected(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [("1000", date(2024, 2, 20))])
    _bill(post, invoice.id, 1000, txn_date=date(2024, 3, 1))

    income = chart("417005")
    assert get_cash_basis_income(db, income, date(2024, 2, 1), date(2024, 2, 29)) == Decimal("1000.00")
    assert get_cash_basis_income(db, income, date(2024, 3, 1), date(2024, 3, 31)) == Decimal("0.00")
    assert get_balance(db, income, date(2024, 2, 1), date(2024, 2, 29)) == Decimal("0.00")


def test_cash_basis_ignores_reversed_applications(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [
        ("400", date(2024, 1, 20)),
        ("300", date(2024, 1, 25), ApplicationStatus.REVERSED),
    ])
    _bill(post, invoice.id, 1000)

    assert get_cash_basis_income(db, chart("417005"), date(2024, 1, 1), date(2024, 1, 31)) == Decimal("400.00")


def test_cash_basis_caps_over_application(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [("1200", date(2024, 1, 20))])
    _bill(post, invoice.id, 1000)

    assert get_cash_basis_income(db, chart("417005"), date(2024, 1, 1), date(2024, 1, 31)) == Decimal("1000.00")


def test_cash_basis_missing_invoice_recognizes_nothing(db: Session, chart, post):
    _bill(post, 9999, 500)

    assert get_cash_basis_income(db, chart("417005"), date(2024, 1, 1), date(2024, 1, 31)) == Decimal("0.00")


def test_cash_basis_manual_income_counts_on_its_date(db: Session, chart, post):
    post(date(2024, 1, 15), [("110505", 80, 0), ("417030", 0, 80)])
    post(date(2024, 2, 15), [("110505", 20, 0), ("417030", 0, 20)])

    income = chart("417030")
    assert get_cash_basis_income(db, income, date(2024, 1, 1), date(2024, 1, 31)) == Decimal("80.00")


def test_cash_basis_rejects_non_income_accounts(db: Session, chart):
    with pytest.raises(ValidationError):
        get_cash_basis_income(db, chart("110505"), date(2024, 1, 1), date(2024, 1, 31))


def test_cash_basis_requires_bounds(db: Session, chart):
    with pytest.raises(ValidationError):
        get_period_balance(db, chart("417005"), None, date(2024, 1, 31), IncomeBasis.CASH)


def test_cash_basis_leaves_other_accounts_on_accrual(db: Session, conjunto_id: int, chart, post):
    invoice = _invoice(db, conjunto_id, "1000", [("400", date(2024, 1, 20))])
    _bill(post, invoice.id, 1000)

    receivable = chart("130505")
    assert get_period_balance(
        db, receivable, date(2024, 1, 1), date(2024, 1, 31), IncomeBasis.CASH
    ) == Decimal("1000.00")


def test_get_account_balances(db: Session, conjunto_id: int, chart, post):
    post(date(2024, 3, 1), [("110505", 300, 0), ("417005", 0, 300)])
    post(date(2024, 3, 2), [("111005", 200, 0), ("417010", 0, 200)])

    balances = get_account_balances(db, conjunto_id, AccountType.INCOME)

    assert [b["code"] for b in balances] == ["417005", "417010"]
    assert [b["balance"] for b in balances] == [Decimal("300.00"), Decimal("200.00")]
    assert balances[0]["name"] == "CUOTAS DE ADMINISTRACION"
    assert get_account_balances(db, conjunto_id, AccountType.INCOME, end_date=date(2024, 2, 29)) == []
    assert get_account_balances(db, 2, AccountType.INCOME) == []
