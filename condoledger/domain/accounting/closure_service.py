"""Annual period closure.

Closing a fiscal year zeroes every income and expense account with a single
closing transaction and books the net result to the surplus or deficit
equity account. A completed closure locks the year against posting and
cancelling until it is reversed.
"""

import logging
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from condoledger.core.config import get_settings
from condoledger.db.session import atomic
from condoledger.models.accounting import (
    AccountingPeriodClosure,
    AccountingTransaction,
    ChartOfAccount,
)
from condoledger.schemas.accounting import EntryCreate, TransactionCreate
from condoledger.domain.accounting.enums import (
    AccountType,
    ClosureStatus,
    PeriodType,
    ReferenceType,
    TransactionStatus,
)
from condoledger.domain.accounting.exceptions import (
    AlreadyClosedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from condoledger.domain.accounting.references import TransactionReference
from condoledger.domain.accounting.periods import get_completed_closure, is_period_closed
from condoledger.domain.accounting.balance_service import get_account_balances
from condoledger.domain.accounting import chart_service, ledger_service

logger = logging.getLogger(__name__)

__all__ = [
    "preview_closure",
    "execute_annual_closure",
    "reverse_closure",
    "can_be_reversed",
    "get_closure_history",
    "is_period_closed",
]


def _year_bounds(fiscal_year: int) -> tuple[date, date]:
    return date(fiscal_year, 1, 1), date(fiscal_year, 12, 31)


def _count_drafts(db: Session, conjunto_id: int, fiscal_year: int) -> int:
    start, end = _year_bounds(fiscal_year)
    return db.query(AccountingTransaction).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.status == TransactionStatus.DRAFT,
        AccountingTransaction.transaction_date >= start,
        AccountingTransaction.transaction_date <= end
    ).count()


def _year_results(db: Session, conjunto_id: int, fiscal_year: int) -> Dict[str, Any]:
    start, end = _year_bounds(fiscal_year)
    income = get_account_balances(db, conjunto_id, AccountType.INCOME, start, end)
    expenses = get_account_balances(db, conjunto_id, AccountType.EXPENSE, start, end)
    total_income = sum((a["balance"] for a in income), Decimal("0.00"))
    total_expenses = sum((a["balance"] for a in expenses), Decimal("0.00"))
    net_result = total_income - total_expenses
    return {
        "income_accounts": income,
        "expense_accounts": expenses,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_result": net_result,
        "is_profit": net_result >= 0,
    }


def _closing_accounts(db: Session, conjunto_id: int) -> Dict[str, ChartOfAccount | None]:
    settings = get_settings()
    return {
        "surplus": chart_service.get_account_by_code(db, conjunto_id, settings.closing_surplus_account_code),
        "deficit": chart_service.get_account_by_code(db, conjunto_id, settings.closing_deficit_account_code),
    }


def preview_closure(db: Session, conjunto_id: int, fiscal_year: int) -> Dict[str, Any]:
    """
    Show what closing the year would do without writing anything.

    Returns:
        Dict with per-account balances, totals, net result, draft count and warnings

    Raises:
        AlreadyClosedError: If the year already has a completed closure
    """
    if get_completed_closure(db, conjunto_id, fiscal_year):
        raise AlreadyClosedError(fiscal_year)

    results = _year_results(db, conjunto_id, fiscal_year)
    drafts = _count_drafts(db, conjunto_id, fiscal_year)

    closing_accounts = _closing_accounts(db, conjunto_id)
    missing = [key for key, account in closing_accounts.items() if account is None]
    future = fiscal_year > date.today().year

    warnings: List[str] = []
    if drafts:
        warnings.append(f"{drafts} draft transaction(s) in {fiscal_year} must be posted or deleted first")
    for key in missing:
        warnings.append(f"Closing {key} account is missing from the chart of accounts")
    if future:
        warnings.append(f"Fiscal year {fiscal_year} has not started yet")
    if not results["income_accounts"] and not results["expense_accounts"]:
        warnings.append("No income or expense balances to close")

    return {
        "fiscal_year": fiscal_year,
        **results,
        "draft_transactions": drafts,
        "warnings": warnings,
        "can_close": drafts == 0 and not missing and not future,
    }


def execute_annual_closure(
    db: Session,
    conjunto_id: int,
    fiscal_year: int,
    closure_date: date,
    notes: str | None = None,
    closed_by: int | None = None,
) -> Dict[str, Any]:
    """
    Close a fiscal year.

    Builds one closing transaction that debits each income account and
    credits each expense account by its year balance, with the difference
    booked to the surplus (profit) or deficit (loss) account. The closing
    transaction and the closure record are written atomically.

    Args:
        db: Database session
        conjunto_id: Tenant id
        fiscal_year: Year to close
        closure_date: Date of the closing transaction, inside the fiscal year
        notes: Free-text notes stored on the closure
        closed_by: User performing the closure

    Returns:
        Summary dict of the closure

    Raises:
        AlreadyClosedError: If the year is already closed
        ValidationError: If the closure date is outside the year or the year is in the future
        InvalidStateError: If draft transactions exist in the year
        NotFoundError: If the surplus or deficit account is missing
    """
    start, end = _year_bounds(fiscal_year)
    if get_completed_closure(db, conjunto_id, fiscal_year):
        raise AlreadyClosedError(fiscal_year)
    if fiscal_year > date.today().year:
        raise ValidationError(f"Cannot close fiscal year {fiscal_year}: it has not started yet")
    if not (start <= closure_date <= end):
        raise ValidationError(f"Closure date {closure_date} is outside fiscal year {fiscal_year}")

    drafts = _count_drafts(db, conjunto_id, fiscal_year)
    if drafts:
        raise InvalidStateError(
            f"Fiscal year {fiscal_year} has {drafts} draft transaction(s); post or delete them before closing"
        )

    closing_accounts = _closing_accounts(db, conjunto_id)
    missing = [key for key, account in closing_accounts.items() if account is None]
    if missing:
        raise NotFoundError(f"Closing account(s) not found in chart of accounts: {', '.join(missing)}")

    results = _year_results(db, conjunto_id, fiscal_year)
    net_result = results["net_result"]

    entries: List[EntryCreate] = []
    for account in results["income_accounts"]:
        balance = account["balance"]
        entries.append(EntryCreate(
            account_id=account["account_id"],
            description=f"Closing {fiscal_year} - {account['name']}",
            debit_amount=balance if balance > 0 else Decimal("0"),
            credit_amount=-balance if balance < 0 else Decimal("0"),
        ))
    for account in results["expense_accounts"]:
        balance = account["balance"]
        entries.append(EntryCreate(
            account_id=account["account_id"],
            description=f"Closing {fiscal_year} - {account['name']}",
            debit_amount=-balance if balance < 0 else Decimal("0"),
            credit_amount=balance if balance > 0 else Decimal("0"),
        ))
    if net_result > 0:
        entries.append(EntryCreate(
            account_id=closing_accounts["surplus"].id,
            description=f"Surplus for fiscal year {fiscal_year}",
            credit_amount=net_result,
        ))
    elif net_result < 0:
        entries.append(EntryCreate(
            account_id=closing_accounts["deficit"].id,
            description=f"Deficit for fiscal year {fiscal_year}",
            debit_amount=-net_result,
        ))

    with atomic(db):
        closing_txn = None
        if entries:
            data = TransactionCreate(
                transaction_date=closure_date,
                description=f"Annual closure for fiscal year {fiscal_year}",
                entries=entries,
            )
            closing_txn = ledger_service.stage_transaction(db, conjunto_id, data, closed_by)
            ledger_service.apply_posting(db, closing_txn, closed_by)

        closure = AccountingPeriodClosure(
            conjunto_id=conjunto_id,
            fiscal_year=fiscal_year,
            period_type=PeriodType.ANNUAL,
            period_start_date=start,
            period_end_date=end,
            closure_date=closure_date,
            status=ClosureStatus.COMPLETED,
            total_income=results["total_income"],
            total_expenses=results["total_expenses"],
            net_result=net_result,
            is_profit=results["is_profit"],
            closing_transaction_id=closing_txn.id if closing_txn else None,
            notes=notes,
            closed_by=closed_by,
        )
        db.add(closure)
        db.flush()

        if closing_txn is not None:
            closing_txn.reference = TransactionReference.closing(closure.id)
            db.flush()

    db.refresh(closure)
    logger.info(
        f"Closed fiscal year {fiscal_year} for conjunto {conjunto_id}: "
        f"income={results['total_income']}, expenses={results['total_expenses']}, net={net_result}"
    )

    return {
        "closure_id": closure.id,
        "fiscal_year": fiscal_year,
        "closure_date": closure_date.isoformat(),
        "total_income": closure.total_income,
        "total_expenses": closure.total_expenses,
        "net_result": closure.net_result,
        "is_profit": closure.is_profit,
        "closing_transaction_id": closure.closing_transaction_id,
        "closing_transaction_number": closing_txn.transaction_number if closing_txn else None,
        "accounts_closed": len(results["income_accounts"]) + len(results["expense_accounts"]),
    }


def can_be_reversed(db: Session, closure: AccountingPeriodClosure) -> bool:
    """A completed closure can be reversed while no later year is closed."""
    if closure.status != ClosureStatus.COMPLETED:
        return False
    later = db.query(AccountingPeriodClosure).filter(
        AccountingPeriodClosure.conjunto_id == closure.conjunto_id,
        AccountingPeriodClosure.fiscal_year > closure.fiscal_year,
        AccountingPeriodClosure.status == ClosureStatus.COMPLETED
    ).first()
    return later is None


def reverse_closure(
    db: Session,
    conjunto_id: int,
    closure_id: int,
    reversed_by: int | None = None,
) -> Dict[str, Any]:
    """
    Reverse a completed closure, reopening its fiscal year.

    Every posted closing transaction of the closure is cancelled.

    Raises:
        NotFoundError: If the closure does not exist for the tenant
        InvalidStateError: If the closure is not completed or a later year is closed
    """
    with atomic(db):
        closure = db.query(AccountingPeriodClosure).filter(
            AccountingPeriodClosure.id == closure_id,
            AccountingPeriodClosure.conjunto_id == conjunto_id
        ).with_for_update().first()
        if not closure:
            raise NotFoundError(f"Closure {closure_id} not found for conjunto {conjunto_id}")
        if not can_be_reversed(db, closure):
            raise InvalidStateError(
                f"Closure of fiscal year {closure.fiscal_year} cannot be reversed: "
                f"it is {closure.status.value} or a later year is closed"
            )

        closing_txns = db.query(AccountingTransaction).filter(
            AccountingTransaction.conjunto_id == conjunto_id,
            AccountingTransaction.status == TransactionStatus.POSTED,
            (AccountingTransaction.id == closure.closing_transaction_id)
            | (
                (AccountingTransaction.reference_type == ReferenceType.CLOSING)
                & (AccountingTransaction.reference_id == closure.id)
            )
        ).with_for_update().all()

        for txn in closing_txns:
            ledger_service.apply_cancellation(db, txn, reversed_by)

        closure.status = ClosureStatus.REVERSED
        closure.reversed_by = reversed_by
        closure.reversed_at = datetime.utcnow()
        db.flush()

    logger.info(
        f"Reversed closure of fiscal year {closure.fiscal_year} for conjunto {conjunto_id}; "
        f"{len(closing_txns)} closing transaction(s) cancelled"
    )
    return {
        "closure_id": closure.id,
        "fiscal_year": closure.fiscal_year,
        "transactions_cancelled": len(closing_txns),
    }


def get_closure_history(
    db: Session,
    conjunto_id: int,
    fiscal_year: int | None = None,
) -> List[AccountingPeriodClosure]:
    """All closures of the tenant, newest year first."""
    query = db.query(AccountingPeriodClosure).filter(
        AccountingPeriodClosure.conjunto_id == conjunto_id
    )
    if fiscal_year is not None:
        query = query.filter(AccountingPeriodClosure.fiscal_year == fiscal_year)
    return query.order_by(
        AccountingPeriodClosure.fiscal_year.desc(),
        AccountingPeriodClosure.id.desc()
    ).all()
