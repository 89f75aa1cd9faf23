"""Fiscal period lookups shared by the ledger and the closure service."""

from datetime import date

from sqlalchemy.orm import Session

from condoledger.models.accounting import AccountingPeriodClosure, AccountingTransaction
from condoledger.domain.accounting.enums import ClosureStatus, ReferenceType
from condoledger.domain.accounting.exceptions import ClosedPeriodError


def get_completed_closure(db: Session, conjunto_id: int, fiscal_year: int) -> AccountingPeriodClosure | None:
    return db.query(AccountingPeriodClosure).filter(
        AccountingPeriodClosure.conjunto_id == conjunto_id,
        AccountingPeriodClosure.fiscal_year == fiscal_year,
        AccountingPeriodClosure.status == ClosureStatus.COMPLETED
    ).first()


def is_period_closed(db: Session, conjunto_id: int, on_date: date) -> bool:
    """True when the fiscal year containing ``on_date`` has a completed closure."""
    return get_completed_closure(db, conjunto_id, on_date.year) is not None


def ensure_period_open(db: Session, conjunto_id: int, on_date: date) -> None:
    if is_period_closed(db, conjunto_id, on_date):
        raise ClosedPeriodError(
            on_date.year,
            f"Fiscal year {on_date.year} is closed; no transactions can be recorded on {on_date}"
        )


def closing_closure_of(db: Session, txn: AccountingTransaction) -> AccountingPeriodClosure | None:
    """The completed closure whose closing transaction is ``txn``, if any."""
    closure = db.query(AccountingPeriodClosure).filter(
        AccountingPeriodClosure.closing_transaction_id == txn.id,
        AccountingPeriodClosure.status == ClosureStatus.COMPLETED
    ).first()
    if closure is None and txn.reference_type == ReferenceType.CLOSING and txn.reference_id:
        closure = db.query(AccountingPeriodClosure).filter(
            AccountingPeriodClosure.id == txn.reference_id,
            AccountingPeriodClosure.status == ClosureStatus.COMPLETED
        ).first()
    return closure
