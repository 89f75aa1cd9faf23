"""Reserve fund appropriation.

Every month a share of the operational income (accounts under the
``operational_income_prefix``) is moved into the reserve fund: the reserve
expense account is debited and the reserve fund equity account credited.
Appropriations are keyed by period, so running the same month twice does
nothing.
"""

import logging
from calendar import monthrange
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from condoledger.core.config import get_settings
from condoledger.db.session import atomic
from condoledger.models.accounting import (
    AccountingTransaction,
    AccountingTransactionEntry,
    ChartOfAccount,
)
from condoledger.schemas.accounting import EntryCreate, TransactionCreate
from condoledger.domain.accounting.enums import AccountType, ReferenceType, TransactionStatus
from condoledger.domain.accounting.exceptions import NotFoundError, ValidationError
from condoledger.domain.accounting.references import TransactionReference
from condoledger.domain.accounting.balance_service import get_balance, to_money
from condoledger.domain.accounting import chart_service, ledger_service

logger = logging.getLogger(__name__)


def _month_bounds(month: int, year: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def _reserve_rate() -> Decimal:
    return get_settings().reserve_fund_percentage / Decimal("100")


def _required_account(db: Session, conjunto_id: int, code: str, label: str) -> ChartOfAccount:
    account = chart_service.get_account_by_code(db, conjunto_id, code)
    if account is None:
        raise NotFoundError(f"{label} account {code} not found in chart of accounts of conjunto {conjunto_id}")
    return account


def get_reserve_fund_account(db: Session, conjunto_id: int) -> ChartOfAccount:
    return _required_account(db, conjunto_id, get_settings().reserve_fund_account_code, "Reserve fund")


def get_reserve_expense_account(db: Session, conjunto_id: int) -> ChartOfAccount:
    return _required_account(db, conjunto_id, get_settings().reserve_expense_account_code, "Reserve expense")


def get_operational_income(db: Session, conjunto_id: int, start_date: date, end_date: date) -> Decimal:
    """Posted credits to operational income accounts within the range (inclusive)."""
    total = db.query(
        func.coalesce(func.sum(AccountingTransactionEntry.credit_amount), 0)
    ).join(
        AccountingTransaction,
        AccountingTransactionEntry.transaction_id == AccountingTransaction.id
    ).join(
        ChartOfAccount,
        AccountingTransactionEntry.account_id == ChartOfAccount.id
    ).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.status == TransactionStatus.POSTED,
        AccountingTransaction.transaction_date >= start_date,
        AccountingTransaction.transaction_date <= end_date,
        ChartOfAccount.account_type == AccountType.INCOME,
        ChartOfAccount.code.like(f"{get_settings().operational_income_prefix}%")
    ).scalar()
    return to_money(total)


def calculate_monthly_reserve(db: Session, conjunto_id: int, month: int, year: int) -> Decimal:
    """
    Amount to appropriate to the reserve fund for a month.

    Args:
        db: Database session
        conjunto_id: Tenant id
        month: Month (1-12)
        year: Year

    Returns:
        ``reserve_fund_percentage`` of the month's operational income, rounded to cents
    """
    start, end = _month_bounds(month, year)
    income = get_operational_income(db, conjunto_id, start, end)
    amount = to_money(income * _reserve_rate())

    logger.info(
        f"Reserve fund for conjunto {conjunto_id} {month:02d}/{year}: "
        f"income={income}, rate={get_settings().reserve_fund_percentage}%, reserve={amount}"
    )
    return amount


def get_appropriation(db: Session, conjunto_id: int, month: int, year: int) -> AccountingTransaction | None:
    """The posted appropriation of a period, if any."""
    reference = TransactionReference.reserve_fund(year, month)
    return db.query(AccountingTransaction).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.reference_type == reference.type,
        AccountingTransaction.reference_id == reference.id,
        AccountingTransaction.status == TransactionStatus.POSTED
    ).first()


def execute_monthly_appropriation(
    db: Session,
    conjunto_id: int,
    month: int,
    year: int,
    created_by: int | None = None,
) -> AccountingTransaction | None:
    """
    Post the reserve fund appropriation of a month, dated on its last day.

    Returns:
        The posted transaction, or None when the period already has an
        appropriation or there is nothing to appropriate

    Raises:
        NotFoundError: If the reserve fund or reserve expense account is missing
        ClosedPeriodError: If the month falls in a closed fiscal year
    """
    _, end = _month_bounds(month, year)

    with atomic(db):
        if get_appropriation(db, conjunto_id, month, year) is not None:
            logger.info(f"Reserve fund appropriation for {month:02d}/{year} already exists for conjunto {conjunto_id}")
            return None

        amount = calculate_monthly_reserve(db, conjunto_id, month, year)
        if amount <= 0:
            logger.info(f"No reserve fund to appropriate for {month:02d}/{year} in conjunto {conjunto_id}")
            return None

        expense = get_reserve_expense_account(db, conjunto_id)
        fund = get_reserve_fund_account(db, conjunto_id)
        reference = TransactionReference.reserve_fund(year, month)
        data = TransactionCreate(
            transaction_date=end,
            description=f"Reserve fund appropriation {month:02d}/{year}",
            reference_type=reference.type,
            reference_id=reference.id,
            entries=[
                EntryCreate(
                    account_id=expense.id,
                    description=f"Reserve fund appropriation {month:02d}/{year}",
                    debit_amount=amount,
                ),
                EntryCreate(
                    account_id=fund.id,
                    description=f"Reserve fund increase {month:02d}/{year}",
                    credit_amount=amount,
                ),
            ],
        )
        txn = ledger_service.stage_transaction(db, conjunto_id, data, created_by)
        ledger_service.apply_posting(db, txn, created_by)

    db.refresh(txn)
    logger.info(
        f"Posted reserve fund appropriation {txn.transaction_number} of {amount} "
        f"for {month:02d}/{year} in conjunto {conjunto_id}"
    )
    return txn


def get_reserve_fund_balance(db: Session, conjunto_id: int, as_of: date | None = None) -> Decimal:
    return get_balance(db, get_reserve_fund_account(db, conjunto_id), end_date=as_of)


def get_appropriation_history(db: Session, conjunto_id: int, year: int | None = None) -> List[AccountingTransaction]:
    """Posted appropriations, most recent first."""
    query = db.query(AccountingTransaction).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.reference_type == ReferenceType.RESERVE_FUND,
        AccountingTransaction.status == TransactionStatus.POSTED
    )
    if year is not None:
        query = query.filter(
            AccountingTransaction.transaction_date >= date(year, 1, 1),
            AccountingTransaction.transaction_date <= date(year, 12, 31)
        )
    return query.order_by(
        AccountingTransaction.transaction_date.desc(),
        AccountingTransaction.id.desc()
    ).all()


def validate_legal_compliance(db: Session, conjunto_id: int, year: int) -> Dict[str, Any]:
    """
    Compare what was appropriated in a year against the minimum share of
    operational income.

    Returns:
        Dict with year, total_income, total_appropriated, minimum_required,
        compliance_percentage, is_compliant and deficit
    """
    start, end = date(year, 1, 1), date(year, 12, 31)
    fund = get_reserve_fund_account(db, conjunto_id)

    total_income = get_operational_income(db, conjunto_id, start, end)
    appropriated = db.query(
        func.coalesce(func.sum(AccountingTransactionEntry.credit_amount), 0)
    ).join(
        AccountingTransaction,
        AccountingTransactionEntry.transaction_id == AccountingTransaction.id
    ).filter(
        AccountingTransactionEntry.account_id == fund.id,
        AccountingTransaction.status == TransactionStatus.POSTED,
        AccountingTransaction.transaction_date >= start,
        AccountingTransaction.transaction_date <= end
    ).scalar()
    total_appropriated = to_money(appropriated)

    minimum_required = to_money(total_income * _reserve_rate())
    compliance = (
        (total_appropriated / total_income * 100).quantize(Decimal("0.01"))
        if total_income > 0 else Decimal("0.00")
    )

    return {
        "year": year,
        "total_income": total_income,
        "total_appropriated": total_appropriated,
        "minimum_required": minimum_required,
        "compliance_percentage": compliance,
        "is_compliant": total_appropriated >= minimum_required,
        "deficit": max(Decimal("0.00"), minimum_required - total_appropriated),
    }
