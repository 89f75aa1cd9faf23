"""Account balance calculations.

Balances are always derived from posted entries; nothing is cached. The sign
follows the account's nature: debit-nature accounts grow with debits,
credit-nature accounts with credits.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from condoledger.models.accounting import (
    AccountingTransaction,
    AccountingTransactionEntry,
    ChartOfAccount,
    Invoice,
    PaymentApplication,
)
from condoledger.domain.accounting.enums import (
    AccountNature,
    AccountType,
    ApplicationStatus,
    IncomeBasis,
    ReferenceType,
    TransactionStatus,
)
from condoledger.domain.accounting.exceptions import ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a driver value (Decimal, float, int or None) to a 2-decimal Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def signed_balance(nature: AccountNature, debit: Decimal, credit: Decimal) -> Decimal:
    if nature == AccountNature.DEBIT:
        return debit - credit
    return credit - debit


def _posted_entries(db: Session, account_id: int, start_date: date | None, end_date: date | None):
    query = db.query(
        func.coalesce(func.sum(AccountingTransactionEntry.debit_amount), 0),
        func.coalesce(func.sum(AccountingTransactionEntry.credit_amount), 0),
    ).join(
        AccountingTransaction,
        AccountingTransactionEntry.transaction_id == AccountingTransaction.id
    ).filter(
        AccountingTransactionEntry.account_id == account_id,
        AccountingTransaction.status == TransactionStatus.POSTED
    )
    if start_date:
        query = query.filter(AccountingTransaction.transaction_date >= start_date)
    if end_date:
        query = query.filter(AccountingTransaction.transaction_date <= end_date)
    return query


def get_movements(
    db: Session,
    account: ChartOfAccount,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Dict[str, Decimal]:
    """Sum of posted debits and credits on the account within the date range (inclusive)."""
    debit, credit = _posted_entries(db, account.id, start_date, end_date).one()
    return {"debit": to_money(debit), "credit": to_money(credit)}


def get_balance(
    db: Session,
    account: ChartOfAccount,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Decimal:
    """
    Accrual balance of an account over an optional date range.

    Args:
        db: Database session
        account: Account to evaluate
        start_date: First day included; None means from the beginning
        end_date: Last day included; None means up to today

    Returns:
        Balance signed by the account's nature
    """
    movements = get_movements(db, account, start_date, end_date)
    return signed_balance(account.nature, movements["debit"], movements["credit"])


def _applied_in_period(db: Session, invoice_id: int, start_date: date, end_date: date) -> Decimal:
    total = db.query(
        func.coalesce(func.sum(PaymentApplication.amount_applied), 0)
    ).filter(
        PaymentApplication.invoice_id == invoice_id,
        PaymentApplication.status == ApplicationStatus.ACTIVE,
        PaymentApplication.applied_date >= start_date,
        PaymentApplication.applied_date <= end_date
    ).scalar()
    return to_money(total)


def get_cash_basis_income(
    db: Session,
    account: ChartOfAccount,
    start_date: date,
    end_date: date,
) -> Decimal:
    """
    Income actually collected in the period for an income account.

    An entry whose transaction references an invoice counts in proportion to
    the share of that invoice collected in [start_date, end_date]:

        recognized = entry_amount * min(1, applied_in_period / invoice.total_amount)

    The same proportion applies to every line of the invoice. Entries not
    linked to an invoice are recognized on their own date. Invoice-linked
    entries are considered whatever their date, so a payment applied before
    the invoice is posted still counts in the period it was collected.

    Raises:
        ValidationError: If the account is not an income account
    """
    if account.account_type != AccountType.INCOME:
        raise ValidationError(
            f"Cash-basis recognition applies to income accounts only; {account.code} is {account.account_type.value}"
        )

    rows = db.query(
        AccountingTransactionEntry.debit_amount,
        AccountingTransactionEntry.credit_amount,
        AccountingTransaction.reference_type,
        AccountingTransaction.reference_id,
    ).join(
        AccountingTransaction,
        AccountingTransactionEntry.transaction_id == AccountingTransaction.id
    ).filter(
        AccountingTransactionEntry.account_id == account.id,
        AccountingTransaction.status == TransactionStatus.POSTED,
        or_(
            AccountingTransaction.reference_type == ReferenceType.INVOICE,
            and_(
                AccountingTransaction.transaction_date >= start_date,
                AccountingTransaction.transaction_date <= end_date
            )
        )
    ).all()

    proportions: Dict[int, Decimal] = {}
    recognized = Decimal("0")

    for debit, credit, reference_type, reference_id in rows:
        amount = signed_balance(account.nature, to_money(debit), to_money(credit))

        if reference_type != ReferenceType.INVOICE:
            recognized += amount
            continue

        if reference_id not in proportions:
            invoice = db.get(Invoice, reference_id)
            if invoice is None or not invoice.total_amount:
                logger.warning(
                    f"Invoice {reference_id} referenced by income account {account.code} "
                    f"is missing or has no total; nothing recognized"
                )
                proportions[reference_id] = Decimal("0")
            else:
                applied = _applied_in_period(db, invoice.id, start_date, end_date)
                proportions[reference_id] = min(Decimal("1"), applied / to_money(invoice.total_amount))

        recognized += amount * proportions[reference_id]

    return to_money(recognized)


def get_period_balance(
    db: Session,
    account: ChartOfAccount,
    start_date: date | None,
    end_date: date | None,
    basis: IncomeBasis = IncomeBasis.ACCRUAL,
) -> Decimal:
    """Balance in the requested basis. Cash basis only changes income accounts."""
    if basis == IncomeBasis.CASH and account.account_type == AccountType.INCOME:
        if start_date is None or end_date is None:
            raise ValidationError("Cash-basis income requires both start and end dates")
        return get_cash_basis_income(db, account, start_date, end_date)
    return get_balance(db, account, start_date, end_date)


def get_account_balances(
    db: Session,
    conjunto_id: int,
    account_type: AccountType,
    start_date: date | None = None,
    end_date: date | None = None,
    basis: IncomeBasis = IncomeBasis.ACCRUAL,
) -> List[Dict[str, Any]]:
    """
    Non-zero balances of the tenant's postable accounts of one type.

    Returns:
        List of dicts (account_id, code, name, balance) ordered by code
    """
    accounts = db.query(ChartOfAccount).filter(
        ChartOfAccount.conjunto_id == conjunto_id,
        ChartOfAccount.account_type == account_type,
        ChartOfAccount.accepts_posting.is_(True)
    ).order_by(ChartOfAccount.code).all()

    results = []
    for account in accounts:
        balance = get_period_balance(db, account, start_date, end_date, basis)
        if balance == 0:
            continue
        results.append({
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "balance": balance,
        })
    return results
