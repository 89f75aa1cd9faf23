"""Ledger integrity audit.

Re-checks stored transactions against the posting rules and reports what
it finds instead of raising, so a whole month can be audited in one pass.
"""

import logging
from calendar import monthrange
from datetime import date
from typing import Any, Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from condoledger.core.config import get_settings
from condoledger.models.accounting import (
    AccountingTransaction,
    AccountingTransactionEntry,
    ChartOfAccount,
    Invoice,
)
from condoledger.domain.accounting.enums import ReferenceType, TransactionStatus
from condoledger.domain.accounting.exceptions import ValidationError
from condoledger.domain.accounting.periods import is_period_closed
from condoledger.domain.accounting.balance_service import get_balance, to_money
from condoledger.domain.accounting.ledger_service import MIN_ENTRIES, get_transaction
from condoledger.domain.accounting.reserve_fund_service import validate_legal_compliance

logger = logging.getLogger(__name__)


def validate_transaction_integrity(db: Session, txn: AccountingTransaction | int) -> Dict[str, Any]:
    """
    Check one transaction: balance, entry count, accounts and references.

    Errors would block posting; warnings flag data worth a review.

    Returns:
        Dict with transaction_id, transaction_number, is_valid, errors and warnings
    """
    if isinstance(txn, int):
        txn = get_transaction(db, txn)

    errors: List[str] = []
    warnings: List[str] = []

    total_debit = to_money(txn.total_debit)
    total_credit = to_money(txn.total_credit)
    if abs(total_debit - total_credit) > get_settings().balance_tolerance:
        errors.append(f"Debits ({total_debit}) do not equal credits ({total_credit})")
    if len(txn.entries) < MIN_ENTRIES:
        errors.append(f"Transaction has {len(txn.entries)} entries; at least {MIN_ENTRIES} are required")

    if txn.status == TransactionStatus.DRAFT and is_period_closed(db, txn.conjunto_id, txn.transaction_date):
        errors.append(f"Draft is dated in closed fiscal year {txn.transaction_date.year}")

    for entry in txn.entries:
        account = entry.account
        if account is None or account.conjunto_id != txn.conjunto_id:
            errors.append(f"Entry {entry.id} points to account {entry.account_id} outside conjunto {txn.conjunto_id}")
            continue
        if not account.accepts_posting:
            errors.append(f"Account {account.code} is a grouping account and does not accept posting")
        if account.requires_third_party and not (entry.third_party_type and entry.third_party_id):
            errors.append(f"Account {account.code} requires a third party on every entry")
        if not account.is_active:
            warnings.append(f"Account {account.code} is inactive")

    if txn.reference_type == ReferenceType.INVOICE and db.get(Invoice, txn.reference_id) is None:
        warnings.append(f"Referenced invoice {txn.reference_id} does not exist")

    return {
        "transaction_id": txn.id,
        "transaction_number": txn.transaction_number,
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
    }


def validate_transactions_batch(db: Session, transactions: Iterable[AccountingTransaction | int]) -> Dict[str, Any]:
    """Run ``validate_transaction_integrity`` over many transactions and total the results."""
    results: Dict[str, Any] = {
        "total_transactions": 0,
        "valid_transactions": 0,
        "invalid_transactions": 0,
        "transactions_with_warnings": 0,
        "total_errors": 0,
        "total_warnings": 0,
        "details": [],
    }

    for txn in transactions:
        validation = validate_transaction_integrity(db, txn)
        results["total_transactions"] += 1
        if validation["is_valid"]:
            results["valid_transactions"] += 1
        else:
            results["invalid_transactions"] += 1
        if validation["warnings"]:
            results["transactions_with_warnings"] += 1
        results["total_errors"] += len(validation["errors"])
        results["total_warnings"] += len(validation["warnings"])
        results["details"].append(validation)

    return results


def _period_balance_check(db: Session, conjunto_id: int, start: date, end: date) -> Dict[str, Any]:
    debit, credit = db.query(
        func.coalesce(func.sum(AccountingTransactionEntry.debit_amount), 0),
        func.coalesce(func.sum(AccountingTransactionEntry.credit_amount), 0),
    ).join(
        AccountingTransaction,
        AccountingTransactionEntry.transaction_id == AccountingTransaction.id
    ).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.status == TransactionStatus.POSTED,
        AccountingTransaction.transaction_date >= start,
        AccountingTransaction.transaction_date <= end
    ).one()

    total_debit = to_money(debit)
    total_credit = to_money(credit)
    difference = abs(total_debit - total_credit)
    return {
        "total_debit": total_debit,
        "total_credit": total_credit,
        "difference": difference,
        "is_balanced": difference <= get_settings().balance_tolerance,
    }


def _account_consistency_check(db: Session, conjunto_id: int, as_of: date) -> Dict[str, Any]:
    # A balance below zero runs against the account's nature
    accounts = db.query(ChartOfAccount).filter(
        ChartOfAccount.conjunto_id == conjunto_id,
        ChartOfAccount.accepts_posting.is_(True)
    ).order_by(ChartOfAccount.code).all()

    inconsistencies = []
    for account in accounts:
        balance = get_balance(db, account, end_date=as_of)
        if balance < 0:
            inconsistencies.append({
                "account_id": account.id,
                "code": account.code,
                "name": account.name,
                "balance": balance,
            })

    return {
        "accounts_validated": len(accounts),
        "inconsistencies": inconsistencies,
    }


def validate_period_integrity(db: Session, conjunto_id: int, month: int, year: int) -> Dict[str, Any]:
    """
    Audit the posted transactions of one month.

    Args:
        db: Database session
        conjunto_id: Tenant id
        month: Month (1-12)
        year: Year

    Returns:
        Batch results for the month's posted transactions plus period checks:
        ``balance_check`` (posted debits vs. credits), ``account_consistency_check``
        (accounts whose balance at month end runs against their nature) and
        ``reserve_fund_check`` (yearly appropriation against the legal minimum).
        ``is_valid`` is False when any transaction is invalid or the month
        does not balance.

    Raises:
        ValidationError: If the month is out of range
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    start, end = date(year, month, 1), date(year, month, monthrange(year, month)[1])

    transactions = db.query(AccountingTransaction).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.status == TransactionStatus.POSTED,
        AccountingTransaction.transaction_date >= start,
        AccountingTransaction.transaction_date <= end
    ).order_by(
        AccountingTransaction.transaction_date,
        AccountingTransaction.id
    ).all()

    results = validate_transactions_batch(db, transactions)
    balance_check = _period_balance_check(db, conjunto_id, start, end)
    results.update({
        "conjunto_id": conjunto_id,
        "period": f"{year}-{month:02d}",
        "is_valid": results["invalid_transactions"] == 0 and balance_check["is_balanced"],
        "balance_check": balance_check,
        "account_consistency_check": _account_consistency_check(db, conjunto_id, end),
        "reserve_fund_check": validate_legal_compliance(db, conjunto_id, year),
    })

    if not results["is_valid"]:
        logger.warning(
            f"Integrity audit of {results['period']} for conjunto {conjunto_id} found "
            f"{results['invalid_transactions']} invalid transaction(s); "
            f"debits={balance_check['total_debit']}, credits={balance_check['total_credit']}"
        )
    return results
