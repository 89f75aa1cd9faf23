"""Ledger service: transaction and entry lifecycle.

Transactions start as drafts, become immutable once posted, and are
cancelled rather than deleted. Only posted transactions count toward
balances.
"""

import logging
from datetime import datetime, date
from decimal import Decimal
from typing import List, Dict, Any, Iterable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from condoledger.core.config import get_settings
from condoledger.db.session import atomic
from condoledger.models.accounting import (
    AccountingTransaction,
    AccountingTransactionEntry,
    ChartOfAccount,
)
from condoledger.schemas.accounting import EntryCreate, TransactionCreate
from condoledger.domain.accounting.enums import TransactionStatus
from condoledger.domain.accounting.exceptions import (
    ValidationError,
    NotFoundError,
    InvalidStateError,
    UnbalancedEntryError,
)
from condoledger.domain.accounting.periods import ensure_period_open, closing_closure_of
from condoledger.domain.accounting.references import TransactionReference

logger = logging.getLogger(__name__)

MIN_ENTRIES = 2
CENTS = Decimal("0.01")


def _to_entry(entry: EntryCreate | Dict[str, Any]) -> EntryCreate:
    if isinstance(entry, EntryCreate):
        return entry
    try:
        return EntryCreate.model_validate(entry)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid entry: {e}") from e


def _validate_amounts(entry: EntryCreate) -> None:
    debit = entry.debit_amount or Decimal("0")
    credit = entry.credit_amount or Decimal("0")

    if debit < 0 or credit < 0:
        raise ValidationError("Entry amounts cannot be negative")
    if debit > 0 and credit > 0:
        raise ValidationError("An entry cannot have both a debit and a credit amount")
    if debit == 0 and credit == 0:
        raise ValidationError("An entry must have either a debit or a credit amount")
    if debit != debit.quantize(CENTS) or credit != credit.quantize(CENTS):
        raise ValidationError("Entry amounts cannot have more than 2 decimal places")


def _get_postable_account(db: Session, conjunto_id: int, account_id: int) -> ChartOfAccount:
    account = db.query(ChartOfAccount).filter(
        ChartOfAccount.id == account_id,
        ChartOfAccount.conjunto_id == conjunto_id
    ).first()

    if not account:
        raise ValidationError(f"Account {account_id} not found for conjunto {conjunto_id}")
    if not account.is_active:
        raise ValidationError(f"Account {account.code} is inactive")
    if not account.accepts_posting:
        raise ValidationError(f"Account {account.code} does not accept posting")
    return account


def generate_transaction_number(db: Session, conjunto_id: int, transaction_date: date) -> str:
    """
    Next sequential number for the month of ``transaction_date``.

    Format: TXN-YYYYMM-NNNN, sequence restarting every month per tenant.
    """
    prefix = f"TXN-{transaction_date:%Y%m}-"
    numbers = db.query(AccountingTransaction.transaction_number).filter(
        AccountingTransaction.conjunto_id == conjunto_id,
        AccountingTransaction.transaction_number.like(f"{prefix}%")
    ).all()

    last = max((int(n[len(prefix):]) for (n,) in numbers if n[len(prefix):].isdigit()), default=0)
    return f"{prefix}{last + 1:04d}"


def get_transaction(db: Session, transaction_id: int, for_update: bool = False) -> AccountingTransaction:
    """
    Load a transaction, optionally taking a row lock (SELECT ... FOR UPDATE).

    Raises:
        NotFoundError: If the transaction does not exist
    """
    query = db.query(AccountingTransaction).filter(AccountingTransaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    txn = query.first()
    if not txn:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return txn


def _add_entry(db: Session, txn: AccountingTransaction, entry: EntryCreate) -> AccountingTransactionEntry:
    _validate_amounts(entry)
    account = _get_postable_account(db, txn.conjunto_id, entry.account_id)

    line = AccountingTransactionEntry(
        account_id=account.id,
        description=entry.description,
        debit_amount=entry.debit_amount or Decimal("0"),
        credit_amount=entry.credit_amount or Decimal("0"),
        third_party_type=entry.third_party_type,
        third_party_id=entry.third_party_id,
    )
    line.account = account
    txn.entries.append(line)
    db.flush()
    return line


def stage_transaction(
    db: Session,
    conjunto_id: int,
    data: TransactionCreate,
    created_by: int | None,
) -> AccountingTransaction:
    """Create a draft with its entries without committing; the caller owns the transaction."""
    ensure_period_open(db, conjunto_id, data.transaction_date)

    try:
        reference = data.reference
    except ValueError as e:
        raise ValidationError(str(e)) from e

    txn = AccountingTransaction(
        conjunto_id=conjunto_id,
        transaction_number=generate_transaction_number(db, conjunto_id, data.transaction_date),
        transaction_date=data.transaction_date,
        description=data.description,
        status=TransactionStatus.DRAFT,
        created_by=created_by,
    )
    txn.reference = reference
    db.add(txn)
    db.flush()

    for entry in data.entries:
        _add_entry(db, txn, _to_entry(entry))
    return txn


def apply_posting(db: Session, txn: AccountingTransaction, posted_by: int | None) -> None:
    """Validate and post a draft in the current session. Does not commit."""
    if txn.status != TransactionStatus.DRAFT:
        raise InvalidStateError(
            f"Only draft transactions can be posted; {txn.transaction_number} is {txn.status.value}"
        )
    if len(txn.entries) < MIN_ENTRIES:
        raise ValidationError(
            f"Transaction {txn.transaction_number} needs at least {MIN_ENTRIES} entries to be posted"
        )

    total_debit = txn.total_debit
    total_credit = txn.total_credit
    if abs(total_debit - total_credit) > get_settings().balance_tolerance:
        raise UnbalancedEntryError(total_debit, total_credit)

    ensure_period_open(db, txn.conjunto_id, txn.transaction_date)

    for entry in txn.entries:
        account = entry.account
        if not account.is_active or not account.accepts_posting:
            raise ValidationError(f"Account {account.code} no longer accepts posting")
        if account.requires_third_party and not (entry.third_party_type and entry.third_party_id):
            raise ValidationError(f"Account {account.code} requires a third party on every entry")

    txn.status = TransactionStatus.POSTED
    txn.posted_by = posted_by
    txn.posted_at = datetime.utcnow()
    db.flush()


def apply_cancellation(db: Session, txn: AccountingTransaction, cancelled_by: int | None) -> None:
    """Mark a posted transaction cancelled in the current session. Does not commit."""
    txn.status = TransactionStatus.CANCELLED
    txn.cancelled_by = cancelled_by
    txn.cancelled_at = datetime.utcnow()
    db.flush()


def create_transaction(
    db: Session,
    conjunto_id: int,
    data: TransactionCreate,
    created_by: int | None = None,
    post: bool = False,
) -> AccountingTransaction:
    """
    Create a draft transaction, optionally with entries.

    Args:
        db: Database session
        conjunto_id: Tenant id
        data: Transaction header and initial entries
        created_by: User creating the transaction
        post: Post the transaction in the same database transaction

    Returns:
        Created AccountingTransaction

    Raises:
        ClosedPeriodError: If the date falls in a closed fiscal year
        ValidationError: If an entry is invalid
        UnbalancedEntryError: If post=True and the entries do not balance
    """
    with atomic(db):
        txn = stage_transaction(db, conjunto_id, data, created_by)
        if post:
            apply_posting(db, txn, created_by)

    db.refresh(txn)
    logger.info(
        f"Created transaction {txn.transaction_number} for conjunto {conjunto_id} "
        f"({txn.reference}) with {len(txn.entries)} entries, status={txn.status.value}"
    )
    return txn


def add_entry(
    db: Session,
    transaction_id: int,
    entry: EntryCreate | Dict[str, Any],
) -> AccountingTransactionEntry:
    """
    Add an entry to a draft transaction.

    Raises:
        InvalidStateError: If the transaction is not a draft
        ValidationError: If amounts are invalid or the account cannot receive postings
    """
    with atomic(db):
        txn = get_transaction(db, transaction_id, for_update=True)
        if txn.status != TransactionStatus.DRAFT:
            raise InvalidStateError(
                f"Entries can only be added to draft transactions; {txn.transaction_number} is {txn.status.value}"
            )
        line = _add_entry(db, txn, _to_entry(entry))

    db.refresh(line)
    return line


def remove_entry(db: Session, transaction_id: int, entry_id: int) -> None:
    """Remove an entry from a draft transaction."""
    with atomic(db):
        txn = get_transaction(db, transaction_id, for_update=True)
        if txn.status != TransactionStatus.DRAFT:
            raise InvalidStateError(
                f"Entries can only be removed from draft transactions; {txn.transaction_number} is {txn.status.value}"
            )
        line = next((e for e in txn.entries if e.id == entry_id), None)
        if line is None:
            raise NotFoundError(f"Entry {entry_id} not found in transaction {txn.transaction_number}")
        txn.entries.remove(line)


def post_transaction(db: Session, transaction_id: int, posted_by: int | None = None) -> AccountingTransaction:
    """
    Post a draft transaction.

    Runs under a row lock so two concurrent posts of the same draft cannot
    both succeed.

    Raises:
        InvalidStateError: If the transaction is not a draft
        ValidationError: If it has fewer than two entries or misses a required third party
        UnbalancedEntryError: If debits and credits differ beyond tolerance
        ClosedPeriodError: If the date falls in a closed fiscal year
    """
    with atomic(db):
        txn = get_transaction(db, transaction_id, for_update=True)
        apply_posting(db, txn, posted_by)

    db.refresh(txn)
    logger.info(
        f"Posted transaction {txn.transaction_number}: "
        f"debits={txn.total_debit}, credits={txn.total_credit}"
    )
    return txn


def cancel_transaction(db: Session, transaction_id: int, cancelled_by: int | None = None) -> AccountingTransaction:
    """
    Cancel a posted transaction. Cancelled transactions stay on record.

    Raises:
        InvalidStateError: If not posted, or if it closes a completed fiscal year
        ClosedPeriodError: If the date falls in a closed fiscal year
    """
    with atomic(db):
        txn = get_transaction(db, transaction_id, for_update=True)
        if txn.status != TransactionStatus.POSTED:
            raise InvalidStateError(
                f"Only posted transactions can be cancelled; {txn.transaction_number} is {txn.status.value}"
            )
        closure = closing_closure_of(db, txn)
        if closure is not None:
            raise InvalidStateError(
                f"Transaction {txn.transaction_number} closes fiscal year {closure.fiscal_year}; "
                f"reverse the closure instead"
            )
        ensure_period_open(db, txn.conjunto_id, txn.transaction_date)
        apply_cancellation(db, txn, cancelled_by)

    db.refresh(txn)
    logger.info(f"Cancelled transaction {txn.transaction_number}")
    return txn


def delete_transaction(db: Session, transaction_id: int) -> None:
    """
    Delete a draft transaction. Posted and cancelled transactions are kept.

    Raises:
        InvalidStateError: If the transaction is not a draft
    """
    with atomic(db):
        txn = get_transaction(db, transaction_id, for_update=True)
        if txn.status != TransactionStatus.DRAFT:
            raise InvalidStateError(
                f"Only draft transactions can be deleted; {txn.transaction_number} is {txn.status.value}"
            )
        number = txn.transaction_number
        db.delete(txn)

    logger.info(f"Deleted draft transaction {number}")


def duplicate_transaction(
    db: Session,
    transaction_id: int,
    transaction_date: date | None = None,
    created_by: int | None = None,
) -> AccountingTransaction:
    """Copy a transaction's description and entries into a new manual draft."""
    source = get_transaction(db, transaction_id)
    data = TransactionCreate(
        transaction_date=transaction_date or source.transaction_date,
        description=f"{source.description} (copy)"[:500],
        entries=[
            EntryCreate(
                account_id=e.account_id,
                description=e.description,
                debit_amount=e.debit_amount,
                credit_amount=e.credit_amount,
                third_party_type=e.third_party_type,
                third_party_id=e.third_party_id,
            )
            for e in source.entries
        ],
    )
    with atomic(db):
        txn = stage_transaction(db, source.conjunto_id, data, created_by)

    db.refresh(txn)
    logger.info(f"Duplicated transaction {source.transaction_number} as {txn.transaction_number}")
    return txn


def check_double_entry(entries: Iterable[EntryCreate | Dict[str, Any]]) -> Dict[str, Any]:
    """
    Preview whether a set of entries balances. Nothing is stored.

    Returns:
        Dict with total_debit, total_credit, difference, is_balanced and entry_count
    """
    parsed = [_to_entry(e) for e in entries]
    total_debit = sum((e.debit_amount or Decimal("0") for e in parsed), Decimal("0"))
    total_credit = sum((e.credit_amount or Decimal("0") for e in parsed), Decimal("0"))
    difference = total_debit - total_credit

    return {
        "total_debit": total_debit,
        "total_credit": total_credit,
        "difference": difference,
        "is_balanced": abs(difference) <= get_settings().balance_tolerance,
        "entry_count": len(parsed),
    }


def list_transactions(
    db: Session,
    conjunto_id: int,
    status: TransactionStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    reference: TransactionReference | None = None,
) -> List[AccountingTransaction]:
    """List a tenant's transactions ordered by (transaction_date, id)."""
    query = db.query(AccountingTransaction).filter(
        AccountingTransaction.conjunto_id == conjunto_id
    )
    if status:
        query = query.filter(AccountingTransaction.status == status)
    if start_date:
        query = query.filter(AccountingTransaction.transaction_date >= start_date)
    if end_date:
        query = query.filter(AccountingTransaction.transaction_date <= end_date)
    if reference:
        query = query.filter(
            AccountingTransaction.reference_type == reference.type,
            AccountingTransaction.reference_id == reference.id
        )
    return query.order_by(
        AccountingTransaction.transaction_date,
        AccountingTransaction.id
    ).all()
