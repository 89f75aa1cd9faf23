"""Reporting service for generating accounting reports."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Any

from sqlalchemy.orm import Session
from sqlalchemy import func, case

from condoledger.core.config import get_settings
from condoledger.models.accounting import (
    ChartOfAccount,
    AccountingTransaction,
    AccountingTransactionEntry,
)
from condoledger.domain.accounting.enums import (
    AccountType,
    AccountNature,
    IncomeBasis,
    TransactionStatus,
)
from condoledger.domain.accounting.exceptions import NotFoundError, ValidationError
from condoledger.domain.accounting.balance_service import (
    get_account_balances,
    get_balance,
    get_movements,
    signed_balance,
    to_money,
)

logger = logging.getLogger(__name__)


def _signed_sum():
    return func.sum(
        case(
            (
                ChartOfAccount.nature == AccountNature.DEBIT,
                AccountingTransactionEntry.debit_amount - AccountingTransactionEntry.credit_amount
            ),
            else_=AccountingTransactionEntry.credit_amount - AccountingTransactionEntry.debit_amount
        )
    )


def get_balance_sheet(
    db: Session,
    conjunto_id: int,
    as_of: date,
) -> Dict[str, Any]:
    """
    Generate Balance Sheet report.

    Income and expense accounts not yet closed are summarized as the
    current period result, reported next to equity.

    Args:
        db: Database session
        conjunto_id: Tenant id
        as_of: As-of date

    Returns:
        Dict with sections (Assets, Liabilities, Equity), totals and is_balanced
    """
    balance_expr = _signed_sum()
    query = (
        db.query(
            ChartOfAccount.id,
            ChartOfAccount.code,
            ChartOfAccount.name,
            ChartOfAccount.account_type,
            balance_expr.label("balance")
        )
        .join(AccountingTransactionEntry, AccountingTransactionEntry.account_id == ChartOfAccount.id)
        .join(AccountingTransaction, AccountingTransaction.id == AccountingTransactionEntry.transaction_id)
        .filter(
            ChartOfAccount.conjunto_id == conjunto_id,
            AccountingTransaction.transaction_date <= as_of,
            AccountingTransaction.status == TransactionStatus.POSTED
        )
        .group_by(
            ChartOfAccount.id,
            ChartOfAccount.code,
            ChartOfAccount.name,
            ChartOfAccount.account_type
        )
        .having(balance_expr != 0)  # Only include accounts with non-zero balances
        .order_by(ChartOfAccount.code)
    )

    results = query.all()

    sections: Dict[AccountType, List[Dict[str, Any]]] = {
        AccountType.ASSET: [],
        AccountType.LIABILITY: [],
        AccountType.EQUITY: [],
    }
    totals = {account_type: Decimal("0.00") for account_type in AccountType}

    for row in results:
        balance = to_money(row.balance)
        if balance == 0:
            continue
        totals[row.account_type] += balance
        if row.account_type in sections:
            sections[row.account_type].append({
                "account_id": row.id,
                "code": row.code,
                "name": row.name,
                "balance": balance
            })

    current_result = totals[AccountType.INCOME] - totals[AccountType.EXPENSE]
    total_assets = totals[AccountType.ASSET]
    total_liabilities = totals[AccountType.LIABILITY]
    total_equity = totals[AccountType.EQUITY]
    liabilities_plus_equity = total_liabilities + total_equity + current_result

    return {
        "as_of": as_of.isoformat(),
        "sections": [
            {"name": "Assets", "total": total_assets, "accounts": sections[AccountType.ASSET]},
            {"name": "Liabilities", "total": total_liabilities, "accounts": sections[AccountType.LIABILITY]},
            {"name": "Equity", "total": total_equity, "accounts": sections[AccountType.EQUITY]},
        ],
        "current_result": current_result,
        "totals": {
            "assets": total_assets,
            "liabilities": total_liabilities,
            "equity": total_equity,
            "liabilities_plus_equity": liabilities_plus_equity,
        },
        "is_balanced": abs(total_assets - liabilities_plus_equity) <= get_settings().balance_tolerance,
    }


def get_income_statement(
    db: Session,
    conjunto_id: int,
    start_date: date,
    end_date: date,
    basis: IncomeBasis | str = IncomeBasis.ACCRUAL,
) -> Dict[str, Any]:
    """
    Generate Income Statement report.

    Args:
        db: Database session
        conjunto_id: Tenant id
        start_date: Start date
        end_date: End date
        basis: "accrual" recognizes income when invoiced, "cash" when collected

    Returns:
        Dict with income and expense accounts, totals and net result
    """
    try:
        basis = IncomeBasis(basis)
    except ValueError as e:
        raise ValidationError(f"Unknown income basis: {basis}") from e
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    income = get_account_balances(db, conjunto_id, AccountType.INCOME, start_date, end_date, basis)
    expenses = get_account_balances(db, conjunto_id, AccountType.EXPENSE, start_date, end_date)

    total_income = sum((a["balance"] for a in income), Decimal("0.00"))
    total_expenses = sum((a["balance"] for a in expenses), Decimal("0.00"))
    net_result = total_income - total_expenses

    return {
        "period": {
            "from": start_date.isoformat(),
            "to": end_date.isoformat()
        },
        "basis": basis.value,
        "income": income,
        "expenses": expenses,
        "totals": {
            "income": total_income,
            "expenses": total_expenses,
            "net_result": net_result,
        },
        "is_profit": net_result >= 0,
    }


def get_trial_balance(
    db: Session,
    conjunto_id: int,
    as_of: date,
) -> Dict[str, Any]:
    """
    Generate Trial Balance report.

    Each account with a non-zero balance appears once, in the debit or
    credit column depending on the sign of debits minus credits.
    """
    net_expr = func.sum(AccountingTransactionEntry.debit_amount - AccountingTransactionEntry.credit_amount)
    query = (
        db.query(
            ChartOfAccount.id,
            ChartOfAccount.code,
            ChartOfAccount.name,
            ChartOfAccount.account_type,
            func.sum(AccountingTransactionEntry.debit_amount).label("debits"),
            func.sum(AccountingTransactionEntry.credit_amount).label("credits"),
        )
        .join(AccountingTransactionEntry, AccountingTransactionEntry.account_id == ChartOfAccount.id)
        .join(AccountingTransaction, AccountingTransaction.id == AccountingTransactionEntry.transaction_id)
        .filter(
            ChartOfAccount.conjunto_id == conjunto_id,
            AccountingTransaction.transaction_date <= as_of,
            AccountingTransaction.status == TransactionStatus.POSTED
        )
        .group_by(
            ChartOfAccount.id,
            ChartOfAccount.code,
            ChartOfAccount.name,
            ChartOfAccount.account_type
        )
        .having(net_expr != 0)
        .order_by(ChartOfAccount.code)
    )

    accounts = []
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")

    for row in query.all():
        net = to_money(row.debits) - to_money(row.credits)
        if net == 0:
            continue
        debit_balance = net if net > 0 else Decimal("0.00")
        credit_balance = -net if net < 0 else Decimal("0.00")
        total_debit += debit_balance
        total_credit += credit_balance
        accounts.append({
            "account_id": row.id,
            "code": row.code,
            "name": row.name,
            "type": row.account_type.value,
            "debit_balance": debit_balance,
            "credit_balance": credit_balance,
        })

    return {
        "as_of": as_of.isoformat(),
        "accounts": accounts,
        "totals": {
            "debit": total_debit,
            "credit": total_credit,
        },
        "is_balanced": abs(total_debit - total_credit) <= get_settings().balance_tolerance,
    }


def get_general_ledger(
    db: Session,
    account_id: int,
    start_date: date,
    end_date: date,
) -> Dict[str, Any]:
    """
    Generate General Ledger report for one account.

    Returns:
        Dict with opening balance, entries with running balance, and closing balance

    Raises:
        NotFoundError: If the account does not exist
    """
    account = db.get(ChartOfAccount, account_id)
    if not account:
        raise NotFoundError(f"Account {account_id} not found")

    opening_balance = get_balance(db, account, None, start_date - timedelta(days=1))

    rows = (
        db.query(
            AccountingTransaction.id.label("transaction_id"),
            AccountingTransaction.transaction_number,
            AccountingTransaction.transaction_date,
            AccountingTransaction.description.label("transaction_description"),
            AccountingTransactionEntry.description,
            AccountingTransactionEntry.debit_amount,
            AccountingTransactionEntry.credit_amount,
            AccountingTransactionEntry.third_party_type,
            AccountingTransactionEntry.third_party_id,
        )
        .join(AccountingTransaction, AccountingTransaction.id == AccountingTransactionEntry.transaction_id)
        .filter(
            AccountingTransactionEntry.account_id == account.id,
            AccountingTransaction.status == TransactionStatus.POSTED,
            AccountingTransaction.transaction_date >= start_date,
            AccountingTransaction.transaction_date <= end_date
        )
        .order_by(
            AccountingTransaction.transaction_date,
            AccountingTransaction.id,
            AccountingTransactionEntry.id
        )
        .all()
    )

    running = opening_balance
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")
    entries = []

    for row in rows:
        debit = to_money(row.debit_amount)
        credit = to_money(row.credit_amount)
        running += signed_balance(account.nature, debit, credit)
        total_debit += debit
        total_credit += credit
        entries.append({
            "transaction_id": row.transaction_id,
            "transaction_number": row.transaction_number,
            "date": row.transaction_date.isoformat(),
            "description": row.description or row.transaction_description,
            "debit": debit,
            "credit": credit,
            "balance": running,
            "third_party_type": row.third_party_type,
            "third_party_id": row.third_party_id,
        })

    return {
        "account": {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "nature": account.nature.value,
        },
        "period": {
            "from": start_date.isoformat(),
            "to": end_date.isoformat()
        },
        "opening_balance": opening_balance,
        "entries": entries,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "closing_balance": running,
    }


def get_cash_flow(
    db: Session,
    conjunto_id: int,
    start_date: date,
    end_date: date,
) -> Dict[str, Any]:
    """
    Generate Cash Flow report over the cash and bank accounts.

    Args:
        db: Database session
        conjunto_id: Tenant id
        start_date: Start date
        end_date: End date

    Returns:
        Dict with per-account opening/closing cash, inflows, outflows and totals
    """
    prefix = get_settings().cash_account_prefix
    cash_accounts = db.query(ChartOfAccount).filter(
        ChartOfAccount.conjunto_id == conjunto_id,
        ChartOfAccount.code.like(f"{prefix}%"),
        ChartOfAccount.accepts_posting.is_(True)
    ).order_by(ChartOfAccount.code).all()

    accounts = []
    opening_cash = Decimal("0.00")
    total_inflows = Decimal("0.00")
    total_outflows = Decimal("0.00")

    for account in cash_accounts:
        opening = get_balance(db, account, None, start_date - timedelta(days=1))
        movements = get_movements(db, account, start_date, end_date)
        inflows = movements["debit"]
        outflows = movements["credit"]
        if opening == 0 and inflows == 0 and outflows == 0:
            continue

        opening_cash += opening
        total_inflows += inflows
        total_outflows += outflows
        accounts.append({
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "opening_balance": opening,
            "inflows": inflows,
            "outflows": outflows,
            "closing_balance": opening + inflows - outflows,
        })

    net_change = total_inflows - total_outflows

    return {
        "period": {
            "from": start_date.isoformat(),
            "to": end_date.isoformat()
        },
        "accounts": accounts,
        "opening_cash": opening_cash,
        "total_inflows": total_inflows,
        "total_outflows": total_outflows,
        "net_change_in_cash": net_change,
        "closing_cash": opening_cash + net_change,
    }
