"""Accounting models."""

from .chart_of_accounts import ChartOfAccount
from .transaction import AccountingTransaction, AccountingTransactionEntry
from .period_closure import AccountingPeriodClosure
from .budget import Budget, BudgetItem
from .billing import Invoice, PaymentApplication

__all__ = [
    "ChartOfAccount",
    "AccountingTransaction",
    "AccountingTransactionEntry",
    "AccountingPeriodClosure",
    "Budget",
    "BudgetItem",
    "Invoice",
    "PaymentApplication",
]
