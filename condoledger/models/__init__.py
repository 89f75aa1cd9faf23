"""Database models."""

from condoledger.models.base import Base
from condoledger.models.accounting import (
    ChartOfAccount,
    AccountingTransaction,
    AccountingTransactionEntry,
    AccountingPeriodClosure,
    Budget,
    BudgetItem,
    Invoice,
    PaymentApplication,
)

__all__ = [
    "Base",
    "ChartOfAccount",
    "AccountingTransaction",
    "AccountingTransactionEntry",
    "AccountingPeriodClosure",
    "Budget",
    "BudgetItem",
    "Invoice",
    "PaymentApplication",
]
