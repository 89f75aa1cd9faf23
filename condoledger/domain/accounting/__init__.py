"""Accounting domain module."""

from .enums import (
    AccountType,
    AccountNature,
    ReferenceType,
    TransactionStatus,
    ClosureStatus,
    BudgetStatus,
    BudgetCategory,
    AlertLevel,
    IncomeBasis,
)
from .exceptions import (
    AccountingError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    UnbalancedEntryError,
    ClosedPeriodError,
    AlreadyClosedError,
)
from .references import TransactionReference

__all__ = [
    "AccountType",
    "AccountNature",
    "ReferenceType",
    "TransactionStatus",
    "ClosureStatus",
    "BudgetStatus",
    "BudgetCategory",
    "AlertLevel",
    "IncomeBasis",
    "AccountingError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "UnbalancedEntryError",
    "ClosedPeriodError",
    "AlreadyClosedError",
    "TransactionReference",
]
