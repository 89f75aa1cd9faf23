"""Accounting domain enums."""

from enum import Enum as PyEnum


class AccountType(str, PyEnum):
    """Chart of Accounts account types."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class AccountNature(str, PyEnum):
    """Side on which an account's balance normally increases."""
    DEBIT = "debit"
    CREDIT = "credit"


class ReferenceType(str, PyEnum):
    """Business event a transaction originates from."""
    INVOICE = "invoice"
    PAYMENT = "payment"
    MANUAL = "manual"
    CLOSING = "closing"  # Period closure
    RESERVE_FUND = "reserve_fund"  # Monthly appropriation, id is YYYYMM


class TransactionStatus(str, PyEnum):
    """Accounting transaction status."""
    DRAFT = "draft"
    POSTED = "posted"
    CANCELLED = "cancelled"


class ClosureStatus(str, PyEnum):
    """Period closure status."""
    COMPLETED = "completed"
    REVERSED = "reversed"


class PeriodType(str, PyEnum):
    ANNUAL = "annual"


class BudgetStatus(str, PyEnum):
    """Budget lifecycle."""
    DRAFT = "draft"
    APPROVED = "approved"
    ACTIVE = "active"
    CLOSED = "closed"


class BudgetCategory(str, PyEnum):
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseType(str, PyEnum):
    FIXED = "fixed"
    VARIABLE = "variable"
    SPECIAL_FUND = "special_fund"


class AlertLevel(str, PyEnum):
    """Budget variance alert severity."""
    WARNING = "warning"
    DANGER = "danger"


class InvoiceStatus(str, PyEnum):
    """Invoice status (billing collaborator)."""
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


class ApplicationStatus(str, PyEnum):
    """Payment application status."""
    ACTIVE = "active"
    REVERSED = "reversed"


class IncomeBasis(str, PyEnum):
    """Income recognition basis for the income statement."""
    ACCRUAL = "accrual"
    CASH = "cash"
