"""Typed failures raised by the accounting core."""

from decimal import Decimal


class AccountingError(Exception):
    """Base class for accounting failures surfaced to the caller."""
    pass


class ValidationError(AccountingError, ValueError):
    """Raised when input is malformed (caller's fault)."""
    pass


class NotFoundError(AccountingError, LookupError):
    """Raised when a referenced record does not exist in the tenant scope."""
    pass


class InvalidStateError(AccountingError):
    """Raised when an operation is attempted in the wrong lifecycle state."""
    pass


class UnbalancedEntryError(AccountingError):
    """Raised when a transaction fails the double-entry balance check."""

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Transaction is not balanced: debits={total_debit}, credits={total_credit}"
        )


class ClosedPeriodError(AccountingError):
    """Raised when posting or modifying inside a closed fiscal year."""

    def __init__(self, fiscal_year: int, message: str | None = None):
        self.fiscal_year = fiscal_year
        super().__init__(message or f"Fiscal year {fiscal_year} is closed")


class AlreadyClosedError(AccountingError):
    """Raised on a duplicate closure attempt."""

    def __init__(self, fiscal_year: int):
        self.fiscal_year = fiscal_year
        super().__init__(
            f"Fiscal year {fiscal_year} is already closed; reverse the closure first"
        )
