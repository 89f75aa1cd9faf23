"""Pydantic schemas for service inputs and outputs."""

from .accounting import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    EntryCreate,
    EntryResponse,
    TransactionCreate,
    TransactionResponse,
)
from .budget import (
    BudgetCreate,
    BudgetItemCreate,
    BudgetResponse,
    ItemExecution,
    ExecutionSummary,
)

__all__ = [
    "AccountCreate",
    "AccountUpdate",
    "AccountResponse",
    "EntryCreate",
    "EntryResponse",
    "TransactionCreate",
    "TransactionResponse",
    "BudgetCreate",
    "BudgetItemCreate",
    "BudgetResponse",
    "ItemExecution",
    "ExecutionSummary",
]
