"""Chart of accounts and ledger schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from condoledger.domain.accounting.enums import (
    AccountType,
    AccountNature,
    ReferenceType,
    TransactionStatus,
)
from condoledger.domain.accounting.references import TransactionReference


class AccountCreate(BaseModel):
    """Schema for creating a chart of accounts entry.

    ``account_type`` and ``nature`` default to what the code's first digit
    implies. ``parent_id`` defaults to the account whose code is this code's
    prefix one level up.
    """
    code: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    account_type: Optional[AccountType] = None
    nature: Optional[AccountNature] = None
    parent_id: Optional[int] = None
    accepts_posting: Optional[bool] = None
    requires_third_party: bool = False
    is_active: bool = True


class AccountUpdate(BaseModel):
    """Schema for updating an account. Only fields that are set are applied."""
    code: Optional[str] = Field(default=None, min_length=1, max_length=10)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    account_type: Optional[AccountType] = None
    nature: Optional[AccountNature] = None
    parent_id: Optional[int] = None
    accepts_posting: Optional[bool] = None
    requires_third_party: Optional[bool] = None
    is_active: Optional[bool] = None


class AccountResponse(BaseModel):
    """Schema for account response."""
    id: int
    conjunto_id: int
    code: str
    name: str
    description: Optional[str] = None
    account_type: AccountType
    nature: AccountNature
    parent_id: Optional[int] = None
    level: int
    accepts_posting: bool
    requires_third_party: bool
    is_active: bool

    class Config:
        from_attributes = True


class EntryCreate(BaseModel):
    """One debit or credit line. Exactly one side must be positive."""
    account_id: int
    description: Optional[str] = Field(default=None, max_length=500)
    debit_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    third_party_type: Optional[str] = Field(default=None, max_length=50)
    third_party_id: Optional[int] = None


class TransactionCreate(BaseModel):
    """Schema for creating a transaction, optionally with its entries."""
    transaction_date: date
    description: str = Field(..., min_length=1, max_length=500)
    reference_type: ReferenceType = ReferenceType.MANUAL
    reference_id: Optional[int] = None
    entries: list[EntryCreate] = Field(default_factory=list)

    @property
    def reference(self) -> TransactionReference:
        return TransactionReference(self.reference_type, self.reference_id)


class EntryResponse(BaseModel):
    """Schema for entry response."""
    id: int
    account_id: int
    description: Optional[str] = None
    debit_amount: Decimal
    credit_amount: Decimal
    third_party_type: Optional[str] = None
    third_party_id: Optional[int] = None

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    """Schema for transaction response."""
    id: int
    conjunto_id: int
    transaction_number: str
    transaction_date: date
    description: str
    reference_type: ReferenceType
    reference_id: Optional[int] = None
    status: TransactionStatus
    total_debit: Decimal
    total_credit: Decimal
    created_by: Optional[int] = None
    posted_by: Optional[int] = None
    posted_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    entries: list[EntryResponse] = []

    class Config:
        from_attributes = True
