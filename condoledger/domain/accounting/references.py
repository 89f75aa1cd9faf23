"""Origin of an accounting transaction.

A transaction points back to the business event that produced it. The pair
(reference_type, reference_id) is stored on the row; in code it travels as a
``TransactionReference`` so callers never build class names from strings.
"""

from dataclasses import dataclass

from condoledger.domain.accounting.enums import ReferenceType


@dataclass(frozen=True)
class TransactionReference:
    type: ReferenceType
    id: int | None = None

    def __post_init__(self):
        if self.type == ReferenceType.MANUAL and self.id is not None:
            raise ValueError("Manual references do not carry an id")
        if self.type != ReferenceType.MANUAL and self.id is None:
            raise ValueError(f"{self.type.value} reference requires an id")

    @classmethod
    def invoice(cls, invoice_id: int) -> "TransactionReference":
        return cls(ReferenceType.INVOICE, invoice_id)

    @classmethod
    def payment(cls, payment_id: int) -> "TransactionReference":
        return cls(ReferenceType.PAYMENT, payment_id)

    @classmethod
    def manual(cls) -> "TransactionReference":
        return cls(ReferenceType.MANUAL)

    @classmethod
    def closing(cls, closure_id: int) -> "TransactionReference":
        return cls(ReferenceType.CLOSING, closure_id)

    @classmethod
    def reserve_fund(cls, year: int, month: int) -> "TransactionReference":
        return cls(ReferenceType.RESERVE_FUND, year * 100 + month)

    @property
    def is_invoice(self) -> bool:
        return self.type == ReferenceType.INVOICE

    def __str__(self) -> str:
        if self.id is None:
            return self.type.name
        return f"{self.type.name}#{self.id}"
