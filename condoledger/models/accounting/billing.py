"""Invoice and payment application records used for cash-basis income.

Billing owns these tables; the ledger only reads invoice totals and the
payments applied against them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import String, Date, Enum, ForeignKey, Index, Integer, CheckConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship

from condoledger.models.base import Base, TimestampMixin
from condoledger.domain.accounting.enums import InvoiceStatus, ApplicationStatus


class Invoice(Base, TimestampMixin):
    """Invoice issued to a unit owner."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conjunto_id: Mapped[int] = mapped_column(Integer, nullable=False)

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    billing_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, native_enum=False, length=20),
        default=InvoiceStatus.PENDING,
        nullable=False
    )

    applications: Mapped[list[PaymentApplication]] = relationship(
        "PaymentApplication", back_populates="invoice", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_invoice_total_non_negative"),
        Index("idx_invoices_conjunto", "conjunto_id"),
    )


class PaymentApplication(Base, TimestampMixin):
    """Portion of a payment applied to an invoice."""

    __tablename__ = "payment_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False
    )
    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="applications")

    payment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_applied: Mapped[Decimal] = mapped_column(nullable=False)
    applied_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, native_enum=False, length=20),
        default=ApplicationStatus.ACTIVE,
        nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount_applied > 0", name="check_application_amount_positive"),
        Index("idx_payment_applications_invoice", "invoice_id"),
    )
