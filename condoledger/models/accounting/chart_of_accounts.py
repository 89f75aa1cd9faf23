"""Chart of Accounts model."""

from __future__ import annotations

from sqlalchemy import String, Boolean, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship

from condoledger.models.base import Base, TimestampMixin
from condoledger.domain.accounting.enums import AccountType, AccountNature


class ChartOfAccount(Base, TimestampMixin):
    """Chart of Accounts model.

    Codes follow a prefix scheme: 1 digit (class), 2 (group), 4 (account),
    6 (sub-account). Only postable accounts receive entries.
    """

    __tablename__ = "chart_of_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conjunto_id: Mapped[int] = mapped_column(Integer, nullable=False)

    code: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, native_enum=False, length=20), nullable=False
    )
    nature: Mapped[AccountNature] = mapped_column(
        Enum(AccountNature, native_enum=False, length=10), nullable=False
    )

    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("chart_of_accounts.id"), nullable=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    accepts_posting: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requires_third_party: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    parent: Mapped[ChartOfAccount | None] = relationship(
        "ChartOfAccount", remote_side="ChartOfAccount.id", back_populates="children"
    )
    children: Mapped[list[ChartOfAccount]] = relationship(
        "ChartOfAccount", back_populates="parent", order_by="ChartOfAccount.code"
    )

    __table_args__ = (
        UniqueConstraint("conjunto_id", "code", name="uq_chart_of_accounts_conjunto_code"),
        Index("idx_chart_of_accounts_conjunto_type", "conjunto_id", "account_type"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.code} - {self.name}"

    @property
    def is_debit_nature(self) -> bool:
        return self.nature == AccountNature.DEBIT

    def __repr__(self) -> str:
        return f"<ChartOfAccount {self.code} {self.account_type.value}>"
