"""Recharge history database model."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from desco_report.core.database import Base

if TYPE_CHECKING:
    from desco_report.models.utility_account import UtilityAccount


class RechargeRecord(Base):
    """Prepaid top-up made against an account."""

    __tablename__ = "recharge_records"
    __table_args__ = (
        UniqueConstraint("account_id", "transaction_id", name="uq_recharge_transaction"),
        UniqueConstraint("account_id", "natural_key", name="uq_recharge_natural_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("utility_accounts.id", ondelete="CASCADE"), index=True
    )
    recharge_date: Mapped[datetime] = mapped_column(index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2))
    transaction_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    # Transaction id when known, otherwise date and amount
    natural_key: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    account: Mapped["UtilityAccount"] = relationship(back_populates="recharges")
