"""Monthly consumption database model."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from desco_report.core.database import Base

if TYPE_CHECKING:
    from desco_report.models.utility_account import UtilityAccount


class MonthlyConsumption(Base):
    """Energy consumed by an account in one calendar month."""

    __tablename__ = "monthly_consumptions"
    __table_args__ = (
        UniqueConstraint("account_id", "year", "month", name="uq_monthly_account_month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("utility_accounts.id", ondelete="CASCADE"), index=True
    )
    year: Mapped[int]
    month: Mapped[int]
    consumption_value: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2))
    unit: Mapped[str] = mapped_column(String(10), default="kWh")
    cost: Mapped[Decimal | None] = mapped_column(Numeric(precision=10, scale=2), nullable=True)
    average_daily_consumption: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=10, scale=2), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    account: Mapped["UtilityAccount"] = relationship(back_populates="monthly_consumptions")
