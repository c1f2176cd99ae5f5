"""Daily consumption database model."""

from datetime import UTC, datetime
from datetime import date as date_type
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from desco_report.core.database import Base

if TYPE_CHECKING:
    from desco_report.models.utility_account import UtilityAccount


class DailyConsumption(Base):
    """Energy consumed by an account on one calendar day."""

    __tablename__ = "daily_consumptions"
    __table_args__ = (UniqueConstraint("account_id", "date", name="uq_daily_account_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("utility_accounts.id", ondelete="CASCADE"), index=True
    )
    date: Mapped[date_type] = mapped_column(index=True)
    consumption_value: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2))
    unit: Mapped[str] = mapped_column(String(10), default="kWh")
    cost: Mapped[Decimal | None] = mapped_column(Numeric(precision=10, scale=2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    account: Mapped["UtilityAccount"] = relationship(back_populates="daily_consumptions")
