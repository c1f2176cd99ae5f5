"""Utility account database model."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from desco_report.core.database import Base

if TYPE_CHECKING:
    from desco_report.models.daily_consumption import DailyConsumption
    from desco_report.models.location import LocationRecord
    from desco_report.models.monthly_consumption import MonthlyConsumption
    from desco_report.models.recent_event import RecentEvent
    from desco_report.models.recharge import RechargeRecord
    from desco_report.models.user import User


class UtilityAccount(Base):
    """Prepaid DESCO account, identified by account number and meter number."""

    __tablename__ = "utility_accounts"
    __table_args__ = (
        UniqueConstraint("account_number", "meter_number", name="uq_account_meter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_number: Mapped[str] = mapped_column(String(50), index=True)
    meter_number: Mapped[str] = mapped_column(String(50))

    # Customer details
    customer_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Latest balance snapshot
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), default=Decimal("0")
    )
    current_month_consumption: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), default=Decimal("0")
    )
    last_reading_time: Mapped[datetime | None] = mapped_column(nullable=True)

    is_verified: Mapped[bool] = mapped_column(default=False)
    is_active: Mapped[bool] = mapped_column(default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Owner, unset while the account is only cached from a balance lookup
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    owner: Mapped["User | None"] = relationship(back_populates="accounts")
    daily_consumptions: Mapped[list["DailyConsumption"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    monthly_consumptions: Mapped[list["MonthlyConsumption"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    recharges: Mapped[list["RechargeRecord"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    recent_events: Mapped[list["RecentEvent"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    locations: Mapped[list["LocationRecord"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
