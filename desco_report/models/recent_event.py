"""Recent event (push notification) database model."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from desco_report.core.database import Base

if TYPE_CHECKING:
    from desco_report.models.utility_account import UtilityAccount


class RecentEvent(Base):
    """Notification published by the provider for an account."""

    __tablename__ = "recent_events"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "event_date", "event_type", "message", name="uq_recent_event"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("utility_accounts.id", ondelete="CASCADE"), index=True
    )
    event_date: Mapped[datetime] = mapped_column(index=True)
    event_type: Mapped[str] = mapped_column(String(100))
    message: Mapped[str] = mapped_column(String(500))
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_read: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    account: Mapped["UtilityAccount"] = relationship(back_populates="recent_events")
