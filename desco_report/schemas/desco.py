"""DESCO account and consumption schemas for the public API."""

import re
from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

from desco_report.models.enums import SyncStatus, SyncStepStatus
from desco_report.schemas.base import CamelModel, UTCDateTime

_MONTH = re.compile(r"(\d{4})-(\d{1,2})")


def parse_month(value: Any) -> Any:
    """Read ``YYYY-MM`` as the first day of that month; other input passes through."""
    if not isinstance(value, str):
        return value
    match = _MONTH.fullmatch(value.strip())
    if match is None:
        return value
    return date(int(match.group(1)), int(match.group(2)), 1)


MonthDate = Annotated[date, BeforeValidator(parse_month)]


class SyncAccountRequest(CamelModel):
    """Schema for triggering a sync of one account."""

    account_no: str = Field(min_length=1, max_length=50)
    meter_no: str = Field(min_length=1, max_length=50)


class AddAccountRequest(SyncAccountRequest):
    """Schema for linking an account to the current user."""

    customer_name: str | None = Field(default=None, max_length=100)


class BalanceResponse(CamelModel):
    """Latest balance snapshot for an account."""

    account_number: str
    meter_number: str
    current_balance: Decimal
    current_month_consumption: Decimal
    last_reading_time: UTCDateTime | None


class UtilityAccountResponse(CamelModel):
    """Schema for a stored utility account."""

    id: int
    account_number: str
    meter_number: str
    customer_name: str | None
    address: str | None
    phone_number: str | None
    email: str | None
    current_balance: Decimal
    current_month_consumption: Decimal
    last_reading_time: UTCDateTime | None
    is_verified: bool
    is_active: bool
    last_sync_at: UTCDateTime | None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    user_id: int | None


class DailyConsumptionResponse(CamelModel):
    """Consumption for a single day."""

    date: date
    consumption_value: Decimal
    unit: str
    cost: Decimal | None = None


class MonthlyConsumptionResponse(CamelModel):
    """Consumption for a calendar month."""

    year: int
    month: int
    consumption_value: Decimal
    unit: str
    cost: Decimal | None = None
    average_daily_consumption: Decimal | None = None


class RechargeResponse(CamelModel):
    """One recharge transaction."""

    recharge_date: UTCDateTime
    amount: Decimal
    transaction_id: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    status: str | None = None


class RecentEventResponse(CamelModel):
    """Provider notification for an account."""

    event_date: UTCDateTime
    event_type: str
    message: str
    category: str | None = None
    priority: str | None = None
    is_read: bool = False


class LocationResponse(CamelModel):
    """Location of the customer's premises."""

    division: str | None = None
    district: str | None = None
    thana: str | None = None
    area: str | None = None
    post_code: str | None = None
    full_address: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None


class SyncStepResult(BaseModel):
    """Outcome of one fetch-and-reconcile step."""

    name: str
    status: SyncStepStatus
    records: int = 0
    error: str | None = None


class SyncReport(BaseModel):
    """Outcome of a full account sync."""

    account_no: str
    meter_no: str
    status: SyncStatus = SyncStatus.COMPLETED
    steps: list[SyncStepResult] = []

    def step(self, name: str) -> SyncStepResult | None:
        """Get a step result by name."""
        return next((s for s in self.steps if s.name == name), None)
