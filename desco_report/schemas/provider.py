"""Schemas for payloads returned by the DESCO prepaid API.

Field names here are canonical; the client maps the provider's keys onto
them before validation (see ``desco_report.services.desco_client``).
"""

from datetime import UTC, datetime
from datetime import date as date_type
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Tried in order after ISO 8601 parsing fails
_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%Y%m%d",
)


def parse_provider_datetime(value: Any) -> datetime:
    """
    Parse a free-text provider timestamp into an aware UTC datetime.

    Naive values are taken as UTC; values with an offset are converted.

    Raises:
        ValueError: If the value matches none of the known formats

    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date_type):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _DATETIME_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise ValueError(f"Unrecognised date format: {text!r}") from None
    else:
        raise ValueError(f"Expected a date string, got {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class ProviderModel(BaseModel):
    """Base for provider payload records."""

    model_config = ConfigDict(coerce_numbers_to_str=True, str_strip_whitespace=True)


class ProviderEnvelope(BaseModel):
    """Wrapper returned by every provider endpoint: ``{code, desc, data}``."""

    code: int = 0
    desc: str | None = None
    data: Any = None


class ProviderBalance(ProviderModel):
    """Balance snapshot for an account/meter pair."""

    account_no: str | None = None
    meter_no: str | None = None
    balance: Decimal
    current_month_consumption: Decimal = Decimal("0")
    reading_time: datetime | None = None

    @field_validator("reading_time", mode="before")
    @classmethod
    def parse_reading_time(cls, v: Any) -> datetime | None:
        if v is None or v == "":
            return None
        return parse_provider_datetime(v)


class ProviderDailyConsumption(ProviderModel):
    """Consumption for a single day."""

    date: date_type
    consumption_value: Decimal
    unit: str = "kWh"
    cost: Decimal | None = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> date_type:
        return parse_provider_datetime(v).date()

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, v: Any) -> Any:
        return v or "kWh"


class ProviderMonthlyConsumption(ProviderModel):
    """Consumption for a calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    consumption_value: Decimal
    unit: str = "kWh"
    cost: Decimal | None = None
    average_daily_consumption: Decimal | None = None

    @model_validator(mode="before")
    @classmethod
    def split_year_month(cls, data: Any) -> Any:
        """Accept ``month`` as ``YYYY-MM`` when no separate year is sent."""
        if isinstance(data, dict) and data.get("year") is None:
            month = data.get("month")
            if isinstance(month, str) and "-" in month:
                year_part, _, month_part = month.partition("-")
                return {**data, "year": year_part, "month": month_part[:2]}
        return data

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, v: Any) -> Any:
        return v or "kWh"


class ProviderRecharge(ProviderModel):
    """One recharge (top-up) transaction."""

    recharge_date: datetime
    amount: Decimal
    transaction_id: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    status: str | None = None

    @field_validator("recharge_date", mode="before")
    @classmethod
    def parse_recharge_date(cls, v: Any) -> datetime:
        return parse_provider_datetime(v)


class ProviderEvent(ProviderModel):
    """Push notification raised for an account."""

    event_date: datetime
    event_type: str = ""
    message: str = ""
    category: str | None = None
    priority: str | None = None

    @field_validator("event_date", mode="before")
    @classmethod
    def parse_event_date(cls, v: Any) -> datetime:
        return parse_provider_datetime(v)

    @field_validator("event_type", "message", mode="before")
    @classmethod
    def empty_text(cls, v: Any) -> Any:
        return "" if v is None else v


class ProviderLocation(ProviderModel):
    """Administrative location of the customer's premises."""

    division: str | None = None
    district: str | None = None
    thana: str | None = None
    area: str | None = None
    post_code: str | None = None
    full_address: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
