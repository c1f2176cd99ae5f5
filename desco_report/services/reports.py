"""Read side of the provider data: refresh from DESCO, answer from storage."""

from datetime import UTC, date, datetime, time

from sqlalchemy import select
from sqlalchemy.orm import Session

from desco_report.models.daily_consumption import DailyConsumption
from desco_report.models.location import LocationRecord
from desco_report.models.monthly_consumption import MonthlyConsumption
from desco_report.models.recent_event import RecentEvent
from desco_report.models.recharge import RechargeRecord
from desco_report.schemas.desco import (
    BalanceResponse,
    DailyConsumptionResponse,
    LocationResponse,
    MonthlyConsumptionResponse,
    RechargeResponse,
    RecentEventResponse,
)
from desco_report.services import sync
from desco_report.services.desco_client import DescoClient


def get_balance(
    db: Session, client: DescoClient, account_no: str, meter_no: str
) -> BalanceResponse | None:
    """
    Fetch the current balance and cache it on the account row.

    Returns:
        Balance snapshot or None if the provider has no data

    """
    account = sync.refresh_balance(db, client, account_no, meter_no)
    if account is None:
        return None
    return BalanceResponse.model_validate(account)


def get_daily_consumption(
    db: Session,
    client: DescoClient,
    account_no: str,
    meter_no: str,
    date_from: date,
    date_to: date,
) -> list[DailyConsumptionResponse]:
    """Daily consumption between two dates, inclusive."""
    account = sync.get_stored_account(db, account_no, meter_no)
    records = sync.refresh_daily_consumption(
        db, client, account, account_no, meter_no, date_from, date_to
    )
    if account is None:
        return [DailyConsumptionResponse.model_validate(r.model_dump()) for r in records]

    rows = db.scalars(
        select(DailyConsumption)
        .where(
            DailyConsumption.account_id == account.id,
            DailyConsumption.date.between(date_from, date_to),
        )
        .order_by(DailyConsumption.date)
    ).all()
    return [DailyConsumptionResponse.model_validate(row) for row in rows]


def get_monthly_consumption(
    db: Session,
    client: DescoClient,
    account_no: str,
    meter_no: str,
    month_from: date,
    month_to: date,
) -> list[MonthlyConsumptionResponse]:
    """Monthly consumption between two months, inclusive; days are ignored."""
    account = sync.get_stored_account(db, account_no, meter_no)
    records = sync.refresh_monthly_consumption(
        db, client, account, account_no, meter_no, month_from, month_to
    )
    if account is None:
        return [MonthlyConsumptionResponse.model_validate(r.model_dump()) for r in records]

    month_index = MonthlyConsumption.year * 12 + MonthlyConsumption.month
    rows = db.scalars(
        select(MonthlyConsumption)
        .where(
            MonthlyConsumption.account_id == account.id,
            month_index.between(
                month_from.year * 12 + month_from.month,
                month_to.year * 12 + month_to.month,
            ),
        )
        .order_by(MonthlyConsumption.year, MonthlyConsumption.month)
    ).all()
    return [MonthlyConsumptionResponse.model_validate(row) for row in rows]


def get_recharge_history(
    db: Session,
    client: DescoClient,
    account_no: str,
    meter_no: str,
    date_from: date,
    date_to: date,
) -> list[RechargeResponse]:
    """Recharges between two dates, inclusive, newest first."""
    account = sync.get_stored_account(db, account_no, meter_no)
    records = sync.refresh_recharge_history(
        db, client, account, account_no, meter_no, date_from, date_to
    )
    if account is None:
        return [RechargeResponse.model_validate(r.model_dump()) for r in records]

    rows = db.scalars(
        select(RechargeRecord)
        .where(
            RechargeRecord.account_id == account.id,
            RechargeRecord.recharge_date.between(
                datetime.combine(date_from, time.min, tzinfo=UTC),
                datetime.combine(date_to, time.max, tzinfo=UTC),
            ),
        )
        .order_by(RechargeRecord.recharge_date.desc())
    ).all()
    return [RechargeResponse.model_validate(row) for row in rows]


def get_recent_events(
    db: Session, client: DescoClient, account_no: str
) -> list[RecentEventResponse]:
    """Stored events for an account, newest first."""
    account = sync.get_stored_account(db, account_no)
    records = sync.refresh_recent_events(db, client, account, account_no)
    if account is None:
        return [RecentEventResponse.model_validate(r.model_dump()) for r in records]

    rows = db.scalars(
        select(RecentEvent)
        .where(RecentEvent.account_id == account.id)
        .order_by(RecentEvent.event_date.desc())
    ).all()
    return [RecentEventResponse.model_validate(row) for row in rows]


def get_locations(db: Session, client: DescoClient, account_no: str) -> list[LocationResponse]:
    account = sync.get_stored_account(db, account_no)
    records = sync.refresh_locations(db, client, account, account_no)
    if account is None:
        return [LocationResponse.model_validate(r.model_dump()) for r in records]

    rows = db.scalars(
        select(LocationRecord)
        .where(LocationRecord.account_id == account.id)
        .order_by(LocationRecord.id)
    ).all()
    return [LocationResponse.model_validate(row) for row in rows]
