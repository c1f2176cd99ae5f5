"""Merge provider records into storage by natural key."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from desco_report.core.database import Base
from desco_report.models.daily_consumption import DailyConsumption
from desco_report.models.location import LocationRecord
from desco_report.models.monthly_consumption import MonthlyConsumption
from desco_report.models.recent_event import RecentEvent
from desco_report.models.recharge import RechargeRecord
from desco_report.models.utility_account import UtilityAccount
from desco_report.schemas.provider import (
    ProviderBalance,
    ProviderDailyConsumption,
    ProviderEvent,
    ProviderLocation,
    ProviderMonthlyConsumption,
    ProviderRecharge,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


def _find_by_key(db: Session, model: type[ModelT], key: dict[str, Any]) -> ModelT | None:
    conditions = [getattr(model, column) == value for column, value in key.items()]
    return db.scalars(select(model).where(*conditions)).first()


def _apply(row: Base, values: dict[str, Any], now: datetime) -> None:
    for field, value in values.items():
        setattr(row, field, value)
    row.updated_at = now


def upsert(
    db: Session,
    model: type[ModelT],
    key: dict[str, Any],
    values: dict[str, Any],
) -> tuple[ModelT, bool]:
    """
    Update the row matching ``key`` or insert a new one.

    Args:
        db: Database session
        model: Mapped class to upsert into
        key: Natural key columns and their values
        values: Mutable columns to write

    Returns:
        The persisted row and whether it was inserted

    The caller commits. Inserts are flushed inside a savepoint so that a
    concurrent insert of the same key falls back to updating that row.

    """
    now = datetime.now(UTC)
    row = _find_by_key(db, model, key)
    if row is not None:
        _apply(row, values, now)
        return row, False

    row = model(**key, **values, created_at=now, updated_at=now)
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        existing = _find_by_key(db, model, key)
        if existing is None:
            raise
        logger.info("Concurrent insert for %s %s, updating instead", model.__name__, key)
        _apply(existing, values, now)
        return existing, False
    return row, True


def reconcile_balance(
    db: Session, account_no: str, meter_no: str, balance: ProviderBalance
) -> UtilityAccount:
    """Create or refresh the account row from a balance snapshot."""
    account, created = upsert(
        db,
        UtilityAccount,
        {"account_number": account_no, "meter_number": meter_no},
        {
            "current_balance": balance.balance,
            "current_month_consumption": balance.current_month_consumption,
            "last_reading_time": balance.reading_time,
            "last_sync_at": datetime.now(UTC),
        },
    )
    db.commit()
    db.refresh(account)
    if created:
        logger.info("Cached new account %s/%s from balance", account_no, meter_no)
    return account


def reconcile_daily_consumption(
    db: Session, account: UtilityAccount, records: Iterable[ProviderDailyConsumption]
) -> list[DailyConsumption]:
    """Upsert daily consumption keyed by (account, date)."""
    rows = [
        upsert(
            db,
            DailyConsumption,
            {"account_id": account.id, "date": record.date},
            {
                "consumption_value": record.consumption_value,
                "unit": record.unit,
                "cost": record.cost,
            },
        )[0]
        for record in records
    ]
    db.commit()
    return rows


def reconcile_monthly_consumption(
    db: Session, account: UtilityAccount, records: Iterable[ProviderMonthlyConsumption]
) -> list[MonthlyConsumption]:
    """Upsert monthly consumption keyed by (account, year, month)."""
    rows = [
        upsert(
            db,
            MonthlyConsumption,
            {"account_id": account.id, "year": record.year, "month": record.month},
            {
                "consumption_value": record.consumption_value,
                "unit": record.unit,
                "cost": record.cost,
                "average_daily_consumption": record.average_daily_consumption,
            },
        )[0]
        for record in records
    ]
    db.commit()
    return rows


def recharge_natural_key(record: ProviderRecharge) -> str:
    """Identify a recharge by transaction id, or by UTC date and amount without one."""
    if record.transaction_id:
        return f"tx:{record.transaction_id}"
    return f"at:{record.recharge_date.astimezone(UTC).isoformat()}|{record.amount:.2f}"


def reconcile_recharge_history(
    db: Session, account: UtilityAccount, records: Iterable[ProviderRecharge]
) -> list[RechargeRecord]:
    """Upsert recharges keyed by transaction id, or by date and amount."""
    rows = [
        upsert(
            db,
            RechargeRecord,
            {"account_id": account.id, "natural_key": recharge_natural_key(record)},
            {
                "transaction_id": record.transaction_id or None,
                "recharge_date": record.recharge_date,
                "amount": record.amount,
                "payment_method": record.payment_method,
                "notes": record.notes,
                "status": record.status,
            },
        )[0]
        for record in records
    ]
    db.commit()
    return rows


def reconcile_recent_events(
    db: Session, account: UtilityAccount, records: Iterable[ProviderEvent]
) -> list[RecentEvent]:
    """
    Upsert events keyed by (account, date, type, message).

    New events are stored unread; known events keep their read flag.
    """
    rows = []
    for record in records:
        row, created = upsert(
            db,
            RecentEvent,
            {
                "account_id": account.id,
                "event_date": record.event_date,
                "event_type": record.event_type,
                "message": record.message,
            },
            {"category": record.category, "priority": record.priority},
        )
        if created:
            row.is_read = False
        rows.append(row)
    db.commit()
    return rows


def location_natural_key(record: ProviderLocation) -> str:
    parts = (record.division, record.district, record.thana, record.area, record.post_code)
    return "|".join(part or "" for part in parts)


def reconcile_locations(
    db: Session, account: UtilityAccount, records: Iterable[ProviderLocation]
) -> list[LocationRecord]:
    """Upsert locations keyed by their administrative area fields."""
    rows = [
        upsert(
            db,
            LocationRecord,
            {"account_id": account.id, "natural_key": location_natural_key(record)},
            {
                "division": record.division,
                "district": record.district,
                "thana": record.thana,
                "area": record.area,
                "post_code": record.post_code,
                "full_address": record.full_address,
                "latitude": record.latitude,
                "longitude": record.longitude,
            },
        )[0]
        for record in records
    ]
    if rows and not account.address and rows[0].full_address:
        account.address = rows[0].full_address
    db.commit()
    return rows
