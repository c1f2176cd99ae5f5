"""Account synchronisation: fetch every data category and reconcile it."""

import calendar
import logging
import threading
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from desco_report.models.enums import SyncStatus, SyncStepStatus
from desco_report.models.utility_account import UtilityAccount
from desco_report.schemas.desco import SyncReport, SyncStepResult
from desco_report.schemas.provider import (
    ProviderDailyConsumption,
    ProviderEvent,
    ProviderLocation,
    ProviderMonthlyConsumption,
    ProviderRecharge,
)
from desco_report.services import reconciler
from desco_report.services.desco_client import DescoClient

logger = logging.getLogger(__name__)

DAILY_WINDOW_DAYS = 30
MONTHLY_WINDOW_MONTHS = 12
RECHARGE_WINDOW_MONTHS = 6

_locks_guard = threading.Lock()
# Entries disappear once no sync holds or waits on the lock
_account_locks: "weakref.WeakValueDictionary[tuple[str, str], threading.Lock]" = (
    weakref.WeakValueDictionary()
)


def shift_months(day: date, months: int) -> date:
    """Move a date by whole months, clamping the day to the target month."""
    index = day.year * 12 + day.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def daily_window(today: date) -> tuple[date, date]:
    return today - timedelta(days=DAILY_WINDOW_DAYS), today


def monthly_window(today: date) -> tuple[date, date]:
    return shift_months(today, -MONTHLY_WINDOW_MONTHS), today


def recharge_window(today: date) -> tuple[date, date]:
    return shift_months(today, -RECHARGE_WINDOW_MONTHS), today


@contextmanager
def _account_lock(account_no: str, meter_no: str) -> Iterator[None]:
    """Serialise syncs of the same account within this process."""
    with _locks_guard:
        lock = _account_locks.get((account_no, meter_no))
        if lock is None:
            lock = _account_locks[(account_no, meter_no)] = threading.Lock()
    with lock:
        yield


def get_stored_account(
    db: Session, account_no: str, meter_no: str | None = None
) -> UtilityAccount | None:
    """Get a stored account by account number and, if given, meter number."""
    query = select(UtilityAccount).where(UtilityAccount.account_number == account_no)
    if meter_no is not None:
        query = query.where(UtilityAccount.meter_number == meter_no)
    return db.scalars(query.order_by(UtilityAccount.id)).first()


def validate_account(client: DescoClient, account_no: str, meter_no: str) -> bool:
    """Check that the provider knows the account/meter pair. Nothing is stored."""
    return client.fetch_balance(account_no, meter_no) is not None


def refresh_balance(
    db: Session, client: DescoClient, account_no: str, meter_no: str
) -> UtilityAccount | None:
    """Fetch the balance and store it, creating the account row if needed."""
    balance = client.fetch_balance(account_no, meter_no)
    if balance is None:
        return None
    return reconciler.reconcile_balance(db, account_no, meter_no, balance)


def refresh_daily_consumption(
    db: Session,
    client: DescoClient,
    account: UtilityAccount | None,
    account_no: str,
    meter_no: str,
    date_from: date,
    date_to: date,
) -> list[ProviderDailyConsumption]:
    """Fetch daily consumption, storing it when the account is known."""
    records = client.fetch_daily_consumption(account_no, meter_no, date_from, date_to)
    if records and account is not None:
        reconciler.reconcile_daily_consumption(db, account, records)
    return records


def refresh_monthly_consumption(
    db: Session,
    client: DescoClient,
    account: UtilityAccount | None,
    account_no: str,
    meter_no: str,
    month_from: date,
    month_to: date,
) -> list[ProviderMonthlyConsumption]:
    """Fetch monthly consumption, storing it when the account is known."""
    records = client.fetch_monthly_consumption(account_no, meter_no, month_from, month_to)
    if records and account is not None:
        reconciler.reconcile_monthly_consumption(db, account, records)
    return records


def refresh_recharge_history(
    db: Session,
    client: DescoClient,
    account: UtilityAccount | None,
    account_no: str,
    meter_no: str,
    date_from: date,
    date_to: date,
) -> list[ProviderRecharge]:
    """Fetch recharge history, storing it when the account is known."""
    records = client.fetch_recharge_history(account_no, meter_no, date_from, date_to)
    if records and account is not None:
        reconciler.reconcile_recharge_history(db, account, records)
    return records


def refresh_recent_events(
    db: Session, client: DescoClient, account: UtilityAccount | None, account_no: str
) -> list[ProviderEvent]:
    """Fetch recent events, storing them when the account is known."""
    records = client.fetch_recent_events(account_no)
    if records and account is not None:
        reconciler.reconcile_recent_events(db, account, records)
    return records


def refresh_locations(
    db: Session, client: DescoClient, account: UtilityAccount | None, account_no: str
) -> list[ProviderLocation]:
    """Fetch location records, storing them when the account is known."""
    records = client.fetch_location(account_no)
    if records and account is not None:
        reconciler.reconcile_locations(db, account, records)
    return records


def _run_step(
    db: Session,
    report: SyncReport,
    name: str,
    step: Callable[[], int],
    account_known: bool = True,
) -> None:
    """Run one step; failures are recorded and never propagate."""
    try:
        count = step()
    except Exception as exc:
        db.rollback()
        logger.exception("Sync step %s failed for account %s", name, report.account_no)
        report.steps.append(SyncStepResult(name=name, status=SyncStepStatus.FAILED, error=str(exc)))
        report.status = SyncStatus.FAILED
        return

    if count == 0:
        status = SyncStepStatus.EMPTY
    elif not account_known:
        status = SyncStepStatus.SKIPPED
    else:
        status = SyncStepStatus.SUCCEEDED
    report.steps.append(SyncStepResult(name=name, status=status, records=count))


def sync_account(
    db: Session,
    client: DescoClient,
    account_no: str,
    meter_no: str,
    today: date | None = None,
) -> SyncReport:
    """
    Fetch and store every data category for one account.

    Steps run in order: balance, daily consumption (30 days), monthly
    consumption (12 months), recharge history (6 months), recent events,
    location. A step that fails is logged and the next one still runs; each
    step commits its own changes.

    Returns:
        Report with per-step outcomes; its status is FAILED only when a step
        raised an unexpected error

    """
    today = today or date.today()
    report = SyncReport(account_no=account_no, meter_no=meter_no)

    with _account_lock(account_no, meter_no):

        def balance_step() -> int:
            return 0 if refresh_balance(db, client, account_no, meter_no) is None else 1

        _run_step(db, report, "balance", balance_step)

        # The balance step creates the row; without it nothing can be stored
        account = get_stored_account(db, account_no, meter_no)
        known = account is not None
        if not known:
            logger.warning("No stored account %s/%s, records will not be kept", account_no, meter_no)

        daily_from, daily_to = daily_window(today)
        _run_step(
            db,
            report,
            "daily_consumption",
            lambda: len(
                refresh_daily_consumption(
                    db, client, account, account_no, meter_no, daily_from, daily_to
                )
            ),
            known,
        )

        month_from, month_to = monthly_window(today)
        _run_step(
            db,
            report,
            "monthly_consumption",
            lambda: len(
                refresh_monthly_consumption(
                    db, client, account, account_no, meter_no, month_from, month_to
                )
            ),
            known,
        )

        recharge_from, recharge_to = recharge_window(today)
        _run_step(
            db,
            report,
            "recharge_history",
            lambda: len(
                refresh_recharge_history(
                    db, client, account, account_no, meter_no, recharge_from, recharge_to
                )
            ),
            known,
        )

        _run_step(
            db,
            report,
            "recent_events",
            lambda: len(refresh_recent_events(db, client, account, account_no)),
            known,
        )
        _run_step(
            db,
            report,
            "location",
            lambda: len(refresh_locations(db, client, account, account_no)),
            known,
        )

    if report.status is SyncStatus.COMPLETED:
        logger.info("Successfully synced data for account %s", account_no)
    else:
        logger.error("Sync of account %s finished with failed steps", account_no)
    return report
