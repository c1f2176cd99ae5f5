"""DESCO account data routes."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from desco_report.api.dependencies import get_current_user
from desco_report.core.database import get_db
from desco_report.models.enums import SyncStatus
from desco_report.models.user import User
from desco_report.schemas.base import MessageResponse
from desco_report.schemas.desco import (
    AddAccountRequest,
    BalanceResponse,
    DailyConsumptionResponse,
    LocationResponse,
    MonthDate,
    MonthlyConsumptionResponse,
    RechargeResponse,
    RecentEventResponse,
    SyncAccountRequest,
    UtilityAccountResponse,
)
from desco_report.services import accounts, reports, sync
from desco_report.services.desco_client import DescoClient, get_desco_client

router = APIRouter(
    prefix="/desco",
    tags=["desco"],
    dependencies=[Depends(get_current_user)],
)


def _range(
    start: date | None, end: date | None, window: tuple[date, date]
) -> tuple[date, date]:
    return start or window[0], end or window[1]


@router.get("/balance/{account_no}/{meter_no}", response_model=BalanceResponse)
def get_balance(
    account_no: str,
    meter_no: str,
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get the current balance of an account."""
    balance = reports.get_balance(db, client, account_no, meter_no)
    if balance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found or unable to fetch balance",
        )
    return balance


@router.get(
    "/daily-consumption/{account_no}/{meter_no}",
    response_model=list[DailyConsumptionResponse],
)
def get_daily_consumption(
    account_no: str,
    meter_no: str,
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get daily consumption, by default for the last 30 days."""
    start, end = _range(date_from, date_to, sync.daily_window(date.today()))
    return reports.get_daily_consumption(db, client, account_no, meter_no, start, end)


@router.get(
    "/monthly-consumption/{account_no}/{meter_no}",
    response_model=list[MonthlyConsumptionResponse],
)
def get_monthly_consumption(
    account_no: str,
    meter_no: str,
    month_from: MonthDate | None = Query(default=None, alias="monthFrom"),
    month_to: MonthDate | None = Query(default=None, alias="monthTo"),
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get monthly consumption, by default for the last 12 months."""
    start, end = _range(month_from, month_to, sync.monthly_window(date.today()))
    return reports.get_monthly_consumption(db, client, account_no, meter_no, start, end)


@router.get(
    "/recharge-history/{account_no}/{meter_no}",
    response_model=list[RechargeResponse],
)
def get_recharge_history(
    account_no: str,
    meter_no: str,
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get recharge history, by default for the last 6 months."""
    start, end = _range(date_from, date_to, sync.recharge_window(date.today()))
    return reports.get_recharge_history(db, client, account_no, meter_no, start, end)


@router.get("/recent-events/{account_no}", response_model=list[RecentEventResponse])
def get_recent_events(
    account_no: str,
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get recent provider notifications for an account."""
    return reports.get_recent_events(db, client, account_no)


@router.get("/location/{account_no}", response_model=list[LocationResponse])
def get_location(
    account_no: str,
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Get the customer's location records."""
    return reports.get_locations(db, client, account_no)


@router.post("/sync-account", response_model=MessageResponse)
def sync_account(
    request: SyncAccountRequest,
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
):
    """Validate an account and sync all of its data."""
    if not sync.validate_account(client, request.account_no, request.meter_no):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid account or meter number",
        )

    report = sync.sync_account(db, client, request.account_no, request.meter_no)
    if report.status is SyncStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sync account data",
        )
    return MessageResponse(message="Account data synced successfully")


@router.get("/accounts", response_model=list[UtilityAccountResponse])
def list_accounts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the current user's accounts."""
    return accounts.list_accounts(db, current_user.id)


@router.post(
    "/accounts",
    response_model=UtilityAccountResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_account(
    request: AddAccountRequest,
    response: Response,
    db: Session = Depends(get_db),
    client: DescoClient = Depends(get_desco_client),
    current_user: User = Depends(get_current_user),
):
    """Link an account to the current user and sync its data."""
    account, _ = accounts.register_account(db, client, current_user, request)
    response.headers["Location"] = (
        f"/api/desco/balance/{account.account_number}/{account.meter_number}"
    )
    return account
