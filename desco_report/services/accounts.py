"""Linking utility accounts to users."""

import logging

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from desco_report.models.enums import SyncStatus
from desco_report.models.user import User
from desco_report.models.utility_account import UtilityAccount
from desco_report.schemas.desco import AddAccountRequest, SyncReport
from desco_report.services.desco_client import DescoClient
from desco_report.services.sync import get_stored_account, sync_account, validate_account

logger = logging.getLogger(__name__)


def _already_exists() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Account already exists",
    )


def get_account(
    db: Session, account_no: str, meter_no: str | None = None
) -> UtilityAccount | None:
    """
    Get a stored account.

    Args:
        db: Database session
        account_no: Provider account number
        meter_no: Meter number; when omitted the first account with the number is used

    Returns:
        Account or None if not stored

    """
    return get_stored_account(db, account_no, meter_no)


def list_accounts(db: Session, user_id: int) -> list[UtilityAccount]:
    """Get the accounts linked to a user, oldest first."""
    return list(
        db.scalars(
            select(UtilityAccount)
            .where(UtilityAccount.user_id == user_id)
            .order_by(UtilityAccount.id)
        ).all()
    )


def _claim_cached_account(
    db: Session, account: UtilityAccount, user: User, request: AddAccountRequest
) -> UtilityAccount:
    """Bind an account cached by a balance lookup to ``user``."""
    result = db.execute(
        update(UtilityAccount)
        .where(UtilityAccount.id == account.id, UtilityAccount.user_id.is_(None))
        .values(user_id=user.id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise _already_exists()

    account.is_verified = True
    if request.customer_name:
        account.customer_name = request.customer_name
    db.commit()
    return account


def _create_account(db: Session, user: User, request: AddAccountRequest) -> UtilityAccount:
    account = UtilityAccount(
        account_number=request.account_no,
        meter_number=request.meter_no,
        customer_name=request.customer_name,
        user_id=user.id,
        is_verified=True,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _already_exists() from None
    return account


def register_account(
    db: Session, client: DescoClient, user: User, request: AddAccountRequest
) -> tuple[UtilityAccount, SyncReport]:
    """
    Validate an account against the provider, link it to a user and sync it.

    Args:
        db: Database session
        client: Provider client
        user: Owner of the new account
        request: Account number, meter number and optional customer name

    Returns:
        The linked account and the report of the initial sync

    Raises:
        HTTPException: If the account is already linked or the provider does not know it

    """
    existing = get_stored_account(db, request.account_no, request.meter_no)
    if existing is not None and existing.user_id is not None:
        raise _already_exists()

    if not validate_account(client, request.account_no, request.meter_no):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid account or meter number",
        )

    if existing is not None:
        account = _claim_cached_account(db, existing, user, request)
    else:
        account = _create_account(db, user, request)
    logger.info(
        "Linked account %s/%s to user %s", request.account_no, request.meter_no, user.username
    )

    report = sync_account(db, client, request.account_no, request.meter_no)
    if report.status is not SyncStatus.COMPLETED:
        logger.warning("Initial sync of account %s reported failures", request.account_no)

    db.refresh(account)
    return account, report
