"""Seed roles and the administrator account."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from desco_report.core.config import settings
from desco_report.core.security import get_password_hash
from desco_report.models.enums import RoleName
from desco_report.models.user import Role, User
from desco_report.services.auth import (
    get_or_create_role,
    get_user_by_email,
    get_user_by_username,
)

logger = logging.getLogger(__name__)


def seed_roles(db: Session) -> list[Role]:
    """Create every role in ``RoleName`` that does not exist yet."""
    existing = set(db.scalars(select(Role.name)).all())
    roles = [get_or_create_role(db, role.value) for role in RoleName]
    db.commit()
    created = [role.value for role in RoleName if role.value not in existing]
    if created:
        logger.info("Seeded roles: %s", ", ".join(created))
    return roles


def seed_admin_user(db: Session) -> User | None:
    """
    Create the administrator from settings unless its email or username is taken.

    Returns:
        The new administrator, or None if one was already present

    """
    if get_user_by_email(db, settings.ADMIN_EMAIL):
        return None
    if get_user_by_username(db, settings.ADMIN_USERNAME):
        logger.warning(
            "Username %s is taken by another account, administrator not seeded",
            settings.ADMIN_USERNAME,
        )
        return None

    admin = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL.lower(),
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
        first_name="System",
        last_name="Administrator",
    )
    admin.roles = [get_or_create_role(db, RoleName.ADMIN.value)]
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Seeded administrator %s", admin.username)
    return admin


def seed_database(db: Session) -> None:
    seed_roles(db)
    seed_admin_user(db)
