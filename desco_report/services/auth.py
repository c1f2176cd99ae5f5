"""User registration, authentication and token handling."""

import logging
from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from desco_report.core.security import (
    JWTError,
    decode_jwt,
    encode_jwt,
    get_password_hash,
    verify_password,
)
from desco_report.models.enums import RoleName
from desco_report.models.user import Role, User
from desco_report.schemas.auth import AuthResponse, RegisterRequest, TokenData, UserProfile

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User | None:
    """Get a user by ID."""
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    """Get a user by username."""
    return db.scalars(select(User).where(User.username == username)).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email, ignoring case."""
    return db.scalars(select(User).where(User.email == email.lower())).first()


def get_or_create_role(db: Session, name: str) -> Role:
    """Get a role by name, adding it to the session if missing."""
    role = db.scalars(select(Role).where(Role.name == name)).first()
    if role is None:
        role = Role(name=name)
        db.add(role)
        db.flush()
    return role


def create_user(
    db: Session,
    user_data: RegisterRequest,
    role_names: tuple[str, ...] = (RoleName.USER.value,),
) -> User:
    """
    Create a new user.

    Args:
        db: Database session
        user_data: Registration data
        role_names: Roles granted to the new user

    Returns:
        Created user

    Raises:
        HTTPException: If the username or email is already taken

    """
    if get_user_by_username(db, user_data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered",
        )
    if get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        username=user_data.username,
        email=user_data.email.lower(),
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
    )
    user.roles = [get_or_create_role(db, name) for name in role_names]
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.username)
    return user


def authenticate_user(db: Session, username_or_email: str, password: str) -> User:
    """
    Check credentials and record the login.

    Raises:
        HTTPException: 401 if the credentials are wrong or the account is disabled

    """
    user = db.scalars(
        select(User).where(
            or_(User.username == username_or_email, User.email == username_or_email.lower())
        )
    ).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )

    user.last_login_at = datetime.now(UTC)
    db.commit()
    db.refresh(user)
    return user


def create_access_token(user: User) -> tuple[str, datetime]:
    """Issue a signed token carrying the user's id, name and roles."""
    return encode_jwt(
        {"sub": str(user.id), "username": user.username, "roles": user.role_names}
    )


def decode_token(token: str) -> TokenData:
    """
    Decode a bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or malformed

    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_jwt(token)
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        return TokenData(
            user_id=int(subject),
            username=payload.get("username"),
            roles=payload.get("roles") or [],
        )
    except (JWTError, ValueError):
        raise credentials_exception from None


def build_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=user.role_names,
    )


def build_auth_response(user: User) -> AuthResponse:
    """Profile of ``user`` together with a fresh access token."""
    token, expires_at = create_access_token(user)
    return AuthResponse(
        **build_profile(user).model_dump(),
        token=token,
        expires_at=expires_at,
    )
