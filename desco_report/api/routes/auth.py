"""Authentication routes for user registration and login."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from desco_report.api.dependencies import get_current_user
from desco_report.core.database import get_db
from desco_report.models.user import User
from desco_report.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserProfile
from desco_report.schemas.base import MessageResponse
from desco_report.services.auth import (
    authenticate_user,
    build_auth_response,
    build_profile,
    create_user,
)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user and sign them in."""
    user = create_user(db, user_data)
    return build_auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Login and receive a JWT access token."""
    user = authenticate_user(db, login_data.username_or_email, login_data.password)
    return build_auth_response(user)


@router.get("/me", response_model=UserProfile)
def me(current_user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return build_profile(current_user)


@router.post("/logout", response_model=MessageResponse)
def logout():
    """Tokens are stateless; the client discards its token."""
    return MessageResponse(message="Logged out successfully")
