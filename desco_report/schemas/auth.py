"""Authentication Pydantic schemas for request/response validation."""

from pydantic import EmailStr, Field

from desco_report.schemas.base import CamelModel, UTCDateTime


class RegisterRequest(CamelModel):
    """Schema for registering a new user."""

    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class LoginRequest(CamelModel):
    """Schema for login request."""

    username_or_email: str = Field(min_length=1)
    password: str


class UserProfile(CamelModel):
    """Current principal's profile."""

    id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    roles: list[str] = []


class AuthResponse(UserProfile):
    """Profile plus a freshly issued access token."""

    token: str
    expires_at: UTCDateTime


class TokenData(CamelModel):
    """Schema for token payload data."""

    user_id: int
    username: str | None = None
    roles: list[str] = []
