"""Tests for authentication endpoints and services."""

from datetime import timedelta

import pytest
from fastapi import HTTPException

from desco_report.core.security import decode_jwt, encode_jwt, get_password_hash, verify_password
from desco_report.schemas.auth import RegisterRequest
from desco_report.services.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    decode_token,
    get_user_by_email,
    get_user_by_username,
)

# =============================================================================
# Unit Tests: Password Hashing
# =============================================================================


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_get_password_hash_returns_bcrypt_format(self):
        """Test that hash is in bcrypt format."""
        hashed = get_password_hash("password123")
        # bcrypt hashes start with $2b$ or $2a$
        assert hashed.startswith("$2")

    def test_get_password_hash_different_for_same_input(self):
        """Test that same password produces different hashes (due to salt)."""
        assert get_password_hash("password123") != get_password_hash("password123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("mysecretpassword")
        assert verify_password("mysecretpassword", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("correctpassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_verify_password_without_hash(self):
        """Users without a stored hash can never log in."""
        assert verify_password("anything", "") is False


# =============================================================================
# Unit Tests: JWT Tokens
# =============================================================================


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_token_carries_subject_username_and_roles(self, test_user):
        token, expires_at = create_access_token(test_user)
        payload = decode_jwt(token)
        assert payload["sub"] == str(test_user.id)
        assert payload["username"] == "testuser"
        assert payload["roles"] == ["User"]
        assert payload["iss"] == "desco-report-server"
        assert payload["aud"] == "desco-report-client"
        assert int(expires_at.timestamp()) == payload["exp"]

    def test_decode_token_valid(self, test_user):
        token, _ = create_access_token(test_user)
        token_data = decode_token(token)
        assert token_data.user_id == test_user.id
        assert token_data.username == "testuser"
        assert token_data.roles == ["User"]

    def test_decode_token_invalid(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_token("invalid.token.here")
        assert exc_info.value.status_code == 401
        assert "Could not validate credentials" in exc_info.value.detail

    def test_decode_token_missing_subject(self):
        token, _ = encode_jwt({"other": "data"})
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401

    def test_decode_token_expired(self):
        token, _ = encode_jwt({"sub": "1"}, expires_delta=timedelta(minutes=-5))
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401


# =============================================================================
# Unit Tests: User Database Operations
# =============================================================================


class TestUserDatabaseOperations:
    """Tests for user database operations."""

    def test_get_user_by_username_exists(self, test_db, test_user):
        user = get_user_by_username(test_db, "testuser")
        assert user is not None
        assert user.username == "testuser"

    def test_get_user_by_username_not_exists(self, test_db):
        assert get_user_by_username(test_db, "nonexistent") is None

    def test_get_user_by_email_ignores_case(self, test_db, test_user):
        user = get_user_by_email(test_db, "TEST@example.com")
        assert user is not None
        assert user.id == test_user.id

    def test_authenticate_user_by_username(self, test_db, test_user):
        user = authenticate_user(test_db, "testuser", "testpassword123")
        assert user.id == test_user.id
        assert user.last_login_at is not None

    def test_authenticate_user_by_email(self, test_db, test_user):
        user = authenticate_user(test_db, "test@example.com", "testpassword123")
        assert user.id == test_user.id

    def test_authenticate_user_wrong_password(self, test_db, test_user):
        with pytest.raises(HTTPException) as exc_info:
            authenticate_user(test_db, "testuser", "wrongpassword")
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid credentials"

    def test_authenticate_user_disabled(self, test_db, test_user):
        """A disabled account is rejected even with the right password."""
        test_user.is_active = False
        test_db.commit()
        with pytest.raises(HTTPException) as exc_info:
            authenticate_user(test_db, "testuser", "testpassword123")
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Account is disabled"

    def test_create_user_success(self, test_db):
        user = create_user(
            test_db,
            RegisterRequest(
                username="newuser",
                email="NewUser@example.com",
                password="newpassword123",
            ),
        )
        assert user.username == "newuser"
        assert user.email == "newuser@example.com"
        assert user.is_active is True
        assert user.role_names == ["User"]
        # Password should be hashed, not plain text
        assert user.hashed_password != "newpassword123"

    def test_create_user_duplicate_username(self, test_db, test_user):
        user_data = RegisterRequest(
            username="testuser",
            email="different@example.com",
            password="password123",
        )
        with pytest.raises(HTTPException) as exc_info:
            create_user(test_db, user_data)
        assert exc_info.value.status_code == 400
        assert "Username already registered" in exc_info.value.detail

    def test_create_user_duplicate_email(self, test_db, test_user):
        user_data = RegisterRequest(
            username="differentuser",
            email="test@example.com",
            password="password123",
        )
        with pytest.raises(HTTPException) as exc_info:
            create_user(test_db, user_data)
        assert exc_info.value.status_code == 400
        assert "Email already registered" in exc_info.value.detail


# =============================================================================
# Integration Tests: Register Endpoint
# =============================================================================


class TestRegisterEndpoint:
    """Tests for POST /api/auth/register endpoint."""

    def test_register_success(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "username": "newuser",
                "email": "newuser@example.com",
                "password": "password123",
                "firstName": "New",
                "lastName": "User",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "newuser"
        assert data["email"] == "newuser@example.com"
        assert data["firstName"] == "New"
        assert data["lastName"] == "User"
        assert data["roles"] == ["User"]
        assert data["token"]
        assert data["expiresAt"]
        assert "id" in data
        # Password should not be returned
        assert "password" not in data
        assert "hashedPassword" not in data

    def test_register_duplicate_username(self, client, test_user):
        response = client.post(
            "/api/auth/register",
            json={
                "username": "testuser",
                "email": "different@example.com",
                "password": "password123",
            },
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Username already registered"}

    def test_register_invalid_email(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "username": "newuser",
                "email": "not-an-email",
                "password": "password123",
            },
        )
        assert response.status_code == 400
        assert "email" in response.json()["message"]

    def test_register_missing_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "username": "newuser",
                "email": "test@example.com",
            },
        )
        assert response.status_code == 400
        assert "password" in response.json()["message"]


# =============================================================================
# Integration Tests: Login Endpoint
# =============================================================================


class TestLoginEndpoint:
    """Tests for POST /api/auth/login endpoint."""

    def test_login_success(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "testuser", "password": "testpassword123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == test_user.id
        assert data["roles"] == ["User"]
        assert decode_token(data["token"]).username == "testuser"

    def test_login_with_email(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "test@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 200

    def test_login_wrong_password(self, client, test_user):
        response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "testuser", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

    def test_login_nonexistent_user(self, client):
        response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "nonexistent", "password": "password123"},
        )
        assert response.status_code == 401

    def test_login_disabled_account(self, client, test_db, test_user):
        test_user.is_active = False
        test_db.commit()
        response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "testuser", "password": "testpassword123"},
        )
        assert response.status_code == 401
        assert response.json() == {"message": "Account is disabled"}

    def test_login_missing_password(self, client):
        response = client.post("/api/auth/login", json={"usernameOrEmail": "testuser"})
        assert response.status_code == 400


# =============================================================================
# Integration Tests: Current user and logout
# =============================================================================


class TestCurrentUser:
    """Tests for GET /api/auth/me and POST /api/auth/logout."""

    def test_me_returns_profile(self, client, auth_headers, test_user):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {
            "id": test_user.id,
            "username": "testuser",
            "email": "test@example.com",
            "firstName": "Test",
            "lastName": "User",
            "roles": ["User"],
        }

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_me_rejects_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_me_rejects_disabled_user(self, client, test_db, test_user, auth_headers):
        test_user.is_active = False
        test_db.commit()
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 401

    def test_logout(self, client):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}


class TestAuthFlow:
    """Tests for complete authentication flows."""

    def test_register_then_login_then_me(self, client):
        register_response = client.post(
            "/api/auth/register",
            json={
                "username": "flowuser",
                "email": "flowuser@example.com",
                "password": "flowpassword123",
            },
        )
        assert register_response.status_code == 200

        login_response = client.post(
            "/api/auth/login",
            json={"usernameOrEmail": "flowuser", "password": "flowpassword123"},
        )
        assert login_response.status_code == 200
        token = login_response.json()["token"]

        me_response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me_response.status_code == 200
        assert me_response.json()["username"] == "flowuser"
