"""Shared fixtures: in-memory database, fake DESCO provider, authenticated client."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from desco_report.core.database import Base, get_db
from desco_report.core.security import get_password_hash
from desco_report.main import app
from desco_report.models.enums import RoleName
from desco_report.models.user import User
from desco_report.services.auth import create_access_token, get_or_create_role
from desco_report.services.desco_client import (
    BALANCE_PATH,
    DAILY_CONSUMPTION_PATH,
    LOCATION_PATH,
    MONTHLY_CONSUMPTION_PATH,
    RECENT_EVENTS_PATH,
    RECHARGE_HISTORY_PATH,
    DescoClient,
    build_desco_client,
    get_desco_client,
)

ACCOUNT_NO = "A1"
METER_NO = "M1"

BALANCE_DATA = {
    "accountNo": ACCOUNT_NO,
    "meterNo": METER_NO,
    "balance": 120.50,
    "currentMonthConsumption": 45.00,
    "readingTime": "2024-01-15T10:00:00",
}

DAILY_DATA = [
    {"date": "2024-01-14", "consumption": 5.5, "unit": "kWh", "cost": 44.0},
    {"date": "2024-01-15", "consumptionValue": 6.25, "cost": 50.0},
]

MONTHLY_DATA = [
    {"year": 2023, "month": 12, "consumption": 150.0, "cost": 1200.0},
    {"month": "2024-01", "consumptionValue": 160.0, "averageDailyConsumption": 5.16},
]

RECHARGE_DATA = [
    {
        "rechargeDate": "2024-01-10 09:30:00",
        "rechargeAmount": 1000,
        "transactionId": "TX-1",
        "paymentMethod": "bKash",
        "status": "SUCCESS",
    },
    {"rechargeDate": "2024-01-02", "amount": 500},
]

EVENT_DATA = [
    {
        "eventDate": "2024-01-15T08:00:00Z",
        "eventType": "LOW_BALANCE",
        "message": "Your balance is low",
        "priority": "HIGH",
    },
]

LOCATION_DATA = [
    {
        "division": "Dhaka",
        "district": "Dhaka",
        "thana": "Gulshan",
        "area": "Gulshan-2",
        "postCode": "1212",
        "fullAddress": "House 1, Road 2, Gulshan-2, Dhaka",
        "latitude": 23.7925,
        "longitude": 90.4078,
    },
]


def envelope(data: Any, code: int = 0, desc: str = "ok") -> dict:
    return {"code": code, "desc": desc, "data": data}


class FakeDescoProvider:
    """Serves canned envelopes per path through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def set(self, path: str, data: Any, code: int = 0, desc: str = "ok") -> None:
        self.routes[path] = envelope(data, code, desc)

    def set_response(self, path: str, response: httpx.Response | Callable) -> None:
        self.routes[path] = response

    def load_account(self) -> None:
        """Serve a complete, well-formed data set for A1/M1."""
        self.set(BALANCE_PATH, BALANCE_DATA)
        self.set(DAILY_CONSUMPTION_PATH, DAILY_DATA)
        self.set(MONTHLY_CONSUMPTION_PATH, MONTHLY_DATA)
        self.set(RECHARGE_HISTORY_PATH, RECHARGE_DATA)
        self.set(RECENT_EVENTS_PATH, EVENT_DATA)
        self.set(LOCATION_PATH, LOCATION_DATA)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    def client(self) -> DescoClient:
        return build_desco_client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def test_db():
    """Create an in-memory test database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def provider():
    """Fake DESCO provider with no data configured."""
    return FakeDescoProvider()


@pytest.fixture
def desco_client(provider):
    client = provider.client()
    yield client
    client.close()


@pytest.fixture
def client(test_db, provider):
    """Create a test client with database and provider overrides."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    def override_get_desco_client():
        desco = provider.client()
        try:
            yield desco
        finally:
            desco.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_desco_client] = override_get_desco_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, username: str, email: str, password: str = "testpassword123", **kwargs) -> User:
    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        **kwargs,
    )
    user.roles = [get_or_create_role(db, RoleName.USER.value)]
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(test_db):
    """Create a test user in the database."""
    return make_user(test_db, "testuser", "test@example.com", first_name="Test", last_name="User")


@pytest.fixture
def auth_headers(test_user):
    token, _ = create_access_token(test_user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_factory(test_db):
    """Create additional users: ``user_factory(username, email, **fields)``."""

    def factory(username: str, email: str, **kwargs) -> User:
        return make_user(test_db, username, email, **kwargs)

    return factory
