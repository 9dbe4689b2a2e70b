import os

# Must be set before any project module reads the configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TAX_RATE"] = "0.10"
os.environ["HEARTBEAT_INTERVAL"] = "3600"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["FRONTEND_URL"] = "http://pos.test"
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import models  # noqa: F401
from app.main import create_app
from models.menu_management import MenuItem
from models.table_management import Table
from models.user import User, UserRole
from services.events import EventBus
from utils.auth import create_access_token, get_password_hash
from utils.database import Base, SessionLocal, engine


class RecordingBus(EventBus):
    """EventBus that keeps every published event for assertions."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.subscribe(self._record)

    async def _record(self, event):
        self.events.append(event)

    def types(self):
        return [event.type for event in self.events]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def tables(db):
    rows = [Table(number=n, capacity=4) for n in (1, 2, 3)]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


@pytest.fixture
def menu(db):
    items = {
        "paneer": MenuItem(name="Paneer Tikka", category="Starters", price=Decimal("250.00"), is_veg=True),
        "chicken": MenuItem(name="Butter Chicken", category="Mains", price=Decimal("320.00"), is_veg=False),
        "dosa": MenuItem(name="Masala Dosa", category="Mains", price=Decimal("120.00"), is_veg=True),
        "sold_out": MenuItem(name="Seasonal Soup", category="Soups", price=Decimal("90.00"), is_available=False),
    }
    db.add_all(items.values())
    db.commit()
    for item in items.values():
        db.refresh(item)
    return items


@pytest.fixture
def admin_user(db):
    user = User(
        name="Asha Admin",
        email="admin@pos.test",
        hashed_password=get_password_hash("secret123"),
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _bearer(user):
    token = create_access_token({"sub": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return _bearer(admin_user)


@pytest.fixture
def staff_headers(db):
    """Build bearer headers for a new staff account with the given role."""
    def build(role):
        user = User(
            name=f"{role.value.title()} Staff",
            email=f"{role.value}@pos.test",
            hashed_password=get_password_hash("secret123"),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return _bearer(user)
    return build


@pytest.fixture
def waiter_headers(staff_headers):
    return staff_headers(UserRole.WAITER)


@pytest.fixture
def cashier_headers(staff_headers):
    return staff_headers(UserRole.CASHIER)


@pytest.fixture
def client():
    # Entering the client runs the lifespan and keeps one event loop for HTTP and WebSocket calls
    with TestClient(create_app()) as test_client:
        yield test_client
