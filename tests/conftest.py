import os

# Must be set before the application modules are imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient

from medique.main import app
from medique.api.deps import get_blob_storage, get_payment_gateway
from medique.clients.razorpay_client import RazorpayError
from medique.core.config import settings
from medique.core.database import Base, SessionLocal, engine, redis_client
from medique.core.security import create_admin_token, create_user_token, get_password_hash
from medique.models import Doctor, User

USER_PASSWORD = "TestPassword123"
ADMIN_PASSWORD = "AdminPassword123"

# bcrypt is slow; hash once per session
USER_PASSWORD_HASH = get_password_hash(USER_PASSWORD)
ADMIN_PASSWORD_HASH = get_password_hash(ADMIN_PASSWORD)


class RecordingNotifier:
    """Collects dispatched notifications instead of sending them."""

    def __init__(self):
        self.sent = []

    def dispatch(self, notification):
        self.sent.append(notification)


class FakeGateway:
    """In-memory stand-in for the Razorpay orders API."""

    def __init__(self):
        self.orders = {}

    async def create_order(self, amount, currency, receipt):
        order_id = f"order_{len(self.orders) + 1}"
        self.orders[order_id] = {
            "id": order_id,
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }
        return dict(self.orders[order_id])

    async def fetch_order(self, order_id):
        if order_id not in self.orders:
            raise RazorpayError("NOT_FOUND", "Order not found")
        return dict(self.orders[order_id])

    def mark_paid(self, order_id):
        self.orders[order_id]["status"] = "paid"


class FakeBlobStorage:
    def __init__(self):
        self.uploads = []

    async def upload(self, file):
        self.uploads.append(file.filename)
        return f"https://images.example.com/{file.filename}"


def make_user(db, email="patient@example.com", name="Test Patient"):
    user = User(name=name, email=email, password_hash=USER_PASSWORD_HASH)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_doctor(db, **overrides):
    data = {
        "name": "Dr. Richard James",
        "email": "richard@example.com",
        "speciality": "General physician",
        "degree": "MBBS",
        "experience": "4 Years",
        "about": "Committed to comprehensive care.",
        "fees": 50.0,
        "address": {"line1": "17th Cross, Richmond", "line2": "Circle, Ring Road, London"},
        "available": True,
        "slots_booked": {},
    }
    data.update(overrides)
    doctor = Doctor(**data)
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


def auth_headers(user):
    return {"Authorization": f"Bearer {create_user_token(user.id, user.email)}"}


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    redis_client.flushall()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def blob_storage():
    fake = FakeBlobStorage()
    app.dependency_overrides[get_blob_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_blob_storage, None)


@pytest.fixture
def admin_credentials(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", ADMIN_PASSWORD_HASH)
    return {"email": settings.ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture
def admin_headers(admin_credentials):
    return {"Authorization": f"Bearer {create_admin_token(settings.ADMIN_EMAIL)}"}
