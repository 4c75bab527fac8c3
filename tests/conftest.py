import os

# Must be set before the app (and its settings) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("REDIS_URL", None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from main import app
from shopeasy.auth.pending import InMemoryPendingRegistrationCache, get_pending_registrations
from shopeasy.auth.service import create_access_token
from shopeasy.core.exceptions import EmailDeliveryError
from shopeasy.core.infrastructure.email_service import NotificationGateway, get_notifier
from shopeasy.database.core import Base, SessionLocal, engine, get_db
from shopeasy.password.controller import get_password_reset_service
from shopeasy.password.service import PasswordResetService
from shopeasy.products.schemas import ProductCreate
from shopeasy.products.service import ProductService
from shopeasy.users.service import UserService
from shopeasy.utils.clock import utcnow

DEFAULT_PASSWORD = "Secret123"


class MutableClock:
    """A clock the tests move by hand."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(NotificationGateway):
    """Keeps every message instead of sending it. Kinds listed in `failing` raise."""

    def __init__(self):
        super().__init__(enabled=False)
        self.sent = []
        self.failing = set()

    def _record(self, kind, email, **data):
        if kind in self.failing:
            raise EmailDeliveryError("Failed to send email. Please try again later.", technical_details="smtp down")
        self.sent.append({"kind": kind, "email": email, **data})
        return True

    async def send_otp(self, email, code):
        return self._record("otp", email, code=code)

    async def send_password_reset(self, email, url):
        return self._record("password_reset", email, url=url, token=url.rsplit("/", 1)[-1])

    async def send_welcome(self, email, name):
        return self._record("welcome", email, name=name)

    async def send_security_alert(self, email, device_info=None):
        return self._record("security_alert", email, device_info=device_info)

    def of_kind(self, kind):
        return [m for m in self.sent if m["kind"] == kind]

    def last(self, kind):
        return self.of_kind(kind)[-1]


class FakeRedis:
    """Dict-backed stand-in for the few redis commands the app issues. Expiry is ignored."""

    def __init__(self):
        self.store = {}
        self.expiries = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiries[key] = ex

    def setex(self, key, seconds, value):
        self.set(key, value, ex=seconds)

    def exists(self, key):
        return int(key in self.store)

    def delete(self, key):
        self.store.pop(key, None)
        self.expiries.pop(key, None)


@pytest.fixture(scope="function")
def db_session():
    """A fresh schema per test on the shared in-memory engine."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def pending_cache(clock):
    return InMemoryPendingRegistrationCache(clock=clock)


@pytest.fixture
def fake_redis(mocker):
    client = FakeRedis()
    mocker.patch("shopeasy.core.infrastructure.redis_service.get_redis_client", return_value=client)
    return client


@pytest.fixture(scope="function")
def client(db_session, notifier, pending_cache, clock):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_pending_registrations] = lambda: pending_cache
    app.dependency_overrides[get_password_reset_service] = lambda: PasswordResetService(notifier, clock)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(email=None, password=DEFAULT_PASSWORD, **fields):
        counter["n"] += 1
        fields.setdefault("name", f"User {counter['n']}")
        fields.setdefault("country", "Egypt")
        fields.setdefault("contact", "+201234567890")
        fields.setdefault("email_verified", True)
        return UserService.create_user(
            db_session,
            email=email or f"user{counter['n']}@example.com",
            password=password,
            **fields,
        )

    return _make


@pytest.fixture
def test_user(make_user):
    return make_user(email="test@example.com", name="Test User")


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@example.com", name="Admin", is_admin=True)


@pytest.fixture
def make_product(db_session, test_user):
    def _make(owner=None, title="Widget", price=10.0, stock=5, category="electronics", **fields):
        product, _ = ProductService.create_listing(
            db_session,
            owner or test_user,
            ProductCreate(title=title, price=price, stock=stock, category=category, **fields),
        )
        return product

    return _make


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def auth_headers(test_user):
    return bearer(test_user)


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


SHIPPING = {
    "full_name": "Test User",
    "address": "1 Nile St",
    "city": "Cairo",
    "postal_code": "11511",
    "country": "Egypt",
    "phone": "+201234567890",
}
