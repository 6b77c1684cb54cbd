import os
from datetime import date

# Must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.api.dependencies import get_account_service
from app.main import app
from app.services.account_service import AccountService
from app.services.email_service import EmailDeliveryError
from app.services.verification_store import VerificationCodeStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer:
    """Stands in for EmailService; keeps sent codes instead of calling the mail API"""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_reactivation_code(self, to, code, ttl_minutes=0):
        if self.fail:
            raise EmailDeliveryError("Mail request failed: connection refused")
        self.sent.append((to, code))

    def last_code_for(self, email):
        for to, code in reversed(self.sent):
            if to == email:
                return code
        return None


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def code_store(clock):
    return VerificationCodeStore(ttl_seconds=15 * 60, clock=clock)


@pytest.fixture
def service(code_store, mailer):
    return AccountService(code_store, mailer, inactivity_days=90, code_bytes=6)


@pytest.fixture
def client(session_factory, service):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_account_service] = lambda: service
    # Not used as a context manager: lifespan (create_all on the real engine, scheduler) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def profile():
    """Registration body as the HTTP client sends it (password excluded)"""
    return {
        "f_name": "Ada",
        "l_name": "Lovelace",
        "email": "ada@example.com",
        "phone_no": "5550100",
        "dob": "1990-12-10",
        "gender": "female",
        "country": "UK",
        "address": "12 St James's Square, London",
    }


@pytest.fixture
def account_profile(profile):
    """Same profile with dob parsed, as the service receives it"""
    return {**profile, "dob": date(1990, 12, 10)}
