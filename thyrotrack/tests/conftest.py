import os
import datetime as dt
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure tests use an in-memory SQLite DB before the app builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENCRYPTION_SECRET", "test-encryption-secret")

from thyrotrack.app import app  # noqa: E402
from thyrotrack.auth.jwt import create_access_token, hash_password, token_claims  # noqa: E402
from thyrotrack.db.session import Base, get_db  # noqa: E402
from thyrotrack.models.thyroid_record import ThyroidRecord  # noqa: E402
from thyrotrack.models.user import User, ROLE_DOCTOR, ROLE_PATIENT  # noqa: E402
from thyrotrack.utils.rate_limit import limiter  # noqa: E402

# In-memory SQLite shared across connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def create_schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    def _make(role: str = ROLE_PATIENT, email: str | None = None, name: str | None = None) -> User:
        with TestingSessionLocal() as session:
            user = User(
                email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
                hashed_password=hash_password(PASSWORD),
                name=name or role.title(),
                role=role,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
    return _make


@pytest.fixture
def doctor(make_user):
    return make_user(ROLE_DOCTOR, email="doc@example.com", name="Dr. Who")


@pytest.fixture
def patient(make_user):
    return make_user(ROLE_PATIENT, email="pat@example.com", name="Pat")


def auth_headers(user: User) -> dict:
    token = create_access_token(token_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def add_records():
    """Insert (TSH, T3, T4) triples for a patient, one day apart, oldest first."""
    def _add(patient: User, doctor: User, values, start: dt.date = dt.date(2024, 1, 1)):
        with TestingSessionLocal() as session:
            for offset, (tsh, t3, t4) in enumerate(values):
                session.add(ThyroidRecord(
                    patient_id=patient.id,
                    doctor_id=doctor.id,
                    date=start + dt.timedelta(days=30 * offset),
                    tsh=tsh,
                    t3=t3,
                    t4=t4,
                ))
            session.commit()
    return _add


@pytest.fixture
def headers_for():
    return auth_headers
