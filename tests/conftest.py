import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ticketpal.auth import create_device_token  # noqa: E402
from ticketpal.database import Base, get_db  # noqa: E402
from ticketpal.main import app  # noqa: E402
from ticketpal.models import Ticket, User, Vehicle  # noqa: E402
from ticketpal.shared.dates import utcnow  # noqa: E402


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
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    user = User(name="Jane Driver", email="jane@example.com", phone_number="+447700900123")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    user = User(name="Sam Other", email="sam@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(user):
    token = create_device_token("device-1", user.public_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_ticket(db_session, user):
    def _make_ticket(
        pcn_number="PCN0001",
        registration="AB12CDE",
        days_ago=5,
        status="ISSUED_DISCOUNT_PERIOD",
        issuer_type="COUNCIL",
        initial_amount=7000,
        owner=None,
        **extra,
    ):
        owner = owner or user
        vehicle = (
            db_session.query(Vehicle)
            .filter(Vehicle.user_id == owner.id, Vehicle.registration_number == registration)
            .first()
        )
        if vehicle is None:
            vehicle = Vehicle(user_id=owner.id, registration_number=registration)
            db_session.add(vehicle)
            db_session.flush()

        ticket = Ticket(
            vehicle_id=vehicle.id,
            pcn_number=pcn_number,
            initial_amount=initial_amount,
            issuer="Camden Council",
            issuer_type=issuer_type,
            issued_at=utcnow() - timedelta(days=days_ago),
            status=status,
            **extra,
        )
        db_session.add(ticket)
        db_session.commit()
        db_session.refresh(ticket)
        return ticket

    return _make_ticket
