"""Shared test fixtures and configuration."""
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from geoattend.main import app
from geoattend.db.base import Base
from geoattend.db.models import Enrollment, Trainee, Training
from geoattend.api.deps import get_db
from geoattend.core.security import create_access_token


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

# 09:30 on 3 Nov 2025 in Asia/Kolkata (the default venue timezone)
NOW = datetime(2025, 11, 3, 4, 0, tzinfo=timezone.utc)
TODAY = date(2025, 11, 3)

VENUE_LAT = 22.5726
VENUE_LON = 88.3639


@pytest.fixture(autouse=True)
def disable_rate_limiting_for_tests(request):
    """Disable rate limiting for all tests except rate limiting tests."""
    from geoattend.core.rate_limit import limiter

    # Rate limit tests are marked with @pytest.mark.rate_limit
    if "rate_limit" in request.keywords:
        limiter.reset()
        yield
        limiter.reset()
    else:
        limiter.enabled = False
        yield
        limiter.enabled = True


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh database for each test."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a new database session for a test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with a test database."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT token."""
    return create_access_token({"is_admin": True})


@pytest.fixture
def admin_client(client, admin_token):
    """Create a test client with admin cookie already set."""
    client.cookies.set("admin_token", admin_token)
    return client


@pytest.fixture
def make_training(db_session):
    def _make(**overrides) -> Training:
        fields = dict(
            name="Fire Safety Level 1",
            location_name="District Training Centre, Hall B",
            latitude=VENUE_LAT,
            longitude=VENUE_LON,
            geofence_radius=100,
            start_date=date(2025, 11, 1),
            end_date=date(2025, 11, 30),
        )
        fields.update(overrides)
        training = Training(**fields)
        db_session.add(training)
        db_session.commit()
        db_session.refresh(training)
        return training
    return _make


@pytest.fixture
def make_trainee(db_session):
    counter = {"n": 0}

    def _make(**overrides) -> Trainee:
        counter["n"] += 1
        fields = dict(
            user_id=f"user-{counter['n']}",
            name=f"Trainee {counter['n']}",
            posting_location="Howrah",
        )
        fields.update(overrides)
        trainee = Trainee(**fields)
        db_session.add(trainee)
        db_session.commit()
        db_session.refresh(trainee)
        return trainee
    return _make


@pytest.fixture
def enroll_trainee(db_session):
    def _enroll(trainee: Trainee, training: Training, is_active: bool = True) -> Enrollment:
        enrollment = Enrollment(trainee_id=trainee.id, training_id=training.id, is_active=is_active)
        db_session.add(enrollment)
        db_session.commit()
        db_session.refresh(enrollment)
        return enrollment
    return _enroll


@pytest.fixture
def training(make_training):
    return make_training()


@pytest.fixture
def trainee(make_trainee):
    return make_trainee()


@pytest.fixture
def enrolled(trainee, training, enroll_trainee):
    """An enrolled (trainee, training) pair."""
    enroll_trainee(trainee, training)
    return trainee, training


@pytest.fixture
def trainee_headers(trainee):
    """Bearer header for the default trainee."""
    token = create_access_token({"trainee_id": trainee.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def today():
    return TODAY
