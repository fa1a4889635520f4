import os
import tempfile
from datetime import timedelta

# Configure before the application modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="mentorhub-uploads-")
for key in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_API_KEY", "TWILIO_API_SECRET"):
    os.environ[key] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mentorhub import rate_limiter  # noqa: E402
from mentorhub.database import Base, SessionLocal, get_db  # noqa: E402
from mentorhub.domain.ledger.service import LedgerService  # noqa: E402
from mentorhub.main import app  # noqa: E402
from mentorhub.models import MentorProfile, User, empty_weekly_availability  # noqa: E402
from mentorhub.security_utils import create_access_token, hash_password  # noqa: E402
from mentorhub.shared.time_utils import utcnow  # noqa: E402

PASSWORD = "secret123"

LIMITERS = (
    rate_limiter.api_limiter,
    rate_limiter.auth_limiter,
    rate_limiter.message_limiter,
    rate_limiter.session_limiter,
    rate_limiter.video_token_limiter,
)


async def _no_rate_limit():
    return None


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    # Worker tasks and health checks open sessions through SessionLocal
    SessionLocal.configure(bind=engine)
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
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    for limiter in LIMITERS:
        app.dependency_overrides[limiter] = _no_rate_limit
    rate_limiter.memory_cache.clear()

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_user(db, email, first_name="Test", last_name="User", roles=None, balance=0.0, interests=None):
    user = User(
        username=email.split("@")[0],
        email=email,
        password_hash=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        roles=roles or ["user"],
        balance=0.0,
        interests=interests or [],
    )
    db.add(user)
    db.commit()
    if balance:
        LedgerService(db).apply(user.id, balance, "add_funds", "Test funding")
        db.commit()
    db.refresh(user)
    return user


def make_mentor(db, email, status="approved", expertise=None, hourly_rate=60.0, **kwargs):
    user = make_user(db, email, roles=["user", "mentor"], **kwargs)
    profile = MentorProfile(
        user_id=user.id,
        status=status,
        bio="Experienced engineer and mentor",
        expertise=expertise or ["Python", "Data Science"],
        hourly_rate=hourly_rate,
        weekly_availability=empty_weekly_availability(),
    )
    db.add(profile)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def future_time(days=2, hour=10, minute=0):
    """Naive UTC datetime `days` from now at a fixed wall time"""
    return (utcnow() + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)


@pytest.fixture
def mentee(db):
    return make_user(db, "mentee@example.com", "Mia", "Mentee", balance=200.0)


@pytest.fixture
def mentor(db):
    return make_mentor(db, "mentor@example.com", first_name="Max", last_name="Mentor")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", "Ada", "Admin", roles=["user", "admin"])


@pytest.fixture
def book(client, mentee, mentor):
    """Book a session as the mentee and return the raw response"""

    def _book(start=None, duration=60, topic="Python", user=None, mentor_id=None):
        start = start or future_time()
        response = client.post(
            "/api/sessions",
            json={
                "mentorId": mentor_id or mentor.id,
                "topic": topic,
                "startTime": start.isoformat(),
                "duration": duration,
            },
            headers=auth_headers(user or mentee),
        )
        return response

    return _book
