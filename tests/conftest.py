import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("NOTIFICATION_WEBHOOK_URL", None)
os.environ.pop("NOTIFICATION_REVIEWER_INBOX", None)

from hr_leave.database import Base, get_db  # noqa: E402
from hr_leave.dependencies import get_dispatcher  # noqa: E402
from hr_leave.main import app  # noqa: E402
from hr_leave.schemas.auth import Actor, ActorRole  # noqa: E402
from hr_leave.services.notification import InAppNotificationSink, NotificationDispatcher  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


class RecordingSink:
    """Collects published events so tests can assert on them."""
    name = "recording"

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)


@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database per test; services commit and roll back for real."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def recorder():
    return RecordingSink()


@pytest.fixture(scope="function")
def dispatcher(session_factory, recorder):
    return NotificationDispatcher([InAppNotificationSink(session_factory), recorder])


@pytest.fixture(scope="function")
def client(db_session, dispatcher):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-User-Id": "admin-1", "X-Role": "admin"}


@pytest.fixture
def hr_headers():
    return {"X-User-Id": "hr-1", "X-Role": "hr"}


@pytest.fixture
def employee_headers():
    return {"X-User-Id": "emp-1", "X-Role": "employee"}


@pytest.fixture
def other_employee_headers():
    return {"X-User-Id": "emp-2", "X-Role": "employee"}


@pytest.fixture
def hr_actor():
    return Actor(id="hr-1", role=ActorRole.HR)


@pytest.fixture
def admin_actor():
    return Actor(id="admin-1", role=ActorRole.ADMIN)
