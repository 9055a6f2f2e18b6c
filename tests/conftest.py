"""
Shared test fixtures for the Coursework Manager API.
Each test gets a fresh in-memory SQLite database, a temporary uploads
directory and an email service that records messages instead of sending.
"""
import os
import tempfile

# Configure before any application module reads config
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="coursework-test-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["SMTP_HOST"] = ""

from datetime import datetime, timedelta

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.routes.auth import create_access_token
from app import app
from core.database import get_db
from core.dependencies import get_email_service, get_file_storage
from models.base import Base
from utils.assignment_manager import AssignmentManager
from utils.class_manager import ClassManager
from utils.email_service import EmailService
from utils.file_storage import FileStorage
from utils.user_manager import UserManager

PASSWORD = "password123"


class RecordingEmailService(EmailService):
    """Renders real templates but keeps messages in memory."""

    def __init__(self):
        super().__init__(host="smtp.test")
        self.sent = []

    def send_email(self, to, email):
        self.sent.append((to, email))
        return True


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
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(upload_dir=tmp_path / "uploads")


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def client(session_factory, storage, email_service):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": user.user_id, "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def iso_in(days=0, hours=0):
    return (datetime.now(pytz.utc) + timedelta(days=days, hours=hours)).isoformat()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role="student", name=None, email=None, class_id=None):
        counter["n"] += 1
        n = counter["n"]
        return UserManager(db).create_user(
            name=name or f"{role.capitalize()} {n}",
            email=email or f"{role}{n}@example.com",
            password=PASSWORD,
            role=role,
            class_id=class_id,
        )

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin", name="Admin User")


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", name="Grace Teacher")


@pytest.fixture
def other_teacher(make_user):
    return make_user("teacher", name="Other Teacher")


@pytest.fixture
def classroom(db, teacher):
    return ClassManager(db).create_class(
        name="Algorithms", code="cs101", teacher_id=teacher.user_id, description="Intro"
    )


@pytest.fixture
def student(make_user, classroom):
    return make_user("student", name="Alice Student", class_id=classroom.class_id)


@pytest.fixture
def make_assignment(db, teacher, classroom):
    def _make_assignment(**overrides):
        fields = dict(
            title="Sorting",
            description="Implement merge sort",
            deadline=datetime.now(pytz.utc) + timedelta(days=2),
            max_marks=100,
            class_id=classroom.class_id,
            created_by=teacher.user_id,
            submission_format="both",
        )
        fields.update(overrides)
        return AssignmentManager(db).create_assignment(**fields)

    return _make_assignment


@pytest.fixture
def assignment(make_assignment):
    return make_assignment()
