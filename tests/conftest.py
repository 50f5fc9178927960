from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from models import ReviewCycle, User
from utils.security import create_access_token, hash_password

TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "correct-horse-1"

SEED_USERS = [
    ("admin-1", "Ada Admin", "admin@example.com", "admin"),
    ("hr-1", "Hana HR", "hr@example.com", "hr"),
    ("manager-1", "Max Manager", "manager@example.com", "manager"),
    ("emp-1", "Eve Employee", "eve@example.com", "employee"),
    ("emp-2", "Sam Staff", "sam@example.com", "employee"),
]


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        SECRET_KEY=TEST_SECRET,
        PASSWORD_RESET_OTP_MINUTES=10,
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.state.database.init_db()
    yield app
    app.state.database.dispose()


@pytest.fixture
def session_factory(app):
    return app.state.database.session


@pytest.fixture
def users(session_factory):
    with session_factory() as db:
        for user_id, name, email, role in SEED_USERS:
            db.add(User(
                id=user_id,
                name=name,
                email=email,
                password_hash=hash_password(TEST_PASSWORD),
                role=role,
                status="active",
            ))
        db.commit()
    return {
        "admin": "admin-1",
        "hr": "hr-1",
        "manager": "manager-1",
        "employee": "emp-1",
        "employee2": "emp-2",
    }


@pytest.fixture
def client(app, users):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth(settings):
    def _headers(user_id: str, role: str = "employee") -> dict:
        token = create_access_token(user_id, role, settings.SECRET_KEY, settings.ALGORITHM)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(auth):
    return auth("admin-1", "admin")


@pytest.fixture
def hr_headers(auth):
    return auth("hr-1", "hr")


@pytest.fixture
def make_cycle(session_factory, users):
    def _make(status: str = "active", name: str = "H1 Review") -> int:
        with session_factory() as db:
            cycle = ReviewCycle(
                name=name,
                cycle_type="6-month",
                start_date=date(2025, 1, 1),
                end_date=date(2025, 6, 30),
                status=status,
                created_by="admin-1",
            )
            db.add(cycle)
            db.commit()
            return cycle.id

    return _make
