import os

# Must be set before shiftdesk.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_DB"] = "0"
os.environ["ENABLE_METRICS"] = "0"
os.environ["ENABLE_EMAIL"] = "0"
os.environ["RATE_LIMIT"] = "100000/minute"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shiftdesk.db import Base, configure_engine, get_db
from shiftdesk.main import app
from shiftdesk.models.models import Role, ShiftType, Building, User
from shiftdesk.auth.security import create_session_token, get_password_hash


@pytest.fixture()
def engine():
    eng = configure_engine(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    ))
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with_client = TestClient(app, raise_server_exceptions=False)
    yield with_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, full_name=None, password="secret123", **flags):
        counter["n"] += 1
        username = username or f"user{counter['n']}@shiftdesk.io"
        u = User(
            username=username,
            full_name=full_name or f"User {counter['n']}",
            password_hash=get_password_hash(password),
            is_admin=flags.get("is_admin", False),
            is_manager=flags.get("is_manager", False),
            is_inspector=flags.get("is_inspector", False),
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}


@pytest.fixture()
def admin(make_user):
    return make_user(username="admin@shiftdesk.io", full_name="Ada Admin", is_admin=True)


@pytest.fixture()
def inspectors(make_user):
    return [make_user(full_name=f"Inspector {i}", is_inspector=True) for i in range(1, 4)]


@pytest.fixture()
def catalog(db, admin):
    """A building, two job roles and two shift types."""
    lead = Role(name="Lead Inspector")
    backup = Role(name="Backup Inspector")
    morning = ShiftType(name="Morning", start_time="06:00", end_time="14:00")
    evening = ShiftType(name="Evening", start_time="14:00", end_time="22:00")
    building = Building(name="Headquarters", code="HQ-01", area="Downtown", supervisor_id=admin.id)
    db.add_all([lead, backup, morning, evening, building])
    db.commit()
    return {
        "lead": lead.id,
        "backup": backup.id,
        "morning": morning.id,
        "evening": evening.id,
        "building": building.id,
    }


@pytest.fixture()
def make_shift(client, admin, catalog):
    def _make(inspector_ids, week="2024-W12", role_id=None, days=None, building_id=None):
        payload = {
            "building_id": building_id or catalog["building"],
            "week": week,
            "inspector_groups": [
                {
                    "role_id": role_id or catalog["lead"],
                    "inspectors": [
                        {"inspector_id": iid, "is_primary": i == 0} for i, iid in enumerate(inspector_ids)
                    ],
                    "days": days if days is not None else [{"day_of_week": 1, "shift_type_id": catalog["morning"]}],
                }
            ],
        }
        r = client.post("/api/admin/shifts", json=payload, headers=auth(admin))
        assert r.status_code == 200, r.text
        return r.json()

    return _make
