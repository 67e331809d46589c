"""
Seed the local database with an admin, a few inspectors, job roles, shift types
and a building.

Usage:
  python scripts/seed_demo_data.py

This script is idempotent: running it multiple times upserts the same records
based on unique fields (username for users, name for roles and shift types,
code for buildings).
"""

import os

from shiftdesk.db import SessionLocal, Base, engine
from shiftdesk.config import settings
from shiftdesk.models.models import (
    User,
    Role,
    ShiftType,
    Building,
    BuildingCoordinator,
)
from shiftdesk.auth.security import get_password_hash


def ensure_user(session, username: str, full_name: str, password: str, **flags) -> User:
    user = session.query(User).filter(User.username == username).first()
    if user:
        user.full_name = full_name
        for name, value in flags.items():
            setattr(user, name, value)
        # Keep an existing password
        if not getattr(user, "password_hash", None):
            user.password_hash = get_password_hash(password)
        session.add(user)
        return user
    user = User(username=username, full_name=full_name, password_hash=get_password_hash(password), **flags)
    session.add(user)
    session.flush()
    return user


def ensure_role(session, name: str, description: str = "") -> Role:
    role = session.query(Role).filter(Role.name == name).first()
    if role:
        if description and role.description != description:
            role.description = description
        return role
    role = Role(name=name, description=description or name)
    session.add(role)
    session.flush()
    return role


def ensure_shift_type(session, name: str, start_time: str, end_time: str) -> ShiftType:
    st = session.query(ShiftType).filter(ShiftType.name == name).first()
    if st:
        st.start_time = start_time
        st.end_time = end_time
        return st
    st = ShiftType(name=name, start_time=start_time, end_time=end_time)
    session.add(st)
    session.flush()
    return st


def ensure_building(session, code: str, name: str, area: str, supervisor_id: int) -> Building:
    b = session.query(Building).filter(Building.code == code).first()
    if b:
        b.name = name
        b.area = area
        b.supervisor_id = supervisor_id
        return b
    b = Building(code=code, name=name, area=area, supervisor_id=supervisor_id)
    session.add(b)
    session.flush()
    return b


def main():
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        admin = ensure_user(session, "admin@example.com", "Ada Admin", "TestAdmin123!", is_admin=True)
        manager = ensure_user(session, "manager@example.com", "Mona Manager", "TestUser123!", is_manager=True)
        ensure_user(session, "ivan.inspector@example.com", "Ivan Inspector", "TestUser123!", is_inspector=True)
        ensure_user(session, "iris.inspector@example.com", "Iris Inspector", "TestUser123!", is_inspector=True)

        ensure_role(session, "Lead Inspector", "Primary inspector for a building")
        ensure_role(session, "Backup Inspector", "Covers when the lead is unavailable")

        morning = ensure_shift_type(session, "Morning", "06:00", "14:00")
        ensure_shift_type(session, "Evening", "14:00", "22:00")
        ensure_shift_type(session, "Night", "22:00", "06:00")

        hq = ensure_building(session, "HQ-01", "Headquarters", "Downtown", supervisor_id=admin.id)
        has_coordinator = (
            session.query(BuildingCoordinator)
            .filter(BuildingCoordinator.building_id == hq.id, BuildingCoordinator.coordinator_id == manager.id)
            .first()
        )
        if not has_coordinator:
            session.add(BuildingCoordinator(building_id=hq.id, coordinator_id=manager.id, shift_type_id=morning.id))

        session.commit()
        print("Seed completed: users, roles, shift types and buildings upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
