import datetime as dt
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Integer,
    JSON,
    Text,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def int_pk() -> Mapped[int]:
    return mapped_column(Integer, primary_key=True, autoincrement=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = int_pk()
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)  # email
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # Access flags; a user with none of them set is an employee
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_inspector: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Role(Base):
    """Job-role tag attached to inspector groups; unrelated to the access flags on User."""
    __tablename__ = "roles"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class ShiftType(Base):
    __tablename__ = "shift_types"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM wall clock
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM wall clock
    description: Mapped[Optional[str]] = mapped_column(String(500))
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    area: Mapped[str] = mapped_column(String(255), default="")
    supervisor_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    supervisor = relationship("User", foreign_keys=[supervisor_id])
    coordinators = relationship(
        "BuildingCoordinator",
        back_populates="building",
        cascade="all, delete-orphan",
        order_by="BuildingCoordinator.id",
    )


class BuildingCoordinator(Base):
    """A manager bound to a building for one shift type."""
    __tablename__ = "building_coordinators"

    id: Mapped[int] = int_pk()
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False, index=True)
    coordinator_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shift_type_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("shift_types.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    building = relationship("Building", back_populates="coordinators")
    coordinator = relationship("User")
    shift_type = relationship("ShiftType")


# Weekly shift assignment aggregate:
# WeeklyShiftAssignment -> InspectorGroup -> (GroupInspector, DailyShiftType)

class WeeklyShiftAssignment(Base):
    __tablename__ = "weekly_shift_assignments"

    id: Mapped[int] = int_pk()
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)
    week: Mapped[str] = mapped_column(String(8), nullable=False, index=True)  # ISO week, e.g. 2024-W12
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)  # PENDING|ACCEPTED|REJECTED
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    building = relationship("Building")
    inspector_groups = relationship(
        "InspectorGroup",
        back_populates="assignment",
        passive_deletes=True,
        order_by="InspectorGroup.id",
    )

    __table_args__ = (
        Index("idx_weekly_assignments_building_week", "building_id", "week"),
    )


class InspectorGroup(Base):
    __tablename__ = "weekly_inspector_groups"

    id: Mapped[int] = int_pk()
    weekly_shift_assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weekly_shift_assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    assignment = relationship("WeeklyShiftAssignment", back_populates="inspector_groups")
    role = relationship("Role")
    inspectors = relationship(
        "GroupInspector",
        back_populates="group",
        passive_deletes=True,
        order_by="GroupInspector.id",
    )
    daily_shifts = relationship(
        "DailyShiftType",
        back_populates="group",
        passive_deletes=True,
        order_by="DailyShiftType.day_of_week",
    )


class GroupInspector(Base):
    """An inspector bound to a group; is_primary distinguishes the lead from backups."""
    __tablename__ = "weekly_group_inspectors"

    id: Mapped[int] = int_pk()
    weekly_inspector_group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weekly_inspector_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inspector_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Inspector response
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)  # PENDING|ACCEPTED|REJECTED
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    group = relationship("InspectorGroup", back_populates="inspectors")
    inspector = relationship("User")


class DailyShiftType(Base):
    __tablename__ = "daily_shift_types"

    id: Mapped[int] = int_pk()
    weekly_inspector_group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weekly_inspector_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun .. 6=Sat
    shift_type_id: Mapped[int] = mapped_column(Integer, ForeignKey("shift_types.id"), nullable=False)

    group = relationship("InspectorGroup", back_populates="daily_shifts")
    shift_type = relationship("ShiftType")


class Request(Base):
    """Leave or shift-swap request"""
    __tablename__ = "requests"

    id: Mapped[int] = int_pk()
    requester_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # LEAVE|SHIFT_SWAP
    shift_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("weekly_shift_assignments.id", ondelete="SET NULL"))
    target_shift_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("weekly_shift_assignments.id", ondelete="SET NULL"))
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)  # PENDING|APPROVED|REJECTED
    manager_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    reviewer_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    requester = relationship("User", foreign_keys=[requester_id])
    manager = relationship("User", foreign_keys=[manager_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])


class Notification(Base):
    """In-app notification; metadata may carry the shift_id it refers to"""
    __tablename__ = "notifications"

    id: Mapped[int] = int_pk()
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(50))
    # "metadata" is reserved on declarative classes
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index("idx_notifications_created", "created_at"),
    )


class TaskType(Base):
    __tablename__ = "task_types"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Agency(Base):
    __tablename__ = "agencies"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Task(Base):
    """Inspection task handed to an agency"""
    __tablename__ = "tasks"

    id: Mapped[int] = int_pk()
    inspector_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    shift_type_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("shift_types.id", ondelete="SET NULL"))
    task_type_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_types.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)  # PENDING|IN_PROGRESS|COMPLETED
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    is_followup_needed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assigned_to: Mapped[int] = mapped_column(Integer, ForeignKey("agencies.id"), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    inspector = relationship("User", foreign_keys=[inspector_id])
    shift_type = relationship("ShiftType")
    task_type = relationship("TaskType")
    agency = relationship("Agency")
