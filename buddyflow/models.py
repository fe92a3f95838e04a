"""Database models."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buddyflow.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="USER")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}', role={self.role})>"


class Flow(Base):
    """Flow template; steps and components are edited in place."""

    __tablename__ = "flows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_deadline_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    steps: Mapped[list["FlowStep"]] = relationship(
        back_populates="flow",
        cascade="all, delete-orphan",
        order_by="FlowStep.order",
    )

    def __repr__(self) -> str:
        return f"<Flow(id={self.id}, title='{self.title}', version={self.version})>"


class FlowStep(Base):
    __tablename__ = "flow_steps"
    __table_args__ = (UniqueConstraint("flow_id", "step_order", name="uq_flow_step_order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    flow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("step_order", Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    flow: Mapped[Flow] = relationship(back_populates="steps")
    components: Mapped[list["FlowComponent"]] = relationship(
        back_populates="step",
        cascade="all, delete-orphan",
        order_by="FlowComponent.order",
    )


class FlowComponent(Base):
    __tablename__ = "flow_components"
    __table_args__ = (UniqueConstraint("step_id", "component_order", name="uq_flow_component_order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    step_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_steps.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("component_order", Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    type_version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    step: Mapped[FlowStep] = relationship(back_populates="components")


class FlowSnapshot(Base):
    """
    Frozen copy of a flow.

    ``assignment_id`` carries no foreign key: the snapshot outlives its
    assignment and is detached when the assignment is deleted.
    """

    __tablename__ = "flow_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    assignment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    original_flow_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    original_flow_version: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    snapshot_version: Mapped[str] = mapped_column(String(20), nullable=False)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    snapshot_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    steps: Mapped[list["FlowStepSnapshot"]] = relationship(
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="FlowStepSnapshot.order",
    )

    def __repr__(self) -> str:
        return f"<FlowSnapshot(id={self.id}, title='{self.title}')>"


class FlowStepSnapshot(Base):
    __tablename__ = "flow_step_snapshots"
    __table_args__ = (UniqueConstraint("snapshot_id", "step_order", name="uq_step_snapshot_order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_step_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    order: Mapped[int] = mapped_column("step_order", Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    snapshot: Mapped[FlowSnapshot] = relationship(back_populates="steps")
    components: Mapped[list["ComponentSnapshot"]] = relationship(
        back_populates="step",
        cascade="all, delete-orphan",
        order_by="ComponentSnapshot.order",
    )


class ComponentSnapshot(Base):
    __tablename__ = "component_snapshots"
    __table_args__ = (
        UniqueConstraint("step_snapshot_id", "component_order", name="uq_component_snapshot_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    step_snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_step_snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("component_order", Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    type_version: Mapped[str] = mapped_column(String(20), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    step: Mapped[FlowStepSnapshot] = relationship(back_populates="components")


class FlowAssignment(Base):
    """
    Assignment of a snapshot to a learner; soft-deleted via ``deleted_at``.

    ``version_id`` is checked on every UPDATE, like ``flow_progress``.
    """

    __tablename__ = "flow_assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    flow_snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_snapshots.id"), nullable=False, unique=True
    )
    assigned_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_overdue: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paused_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    pause_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    buddies: Mapped[list["AssignmentBuddy"]] = relationship(
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="AssignmentBuddy.position",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<FlowAssignment(id={self.id}, user_id={self.user_id}, status={self.status})>"


class AssignmentBuddy(Base):
    __tablename__ = "assignment_buddies"

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_assignments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    assignment: Mapped[FlowAssignment] = relationship(back_populates="buddies")


class FlowProgress(Base):
    """
    Progress of one assignment.

    ``version_id`` is checked on every UPDATE; a write based on a stale
    read fails instead of overwriting a concurrent interaction.
    """

    __tablename__ = "flow_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    assignment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_assignments.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    current_step_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    steps: Mapped[list["StepProgress"]] = relationship(
        back_populates="flow_progress",
        cascade="all, delete-orphan",
        order_by="StepProgress.order",
    )

    __mapper_args__ = {"version_id_col": version_id}


class StepProgress(Base):
    __tablename__ = "step_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    flow_progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flow_step_snapshots.id"), nullable=False
    )
    order: Mapped[int] = mapped_column("step_order", Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    flow_progress: Mapped[FlowProgress] = relationship(back_populates="steps")
    components: Mapped[list["ComponentProgress"]] = relationship(
        back_populates="step_progress",
        cascade="all, delete-orphan",
        order_by="ComponentProgress.order",
    )


class ComponentProgress(Base):
    __tablename__ = "component_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    step_progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("step_progress.id", ondelete="CASCADE"), nullable=False, index=True
    )
    component_snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("component_snapshots.id"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("component_order", Integer, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    step_progress: Mapped[StepProgress] = relationship(back_populates="components")
