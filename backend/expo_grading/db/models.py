"""ORM models backing the grade store."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)


class StudentGroupModel(TimestampMixin, Base):
    __tablename__ = "student_groups"
    __table_args__ = (Index("ix_student_groups_name", "name", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    project_title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    members: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    panel1_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    panel2_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    external_panel_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    # Cached; refreshed on grade submission and panel reassignment.
    status: Mapped[str] = mapped_column(String(32), default="Not Started", nullable=False)

    grades: Mapped[list["PanelGradeModel"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PanelGradeModel.created_at",
    )


class PanelGradeModel(TimestampMixin, Base):
    __tablename__ = "panel_grades"
    __table_args__ = (UniqueConstraint("group_id", "panelist_id", name="uq_panel_grades_group_panelist"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("student_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    panelist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    presenter_scores: Mapped[dict[str, float]] = mapped_column(JSONType, default=dict, nullable=False)
    thesis_scores: Mapped[dict[str, float]] = mapped_column(JSONType, default=dict, nullable=False)
    submitted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    group: Mapped[StudentGroupModel] = relationship(back_populates="grades")


__all__ = ["PanelGradeModel", "StudentGroupModel", "UserModel"]
