"""Initial grade store schema: users, student groups and panel grades."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_01_initial_grading_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "student_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("project_title", sa.Text(), nullable=False, server_default=""),
        sa.Column("members", sa.JSON(), nullable=False),
        sa.Column("panel1_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("panel2_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "external_panel_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Not Started"),
    )
    op.create_index("ix_student_groups_name", "student_groups", ["name"], unique=True)

    op.create_table(
        "panel_grades",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column(
            "group_id",
            sa.String(length=36),
            sa.ForeignKey("student_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("panelist_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("presenter_scores", sa.JSON(), nullable=False),
        sa.Column("thesis_scores", sa.JSON(), nullable=False),
        sa.Column("submitted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("group_id", "panelist_id", name="uq_panel_grades_group_panelist"),
    )
    op.create_index("ix_panel_grades_group_id", "panel_grades", ["group_id"])


def downgrade() -> None:
    op.drop_index("ix_panel_grades_group_id", table_name="panel_grades")
    op.drop_table("panel_grades")
    op.drop_index("ix_student_groups_name", table_name="student_groups")
    op.drop_table("student_groups")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
