"""create availability, series and sessions

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    person_role = sa.Enum("teacher", "student", name="person_role")
    availability_kind = sa.Enum("regular", "exception", name="availability_kind")
    series_status = sa.Enum("active", "paused", "ended", name="series_status")
    session_status = sa.Enum("confirmed", "conflicted", name="session_status")

    op.create_table(
        "user_availability",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("owner_role", person_role, nullable=False),
        sa.Column("owner_id", sa.String(length=36), nullable=False),
        sa.Column("kind", availability_kind, nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("full_day", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_availability_owner_id", "user_availability", ["owner_id"])

    op.create_table(
        "class_series",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("student_id", sa.String(length=36), nullable=True),
        sa.Column("subject_id", sa.String(length=36), nullable=True),
        sa.Column("booth_id", sa.String(length=36), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("days_of_week", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("check_availability", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("status", series_status, nullable=False, server_default="active"),
        sa.Column("last_generated_through", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_class_series_teacher_id", "class_series", ["teacher_id"])
    op.create_index("ix_class_series_student_id", "class_series", ["student_id"])

    op.create_table(
        "class_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("series_id", sa.String(length=36), nullable=True),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("student_id", sa.String(length=36), nullable=True),
        sa.Column("subject_id", sa.String(length=36), nullable=True),
        sa.Column("booth_id", sa.String(length=36), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", session_status, nullable=False, server_default="confirmed"),
        sa.Column("conflict_reasons", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_class_sessions_series_id", "class_sessions", ["series_id"])
    op.create_index("ix_class_sessions_teacher_id", "class_sessions", ["teacher_id"])
    op.create_index("ix_class_sessions_student_id", "class_sessions", ["student_id"])
    op.create_index("ix_class_sessions_booth_id", "class_sessions", ["booth_id"])
    op.create_index("ix_class_sessions_date", "class_sessions", ["date"])


def downgrade() -> None:
    op.drop_index("ix_class_sessions_date", table_name="class_sessions")
    op.drop_index("ix_class_sessions_booth_id", table_name="class_sessions")
    op.drop_index("ix_class_sessions_student_id", table_name="class_sessions")
    op.drop_index("ix_class_sessions_teacher_id", table_name="class_sessions")
    op.drop_index("ix_class_sessions_series_id", table_name="class_sessions")
    op.drop_table("class_sessions")
    op.drop_index("ix_class_series_student_id", table_name="class_series")
    op.drop_index("ix_class_series_teacher_id", table_name="class_series")
    op.drop_table("class_series")
    op.drop_index("ix_user_availability_owner_id", table_name="user_availability")
    op.drop_table("user_availability")

    bind = op.get_bind()
    for enum_name in ("session_status", "series_status", "availability_kind", "person_role"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
