"""initial academic schema: careers, courses, prerequisites, students, statuses, enrollments

Revision ID: a3f1c2d4e5b6
Revises:
Create Date: 2025-03-01 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a3f1c2d4e5b6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TERM_ENUM = sa.Enum("first", "second", "annual", name="termenum")
STATUS_ENUM = sa.Enum("enrolled", "regular", "credited", "withdrawn", name="academicstatusenum")
ENROLLMENT_TYPE_ENUM = sa.Enum("coursework", "exam", name="enrollmenttypeenum")


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("must_change_password", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_role", "user", ["role"])

    op.create_table(
        "career",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("duration_years", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_career_name", "career", ["name"], unique=True)

    op.create_table(
        "course",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("term", TERM_ENUM, nullable=False),
        sa.Column("weekly_hours", sa.Integer(), nullable=False),
        sa.Column("career_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["career_id"], ["career.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_course_code", "course", ["code"], unique=True)
    op.create_index("ix_course_career_id", "course", ["career_id"])

    op.create_table(
        "prerequisite",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("required_course_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["course_id"], ["course.id"]),
        sa.ForeignKeyConstraint(["required_course_id"], ["course.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("course_id", "required_course_id", name="uq_prerequisite_edge"),
    )
    op.create_index("ix_prerequisite_course_id", "prerequisite", ["course_id"])
    op.create_index("ix_prerequisite_required_course_id", "prerequisite", ["required_course_id"])

    op.create_table(
        "student",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("national_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("enrollment_date", sa.Date(), nullable=False),
        sa.Column("career_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["career_id"], ["career.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_student_national_id", "student", ["national_id"], unique=True)
    op.create_index("ix_student_career_id", "student", ["career_id"])

    op.create_table(
        "academicstatus",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("status", STATUS_ENUM, nullable=False),
        sa.Column("regularization_date", sa.Date(), nullable=True),
        sa.Column("credit_date", sa.Date(), nullable=True),
        sa.Column("grade", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"]),
        sa.ForeignKeyConstraint(["course_id"], ["course.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_academicstatus_student_id", "academicstatus", ["student_id"])
    op.create_index("ix_academicstatus_course_id", "academicstatus", ["course_id"])
    op.create_index("ix_academicstatus_status", "academicstatus", ["status"])

    op.create_table(
        "enrollment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("type", ENROLLMENT_TYPE_ENUM, nullable=False),
        sa.Column("period", sa.String(), nullable=False),
        sa.Column("enrolled_on", sa.Date(), nullable=False),
        sa.Column("overridden", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"]),
        sa.ForeignKeyConstraint(["course_id"], ["course.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enrollment_student_id", "enrollment", ["student_id"])
    op.create_index("ix_enrollment_course_id", "enrollment", ["course_id"])
    op.create_index("ix_enrollment_type", "enrollment", ["type"])
    op.create_index("ix_enrollment_period", "enrollment", ["period"])


def downgrade() -> None:
    for table in ("enrollment", "academicstatus", "student", "prerequisite", "course", "career", "user"):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (ENROLLMENT_TYPE_ENUM, STATUS_ENUM, TERM_ENUM):
        enum.drop(bind, checkfirst=True)
