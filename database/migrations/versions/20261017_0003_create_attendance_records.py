"""create attendance records

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None

attendance_status = postgresql.ENUM(
    "PRESENT", "ABSENT", "LATE", "EXCUSED", name="attendance_status", create_type=False
)


def upgrade() -> None:
    attendance_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("timetable_slot_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("academic_year_id", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("student_id", "timetable_slot_id", "date", name="uq_attendance_student_slot_date"),
    )
    op.create_index("ix_attendance_records_student_id", "attendance_records", ["student_id"])
    op.create_index("ix_attendance_records_timetable_slot_id", "attendance_records", ["timetable_slot_id"])
    op.create_index("ix_attendance_records_date", "attendance_records", ["date"])
    op.create_index("ix_attendance_records_status", "attendance_records", ["status"])
    op.create_index("ix_attendance_records_branch_id", "attendance_records", ["branch_id"])
    op.create_index("ix_attendance_records_class_id", "attendance_records", ["class_id"])
    op.create_index("ix_attendance_records_academic_year_id", "attendance_records", ["academic_year_id"])
    op.create_index("ix_attendance_records_teacher_id", "attendance_records", ["teacher_id"])


def downgrade() -> None:
    for name in (
        "ix_attendance_records_teacher_id",
        "ix_attendance_records_academic_year_id",
        "ix_attendance_records_class_id",
        "ix_attendance_records_branch_id",
        "ix_attendance_records_status",
        "ix_attendance_records_date",
        "ix_attendance_records_timetable_slot_id",
        "ix_attendance_records_student_id",
    ):
        op.drop_index(name, table_name="attendance_records")
    op.drop_table("attendance_records")
    attendance_status.drop(op.get_bind(), checkfirst=True)
