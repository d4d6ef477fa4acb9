"""create timetable slots

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None

day_of_week = postgresql.ENUM(
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
    name="day_of_week",
    create_type=False,
)


def upgrade() -> None:
    day_of_week.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "timetable_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("school_classes.id"), nullable=False),
        sa.Column("academic_year_id", sa.Integer(), sa.ForeignKey("academic_years.id"), nullable=False),
        sa.Column("day_of_week", day_of_week, nullable=True),
        sa.Column("full_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("room_number", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("building_name", sa.String(length=200), nullable=True),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("teacher_ids", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("source", sa.String(length=20), nullable=False, server_default="manual"),
        sa.Column("upload_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("end_time > start_time", name="ck_timetable_slots_window_order"),
        sa.CheckConstraint(
            "day_of_week IS NOT NULL OR full_date IS NOT NULL",
            name="ck_timetable_slots_day_or_date",
        ),
    )
    op.create_index("ix_timetable_slots_branch_id", "timetable_slots", ["branch_id"])
    op.create_index("ix_timetable_slots_class_id", "timetable_slots", ["class_id"])
    op.create_index("ix_timetable_slots_academic_year_id", "timetable_slots", ["academic_year_id"])
    op.create_index("ix_timetable_slots_subject_id", "timetable_slots", ["subject_id"])
    op.create_index("ix_timetable_slots_full_date", "timetable_slots", ["full_date"])
    op.create_index(
        "ix_timetable_slots_scope",
        "timetable_slots",
        ["branch_id", "class_id", "room_number", "is_active"],
    )


def downgrade() -> None:
    op.drop_index("ix_timetable_slots_scope", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_full_date", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_subject_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_academic_year_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_class_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_branch_id", table_name="timetable_slots")
    op.drop_table("timetable_slots")
    day_of_week.drop(op.get_bind(), checkfirst=True)
