"""create reference tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None

record_status = postgresql.ENUM("ACTIVE", "INACTIVE", name="record_status", create_type=False)
assignment_role = postgresql.ENUM("TEACHER", "SUPERVISOR", name="assignment_role", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    record_status.create(bind, checkfirst=True)
    assignment_role.create(bind, checkfirst=True)

    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("short_name", sa.String(length=50), nullable=False),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_branches_short_name", "branches", ["short_name"], unique=True)

    op.create_table(
        "academic_years",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_academic_years_name", "academic_years", ["name"], unique=True)

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_name", "subjects", ["name"], unique=True)

    op.create_table(
        "school_classes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("academic_year_id", sa.Integer(), sa.ForeignKey("academic_years.id"), nullable=False),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("branch_id", "academic_year_id", "name", name="uq_school_classes_branch_year_name"),
    )
    op.create_index("ix_school_classes_branch_id", "school_classes", ["branch_id"])
    op.create_index("ix_school_classes_academic_year_id", "school_classes", ["academic_year_id"])

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_teachers_branch_id", "teachers", ["branch_id"])

    op.create_table(
        "teacher_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=False),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("school_classes.id"), nullable=False),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("academic_year_id", sa.Integer(), sa.ForeignKey("academic_years.id"), nullable=False),
        sa.Column("role", assignment_role, nullable=False, server_default="TEACHER"),
        sa.Column("status", record_status, nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_teacher_assignments_teacher_id", "teacher_assignments", ["teacher_id"])
    op.create_index("ix_teacher_assignments_class_id", "teacher_assignments", ["class_id"])
    op.create_index("ix_teacher_assignments_subject_id", "teacher_assignments", ["subject_id"])
    op.create_index("ix_teacher_assignments_academic_year_id", "teacher_assignments", ["academic_year_id"])


def downgrade() -> None:
    op.drop_index("ix_teacher_assignments_academic_year_id", table_name="teacher_assignments")
    op.drop_index("ix_teacher_assignments_subject_id", table_name="teacher_assignments")
    op.drop_index("ix_teacher_assignments_class_id", table_name="teacher_assignments")
    op.drop_index("ix_teacher_assignments_teacher_id", table_name="teacher_assignments")
    op.drop_table("teacher_assignments")
    op.drop_index("ix_teachers_branch_id", table_name="teachers")
    op.drop_table("teachers")
    op.drop_index("ix_school_classes_academic_year_id", table_name="school_classes")
    op.drop_index("ix_school_classes_branch_id", table_name="school_classes")
    op.drop_table("school_classes")
    op.drop_index("ix_subjects_name", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_academic_years_name", table_name="academic_years")
    op.drop_table("academic_years")
    op.drop_index("ix_branches_short_name", table_name="branches")
    op.drop_table("branches")

    bind = op.get_bind()
    assignment_role.drop(bind, checkfirst=True)
    record_status.drop(bind, checkfirst=True)
