"""create bulk uploads and activity logs

Revision ID: 20261017_0004
Revises: 20261017_0003
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0004"
down_revision = "20261017_0003"
branch_labels = None
depends_on = None

upload_status = postgresql.ENUM(
    "PROCESSING", "COMPLETED", "PARTIAL", "FAILED", name="upload_status", create_type=False
)
audit_action = postgresql.ENUM(
    "timetable.create",
    "timetable.replace",
    "timetable.deactivate",
    "timetable.delete",
    "timetable.import",
    name="audit_action",
    create_type=False,
)


def upgrade() -> None:
    upload_status.create(op.get_bind(), checkfirst=True)
    audit_action.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "timetable_bulk_uploads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("uploaded_by", sa.String(length=36), nullable=True),
        sa.Column("status", upload_status, nullable=False, server_default="PROCESSING"),
        sa.Column("validate_only", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("total_rows", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_rows", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_rows", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_bulk_uploads_uploaded_by", "timetable_bulk_uploads", ["uploaded_by"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", audit_action, nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=50), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_entity", "activity_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity", table_name="activity_logs")
    op.drop_index("ix_activity_logs_actor_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    audit_action.drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_timetable_bulk_uploads_uploaded_by", table_name="timetable_bulk_uploads")
    op.drop_table("timetable_bulk_uploads")
    upload_status.drop(op.get_bind(), checkfirst=True)
