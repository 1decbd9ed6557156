"""create parish staff tables

Base of the "documents" branch, applied to DATABASE_URL:
    alembic upgrade documents@head

Revision ID: 0001_create_parish_staff_tables
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_create_parish_staff_tables"
down_revision = None
branch_labels = ("documents",)
depends_on = None

staff_role = sa.Enum("parish", "chancery_office", name="staff_role")
staff_position = sa.Enum("secretary", "priest", name="staff_position")
staff_status = sa.Enum("pending", "active", "inactive", "rejected", "archived", name="staff_status")


def upgrade() -> None:
    op.create_table(
        "staff_accounts",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", staff_role, nullable=False),
        sa.Column("diocese", sa.String(length=64), nullable=False),
        sa.Column("parish_id", sa.String(length=128), nullable=True),
        sa.Column("parish_name", sa.String(length=255), nullable=True),
        sa.Column("municipality", sa.String(length=255), nullable=True),
        sa.Column("position", staff_position, nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("status", staff_status, nullable=False),
        sa.Column("registration_source", sa.String(length=32), nullable=False, server_default="self"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_by_name", sa.String(length=255), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("term_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.String(length=64), nullable=True),
        sa.Column("rejected_by_name", sa.String(length=255), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deactivated_by", sa.String(length=64), nullable=True),
        sa.Column("deactivation_reason", sa.Text(), nullable=True),
        sa.Column("reactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reactivated_by", sa.String(length=64), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_by", sa.String(length=64), nullable=True),
        sa.Column("archived_reason", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "status != 'pending' OR (approved_at IS NULL AND rejected_at IS NULL)",
            name="ck_staff_accounts_pending_undecided",
        ),
    )
    op.create_index("ix_staff_accounts_email", "staff_accounts", ["email"], unique=True)
    op.create_index("ix_staff_accounts_diocese", "staff_accounts", ["diocese"])
    op.create_index("ix_staff_accounts_parish_status", "staff_accounts", ["parish_id", "status"])

    op.create_table(
        "staff_term_records",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("staff_name", sa.String(length=255), nullable=False),
        sa.Column("staff_email", sa.String(length=255), nullable=False),
        sa.Column("diocese", sa.String(length=64), nullable=False),
        sa.Column("parish_id", sa.String(length=128), nullable=True),
        sa.Column("parish_name", sa.String(length=255), nullable=True),
        sa.Column("position", staff_position, nullable=True),
        sa.Column("term_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("term_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("end_reason", sa.Text(), nullable=True),
        sa.Column("ended_by", sa.String(length=64), nullable=True),
        sa.Column("approved_successor_id", sa.String(length=64), nullable=True),
        sa.Column("stats", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_staff_term_records_staff_id", "staff_term_records", ["staff_id"])
    op.create_index("ix_staff_term_records_parish_id", "staff_term_records", ["parish_id"])

    op.create_table(
        "staff_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("actor_email", sa.String(length=255), nullable=True),
        sa.Column("actor_name", sa.String(length=255), nullable=True),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column("diocese", sa.String(length=64), nullable=True),
        sa.Column("parish_id", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("target_type", sa.String(length=32), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=False),
        sa.Column("resource_name", sa.String(length=255), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_staff_audit_logs_target_id", "staff_audit_logs", ["target_id"])
    op.create_index("ix_staff_audit_logs_created_at", "staff_audit_logs", ["created_at"])
    op.create_index("ix_staff_audit_logs_actor_created", "staff_audit_logs", ["actor_id", "created_at"])

    op.create_table(
        "staff_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("kind", sa.String(length=64), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("recipient_ids", sa.JSON(), nullable=True),
        sa.Column("recipient_roles", sa.JSON(), nullable=True),
        sa.Column("diocese", sa.String(length=64), nullable=True),
        sa.Column("parish_id", sa.String(length=128), nullable=True),
        sa.Column("related_data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_staff_notifications_kind", "staff_notifications", ["kind"])
    op.create_index("ix_staff_notifications_parish_id", "staff_notifications", ["parish_id"])
    op.create_index("ix_staff_notifications_created_at", "staff_notifications", ["created_at"])


def downgrade() -> None:
    op.drop_table("staff_notifications")
    op.drop_table("staff_audit_logs")
    op.drop_table("staff_term_records")
    op.drop_index("ix_staff_accounts_parish_status", table_name="staff_accounts")
    op.drop_index("ix_staff_accounts_diocese", table_name="staff_accounts")
    op.drop_index("ix_staff_accounts_email", table_name="staff_accounts")
    op.drop_table("staff_accounts")
    staff_status.drop(op.get_bind(), checkfirst=True)
    staff_position.drop(op.get_bind(), checkfirst=True)
    staff_role.drop(op.get_bind(), checkfirst=True)
