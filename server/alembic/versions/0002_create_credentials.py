"""create identity credentials table

Base of the independent "identity" branch, applied to IDENTITY_DATABASE_URL only:
    alembic upgrade identity@head

Revision ID: 0002_create_credentials
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_create_credentials"
down_revision = None
branch_labels = ("identity",)
depends_on = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_credentials_email", "credentials", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_credentials_email", table_name="credentials")
    op.drop_table("credentials")
