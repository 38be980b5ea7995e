"""add complaint table

Revision ID: 0002_add_complaints
Revises: 0001_create_core_tables
Create Date: 2026-10-03 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_add_complaints"
down_revision = "0001_create_core_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "complaint",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tenant_id", sa.Integer, sa.ForeignKey("user.id"), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("priority", sa.String(), nullable=False, server_default="Medium"),
        sa.Column("admin_note", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_complaint_tenant_id", "complaint", ["tenant_id"])
    op.create_index("ix_complaint_status", "complaint", ["status"])


def downgrade() -> None:
    op.drop_index("ix_complaint_status", table_name="complaint")
    op.drop_index("ix_complaint_tenant_id", table_name="complaint")
    op.drop_table("complaint")
