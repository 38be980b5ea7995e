"""create user and bill tables

Revision ID: 0001_create_core_tables
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_core_tables"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(18, 4), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="tenant"),
        sa.Column("unit", sa.String(), nullable=False, server_default=""),
        _money("base_rent"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_role", "user", ["role"])

    op.create_table(
        "bill",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tenant_id", sa.Integer, sa.ForeignKey("user.id"), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        _money("base_rent"),
        _money("previous_unit"),
        _money("current_unit"),
        _money("units_consumed"),
        sa.Column("rate_per_unit", sa.Numeric(18, 4), nullable=False, server_default="10"),
        _money("electricity_amount"),
        _money("total_amount"),
        sa.Column("status", sa.String(), nullable=False, server_default="Unpaid"),
        sa.Column("paid_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("tenant_id", "period", name="uq_bill_tenant_period"),
    )
    op.create_index("ix_bill_tenant_id", "bill", ["tenant_id"])
    op.create_index("ix_bill_period", "bill", ["period"])
    op.create_index("ix_bill_status", "bill", ["status"])


def downgrade() -> None:
    op.drop_index("ix_bill_status", table_name="bill")
    op.drop_index("ix_bill_period", table_name="bill")
    op.drop_index("ix_bill_tenant_id", table_name="bill")
    op.drop_table("bill")
    op.drop_index("ix_user_role", table_name="user")
    op.drop_table("user")
