"""Add tenant/branch configuration rows and the payment ledger."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "002_add_config_entries_and_payments"
down_revision = "001_create_tenants_plans_subscriptions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "config_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("config_key", sa.String(length=100), nullable=False),
        sa.Column("config_value", sa.Text(), nullable=False),
        sa.Column("value_type", sa.String(length=20), nullable=False),
        sa.Column("scope", sa.String(length=10), nullable=False, server_default=sa.text("'TENANT'")),
        sa.Column("branch_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(scope = 'TENANT' AND branch_id IS NULL) OR "
            "(scope = 'BRANCH' AND branch_id IS NOT NULL)",
            name="ck_config_entries_scope_branch",
        ),
    )
    op.create_index("ix_config_entries_tenant_id", "config_entries", ["tenant_id"])
    op.create_index(
        "uq_config_entries_tenant_key",
        "config_entries",
        ["tenant_id", "config_key"],
        unique=True,
        postgresql_where=sa.text("branch_id IS NULL"),
    )
    op.create_index(
        "uq_config_entries_branch_key",
        "config_entries",
        ["tenant_id", "config_key", "branch_id"],
        unique=True,
        postgresql_where=sa.text("branch_id IS NOT NULL"),
    )

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "subscription_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscriptions.id"),
            nullable=False,
        ),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("provider", sa.String(length=30), nullable=False, server_default=sa.text("'razorpay'")),
        sa.Column("provider_order_id", sa.String(), nullable=False, unique=True),
        sa.Column("provider_payment_id", sa.String(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default=sa.text("'INR'")),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'created'")),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_payments_tenant_id", "payments", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_payments_tenant_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("uq_config_entries_branch_key", table_name="config_entries")
    op.drop_index("uq_config_entries_tenant_key", table_name="config_entries")
    op.drop_index("ix_config_entries_tenant_id", table_name="config_entries")
    op.drop_table("config_entries")
