"""Create tenants, the plan catalog and tenant subscriptions."""
from __future__ import annotations

import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001_create_tenants_plans_subscriptions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "plans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_monthly", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    plan_table = sa.table(
        "plans",
        sa.column("id", postgresql.UUID(as_uuid=True)),
        sa.column("code", sa.String()),
        sa.column("name", sa.String()),
        sa.column("description", sa.Text()),
        sa.column("price_monthly", sa.Integer()),
        sa.column("is_active", sa.Boolean()),
        sa.column("is_public", sa.Boolean()),
        sa.column("display_order", sa.Integer()),
    )

    op.bulk_insert(
        plan_table,
        [
            {
                "id": uuid.uuid4(),
                "code": "FREE",
                "name": "Free",
                "description": "Get started with basic features. Perfect for trying out the platform.",
                "price_monthly": 0,
                "is_active": True,
                "is_public": True,
                "display_order": 1,
            },
            {
                "id": uuid.uuid4(),
                "code": "BASIC",
                "name": "Basic",
                "description": "Essential features for small schools. Includes fees, transport, and library.",
                "price_monthly": 149900,
                "is_active": True,
                "is_public": True,
                "display_order": 2,
            },
            {
                "id": uuid.uuid4(),
                "code": "PRO",
                "name": "Pro",
                "description": "Advanced features for growing schools. Includes all modules and priority support.",
                "price_monthly": 399900,
                "is_active": True,
                "is_public": True,
                "display_order": 3,
            },
            {
                "id": uuid.uuid4(),
                "code": "ENTERPRISE",
                "name": "Enterprise",
                "description": "Custom solutions for large institutions. Contact sales for pricing.",
                "price_monthly": 0,
                "is_active": True,
                "is_public": False,
                "display_order": 4,
            },
        ],
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'trialing'")),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_subscriptions_status_trial_ends_at",
        "subscriptions",
        ["status", "trial_ends_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_subscriptions_status_trial_ends_at", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("plans")
    op.drop_table("tenants")
