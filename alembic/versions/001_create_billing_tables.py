"""Create billing catalog, subscription, grant and commission tables."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001_create_billing_tables"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = True):
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tier", sa.String(16), nullable=False),
        sa.Column("cycle", sa.String(16), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'NGN'")),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("user_limit", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("product_limit", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.UniqueConstraint("tier", "cycle", name="uq_plan_tier_cycle"),
    )

    op.create_table(
        "modules",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("monthly_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "bundles",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("module_codes", sa.JSON(), nullable=False),
        sa.Column("bundle_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )

    plan_table = sa.table(
        "plans",
        sa.column("tier", sa.String()),
        sa.column("cycle", sa.String()),
        sa.column("name", sa.String()),
        sa.column("price", sa.Numeric()),
        sa.column("duration_days", sa.Integer()),
        sa.column("user_limit", sa.Integer()),
        sa.column("product_limit", sa.Integer()),
    )
    op.bulk_insert(
        plan_table,
        [
            {"tier": "GROWTH", "cycle": "MONTHLY", "name": "Growth Monthly", "price": 5000,
             "duration_days": 30, "user_limit": 10, "product_limit": 5000},
            {"tier": "GROWTH", "cycle": "QUARTERLY", "name": "Growth Quarterly", "price": 13500,
             "duration_days": 90, "user_limit": 10, "product_limit": 5000},
            {"tier": "GROWTH", "cycle": "ANNUAL", "name": "Growth Annual", "price": 48000,
             "duration_days": 365, "user_limit": 10, "product_limit": 5000},
            {"tier": "STARTER", "cycle": "MONTHLY", "name": "Starter Monthly", "price": 2500,
             "duration_days": 30, "user_limit": 2, "product_limit": 200},
            {"tier": "STARTER", "cycle": "QUARTERLY", "name": "Starter Quarterly", "price": 6750,
             "duration_days": 90, "user_limit": 2, "product_limit": 200},
            {"tier": "STARTER", "cycle": "ANNUAL", "name": "Starter Annual", "price": 24000,
             "duration_days": 365, "user_limit": 2, "product_limit": 200},
        ],
    )

    module_table = sa.table(
        "modules",
        sa.column("code", sa.String()),
        sa.column("name", sa.String()),
        sa.column("monthly_price", sa.Numeric()),
        sa.column("description", sa.Text()),
    )
    op.bulk_insert(
        module_table,
        [
            {"code": "KITCHEN_DISPLAY", "name": "Kitchen Display", "monthly_price": 1500,
             "description": "Real-time order monitor for the kitchen"},
            {"code": "RECIPE_MANAGEMENT", "name": "Recipe Management", "monthly_price": 1000,
             "description": "Ingredient-level stock deduction"},
            {"code": "TABLE_MANAGEMENT", "name": "Table Management", "monthly_price": 1000,
             "description": "Floor plan and table service"},
            {"code": "ADVANCED_REPORTS", "name": "Advanced Reports", "monthly_price": 2000,
             "description": "Profitability and compliance reports"},
        ],
    )

    bundle_table = sa.table(
        "bundles",
        sa.column("code", sa.String()),
        sa.column("name", sa.String()),
        sa.column("module_codes", sa.JSON()),
        sa.column("bundle_price", sa.Numeric()),
        sa.column("description", sa.Text()),
    )
    op.bulk_insert(
        bundle_table,
        [
            {"code": "RESTAURANT_PACK", "name": "Restaurant Pack",
             "module_codes": ["KITCHEN_DISPLAY", "RECIPE_MANAGEMENT", "TABLE_MANAGEMENT"],
             "bundle_price": 3000, "description": "Everything a full-service kitchen needs"},
        ],
    )

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("discount_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("tier", sa.String(16), nullable=False, server_default=sa.text("'GROWTH'")),
        sa.Column("installer_id", sa.Integer(), nullable=True, index=True),
        sa.Column("registered_on", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("selected_modules", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        *_timestamps(with_updated=False),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "business_id",
            sa.Integer(),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("plan_tier", sa.String(16), nullable=False),
        sa.Column("cycle", sa.String(16), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("transaction_reference", sa.String(128), nullable=True, unique=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
    )
    # At most one current row per business.
    op.create_index(
        "uq_subscription_current_business",
        "subscriptions",
        ["business_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "payment_references",
        sa.Column("reference", sa.String(128), primary_key=True),
        sa.Column(
            "business_id",
            sa.Integer(),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("source", sa.String(16), nullable=False),
        *_timestamps(with_updated=False),
    )

    op.create_table(
        "business_modules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "business_id",
            sa.Integer(),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("module_code", sa.String(64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", "module_code", name="uq_business_module"),
    )

    op.create_table(
        "commission_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("onboarding_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("20")),
        sa.Column("renewal_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("10")),
        sa.Column(
            "enable_renewal_commission", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("min_renewal_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "commission_duration_days", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.execute("INSERT INTO commission_settings (id) VALUES (1)")

    op.create_table(
        "commissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("installer_id", sa.Integer(), nullable=False, index=True),
        sa.Column(
            "business_id",
            sa.Integer(),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("transaction_reference", sa.String(128), nullable=False, unique=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_updated=False),
    )


def downgrade() -> None:
    op.drop_table("commissions")
    op.drop_table("commission_settings")
    op.drop_table("business_modules")
    op.drop_table("payment_references")
    op.drop_index("uq_subscription_current_business", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("businesses")
    op.drop_table("promo_codes")
    op.drop_table("bundles")
    op.drop_table("modules")
    op.drop_table("plans")
