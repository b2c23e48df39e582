"""capacity core baseline: companies, supplier profiles, orders, event bus

Revision ID: 0001_capacity_core
Revises:
Create Date: 2026-10-18T09:00:00.000000Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_capacity_core"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at():
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade():
    op.create_table(
        "mkt_company",
        _id(),
        _created_at(),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("trade_name", sa.String(length=256), nullable=False, server_default=""),
    )
    op.create_index("ix_mkt_company_type", "mkt_company", ["type"])

    op.create_table(
        "mkt_company_user",
        _id(),
        _created_at(),
        sa.Column("company_id", sa.String(length=36), sa.ForeignKey("mkt_company.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
    )
    op.create_index("ix_mkt_company_user_company_id", "mkt_company_user", ["company_id"])
    op.create_index("ix_mkt_company_user_user_id", "mkt_company_user", ["user_id"])
    op.create_index("uq_company_user", "mkt_company_user", ["company_id", "user_id"], unique=True)

    op.create_table(
        "cap_supplier_profile",
        _id(),
        _created_at(),
        _updated_at(),
        sa.Column("company_id", sa.String(length=36), sa.ForeignKey("mkt_company.id"), nullable=False),
        sa.Column("active_workers", sa.Integer(), nullable=True),
        sa.Column("hours_per_day", sa.Numeric(5, 2), nullable=True),
        sa.Column("monthly_capacity", sa.Integer(), nullable=True),
        sa.Column("current_occupancy", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("product_types", sa.JSON(), nullable=False),
        sa.Column("specialties", sa.JSON(), nullable=False),
    )
    op.create_index("ix_cap_supplier_profile_company_id", "cap_supplier_profile", ["company_id"], unique=True)

    op.create_table(
        "ord_order",
        _id(),
        _created_at(),
        _updated_at(),
        sa.Column("display_id", sa.String(length=32), nullable=False),
        sa.Column("brand_id", sa.String(length=36), sa.ForeignKey("mkt_company.id"), nullable=False),
        sa.Column("supplier_id", sa.String(length=36), sa.ForeignKey("mkt_company.id"), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("assignment_type", sa.String(length=16), nullable=False),
        sa.Column("product_name", sa.String(length=256), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("avg_time_per_piece", sa.Numeric(10, 2), nullable=True),
        sa.Column("total_production_minutes", sa.Integer(), nullable=True),
        sa.Column("planned_start_date", sa.Date(), nullable=True),
        sa.Column("planned_end_date", sa.Date(), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_by", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_ord_order_display_id", "ord_order", ["display_id"], unique=True)
    op.create_index("ix_ord_order_brand_id", "ord_order", ["brand_id"])
    op.create_index("ix_ord_order_supplier_id", "ord_order", ["supplier_id"])
    op.create_index("ix_ord_order_status", "ord_order", ["status"])
    op.create_index("ix_order_supplier_status", "ord_order", ["supplier_id", "status"])

    op.create_table(
        "ord_target_supplier",
        _id(),
        _created_at(),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("ord_order.id"), nullable=False),
        sa.Column("supplier_id", sa.String(length=36), sa.ForeignKey("mkt_company.id"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_ord_target_supplier_order_id", "ord_target_supplier", ["order_id"])
    op.create_index("ix_ord_target_supplier_supplier_id", "ord_target_supplier", ["supplier_id"])
    op.create_index("ix_ord_target_supplier_status", "ord_target_supplier", ["status"])
    op.create_index("uq_target_order_supplier", "ord_target_supplier", ["order_id", "supplier_id"], unique=True)

    op.create_table(
        "ord_status_history",
        _id(),
        _created_at(),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("ord_order.id"), nullable=False),
        sa.Column("previous_status", sa.String(length=32), nullable=True),
        sa.Column("new_status", sa.String(length=32), nullable=False),
        sa.Column("changed_by", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_ord_status_history_order_id", "ord_status_history", ["order_id"])
    op.create_index("ix_status_history_order_time", "ord_status_history", ["order_id", "created_at"])

    op.create_table(
        "outbox_event",
        _id(),
        _created_at(),
        sa.Column("topic", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("available_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("delivered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_outbox_event_topic", "outbox_event", ["topic"])
    op.create_index("ix_outbox_topic_created", "outbox_event", ["topic", "created_at"])
    op.create_index("ix_outbox_delivery", "outbox_event", ["delivered", "available_at"])

    op.create_table(
        "event_subscription",
        _id(),
        _created_at(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("topic_pattern", sa.String(length=128), nullable=False),
        sa.Column("target_url", sa.Text(), nullable=False),
        sa.Column("headers", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_delivered_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_event_subscription_topic_pattern", "event_subscription", ["topic_pattern"])
    op.create_index("ix_event_sub_active", "event_subscription", ["is_active", "topic_pattern"])


def downgrade():
    op.drop_table("event_subscription")
    op.drop_table("outbox_event")
    op.drop_table("ord_status_history")
    op.drop_table("ord_target_supplier")
    op.drop_table("ord_order")
    op.drop_table("cap_supplier_profile")
    op.drop_table("mkt_company_user")
    op.drop_table("mkt_company")
