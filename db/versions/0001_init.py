"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    product_category = postgresql.ENUM(
        "accounts", "subscriptions", "addons", name="product_category", create_type=False
    )
    discount_type = postgresql.ENUM(
        "percentage", "fixed", name="discount_type", create_type=False
    )
    order_status = postgresql.ENUM(
        "pending", "completed", "cancelled", name="order_status", create_type=False
    )
    sell_request_status = postgresql.ENUM(
        "pending",
        "approved",
        "rejected",
        "completed",
        name="sell_request_status",
        create_type=False,
    )

    product_category.create(op.get_bind(), checkfirst=True)
    discount_type.create(op.get_bind(), checkfirst=True)
    order_status.create(op.get_bind(), checkfirst=True)
    sell_request_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", product_category, nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("original_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("show_fake_discount", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("track_stock", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_products_category", "products", ["category"], unique=False)
    op.create_index("ix_products_created_at", "products", ["created_at"], unique=False)

    op.create_table(
        "discount_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("discount_type", discount_type, nullable=False),
        sa.Column("discount_percentage", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("fixed_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_usage", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("items", postgresql.JSONB(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_code", sa.String(length=64), nullable=True),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("customer_telegram", sa.String(length=32), nullable=True),
        sa.Column("status", order_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_status", "orders", ["status"], unique=False)
    op.create_index("ix_orders_created_at", "orders", ["created_at"], unique=False)

    op.create_table(
        "sell_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("customer_telegram", sa.String(length=32), nullable=False),
        sa.Column("item_name", sa.Text(), nullable=False),
        sa.Column("item_description", sa.Text(), nullable=False, server_default=""),
        sa.Column("asking_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("item_category", product_category, nullable=False),
        sa.Column("status", sell_request_status, nullable=False),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sell_requests_status", "sell_requests", ["status"], unique=False)

    op.create_table(
        "giveaways",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("prize", sa.Text(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default=sa.text("1000")),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("winner_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("max_participants >= 1", name="ck_giveaways_max_participants"),
        sa.CheckConstraint("winner_count >= 1", name="ck_giveaways_winner_count"),
    )
    op.create_index("ix_giveaways_created_at", "giveaways", ["created_at"], unique=False)
    op.create_index("ix_giveaways_is_active", "giveaways", ["is_active"], unique=False)

    op.create_table(
        "giveaway_participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "giveaway_id",
            sa.Integer(),
            sa.ForeignKey("giveaways.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("telegram_username", sa.String(length=32), nullable=False),
        sa.Column("handle_key", sa.String(length=32), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "giveaway_id", "handle_key", name="uq_giveaway_participants_giveaway_handle"
        ),
    )
    op.create_index(
        "ix_giveaway_participants_giveaway_id",
        "giveaway_participants",
        ["giveaway_id"],
        unique=False,
    )

    op.create_table(
        "giveaway_winners",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "giveaway_id",
            sa.Integer(),
            sa.ForeignKey("giveaways.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "participant_id",
            sa.Integer(),
            sa.ForeignKey("giveaway_participants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("selected_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_giveaway_winners_giveaway_id", "giveaway_winners", ["giveaway_id"], unique=False
    )

    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_ip", sa.String(length=64), nullable=True),
    )

    op.create_table(
        "admin_login_attempts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=False),
        sa.Column("failed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_failed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("banned_until", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("username", "ip", name="uq_admin_login_attempts_username_ip"),
    )

    op.create_table(
        "admin_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_admin_audit_log_created_at", "admin_audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_admin_audit_log_created_at", table_name="admin_audit_log")
    op.drop_table("admin_audit_log")
    op.drop_table("admin_login_attempts")
    op.drop_table("admin_users")
    op.drop_index("ix_giveaway_winners_giveaway_id", table_name="giveaway_winners")
    op.drop_table("giveaway_winners")
    op.drop_index("ix_giveaway_participants_giveaway_id", table_name="giveaway_participants")
    op.drop_table("giveaway_participants")
    op.drop_index("ix_giveaways_is_active", table_name="giveaways")
    op.drop_index("ix_giveaways_created_at", table_name="giveaways")
    op.drop_table("giveaways")
    op.drop_index("ix_sell_requests_status", table_name="sell_requests")
    op.drop_table("sell_requests")
    op.drop_index("ix_orders_created_at", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_table("orders")
    op.drop_table("discount_codes")
    op.drop_index("ix_products_created_at", table_name="products")
    op.drop_index("ix_products_category", table_name="products")
    op.drop_table("products")

    op.execute("DROP TYPE IF EXISTS sell_request_status")
    op.execute("DROP TYPE IF EXISTS order_status")
    op.execute("DROP TYPE IF EXISTS discount_type")
    op.execute("DROP TYPE IF EXISTS product_category")
