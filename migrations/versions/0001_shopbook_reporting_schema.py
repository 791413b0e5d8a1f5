"""shopbook reporting schema

Revision ID: 0001_shopbook_reporting
Revises:
Create Date: 2024-01-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_shopbook_reporting"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def _money():
    return sa.Numeric(14, 2)


def upgrade() -> None:
    op.create_table(
        "shops",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("owner_id", GUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("business_type", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shops_owner_id", "shops", ["owner_id"])

    op.create_table(
        "products",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shop_id", GUID(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("buy_price", _money(), nullable=True),
        sa.Column("sell_price", _money(), nullable=False, server_default="0"),
        sa.Column("stock_qty", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("track_stock", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_products_shop_id", "products", ["shop_id"])
    op.create_index("ix_products_shop_stock", "products", ["shop_id", "is_active", "track_stock", "stock_qty"])

    op.create_table(
        "sales",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shop_id", GUID(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("sale_date", sa.DateTime(), nullable=False),
        sa.Column("total_amount", _money(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="COMPLETED"),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sales_shop_date_id", "sales", ["shop_id", "sale_date", "id"])
    op.create_index("ix_sales_shop_status_date", "sales", ["shop_id", "status", "sale_date"])

    op.create_table(
        "sale_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("sale_id", GUID(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False, server_default="1"),
        sa.Column("unit_price", _money(), nullable=False, server_default="0"),
        sa.Column("line_total", _money(), nullable=False, server_default="0"),
        sa.Column("cost_at_sale", _money(), nullable=True),
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"])

    op.create_table(
        "expenses",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shop_id", GUID(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("expense_date", sa.DateTime(), nullable=False),
        sa.Column("amount", _money(), nullable=False, server_default="0"),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_expenses_shop_date_id", "expenses", ["shop_id", "expense_date", "id"])

    op.create_table(
        "cash_entries",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("shop_id", GUID(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("entry_type", sa.String(length=10), nullable=False),
        sa.Column("amount", _money(), nullable=False, server_default="0"),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cash_entries_shop_created_id", "cash_entries", ["shop_id", "created_at", "id"])


def downgrade() -> None:
    op.drop_index("ix_cash_entries_shop_created_id", table_name="cash_entries")
    op.drop_table("cash_entries")
    op.drop_index("ix_expenses_shop_date_id", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_sale_items_product_id", table_name="sale_items")
    op.drop_index("ix_sale_items_sale_id", table_name="sale_items")
    op.drop_table("sale_items")
    op.drop_index("ix_sales_shop_status_date", table_name="sales")
    op.drop_index("ix_sales_shop_date_id", table_name="sales")
    op.drop_table("sales")
    op.drop_index("ix_products_shop_stock", table_name="products")
    op.drop_index("ix_products_shop_id", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_shops_owner_id", table_name="shops")
    op.drop_table("shops")
