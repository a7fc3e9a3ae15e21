"""initial ledger schema

Revision ID: 7c1e4a2b9d30
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "7c1e4a2b9d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

stock_status = sa.Enum("AVAILABLE", "LOW_STOCK", "OUT_OF_STOCK", "DISCONTINUED", name="stockstatus")
transaction_type = sa.Enum(
    "STOCK_IN", "STOCK_OUT", "ADJUSTMENT", "DAMAGE", "RETURN", "TRANSFER", name="transactiontype"
)
audit_action = sa.Enum(
    "CREATE", "UPDATE", "DELETE", "STOCK_ADJUSTMENT", "DAMAGED_GOODS", name="auditaction"
)


def upgrade() -> None:
    op.create_table(
        "product_stock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=100), nullable=False, unique=True),
        sa.Column("product_name", sa.String(length=200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reorder_level", sa.Integer(), nullable=False),
        sa.Column("damaged_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("location", sa.String(length=100), nullable=True),
        sa.Column("status", stock_status, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_product_stock_quantity"),
        sa.CheckConstraint("reorder_level >= 0", name="ck_product_stock_reorder_level"),
        sa.CheckConstraint("damaged_quantity >= 0", name="ck_product_stock_damaged_quantity"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_stock_status", "product_stock", ["status"])

    # product_stock_id sin FK: el historico sobrevive al borrado del producto
    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_stock_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", transaction_type, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("stock_version", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("reference", sa.String(length=100), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_stock_transactions_product", "stock_transactions", ["product_stock_id"])
    op.create_index("ix_stock_transactions_type", "stock_transactions", ["transaction_type"])
    op.create_index("ix_stock_transactions_date", "stock_transactions", ["transaction_date"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", audit_action, nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(length=100), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_timestamp", table_name="audit_log")
    op.drop_index("ix_audit_log_action", table_name="audit_log")
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_stock_transactions_date", table_name="stock_transactions")
    op.drop_index("ix_stock_transactions_type", table_name="stock_transactions")
    op.drop_index("ix_stock_transactions_product", table_name="stock_transactions")
    op.drop_table("stock_transactions")
    op.drop_index("ix_product_stock_status", table_name="product_stock")
    op.drop_table("product_stock")
    bind = op.get_bind()
    audit_action.drop(bind, checkfirst=True)
    transaction_type.drop(bind, checkfirst=True)
    stock_status.drop(bind, checkfirst=True)
