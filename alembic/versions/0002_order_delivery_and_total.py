"""add delivery fee and total amount to orders

Revision ID: 0002_order_delivery_and_total
Revises: 0001_orders_settings_schema
Create Date: 2026-01-20

delivery_fee is 0 for pickup orders and the flat delivery charge otherwise.
total_amount is computed by the storefront as subtotal + delivery_fee and stored.
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_order_delivery_and_total"
down_revision = "0001_orders_settings_schema"
branch_labels = None
depends_on = None


def _order_columns() -> set[str]:
    inspector = sa.inspect(op.get_bind())
    return {column["name"] for column in inspector.get_columns("orders")}


def upgrade() -> None:
    existing = _order_columns()
    if "delivery_fee" not in existing:
        op.add_column("orders", sa.Column("delivery_fee", sa.Integer(), nullable=False, server_default=sa.text("0")))
    if "total_amount" not in existing:
        op.add_column("orders", sa.Column("total_amount", sa.Integer(), nullable=False, server_default=sa.text("0")))


def downgrade() -> None:
    with op.batch_alter_table("orders") as batch_op:
        batch_op.drop_column("total_amount")
        batch_op.drop_column("delivery_fee")
