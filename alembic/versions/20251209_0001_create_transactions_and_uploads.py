"""create transactions and csv_uploads tables

Revision ID: 20251209_0001
Revises:
Create Date: 2025-12-09 16:49:41
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20251209_0001"
down_revision = None
branch_labels = None
depends_on = None

_TRANSACTION_INDEXES: tuple[tuple[str, list[str]], ...] = (
    ("ix_transactions_customer_name", ["customer_name"]),
    ("ix_transactions_phone_number", ["phone_number"]),
    ("ix_transactions_customer_region", ["customer_region"]),
    ("ix_transactions_gender", ["gender"]),
    ("ix_transactions_age", ["age"]),
    ("ix_transactions_product_category", ["product_category"]),
    ("ix_transactions_payment_method", ["payment_method"]),
    ("ix_transactions_date", ["date"]),
    ("ix_transactions_region_date", ["customer_region", "date"]),
    ("ix_transactions_region_category", ["customer_region", "product_category"]),
    ("ix_transactions_region_gender", ["customer_region", "gender"]),
    ("ix_transactions_date_category", ["date", "product_category"]),
    ("ix_transactions_region_date_category", ["customer_region", "date", "product_category"]),
)


def upgrade() -> None:
    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "transaction_id",
            sa.Text(),
            nullable=False,
            comment="Business identifier from the source system",
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("customer_id", sa.Text(), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=False),
        sa.Column("gender", sa.Text(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("customer_region", sa.Text(), nullable=False),
        sa.Column("customer_type", sa.Text(), nullable=True),
        sa.Column("product_id", sa.Text(), nullable=False),
        sa.Column("product_name", sa.Text(), nullable=True),
        sa.Column("brand", sa.Text(), nullable=True),
        sa.Column("product_category", sa.Text(), nullable=False),
        sa.Column("tags", sa.Text(), nullable=True, comment="Comma-delimited tag tokens"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("discount_percentage", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column(
            "total_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            comment="Gross amount before discount",
        ),
        sa.Column(
            "final_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            comment="Net amount after discount",
        ),
        sa.Column("payment_method", sa.Text(), nullable=False),
        sa.Column("order_status", sa.Text(), nullable=True),
        sa.Column("delivery_type", sa.Text(), nullable=True),
        sa.Column("store_id", sa.Text(), nullable=True),
        sa.Column("store_location", sa.Text(), nullable=True),
        sa.Column("salesperson_id", sa.Text(), nullable=True),
        sa.Column("employee_name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", name="uq_transactions_transaction_id"),
    )
    for index_name, columns in _TRANSACTION_INDEXES:
        op.create_index(index_name, "transactions", columns, unique=False)
    op.create_index(
        "ix_transactions_customer_name_lower",
        "transactions",
        [sa.text("lower(customer_name)")],
        unique=False,
    )

    op.create_table(
        "csv_uploads",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("total_records", sa.Integer(), nullable=False),
        sa.Column("imported_records", sa.Integer(), nullable=False),
        sa.Column("failed_records", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, comment="processing, completed, failed"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.String(length=255), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_csv_uploads_uploaded_at", "csv_uploads", ["uploaded_at"], unique=False)
    op.create_index("ix_csv_uploads_status", "csv_uploads", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_csv_uploads_status", table_name="csv_uploads")
    op.drop_index("ix_csv_uploads_uploaded_at", table_name="csv_uploads")
    op.drop_table("csv_uploads")

    op.drop_index("ix_transactions_customer_name_lower", table_name="transactions")
    for index_name, _ in reversed(_TRANSACTION_INDEXES):
        op.drop_index(index_name, table_name="transactions")
    op.drop_table("transactions")
