"""
db/models/transaction.py

Retail sales transaction row. Rows are append-only: ingestion inserts them and
nothing in the service updates them afterwards.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, Numeric, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    transaction_id: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
        comment="Business identifier from the source system",
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    customer_id: Mapped[str] = mapped_column(Text, nullable=False)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(Text, nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_region: Mapped[str] = mapped_column(Text, nullable=False)
    customer_type: Mapped[str | None] = mapped_column(Text, nullable=True)

    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(Text, nullable=True)
    product_category: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Comma-delimited tag tokens",
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Gross amount before discount",
    )
    final_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Net amount after discount",
    )

    payment_method: Mapped[str] = mapped_column(Text, nullable=False)
    order_status: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    salesperson_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_name: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("ix_transactions_customer_name", "customer_name"),
        Index("ix_transactions_phone_number", "phone_number"),
        Index("ix_transactions_customer_region", "customer_region"),
        Index("ix_transactions_gender", "gender"),
        Index("ix_transactions_age", "age"),
        Index("ix_transactions_product_category", "product_category"),
        Index("ix_transactions_payment_method", "payment_method"),
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_region_date", "customer_region", "date"),
        Index("ix_transactions_region_category", "customer_region", "product_category"),
        Index("ix_transactions_region_gender", "customer_region", "gender"),
        Index("ix_transactions_date_category", "date", "product_category"),
        Index(
            "ix_transactions_region_date_category",
            "customer_region",
            "date",
            "product_category",
        ),
    )

    def __repr__(self) -> str:
        return f"<Transaction transaction_id={self.transaction_id!r} date={self.date}>"


# Backs the case-insensitive customer-name prefix search.
Index("ix_transactions_customer_name_lower", func.lower(Transaction.customer_name))
