"""
app/mappers/column_mapper.py

Header resolution for transaction CSV files.

Exports from different systems spell the same column differently
("Transaction ID", "transaction_id", "TransactionID"). Every logical field
lists its accepted spellings in ``TRANSACTION_COLUMN_ALIASES``; headers are
compared after normalization, so case, spaces, underscores and dashes never
matter. Resolution runs once per import against the header row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

TRANSACTION_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "transaction_id": ("Transaction ID", "transaction_id", "TransactionID"),
    "date": ("Date", "date", "Transaction Date"),
    "customer_id": ("Customer ID", "customer_id", "CustomerID"),
    "customer_name": ("Customer Name", "customer_name", "CustomerName"),
    "phone_number": ("Phone Number", "phone_number", "PhoneNumber", "Phone"),
    "gender": ("Gender", "gender"),
    "age": ("Age", "age"),
    "customer_region": ("Customer Region", "customer_region", "CustomerRegion", "Region"),
    "customer_type": ("Customer Type", "customer_type", "CustomerType"),
    "product_id": ("Product ID", "product_id", "ProductID"),
    "product_name": ("Product Name", "product_name", "ProductName"),
    "brand": ("Brand", "brand"),
    "product_category": ("Product Category", "product_category", "ProductCategory", "Category"),
    "tags": ("Tags", "tags"),
    "quantity": ("Quantity", "quantity", "Qty"),
    "price_per_unit": ("Price per Unit", "price_per_unit", "PricePerUnit", "Unit Price"),
    "discount_percentage": ("Discount Percentage", "discount_percentage", "DiscountPercentage"),
    "total_amount": ("Total Amount", "total_amount", "TotalAmount"),
    "final_amount": ("Final Amount", "final_amount", "FinalAmount"),
    "payment_method": ("Payment Method", "payment_method", "PaymentMethod"),
    "order_status": ("Order Status", "order_status", "OrderStatus"),
    "delivery_type": ("Delivery Type", "delivery_type", "DeliveryType"),
    "store_id": ("Store ID", "store_id", "StoreID"),
    "store_location": ("Store Location", "store_location", "StoreLocation"),
    "salesperson_id": ("Salesperson ID", "salesperson_id", "SalespersonID"),
    "employee_name": ("Employee Name", "employee_name", "EmployeeName"),
}

REQUIRED_COLUMNS: tuple[str, ...] = ("transaction_id",)


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


class MissingRequiredColumnsError(ValueError):
    """
    Raised when the header row lacks a column every record needs.
    """

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(f"CSV is missing required column(s): {', '.join(self.missing)}.")


@dataclass(frozen=True)
class ColumnResolution:
    """
    Logical field -> source headers present in this file, in alias order.
    """

    field_to_headers: dict[str, tuple[str, ...]]
    source_headers: tuple[str, ...]

    @property
    def unmapped_headers(self) -> tuple[str, ...]:
        mapped = {header for headers in self.field_to_headers.values() for header in headers}
        return tuple(header for header in self.source_headers if header not in mapped)

    def extract(self, raw_row: Mapping[str, str | None]) -> dict[str, str | None]:
        """
        Pull each logical field's raw value out of one parsed CSV row.

        When several spellings are present, the first non-blank value wins.
        """

        values: dict[str, str | None] = {}
        for field_name, headers in self.field_to_headers.items():
            values[field_name] = None
            for header in headers:
                raw_value = raw_row.get(header)
                if raw_value is not None and raw_value.strip():
                    values[field_name] = raw_value.strip()
                    break
        return values


class ColumnMapper:
    """
    Resolves a CSV header row against the alias table.
    """

    def __init__(
        self,
        *,
        aliases: Mapping[str, Sequence[str]] | None = None,
        required_fields: Sequence[str] = REQUIRED_COLUMNS,
    ) -> None:
        self._aliases: dict[str, tuple[str, ...]] = {
            field_name: tuple(spellings)
            for field_name, spellings in (aliases or TRANSACTION_COLUMN_ALIASES).items()
        }
        self._required_fields = tuple(required_fields)

    def resolve(self, headers: Sequence[str]) -> ColumnResolution:
        source_headers = tuple(header for header in headers if header and header.strip())

        headers_by_normalized: dict[str, list[str]] = {}
        for header in source_headers:
            headers_by_normalized.setdefault(normalize_header(header), []).append(header)

        field_to_headers: dict[str, tuple[str, ...]] = {}
        for field_name, spellings in self._aliases.items():
            matched: list[str] = []
            for spelling in (field_name, *spellings):
                for header in headers_by_normalized.get(normalize_header(spelling), ()):
                    if header not in matched:
                        matched.append(header)
            if matched:
                field_to_headers[field_name] = tuple(matched)

        missing = [name for name in self._required_fields if name not in field_to_headers]
        if missing:
            raise MissingRequiredColumnsError(missing)

        return ColumnResolution(
            field_to_headers=field_to_headers,
            source_headers=source_headers,
        )
