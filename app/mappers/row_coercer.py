"""
app/mappers/row_coercer.py

Lenient coercion of extracted CSV values into TransactionInput.

Imports favour completeness over strictness: numbers that cannot be read
become zero and dates that cannot be read become today's date, so one bad
cell never costs the whole row. Only a row without a business identifier is
rejected, because it could never be deduplicated.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from app.domain.transactions import TransactionInput

DATE_FORMATS: tuple[str, ...] = (
    "%d-%m-%Y",
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
)

_LEADING_INT = re.compile(r"^[+-]?\d+")
_LEADING_DECIMAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_INT_MAX = 2**31 - 1
_INT_MIN = -(2**31)

_REQUIRED_TEXT_FIELDS: tuple[str, ...] = (
    "customer_id",
    "customer_name",
    "phone_number",
    "gender",
    "customer_region",
    "product_id",
    "product_category",
    "payment_method",
    "employee_name",
)

_OPTIONAL_TEXT_FIELDS: tuple[str, ...] = (
    "customer_type",
    "product_name",
    "brand",
    "tags",
    "order_status",
    "delivery_type",
    "store_id",
    "store_location",
    "salesperson_id",
)


class RowMappingError(ValueError):
    """
    Raised when a row cannot be turned into a transaction at all.
    """


def parse_int(value: str | None) -> int:
    """
    Read the leading integer of a value ("25.7" -> 25, "12 units" -> 12).

    Missing, unreadable or out-of-range input yields 0.
    """

    if value is None:
        return 0
    match = _LEADING_INT.match(value.strip())
    if not match:
        return 0
    digits = match.group(0)
    # Only values that fit an INTEGER column are readable.
    if len(digits.lstrip("+-").lstrip("0")) > 10:
        return 0
    number = int(digits)
    return number if _INT_MIN <= number <= _INT_MAX else 0


def parse_decimal(value: str | None) -> Decimal:
    """
    Read the leading decimal number of a value; missing or unreadable input
    yields Decimal("0").
    """

    if value is None:
        return Decimal("0")
    match = _LEADING_DECIMAL.match(value.strip())
    if not match:
        return Decimal("0")
    try:
        parsed = Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


def parse_date(value: str | None, *, today: Callable[[], date] = date.today) -> date:
    """
    Parse DD-MM-YYYY, YYYY-MM-DD (and their slash forms) or an ISO datetime.

    Anything else falls back to ``today()``.
    """

    if value is None or not value.strip():
        return today()

    raw = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue

    normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        return today()


class TransactionRowCoercer:
    """
    Converts one extracted row into a TransactionInput.
    """

    def __init__(self, *, today: Callable[[], date] = date.today) -> None:
        self._today = today

    def coerce(self, values: Mapping[str, str | None]) -> TransactionInput:
        transaction_id = (values.get("transaction_id") or "").strip()
        if not transaction_id:
            raise RowMappingError("Transaction ID is missing.")

        text = {name: (values.get(name) or "").strip() for name in _REQUIRED_TEXT_FIELDS}
        optional = {name: _optional_text(values.get(name)) for name in _OPTIONAL_TEXT_FIELDS}

        return TransactionInput(
            transaction_id=transaction_id,
            date=parse_date(values.get("date"), today=self._today),
            age=parse_int(values.get("age")),
            quantity=max(0, parse_int(values.get("quantity"))),
            price_per_unit=parse_decimal(values.get("price_per_unit")),
            discount_percentage=parse_decimal(values.get("discount_percentage")),
            total_amount=parse_decimal(values.get("total_amount")),
            final_amount=parse_decimal(values.get("final_amount")),
            **text,
            **optional,
        )


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
