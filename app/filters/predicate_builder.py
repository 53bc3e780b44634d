"""
app/filters/predicate_builder.py

Turns a FilterSpecification plus an optional search term into one SQLAlchemy
boolean clause over the ``transactions`` table.

Search routing
--------------
Search is restricted to prefix matches so both lookups can use an index:

    ""              -> no search condition
    "5"             -> phone_number LIKE '5%'          (single character)
    "98765"         -> phone_number LIKE '98765%'      (all digits)
    "Ali Khan"      -> lower(customer_name) LIKE 'ali%' (first token only)

Multi-word names are matched on their first token only; a substring scan
over the full name would defeat the ``lower(customer_name)`` index.

Tag filter
----------
Tags are stored as one comma-delimited string, so a requested tag matches by
substring containment and requested tags combine with OR. A short tag also
matches longer tags containing it ("VIP" matches "VIP2").
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import ColumnElement, and_, func, or_, true

from app.domain.transactions import FilterSpecification
from db.models.transaction import Transaction


class SearchKind(str, Enum):
    PHONE_PREFIX = "phone_prefix"
    NAME_PREFIX = "name_prefix"


@dataclass(frozen=True)
class SearchMatch:
    kind: SearchKind
    value: str


def classify_search(term: str | None) -> SearchMatch | None:
    """
    Decide which index-friendly lookup a raw search term maps to.
    """

    if not term:
        return None
    stripped = term.strip()
    if not stripped:
        return None
    if len(stripped) == 1:
        return SearchMatch(kind=SearchKind.PHONE_PREFIX, value=stripped)
    if stripped.isascii() and stripped.isdigit():
        return SearchMatch(kind=SearchKind.PHONE_PREFIX, value=stripped)
    first_token = stripped.split()[0]
    return SearchMatch(kind=SearchKind.NAME_PREFIX, value=first_token.lower())


class PredicateBuilder:
    """
    Builds composable predicates for the query executor and stats service.
    """

    def build(
        self,
        filters: FilterSpecification | None = None,
        search: str | None = None,
    ) -> ColumnElement[bool]:
        """
        Combine the search condition and every present sub-filter with AND.

        Returns ``true()`` when nothing is present, which matches every row.
        """

        conditions: list[ColumnElement[bool]] = []

        search_condition = self.search_condition(search)
        if search_condition is not None:
            conditions.append(search_condition)

        if filters is not None:
            conditions.extend(self.filter_conditions(filters))

        if not conditions:
            return true()
        if len(conditions) == 1:
            return conditions[0]
        return and_(*conditions)

    @staticmethod
    def search_condition(search: str | None) -> ColumnElement[bool] | None:
        match = classify_search(search)
        if match is None:
            return None
        if match.kind is SearchKind.PHONE_PREFIX:
            return Transaction.phone_number.startswith(match.value, autoescape=True)
        return func.lower(Transaction.customer_name).startswith(match.value, autoescape=True)

    @staticmethod
    def filter_conditions(filters: FilterSpecification) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []

        if filters.tags:
            conditions.append(
                or_(*(Transaction.tags.contains(tag, autoescape=True) for tag in filters.tags))
            )
        if filters.regions:
            conditions.append(Transaction.customer_region.in_(filters.regions))
        if filters.genders:
            conditions.append(Transaction.gender.in_(filters.genders))
        if filters.age_range is not None:
            conditions.append(
                Transaction.age.between(filters.age_range.minimum, filters.age_range.maximum)
            )
        if filters.categories:
            conditions.append(Transaction.product_category.in_(filters.categories))
        if filters.payment_methods:
            conditions.append(Transaction.payment_method.in_(filters.payment_methods))
        if filters.date_range is not None:
            conditions.append(
                Transaction.date.between(filters.date_range.start, filters.date_range.end)
            )

        return conditions
