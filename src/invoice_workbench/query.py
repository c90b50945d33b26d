"""
Filter, sort and page handling for the invoice list.

``build_query`` is a pure function from the user's selections to a
``QueryDescriptor``; predicates are always emitted in the same field order
so equal selections give byte-identical request parameters.

``ListQueryController`` holds the list's mutable query state (pending form
selection, applied selection, sort column and page) the way the list
screen uses it: applying or clearing filters returns to page 1, clicking
the sorted column flips the direction and clicking a new column sorts it
descending.
"""

from dataclasses import dataclass, field, replace
from datetime import date

from invoice_workbench import config
from invoice_workbench.lib import logs
from invoice_workbench.models.common import (
    FilterSelection,
    PaymentFilter,
    Predicate,
    QueryDescriptor,
    SortDirection,
    StatusFilter,
)
from invoice_workbench.utils import format_api_date

LOG = logs.logger(__file__)

DEFAULT_SORT_FIELD = "date"
DEFAULT_SORT_DIRECTION = SortDirection.DESC

# UI column ids mapped to backend sort fields
SORT_FIELD_MAPPING: dict[str, str] = {
    "id": "id",
    "date": "date",
    "deadline": "deadline",
    "total": "total",
    "status": "finalized",
}


def _range_predicates(field_name: str, bounds: tuple[date | None, date | None]) -> list[Predicate]:
    start, end = bounds if bounds else (None, None)
    predicates = []
    if start:
        predicates.append(Predicate(field_name, "gteq", format_api_date(start)))
    if end:
        predicates.append(Predicate(field_name, "lteq", format_api_date(end)))
    return predicates


def build_predicates(selection: FilterSelection) -> tuple[Predicate, ...]:
    """
    Translate filter selections into predicates, in fixed field order:
    date, deadline, finalized, paid, customer_id, invoice_lines.product_id.
    """
    predicates = _range_predicates("date", selection.date_range)
    predicates += _range_predicates("deadline", selection.due_date_range)

    status = StatusFilter(selection.status)
    if status is not StatusFilter.ALL:
        value = "true" if status is StatusFilter.FINALIZED else "false"
        predicates.append(Predicate("finalized", "eq", value))

    payment = PaymentFilter(selection.payment)
    if payment is not PaymentFilter.ALL:
        value = "true" if payment is PaymentFilter.PAID else "false"
        predicates.append(Predicate("paid", "eq", value))

    if selection.customer is not None:
        predicates.append(Predicate("customer_id", "eq", str(selection.customer.id)))

    if selection.product is not None:
        predicates.append(Predicate("invoice_lines.product_id", "eq", str(selection.product.id)))

    return tuple(predicates)


def sort_token(sort_field: str, sort_direction: SortDirection | str) -> str:
    """Return ``-field`` for descending or ``+field`` for ascending."""
    backend_field = SORT_FIELD_MAPPING.get(sort_field, sort_field)
    return f"{SortDirection(sort_direction).prefix}{backend_field}"


def build_query(
    selection: FilterSelection | None = None,
    sort_field: str = DEFAULT_SORT_FIELD,
    sort_direction: SortDirection | str = DEFAULT_SORT_DIRECTION,
    page: int = 1,
    page_size: int = config.PAGE_SIZE,
) -> QueryDescriptor:
    """
    Build the list query descriptor.

    Args:
        selection: Filter selections; None means no filters.
        sort_field: UI column id or backend field name.
        sort_direction: "asc" or "desc".
        page: Page number (1-indexed, clamped to at least 1).
        page_size: Items per page (clamped to at least 1).
    """
    return QueryDescriptor(
        predicates=build_predicates(selection or FilterSelection()),
        sort=sort_token(sort_field, sort_direction),
        page=max(int(page), 1),
        page_size=max(int(page_size), 1),
    )


def predicates_equal(left: tuple[Predicate, ...], right: tuple[Predicate, ...]) -> bool:
    """Order-insensitive predicate comparison."""
    return sorted(left, key=_predicate_key) == sorted(right, key=_predicate_key)


def _predicate_key(predicate: Predicate) -> tuple[str, str, str]:
    return predicate.field, predicate.operator, predicate.value


@dataclass
class SortState:
    """Sort column and direction; defaults to newest first."""

    field: str = DEFAULT_SORT_FIELD
    direction: SortDirection = DEFAULT_SORT_DIRECTION

    @property
    def token(self) -> str:
        return sort_token(self.field, self.direction)

    def toggle(self, column: str) -> None:
        """Flip direction on the sorted column; a new column starts descending."""
        if column == self.field:
            self.direction = self.direction.flipped()
        else:
            self.field = column
            self.direction = SortDirection.DESC


@dataclass
class ListQueryController:
    """
    Mutable list query state.

    Attributes:
        pending: Selection currently in the filter form (not yet applied).
        applied: Selection the list is filtered by.
    """

    pending: FilterSelection = field(default_factory=FilterSelection)
    applied: FilterSelection = field(default_factory=FilterSelection)
    sort: SortState = field(default_factory=SortState)
    page: int = 1
    page_size: int = config.PAGE_SIZE

    def set_filter(self, **changes) -> None:
        """Update the pending form selection (e.g. ``status="paid"``)."""
        self.pending = replace(self.pending, **changes)

    def apply_filters(self) -> QueryDescriptor:
        self.applied = replace(self.pending)
        self.page = 1
        LOG.info("apply_filters - predicates:%s", len(self.active_predicates))
        return self.descriptor()

    def clear_filters(self) -> QueryDescriptor:
        self.pending = FilterSelection()
        self.applied = FilterSelection()
        self.page = 1
        return self.descriptor()

    def toggle_sort(self, column: str) -> QueryDescriptor:
        self.sort.toggle(column)
        return self.descriptor()

    def set_page(self, page: int) -> QueryDescriptor:
        self.page = max(int(page), 1)
        return self.descriptor()

    def set_page_size(self, page_size: int) -> QueryDescriptor:
        self.page_size = max(int(page_size), 1)
        self.page = 1
        return self.descriptor()

    @property
    def active_predicates(self) -> tuple[Predicate, ...]:
        return build_predicates(self.applied)

    @property
    def has_active_filters(self) -> bool:
        return bool(self.active_predicates)

    @property
    def has_changed_filters(self) -> bool:
        """True when the filter form differs from what the list is filtered by."""
        return not predicates_equal(build_predicates(self.pending), self.active_predicates)

    def descriptor(self) -> QueryDescriptor:
        return build_query(
            self.applied,
            self.sort.field,
            self.sort.direction,
            self.page,
            self.page_size,
        )

    def filter_summary(self) -> str:
        """Human-readable summary of the applied filters."""
        parts: list[str] = []
        applied = self.applied
        if StatusFilter(applied.status) is not StatusFilter.ALL:
            parts.append(f"Status: {StatusFilter(applied.status).value}")
        if PaymentFilter(applied.payment) is not PaymentFilter.ALL:
            parts.append(f"Payment: {PaymentFilter(applied.payment).value}")
        if applied.customer is not None:
            name = getattr(applied.customer, "display_name", None) or str(applied.customer.id)
            parts.append(f"Customer: {name}")
        if applied.product is not None:
            label = getattr(applied.product, "label", None) or str(applied.product.id)
            parts.append(f"Product: {label}")

        labels = {
            ("date", "gteq"): "Date from",
            ("date", "lteq"): "Date to",
            ("deadline", "gteq"): "Due date from",
            ("deadline", "lteq"): "Due date to",
        }
        for predicate in self.active_predicates:
            label = labels.get((predicate.field, predicate.operator))
            if label:
                parts.append(f"{label} {predicate.value}")

        return ", ".join(parts)
