"""
Shared state models for the invoice workbench.

This module defines the small value objects that flow between the
controllers and the presentation shell:

- FilterSelection / Predicate / QueryDescriptor for the invoice list query
- PaginationState for list paging
- Notice for transient toast notifications
- FormErrors, the single field-level error channel fed by both local
  validation and server-reported (422) errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterator

from invoice_workbench.lib import objects


class StatusFilter(str, Enum):
    ALL = "all"
    DRAFT = "draft"
    FINALIZED = "finalized"


class PaymentFilter(str, Enum):
    ALL = "all"
    PAID = "paid"
    UNPAID = "unpaid"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def prefix(self) -> str:
        return "-" if self is SortDirection.DESC else "+"

    def flipped(self) -> "SortDirection":
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


@dataclass(slots=True)
class FilterSelection:
    """
    User filter selections for the invoice list.

    Date ranges are ``(start, end)`` pairs where either bound may be None.
    ``customer`` and ``product`` hold the selected catalog entities (anything
    with an ``id``) or None.
    """

    date_range: tuple[date | None, date | None] = (None, None)
    due_date_range: tuple[date | None, date | None] = (None, None)
    status: StatusFilter = StatusFilter.ALL
    payment: PaymentFilter = PaymentFilter.ALL
    customer: Any = None
    product: Any = None


@dataclass(frozen=True, slots=True)
class Predicate:
    """One ``{field, operator, value}`` filter clause."""

    field: str
    operator: str
    value: str

    def to_dict(self) -> dict:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass(frozen=True, slots=True)
class QueryDescriptor:
    """
    Canonical description of a list request: filters, sort, page.

    Equal descriptors serialize byte-identically, which is what request
    caching and exact-parameter assertions rely on.
    """

    predicates: tuple[Predicate, ...] = ()
    sort: str = "-date"
    page: int = 1
    page_size: int = 10

    def filter_json(self) -> str:
        """JSON-encoded array of predicates, compact and key-ordered."""
        return objects.to_json([p.to_dict() for p in self.predicates], canonical=True)

    def as_params(self) -> dict:
        """Request parameters for the list-fetch collaborator."""
        params: dict[str, Any] = {}
        if self.predicates:
            params["filter"] = self.filter_json()
        params["sort"] = self.sort
        params["page"] = self.page
        params["page_size"] = self.page_size
        return params

    def cache_key(self) -> str:
        """Stable hash of the request parameters."""
        return objects.hash(self.as_params()).hexdigest()


@dataclass
class PaginationState:
    """
    Tracks pagination state for a paginated list.

    Attributes:
        page: Current page number (1-indexed).
        page_size: Number of items per page.
        total_pages: Number of pages reported by the server.
        total_entries: Total number of items available.
    """

    page: int = 1
    page_size: int = 10
    total_pages: int = 0
    total_entries: int = 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    def next_page(self) -> int:
        """Return the next page number."""
        return self.page + 1


class NoticeVariant(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True, slots=True)
class Notice:
    """A transient toast notification."""

    message: str
    variant: NoticeVariant

    @property
    def is_error(self) -> bool:
        return self.variant is NoticeVariant.DANGER


@dataclass
class FormErrors:
    """
    Field-level error channel of the invoice form.

    Keys are field paths: ``customer``, ``date``, ``deadline`` or
    ``lineItems.<index>.<field>``. Each entry remembers whether it came
    from local validation or from the server.
    """

    errors: dict[str, str] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)

    def set(self, path: str, message: str, source: str = "manual") -> None:
        self.errors[path] = message
        self.sources[path] = source

    def get(self, path: str) -> str | None:
        return self.errors.get(path)

    def clear(self, *paths: str) -> None:
        """Clear the given paths, or everything when called without arguments."""
        if not paths:
            self.errors.clear()
            self.sources.clear()
            return
        for path in paths:
            self.errors.pop(path, None)
            self.sources.pop(path, None)

    def clear_line(self, index: int) -> None:
        prefix = f"lineItems.{index}."
        self.clear(*[path for path in self.errors if path.startswith(prefix)])

    def shift_lines(self, start: int, offset: int) -> None:
        """Re-key line errors at or after ``start`` by ``offset`` rows."""
        moved: dict[str, tuple[str, str]] = {}
        for path in list(self.errors):
            index = line_index(path)
            if index is not None and index >= start:
                rest = path.split(".", 2)[2]
                moved[f"lineItems.{index + offset}.{rest}"] = (
                    self.errors.pop(path),
                    self.sources.pop(path),
                )
        for path, (message, source) in moved.items():
            self.set(path, message, source)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __contains__(self, path: str) -> bool:
        return path in self.errors

    def __iter__(self) -> Iterator[str]:
        return iter(self.errors)

    def to_dict(self) -> dict[str, str]:
        return dict(self.errors)


def line_index(path: str) -> int | None:
    """Return the row index of a ``lineItems.<n>.<field>`` path, else None."""
    parts = path.split(".", 2)
    if len(parts) == 3 and parts[0] == "lineItems" and parts[1].isdigit():
        return int(parts[1])
    return None
