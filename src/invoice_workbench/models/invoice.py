"""
Invoice domain models and serialization helpers.

The hierarchy mirrors what the invoice form edits and what the API returns:

    InvoiceFormValues (editable draft)
    ├── Customer
    └── LineItem[] ── Product

    ServerInvoice (read-only, fetched for edit)
    ├── Customer
    └── ServerInvoiceLine[]

Money and quantities are ``Decimal``. Draft serialization produces the
persisted shape ``{customer, date, deadline, paid, finalized, lineItems}``;
deserialization raises ``KeyError``/``TypeError``/``ValueError`` on malformed
input and leaves the decision of what to do about it to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Sequence

from invoice_workbench.utils import ZERO, parse_date, to_decimal

DEFAULT_UNIT = "piece"


class VatRate(str, Enum):
    """VAT rates accepted by the API, valued as the API spells them."""

    ZERO = "0"
    REDUCED = "5.5"
    INTERMEDIATE = "10"
    STANDARD = "20"

    @property
    def percent(self) -> Decimal:
        return Decimal(self.value)

    @classmethod
    def parse(cls, value: Any) -> "VatRate":
        """
        Resolve a rate from a string or number ("20", 20, 20.0, "5.50").

        Raises:
            ValueError: If the value is not one of the enumerated rates.
        """
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.ZERO
        wanted = to_decimal(value)
        for rate in cls:
            if rate.percent == wanted:
                return rate
        raise ValueError(f"Unsupported VAT rate: {value!r}")


def _as_id(value: Any) -> Any:
    """Normalize identifiers from forms and payloads: digit strings become ints."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


@dataclass(slots=True)
class Customer:
    """A customer selected from the catalog lookup."""

    id: Any
    first_name: str = ""
    last_name: str = ""
    label: str = ""
    address: str = ""
    zip_code: str = ""
    city: str = ""
    country: str = ""
    country_code: str = ""

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.label

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "label": self.label,
            "address": self.address,
            "zip_code": self.zip_code,
            "city": self.city,
            "country": self.country,
            "country_code": self.country_code,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Customer":
        if not isinstance(data, Mapping):
            raise TypeError(f"Customer must be a mapping, got {type(data).__name__}")
        first_name = data.get("first_name") or ""
        last_name = data.get("last_name") or ""
        return cls(
            id=data["id"],
            first_name=first_name,
            last_name=last_name,
            label=data.get("label") or f"{first_name} {last_name}".strip(),
            address=data.get("address") or "",
            zip_code=data.get("zip_code") or "",
            city=data.get("city") or "",
            country=data.get("country") or "",
            country_code=data.get("country_code") or "",
        )


@dataclass(slots=True)
class Product:
    """A catalog product; selecting one populates a line item."""

    id: Any
    label: str = ""
    unit: str = DEFAULT_UNIT
    vat_rate: VatRate = VatRate.ZERO
    unit_price: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "unit": self.unit,
            "vat_rate": self.vat_rate.value,
            "unit_price": str(self.unit_price),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        """Build from a draft entry or an API product (``unit_price_without_tax``)."""
        if not isinstance(data, Mapping):
            raise TypeError(f"Product must be a mapping, got {type(data).__name__}")
        price = data.get("unit_price", data.get("unit_price_without_tax"))
        return cls(
            id=data["id"],
            label=data.get("label") or "",
            unit=data.get("unit") or DEFAULT_UNIT,
            vat_rate=VatRate.parse(data.get("vat_rate")),
            unit_price=to_decimal(price),
        )


@dataclass(slots=True)
class LineItem:
    """
    One billable row of the invoice being edited.

    Attributes:
        product: Selected catalog product, None until one is chosen.
        origin_line_id: Identifier of the persisted line this row mirrors;
            None for rows added during the current edit.
        marked_for_deletion: Row is kept in the form but will be destroyed
            on submit.
    """

    product: Product | None = None
    label: str = ""
    quantity: Decimal = Decimal("1")
    unit: str = DEFAULT_UNIT
    unit_price: Decimal = ZERO
    vat_rate: VatRate = VatRate.ZERO
    origin_line_id: str | None = None
    marked_for_deletion: bool = False

    @property
    def product_ref(self) -> Any:
        return self.product.id if self.product else None

    def copy(self) -> "LineItem":
        """Structural copy; the product is copied, not shared."""
        product = replace(self.product) if self.product else None
        return replace(self, product=product)

    def to_dict(self) -> dict:
        return {
            "id": self.origin_line_id,
            "product": self.product.to_dict() if self.product else None,
            "product_id": self.product_ref,
            "label": self.label,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "unit_price": str(self.unit_price),
            "vat_rate": self.vat_rate.value,
            "_destroy": self.marked_for_deletion,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineItem":
        if not isinstance(data, Mapping):
            raise TypeError(f"Line item must be a mapping, got {type(data).__name__}")
        product = data.get("product")
        origin_line_id = data.get("id")
        return cls(
            product=Product.from_dict(product) if product else None,
            label=data.get("label") or "",
            quantity=to_decimal(data.get("quantity", 1)),
            unit=data.get("unit") or DEFAULT_UNIT,
            unit_price=to_decimal(data.get("unit_price")),
            vat_rate=VatRate.parse(data.get("vat_rate")),
            origin_line_id=str(origin_line_id) if origin_line_id is not None else None,
            marked_for_deletion=bool(data.get("_destroy", False)),
        )


def default_line_item() -> LineItem:
    """Return the blank row a new invoice (or the add button) starts with."""
    return LineItem()


@dataclass(slots=True)
class InvoiceFormValues:
    """Values of the invoice form; the draft that gets autosaved."""

    customer: Customer | None = None
    date: date | None = None
    deadline: date | None = None
    paid: bool = False
    finalized: bool = False
    line_items: list[LineItem] = field(default_factory=list)

    def to_draft_dict(self) -> dict:
        """Serialize to the persisted draft shape."""
        return {
            "customer": self.customer.to_dict() if self.customer else None,
            "date": self.date.isoformat() if self.date else None,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "paid": self.paid,
            "finalized": self.finalized,
            "lineItems": [item.to_dict() for item in self.line_items],
        }

    @classmethod
    def from_draft_dict(cls, data: Mapping[str, Any]) -> "InvoiceFormValues":
        """
        Deserialize a persisted draft.

        Raises:
            ValueError: If the payload does not have the draft shape.
        """
        if not is_draft_shape(data):
            raise ValueError("Payload does not have the draft shape")
        customer = data["customer"]
        return cls(
            customer=Customer.from_dict(customer) if customer is not None else None,
            date=parse_date(data["date"]),
            deadline=parse_date(data["deadline"]),
            paid=data["paid"],
            finalized=data["finalized"],
            line_items=[LineItem.from_dict(item) for item in data["lineItems"]],
        )


_DRAFT_KEYS = ("customer", "date", "deadline", "paid", "finalized", "lineItems")


def is_draft_shape(data: Any) -> bool:
    """Structural check of a decoded draft payload."""
    if not isinstance(data, Mapping):
        return False
    if any(key not in data for key in _DRAFT_KEYS):
        return False
    return (
        (data["customer"] is None or isinstance(data["customer"], Mapping))
        and (data["date"] is None or isinstance(data["date"], str))
        and (data["deadline"] is None or isinstance(data["deadline"], str))
        and isinstance(data["paid"], bool)
        and isinstance(data["finalized"], bool)
        and isinstance(data["lineItems"], list)
    )


@dataclass(slots=True)
class ServerInvoiceLine:
    """A persisted invoice line as returned by the API."""

    id: str
    product_id: Any
    label: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    vat_rate: VatRate
    product: Product | None = None

    def to_line_item(self) -> LineItem:
        product = self.product
        if product is None and self.product_id is not None:
            product = Product(
                id=self.product_id,
                label=self.label,
                unit=self.unit,
                vat_rate=self.vat_rate,
                unit_price=self.unit_price,
            )
        return LineItem(
            product=product,
            label=self.label,
            quantity=self.quantity,
            unit=self.unit,
            unit_price=self.unit_price,
            vat_rate=self.vat_rate,
            origin_line_id=self.id,
        )

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ServerInvoiceLine":
        product = data.get("product")
        return cls(
            id=str(data["id"]),
            product_id=_as_id(data.get("product_id")),
            label=data.get("label") or "",
            quantity=to_decimal(data.get("quantity")),
            unit=data.get("unit") or DEFAULT_UNIT,
            unit_price=to_decimal(data.get("price", data.get("unit_price"))),
            vat_rate=VatRate.parse(data.get("vat_rate")),
            product=Product.from_dict(product) if product else None,
        )


@dataclass(slots=True)
class ServerInvoice:
    """
    A previously persisted invoice. Read-only: the edit layer only diffs
    against it.
    """

    id: str
    customer_id: Any
    date: date | None
    deadline: date | None
    finalized: bool
    paid: bool
    lines: Sequence[ServerInvoiceLine]
    customer: Customer | None = None
    total: Decimal = ZERO
    tax: Decimal = ZERO

    @property
    def invoice_number(self) -> str:
        return self.id

    @property
    def line_ids(self) -> list[str]:
        """Identifiers of the persisted lines, in server order."""
        return [line.id for line in self.lines]

    def to_form_values(self) -> InvoiceFormValues:
        """Convert to editable form values. Edited invoices start unfinalized."""
        line_items = [line.to_line_item() for line in self.lines]
        return InvoiceFormValues(
            customer=replace(self.customer) if self.customer else None,
            date=self.date,
            deadline=self.deadline,
            paid=self.paid,
            finalized=False,
            line_items=line_items or [default_line_item()],
        )

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ServerInvoice":
        customer = data.get("customer")
        return cls(
            id=str(data["id"]),
            customer_id=_as_id(data.get("customer_id")),
            customer=Customer.from_dict(customer) if customer else None,
            date=parse_date(data.get("date")),
            deadline=parse_date(data.get("deadline")),
            finalized=bool(data.get("finalized", False)),
            paid=bool(data.get("paid", False)),
            lines=[ServerInvoiceLine.from_api(line) for line in data.get("invoice_lines") or []],
            total=to_decimal(data.get("total")),
            tax=to_decimal(data.get("tax")),
        )


@dataclass(slots=True)
class InvoicePage:
    """Represents a single page of invoices."""

    items: Sequence[ServerInvoice]
    page: int
    page_size: int
    total_pages: int
    total_entries: int

    @property
    def has_more(self) -> bool:
        """Return True when additional pages are available."""
        return self.page < self.total_pages

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "InvoicePage":
        pagination = data.get("pagination") or {}
        items = [ServerInvoice.from_api(item) for item in data.get("invoices") or []]
        return cls(
            items=items,
            page=int(pagination.get("page", 1)),
            page_size=int(pagination.get("page_size", len(items))),
            total_pages=int(pagination.get("total_pages", 1)),
            total_entries=int(pagination.get("total_entries", len(items))),
        )
