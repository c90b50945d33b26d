"""
Data models for the invoice workbench.

This package provides:
- Invoice domain models (InvoiceFormValues, LineItem, Product, Customer,
  ServerInvoice, InvoicePage)
- List query models (FilterSelection, Predicate, QueryDescriptor)
- UI-facing state (PaginationState, Notice, FormErrors)

All models are Python dataclasses.
"""

from invoice_workbench.models.common import (
    FilterSelection,
    FormErrors,
    Notice,
    NoticeVariant,
    PaginationState,
    PaymentFilter,
    Predicate,
    QueryDescriptor,
    SortDirection,
    StatusFilter,
)
from invoice_workbench.models.invoice import (
    Customer,
    InvoiceFormValues,
    InvoicePage,
    LineItem,
    Product,
    ServerInvoice,
    ServerInvoiceLine,
    VatRate,
    default_line_item,
)

__all__ = [
    "Customer",
    "FilterSelection",
    "FormErrors",
    "InvoiceFormValues",
    "InvoicePage",
    "LineItem",
    "Notice",
    "NoticeVariant",
    "PaginationState",
    "PaymentFilter",
    "Predicate",
    "Product",
    "QueryDescriptor",
    "ServerInvoice",
    "ServerInvoiceLine",
    "SortDirection",
    "StatusFilter",
    "VatRate",
    "default_line_item",
]
