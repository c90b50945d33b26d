"""
Abstract base class defining the invoice API contract.

Every call either returns a value or raises an ``ApiError`` subclass
chosen by HTTP status (see ``invoice_workbench.errors``). Workflows
classify those errors into outcomes; nothing here retries.

Implementations:
- DemoInvoiceApi: In-memory backend seeded with demo data
- HttpInvoiceApi: REST client built on requests
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from invoice_workbench.models.invoice import InvoicePage, ServerInvoice


class InvoiceApi(ABC):
    """Abstract base class for invoice persistence."""

    @abstractmethod
    def create_invoice(self, payload: Mapping[str, Any]) -> ServerInvoice:
        """Create an invoice from a create payload and return it."""

    @abstractmethod
    def update_invoice(self, invoice_id: str, payload: Mapping[str, Any]) -> ServerInvoice:
        """
        Apply an update payload atomically and return the updated invoice.

        Args:
            invoice_id: Identifier of the invoice to update.
            payload: Header fields and ``invoice_lines_attributes``
                instructions; fields absent from the payload are unchanged.
        """

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> None:
        """Delete an invoice."""

    @abstractmethod
    def fetch_invoices(self, params: Mapping[str, Any]) -> InvoicePage:
        """
        Return one page of invoices.

        Args:
            params: ``QueryDescriptor.as_params()`` output.
        """

    @abstractmethod
    def fetch_invoice(self, invoice_id: str) -> ServerInvoice:
        """Return a single invoice."""
