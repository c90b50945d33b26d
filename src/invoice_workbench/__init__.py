"""
Invoice Workbench: business logic behind an invoicing tool.

This package computes invoice totals, builds list queries, keeps durable
drafts of the invoice being edited, edits line items, submits invoices
(creating them, or reconciling edits into one atomic update) and runs the
delete/finalize confirmation workflows.

Subpackages:
- models: Data models and serialization
- services: Invoice API collaborator (demo and HTTP implementations)
- lib: Logging, serialization, storage and timer support
- data: Static demo fixtures

Main entry points:
- form.InvoiceFormSession: One create or edit session
- listing.InvoiceListController: The filtered, sorted, paged invoice list
- state: Reflex states delegating to the controllers
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
