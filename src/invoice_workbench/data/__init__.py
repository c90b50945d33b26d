"""
Static demo data for the invoice workbench.

This package contains fixture data used by DemoInvoiceApi for development,
testing and demonstrations without a running invoicing backend.

Modules:
- demo_catalog: customers, products and invoices in the API's JSON shape
"""
