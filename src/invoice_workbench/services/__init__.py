"""
Invoice backend selection.

Every workflow (list, form, delete, finalize) talks to one ``InvoiceApi``.
``get_invoice_api`` resolves which one from ``INVOICE_WORKBENCH_API``:

- demo: in-memory invoicing server with 404/409/422 semantics; all
  sessions of the process share its customers, products and invoices
- http: REST client for ``INVOICE_API_BASE_URL``, authenticated with
  ``INVOICE_API_TOKEN`` when set

Backends are built once per kind and reused, so the demo data survives
between page loads until the process restarts.
"""

from functools import cache
from typing import Callable, Dict

from invoice_workbench import config
from invoice_workbench.lib import logs
from invoice_workbench.services.invoice_api import InvoiceApi
from invoice_workbench.services.invoice_api_demo import DemoInvoiceApi
from invoice_workbench.services.invoice_api_http import HttpInvoiceApi

LOG = logs.logger(__file__)

_BACKENDS: Dict[str, Callable[[], InvoiceApi]] = {
    "demo": DemoInvoiceApi,
    "http": HttpInvoiceApi.from_env,
}


@cache
def get_invoice_api(kind: str | None = None) -> InvoiceApi:
    """
    Return the invoice backend for kind, or the configured one.

    Raises:
        ValueError: If the kind names no known backend.
    """
    backend = (kind or config.API_KIND).strip().lower()
    factory = _BACKENDS.get(backend)
    if factory is None:
        raise ValueError(f"Unknown invoice backend {backend!r}; expected one of {sorted(_BACKENDS)}")
    LOG.info("Invoice backend - %s (requested:%s)", backend, kind)
    return factory()


__all__ = ["InvoiceApi", "DemoInvoiceApi", "HttpInvoiceApi", "get_invoice_api"]
