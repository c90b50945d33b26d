"""Invoice list fetching driven by the list query state."""

from enum import Enum

from invoice_workbench.errors import ApiError
from invoice_workbench.lib import logs
from invoice_workbench.models.common import PaginationState
from invoice_workbench.models.invoice import ServerInvoice
from invoice_workbench.query import ListQueryController
from invoice_workbench.services.invoice_api import InvoiceApi

LOG = logs.logger(__file__)


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class InvoiceListController:
    """
    Fetches the page of invoices described by a ``ListQueryController``.

    Failures never raise: they leave the previous page in place and set
    ``status`` to error with a user-facing ``error`` message.
    """

    def __init__(self, api: InvoiceApi, query: ListQueryController | None = None) -> None:
        self.api = api
        self.query = query or ListQueryController()
        self.invoices: list[ServerInvoice] = []
        self.pagination = PaginationState(page_size=self.query.page_size)
        self.status = FetchStatus.IDLE
        self.error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is FetchStatus.LOADING

    def refresh(self) -> bool:
        """Fetch the current page; returns True on success."""
        descriptor = self.query.descriptor()
        self.status = FetchStatus.LOADING
        self.error = None
        try:
            page = self.api.fetch_invoices(descriptor.as_params())
        except ApiError as exc:
            LOG.error("Failed to fetch invoices: %s (status %s)", exc.message, exc.status_code)
            self.status = FetchStatus.ERROR
            self.error = exc.message
            return False

        self.invoices = list(page.items)
        self.pagination = PaginationState(
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
            total_entries=page.total_entries,
        )
        self.status = FetchStatus.SUCCESS
        LOG.info(
            "refresh - page:%s/%s items:%s key:%s",
            page.page,
            page.total_pages,
            len(self.invoices),
            descriptor.cache_key()[:12],
        )
        return True

    def apply_filters(self) -> bool:
        self.query.apply_filters()
        return self.refresh()

    def clear_filters(self) -> bool:
        self.query.clear_filters()
        return self.refresh()

    def toggle_sort(self, column: str) -> bool:
        self.query.toggle_sort(column)
        return self.refresh()

    def set_page(self, page: int) -> bool:
        self.query.set_page(page)
        return self.refresh()
