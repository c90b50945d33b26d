"""
Reflex state for the invoice workbench.

The states hold only serializable values for the frontend; every operation
is delegated to the controllers (list query and fetch, deletion and
finalize dialogs, form session), kept per browser client in module-level
registries.
"""

from functools import cache

import reflex as rx

from invoice_workbench import config
from invoice_workbench.calculations import LineItemCalculation, format_currency
from invoice_workbench.deletion import DeletionWorkflow
from invoice_workbench.drafts import DraftStore
from invoice_workbench.finalization import FinalizeWorkflow
from invoice_workbench.form import InvoiceFormSession
from invoice_workbench.lib import logs
from invoice_workbench.lib.storage import DiskStore
from invoice_workbench.listing import InvoiceListController
from invoice_workbench.models.common import Notice, PaymentFilter, StatusFilter
from invoice_workbench.models.invoice import Customer, LineItem, Product, ServerInvoice
from invoice_workbench.services import get_invoice_api
from invoice_workbench.submission import SubmitSuccess
from invoice_workbench.utils import format_api_date, parse_date, payment_status_label

LOG = logs.logger(__file__)


class InvoiceRowModel(rx.Base):
    """One row of the invoice table."""

    id: str = ""
    customer: str = ""
    date: str = ""
    deadline: str = ""
    total: str = ""
    tax: str = ""
    finalized: bool = False
    paid: bool = False
    payment_label: str = ""
    payment_color: str = ""


class LineRowModel(rx.Base):
    """One editable line of the invoice form with its computed amounts."""

    product_id: str = ""
    label: str = ""
    quantity: str = "1"
    unit: str = ""
    unit_price: str = "0"
    vat_rate: str = "0"
    subtotal: str = ""
    vat_amount: str = ""
    total: str = ""
    persisted: bool = False
    marked_for_deletion: bool = False


def invoice_row(invoice: ServerInvoice) -> InvoiceRowModel:
    label, color = payment_status_label(invoice.paid, invoice.deadline)
    return InvoiceRowModel(
        id=invoice.id,
        customer=invoice.customer.display_name if invoice.customer else "",
        date=format_api_date(invoice.date) or "",
        deadline=format_api_date(invoice.deadline) or "",
        total=format_currency(invoice.total),
        tax=format_currency(invoice.tax),
        finalized=invoice.finalized,
        paid=invoice.paid,
        payment_label=label,
        payment_color=color,
    )


def line_row(item: LineItem, calc: LineItemCalculation) -> LineRowModel:
    return LineRowModel(
        product_id=str(item.product_ref) if item.product_ref is not None else "",
        label=item.label,
        quantity=str(item.quantity),
        unit=item.unit,
        unit_price=str(item.unit_price),
        vat_rate=item.vat_rate.value,
        subtotal=format_currency(calc.subtotal),
        vat_amount=format_currency(calc.vat_amount),
        total=format_currency(calc.total),
        persisted=item.origin_line_id is not None,
        marked_for_deletion=item.marked_for_deletion,
    )


@cache
def get_draft_store() -> DraftStore:
    """Process-wide draft store on disk."""
    return DraftStore(DiskStore(config.DRAFT_DIR))


_LIST_CONTROLLERS: dict[str, InvoiceListController] = {}
_DELETIONS: dict[str, DeletionWorkflow] = {}
_FINALIZATIONS: dict[str, FinalizeWorkflow] = {}
_FORM_SESSIONS: dict[str, InvoiceFormSession] = {}


class InvoiceListState(rx.State):
    """Invoice list: filters, sort, paging and the delete/finalize dialogs."""

    invoices: list[InvoiceRowModel] = []
    page: int = 1
    total_pages: int = 0
    total_entries: int = 0
    sort_field: str = "date"
    sort_direction: str = "desc"
    is_loading: bool = False
    error: str = ""

    status_filter: str = StatusFilter.ALL.value
    payment_filter: str = PaymentFilter.ALL.value
    date_from: str = ""
    date_to: str = ""
    due_from: str = ""
    due_to: str = ""
    filter_summary: str = ""
    has_changed_filters: bool = False

    notice_message: str = ""
    notice_variant: str = ""
    announcement: str = ""
    delete_dialog_open: bool = False
    finalize_dialog_open: bool = False
    is_deleting: bool = False
    is_finalizing: bool = False

    def _controller(self) -> InvoiceListController:
        token = self.router.session.client_token
        if token not in _LIST_CONTROLLERS:
            _LIST_CONTROLLERS[token] = InvoiceListController(get_invoice_api())
        return _LIST_CONTROLLERS[token]

    def _deletion(self) -> DeletionWorkflow:
        token = self.router.session.client_token
        if token not in _DELETIONS:
            _DELETIONS[token] = DeletionWorkflow(get_invoice_api(), on_refresh=self._controller().refresh)
        return _DELETIONS[token]

    def _finalization(self) -> FinalizeWorkflow:
        token = self.router.session.client_token
        if token not in _FINALIZATIONS:
            _FINALIZATIONS[token] = FinalizeWorkflow(get_invoice_api(), on_refresh=self._controller().refresh)
        return _FINALIZATIONS[token]

    def _sync(self) -> None:
        controller = self._controller()
        query = controller.query
        self.invoices = [invoice_row(invoice) for invoice in controller.invoices]
        self.page = controller.pagination.page
        self.total_pages = controller.pagination.total_pages
        self.total_entries = controller.pagination.total_entries
        self.sort_field = query.sort.field
        self.sort_direction = query.sort.direction.value
        self.is_loading = controller.is_loading
        self.error = controller.error or ""
        self.filter_summary = query.filter_summary()
        self.has_changed_filters = query.has_changed_filters
        self.delete_dialog_open = self._deletion().dialog_open
        self.finalize_dialog_open = self._finalization().dialog_open

    def _show(self, notice: Notice | None, announcement: str = "") -> None:
        self.notice_message = notice.message if notice else ""
        self.notice_variant = notice.variant.value if notice else ""
        self.announcement = announcement

    def _find(self, invoice_id: str) -> ServerInvoice | None:
        for invoice in self._controller().invoices:
            if invoice.id == str(invoice_id):
                return invoice
        LOG.warning("Invoice %s is not on the current page", invoice_id)
        return None

    @rx.event
    def on_load(self):
        self._controller().refresh()
        self._sync()

    @rx.event
    def choose_status(self, value: str):
        self.status_filter = value
        self._controller().query.set_filter(status=StatusFilter(value))
        self._sync()

    @rx.event
    def choose_payment(self, value: str):
        self.payment_filter = value
        self._controller().query.set_filter(payment=PaymentFilter(value))
        self._sync()

    @rx.event
    def set_date_range(self, start: str, end: str):
        self.date_from, self.date_to = start, end
        self._controller().query.set_filter(date_range=(parse_date(start), parse_date(end)))
        self._sync()

    @rx.event
    def set_due_date_range(self, start: str, end: str):
        self.due_from, self.due_to = start, end
        self._controller().query.set_filter(due_date_range=(parse_date(start), parse_date(end)))
        self._sync()

    @rx.event
    def set_customer_filter(self, customer: dict | None):
        customer = Customer.from_dict(customer) if customer else None
        self._controller().query.set_filter(customer=customer)
        self._sync()

    @rx.event
    def set_product_filter(self, product: dict | None):
        product = Product.from_dict(product) if product else None
        self._controller().query.set_filter(product=product)
        self._sync()

    @rx.event
    def apply_filters(self):
        self._controller().apply_filters()
        self._sync()

    @rx.event
    def clear_filters(self):
        self.status_filter = StatusFilter.ALL.value
        self.payment_filter = PaymentFilter.ALL.value
        self.date_from = self.date_to = self.due_from = self.due_to = ""
        self._controller().clear_filters()
        self._sync()

    @rx.event
    def sort_by(self, column: str):
        self._controller().toggle_sort(column)
        self._sync()

    @rx.event
    def go_to_page(self, page: int):
        self._controller().set_page(page)
        self._sync()

    @rx.event
    def request_delete(self, invoice_id: str):
        invoice = self._find(invoice_id)
        if invoice is not None:
            self._deletion().request(invoice)
        self._sync()

    @rx.event
    def cancel_delete(self):
        self._deletion().cancel()
        self._sync()

    @rx.event
    def confirm_delete(self):
        deletion = self._deletion()
        self.is_deleting = True
        yield
        deletion.confirm()
        self.is_deleting = False
        self._show(deletion.notice, deletion.announcement)
        self._sync()

    @rx.event
    def request_finalize(self, invoice_id: str):
        invoice = self._find(invoice_id)
        finalization = self._finalization()
        if invoice is not None and not finalization.request(invoice):
            self._show(finalization.notice)
        self._sync()

    @rx.event
    def cancel_finalize(self):
        self._finalization().cancel()
        self._sync()

    @rx.event
    def confirm_finalize(self):
        finalization = self._finalization()
        self.is_finalizing = True
        yield
        finalization.confirm()
        self.is_finalizing = False
        self._show(finalization.notice)
        self._sync()

    @rx.event
    def dismiss_notice(self):
        self._show(None)


class InvoiceFormState(rx.State):
    """Create/edit invoice form."""

    invoice_id: str = ""
    customer_name: str = ""
    date: str = ""
    deadline: str = ""
    paid: bool = False
    lines: list[LineRowModel] = []
    subtotal: str = ""
    total_vat: str = ""
    grand_total: str = ""
    vat_breakdown: dict[str, str] = {}
    errors: dict[str, str] = {}
    submit_error: str = ""
    save_state: str = "idle"
    save_error: str = ""
    restored: bool = False
    is_submitting: bool = False
    load_error: str = ""

    def _session(self) -> InvoiceFormSession | None:
        return _FORM_SESSIONS.get(self.router.session.client_token)

    def _sync(self) -> None:
        session = self._session()
        if session is None:
            return
        values = session.values
        totals = session.totals
        self.customer_name = values.customer.display_name if values.customer else ""
        self.date = format_api_date(values.date) or ""
        self.deadline = format_api_date(values.deadline) or ""
        self.paid = values.paid
        self.lines = [line_row(item, calc) for item, calc in zip(values.line_items, session.line_calculations)]
        self.subtotal = format_currency(totals.subtotal)
        self.total_vat = format_currency(totals.total_vat)
        self.grand_total = format_currency(totals.grand_total)
        self.vat_breakdown = {rate.value: format_currency(amount) for rate, amount in totals.vat_breakdown.items()}
        self.errors = session.errors.to_dict()
        self.submit_error = session.submit_error or ""
        self.save_state = session.draft_store.state.value
        self.save_error = session.draft_store.save_error or ""
        self.restored = session.restored
        self.is_submitting = session.is_submitting

    @rx.event
    def on_load(self):
        token = self.router.session.client_token
        previous = _FORM_SESSIONS.pop(token, None)
        if previous is not None:
            previous.close()

        self.invoice_id = self.router.page.params.get("id", "") or ""
        self.load_error = ""
        api = get_invoice_api()
        server_invoice = None
        if self.invoice_id:
            try:
                server_invoice = api.fetch_invoice(self.invoice_id)
            except Exception as e:
                LOG.error("Failed to load invoice %s: %s", self.invoice_id, e, exc_info=True)
                self.load_error = "Unable to load invoice. Please try again."
                return
            if server_invoice.finalized:
                self.load_error = "Finalized invoices cannot be edited"
                return
        _FORM_SESSIONS[token] = InvoiceFormSession(api, get_draft_store(), server_invoice)
        self._sync()

    @rx.event
    def change_customer(self, customer: dict | None):
        self._session().set_customer(Customer.from_dict(customer) if customer else None)
        self._sync()

    @rx.event
    def change_date(self, value: str):
        self._session().set_date(value)
        self._sync()

    @rx.event
    def change_deadline(self, value: str):
        self._session().set_deadline(value)
        self._sync()

    @rx.event
    def change_paid(self, paid: bool):
        self._session().set_paid(paid)
        self._sync()

    @rx.event
    def select_product(self, index: int, product: dict | None):
        self._session().select_product(index, Product.from_dict(product) if product else None)
        self._sync()

    @rx.event
    def update_line(self, index: int, name: str, value: str):
        self._session().update_line(index, **{name: value})
        self._sync()

    @rx.event
    def blur_line(self, index: int):
        self._session().blur_line(index)
        self._sync()

    @rx.event
    def add_line(self):
        self._session().add_line()
        self._sync()

    @rx.event
    def remove_line(self, index: int):
        self._session().remove_line(index)
        self._sync()

    @rx.event
    def duplicate_line(self, index: int):
        self._session().duplicate_line(index)
        self._sync()

    @rx.event
    def submit(self, finalize: bool = False):
        session = self._session()
        if session is None or session.is_submitting:
            return
        self.is_submitting = True
        yield
        outcome = session.submit(finalize=finalize)
        self._sync()
        if isinstance(outcome, SubmitSuccess):
            _FORM_SESSIONS.pop(self.router.session.client_token, None)
            yield rx.redirect(outcome.navigate_to)

    @rx.event
    def discard(self):
        session = _FORM_SESSIONS.pop(self.router.session.client_token, None)
        if session is not None:
            session.discard()
        return rx.redirect("/")

    @rx.event
    def close(self):
        session = _FORM_SESSIONS.pop(self.router.session.client_token, None)
        if session is not None:
            session.close()
