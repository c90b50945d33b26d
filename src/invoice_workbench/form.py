"""
Invoice form session.

Ties together everything one create or edit session needs: the initial
values (restored draft, server invoice or defaults), the line-item editor,
debounced autosave, live totals and submission. Every edit made through
the session marks the form dirty, clears the edited field's error and
restarts the autosave window.

The draft is restored before autosave is armed, so a freshly opened
session can never overwrite a restored draft.
"""

from datetime import date
from typing import Any

from invoice_workbench.calculations import (
    InvoiceTotals,
    LineItemCalculation,
    calculate_invoice_totals,
    calculate_per_line,
)
from invoice_workbench.drafts import (
    AutosaveDebouncer,
    DraftStore,
    draft_key,
    has_unsaved_data,
    initialize_form,
)
from invoice_workbench.editor import LineItemEditor
from invoice_workbench.lib import logs
from invoice_workbench.lib.timers import Scheduler
from invoice_workbench.models.common import FormErrors
from invoice_workbench.models.invoice import Customer, LineItem, Product, ServerInvoice
from invoice_workbench.services.invoice_api import InvoiceApi
from invoice_workbench.submission import SubmissionReconciler, SubmitOutcome, SubmitSuccess
from invoice_workbench.utils import parse_date
from invoice_workbench.validation import validate_line_item

LOG = logs.logger(__file__)


class InvoiceFormSession:
    """
    One open invoice form.

    Args:
        api: Invoice API collaborator.
        draft_store: Draft persistence.
        server_invoice: Invoice being edited; None to create a new one.
        scheduler: Timer source for autosave; a real timer when omitted.
        today: Date a new invoice defaults to.
    """

    def __init__(
        self,
        api: InvoiceApi,
        draft_store: DraftStore,
        server_invoice: ServerInvoice | None = None,
        scheduler: Scheduler | None = None,
        today: date | None = None,
    ) -> None:
        self.server_invoice = server_invoice
        self.key = draft_key(server_invoice.id if server_invoice else None)
        self.draft_store = draft_store
        self.values, self.restored = initialize_form(draft_store, self.key, server_invoice, today)
        self.errors = FormErrors()
        self.editor = LineItemEditor(self.values, self.errors)
        self.reconciler = SubmissionReconciler(api, draft_store, self.key, server_invoice)
        self.autosave = AutosaveDebouncer(draft_store, self.key, scheduler)
        self.autosave.mark_restored()
        self.dirty = False
        self.submit_error: str | None = None
        self.closed = False
        LOG.info("open - key:%s restored:%s", self.key, self.restored)

    @property
    def is_edit_mode(self) -> bool:
        return self.server_invoice is not None

    @property
    def totals(self) -> InvoiceTotals:
        return calculate_invoice_totals(self.values.line_items)

    @property
    def line_calculations(self) -> list[LineItemCalculation]:
        return calculate_per_line(self.values.line_items)

    @property
    def is_submitting(self) -> bool:
        return self.reconciler.is_submitting

    # Header fields

    def set_customer(self, customer: Customer | None) -> None:
        self.values.customer = customer
        self._changed("customer")

    def set_date(self, value: Any) -> None:
        self.values.date = parse_date(value)
        self._changed("date")

    def set_deadline(self, value: Any) -> None:
        self.values.deadline = parse_date(value)
        self._changed("deadline")

    def set_paid(self, paid: bool) -> None:
        self.values.paid = bool(paid)
        self._changed()

    # Line items

    def select_product(self, index: int, product: Product | None) -> LineItem:
        line = self.editor.select_product(index, product)
        self._changed()
        return line

    def add_line(self) -> LineItem | None:
        line = self.editor.add()
        if line is not None:
            self._changed()
        return line

    def remove_line(self, index: int) -> bool:
        removed = self.editor.remove(index)
        if removed:
            self._changed()
        return removed

    def duplicate_line(self, index: int) -> LineItem | None:
        line = self.editor.duplicate(index)
        if line is not None:
            self._changed()
        return line

    def update_line(self, index: int, **changes: Any) -> LineItem:
        line = self.editor.update(index, **changes)
        self._changed()
        return line

    def blur_line(self, index: int) -> dict[str, str]:
        """Validate one line when it loses focus; returns its errors."""
        found = validate_line_item(self.editor.items[index], index)
        for path, message in found.items():
            self.errors.set(path, message, source="client")
        return found

    # Lifecycle

    def submit(self, finalize: bool = False) -> SubmitOutcome:
        self.submit_error = None
        outcome = self.reconciler.submit(self.values, finalize=finalize, errors=self.errors)
        if isinstance(outcome, SubmitSuccess):
            self.autosave.cancel()
            self.dirty = False
            self.closed = True
        else:
            self.submit_error = outcome.message
        return outcome

    def needs_cancel_confirmation(self) -> bool:
        return has_unsaved_data(self.values, self.dirty)

    def discard(self) -> None:
        """Abandon the session and drop its draft."""
        self.autosave.cancel()
        self.draft_store.discard(self.key)
        self.closed = True

    def close(self) -> None:
        """Leave the form; the pending autosave is dropped, the draft is kept."""
        self.autosave.cancel()
        self.closed = True

    def _changed(self, path: str | None = None) -> None:
        if path is not None:
            self.errors.clear(path)
        self.dirty = True
        self.autosave.notify(self.values)
