"""
Invoice finalization with a confirmation step.

Finalizing is an update of the single ``finalized`` flag. It has the same
dialog shape as deletion: ``request`` opens the confirmation (only for
invoices that pass ``can_finalize``), ``confirm`` sends the update and
closes the dialog whatever happens.
"""

from enum import Enum
from typing import Callable

from invoice_workbench.errors import ApiError, ConflictError
from invoice_workbench.lib import logs
from invoice_workbench.models.common import Notice, NoticeVariant
from invoice_workbench.models.invoice import ServerInvoice
from invoice_workbench.services.invoice_api import InvoiceApi
from invoice_workbench.validation import can_finalize

LOG = logs.logger(__file__)

FINALIZED_MESSAGE = "Invoice finalized successfully"
ALREADY_FINALIZED_MESSAGE = "This invoice is already finalized"
FAILED_MESSAGE = "Failed to finalize invoice. Please try again."


class FinalizeOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FinalizeWorkflow:
    def __init__(self, api: InvoiceApi, on_refresh: Callable[[], None] | None = None) -> None:
        self.api = api
        self.on_refresh = on_refresh
        self.invoice: ServerInvoice | None = None
        self.dialog_open = False
        self.is_finalizing = False
        self.outcome: FinalizeOutcome | None = None
        self.notice: Notice | None = None

    def request(self, invoice: ServerInvoice) -> bool:
        """
        Open the confirmation for invoice.

        Returns:
            False (with a warning notice) when the invoice cannot be finalized.
        """
        if self.is_finalizing:
            return False
        reasons = can_finalize(invoice)
        if reasons:
            self.notice = Notice(reasons[0], NoticeVariant.WARNING)
            return False
        self.invoice = invoice
        self.dialog_open = True
        return True

    def cancel(self) -> None:
        if self.is_finalizing:
            return
        self.dialog_open = False
        self.invoice = None

    def confirm(self) -> ServerInvoice | None:
        """Finalize the invoice awaiting confirmation; returns it on success."""
        if not self.dialog_open or self.invoice is None:
            return None

        invoice_id = self.invoice.id
        self.is_finalizing = True
        updated = None
        try:
            updated = self.api.update_invoice(invoice_id, {"finalized": True})
        except ConflictError:
            self.outcome = FinalizeOutcome.FAILED
            self.notice = Notice(ALREADY_FINALIZED_MESSAGE, NoticeVariant.DANGER)
        except ApiError as exc:
            LOG.error("Failed to finalize invoice %s: %s", invoice_id, exc.message)
            self.outcome = FinalizeOutcome.FAILED
            self.notice = Notice(FAILED_MESSAGE, NoticeVariant.DANGER)
        else:
            self.outcome = FinalizeOutcome.SUCCEEDED
            self.notice = Notice(FINALIZED_MESSAGE, NoticeVariant.SUCCESS)
        finally:
            self.is_finalizing = False
            self.dialog_open = False
            self.invoice = None

        LOG.info("confirm - invoice:%s outcome:%s", invoice_id, self.outcome.value)
        if self.outcome is FinalizeOutcome.SUCCEEDED and self.on_refresh is not None:
            self.on_refresh()
        return updated
