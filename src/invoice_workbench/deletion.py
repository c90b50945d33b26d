"""
Invoice deletion with a confirmation step.

    idle ──request──▶ confirm_pending ──confirm──▶ requesting ──▶ outcome
      ▲                     │                                       │
      └────────cancel───────┘◀──────────────────────────────────────┘

The outcome of the last request stays readable (``outcome``, ``notice``,
``announcement``) after the dialog closes. Every terminal outcome closes
the dialog; ``succeeded``, ``already_gone`` and ``blocked`` also refresh the
list since what the user sees is stale.
"""

from enum import Enum
from typing import Callable

from invoice_workbench.errors import ApiError, AuthError, ConflictError, NotFoundError
from invoice_workbench.lib import logs
from invoice_workbench.models.common import Notice, NoticeVariant
from invoice_workbench.models.invoice import ServerInvoice
from invoice_workbench.services.invoice_api import InvoiceApi

LOG = logs.logger(__file__)

ALREADY_DELETED_MESSAGE = "This invoice has already been deleted"
BLOCKED_MESSAGE = "Cannot delete finalized invoice"
FAILED_MESSAGE = "Failed to delete invoice. Please try again."


class DeletionState(str, Enum):
    IDLE = "idle"
    CONFIRM_PENDING = "confirm_pending"
    REQUESTING = "requesting"


class DeletionOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    ALREADY_GONE = "already_gone"
    BLOCKED = "blocked"
    FAILED = "failed"


class DeletionWorkflow:
    """
    Confirm-then-delete flow for one invoice at a time.

    Args:
        api: Invoice API collaborator.
        on_refresh: Called when the invoice list should be refetched.
    """

    def __init__(self, api: InvoiceApi, on_refresh: Callable[[], None] | None = None) -> None:
        self.api = api
        self.on_refresh = on_refresh
        self.state = DeletionState.IDLE
        self.invoice: ServerInvoice | None = None
        self.outcome: DeletionOutcome | None = None
        self.notice: Notice | None = None
        self.announcement = ""

    @property
    def dialog_open(self) -> bool:
        return self.state is not DeletionState.IDLE

    @property
    def is_deleting(self) -> bool:
        return self.state is DeletionState.REQUESTING

    def request(self, invoice: ServerInvoice) -> None:
        """Ask for confirmation before deleting invoice."""
        if self.is_deleting:
            return
        self.invoice = invoice
        self.state = DeletionState.CONFIRM_PENDING

    def cancel(self) -> None:
        if self.is_deleting:
            return
        self._close()

    def confirm(self) -> DeletionOutcome | None:
        """
        Delete the invoice awaiting confirmation.

        Returns:
            The outcome, or None when nothing was awaiting confirmation.
        """
        if self.state is not DeletionState.CONFIRM_PENDING or self.invoice is None:
            return None

        invoice_number = self.invoice.invoice_number
        self.state = DeletionState.REQUESTING
        try:
            self.api.delete_invoice(self.invoice.id)
        except NotFoundError:
            self._finish(DeletionOutcome.ALREADY_GONE, ALREADY_DELETED_MESSAGE, NoticeVariant.WARNING,
                         "Invoice was already deleted", refresh=True)
        except (ConflictError, AuthError) as exc:
            if exc.status_code == 401:
                self._fail(exc)
            else:
                self._finish(DeletionOutcome.BLOCKED, BLOCKED_MESSAGE, NoticeVariant.DANGER,
                             BLOCKED_MESSAGE, refresh=True)
        except ApiError as exc:
            self._fail(exc)
        else:
            self._finish(DeletionOutcome.SUCCEEDED, f"Invoice #{invoice_number} has been deleted",
                         NoticeVariant.SUCCESS, f"Invoice #{invoice_number} deleted successfully", refresh=True)
        LOG.info("confirm - invoice:%s outcome:%s", invoice_number, self.outcome.value)
        return self.outcome

    def _fail(self, exc: ApiError) -> None:
        LOG.error("Failed to delete invoice: %s (status %s)", exc.message, exc.status_code)
        self._finish(DeletionOutcome.FAILED, FAILED_MESSAGE, NoticeVariant.DANGER,
                     "Failed to delete invoice", refresh=False)

    def _finish(
        self,
        outcome: DeletionOutcome,
        message: str,
        variant: NoticeVariant,
        announcement: str,
        refresh: bool,
    ) -> None:
        self.outcome = outcome
        self.notice = Notice(message, variant)
        self.announcement = announcement
        self._close()
        if refresh and self.on_refresh is not None:
            self.on_refresh()

    def _close(self) -> None:
        self.state = DeletionState.IDLE
        self.invoice = None
