from invoice_workbench.deletion import DeletionOutcome, DeletionWorkflow
from invoice_workbench.errors import api_error_for_status
from invoice_workbench.models.common import NoticeVariant


class _DeleteApi:
    def __init__(self, error=None):
        self.error = error
        self.deleted = []

    def delete_invoice(self, invoice_id):
        self.deleted.append(invoice_id)
        if self.error is not None:
            raise self.error


def _workflow(api):
    refreshes = []
    return DeletionWorkflow(api, on_refresh=lambda: refreshes.append(True)), refreshes


def test_request_and_cancel(server_invoice):
    workflow, _ = _workflow(_DeleteApi())

    workflow.request(server_invoice)
    assert workflow.dialog_open
    workflow.cancel()

    assert not workflow.dialog_open
    assert workflow.confirm() is None


def test_successful_delete(server_invoice):
    api = _DeleteApi()
    workflow, refreshes = _workflow(api)
    workflow.request(server_invoice)

    assert workflow.confirm() is DeletionOutcome.SUCCEEDED

    assert api.deleted == ["101"]
    assert workflow.notice.message == "Invoice #101 has been deleted"
    assert workflow.notice.variant is NoticeVariant.SUCCESS
    assert workflow.announcement == "Invoice #101 deleted successfully"
    assert not workflow.dialog_open
    assert not workflow.is_deleting
    assert refreshes == [True]


def test_already_deleted_is_a_warning(server_invoice):
    workflow, refreshes = _workflow(_DeleteApi(api_error_for_status(404)))
    workflow.request(server_invoice)

    assert workflow.confirm() is DeletionOutcome.ALREADY_GONE
    assert workflow.notice.message == "This invoice has already been deleted"
    assert workflow.notice.variant is NoticeVariant.WARNING
    assert not workflow.notice.is_error
    assert not workflow.dialog_open
    assert refreshes == [True]


def test_finalized_invoice_is_blocked(server_invoice):
    for status in (409, 403):
        workflow, refreshes = _workflow(_DeleteApi(api_error_for_status(status)))
        workflow.request(server_invoice)

        assert workflow.confirm() is DeletionOutcome.BLOCKED
        assert workflow.notice.message == "Cannot delete finalized invoice"
        assert workflow.notice.is_error
        assert not workflow.dialog_open
        assert refreshes == [True]


def test_other_failures(server_invoice):
    workflow, refreshes = _workflow(_DeleteApi(api_error_for_status(500)))
    workflow.request(server_invoice)

    assert workflow.confirm() is DeletionOutcome.FAILED
    assert workflow.notice.message == "Failed to delete invoice. Please try again."
    assert not workflow.dialog_open
    assert refreshes == []


def test_delete_against_demo_backend(demo_api):
    workflow = DeletionWorkflow(demo_api)

    workflow.request(demo_api.fetch_invoice("102"))
    assert workflow.confirm() is DeletionOutcome.SUCCEEDED

    workflow.request(demo_api.fetch_invoice("100"))
    assert workflow.confirm() is DeletionOutcome.BLOCKED
