"""
Submission of the invoice form.

``SubmissionReconciler`` turns form values into exactly one create or one
update request and classifies the result:

- ``SubmitSuccess``: the draft is discarded; the caller navigates away.
- ``ValidationFailure``: local or server (422) field errors, written into
  the form's ``FormErrors`` channel.
- ``ConflictFailure``: the invoice changed server-side since it was fetched.
- ``ConnectionFailure``: anything else; retrying may help.

The draft is kept on every failure so nothing typed is lost.

In edit mode the line items are diffed against the server invoice into
``invoice_lines_attributes`` instructions (update, create, destroy) that
the server applies atomically in the same request.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from invoice_workbench.drafts import DraftStore
from invoice_workbench.errors import ApiError, ConflictError, ServerValidationError
from invoice_workbench.lib import logs
from invoice_workbench.models.common import FormErrors, line_index
from invoice_workbench.models.invoice import InvoiceFormValues, LineItem, ServerInvoice
from invoice_workbench.services.invoice_api import InvoiceApi
from invoice_workbench.utils import format_api_date, to_decimal
from invoice_workbench.validation import validate_submission

LOG = logs.logger(__file__)

VALIDATION_MESSAGE = "Please fix the validation errors and try again."
CONFLICT_MESSAGE = "This invoice was updated by someone else. Please refresh and try again."
_CONNECTION_MESSAGE = "Unable to {action} invoice. Please check your connection and try again."
_HEADER_FIELDS = ("customer", "date", "deadline")


@dataclass(frozen=True, slots=True)
class SubmitSuccess:
    invoice: ServerInvoice
    navigate_to: str = "/"
    message: str = ""


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    field_errors: dict[str, str] = field(default_factory=dict)
    message: str = VALIDATION_MESSAGE


@dataclass(frozen=True, slots=True)
class ConflictFailure:
    message: str = CONFLICT_MESSAGE


@dataclass(frozen=True, slots=True)
class ConnectionFailure:
    message: str


SubmitOutcome = SubmitSuccess | ValidationFailure | ConflictFailure | ConnectionFailure


def _wire_id(value: Any) -> Any:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _wire_quantity(value: Any) -> int | float:
    quantity = to_decimal(value)
    if quantity == quantity.to_integral_value():
        return int(quantity)
    return float(quantity)


def build_line_instructions(
    original_ids: Iterable[Any],
    lines: Sequence[LineItem],
) -> list[dict]:
    """
    Diff the edited lines against the persisted line identifiers.

    Lines with an ``origin_line_id`` become updates, lines without one
    become creates, and every original id no longer present becomes a
    destroy instruction. Lines marked for deletion count as absent.
    """
    instructions: list[dict] = []
    kept_ids: set[str] = set()

    for line in lines:
        if line.marked_for_deletion:
            continue
        if line.origin_line_id is not None:
            kept_ids.add(str(line.origin_line_id))
            instructions.append(
                {
                    "id": _wire_id(line.origin_line_id),
                    "product_id": line.product_ref,
                    "quantity": _wire_quantity(line.quantity),
                    "label": line.label,
                }
            )
        else:
            instructions.append(
                {"product_id": line.product_ref, "quantity": _wire_quantity(line.quantity)}
            )

    for original_id in original_ids:
        if str(original_id) not in kept_ids:
            instructions.append({"id": _wire_id(str(original_id)), "_destroy": True})
    return instructions


def build_payload(
    values: InvoiceFormValues,
    finalize: bool = False,
    original_ids: Iterable[Any] | None = None,
) -> dict:
    """
    Build the create (``original_ids`` None) or update request body.
    """
    if original_ids is None:
        lines = [
            {"product_id": line.product_ref, "quantity": _wire_quantity(line.quantity)}
            for line in values.line_items
            if not line.marked_for_deletion
        ]
    else:
        lines = build_line_instructions(original_ids, values.line_items)

    return {
        "customer_id": values.customer.id if values.customer else None,
        "date": format_api_date(values.date),
        "deadline": format_api_date(values.deadline),
        "paid": bool(values.paid),
        "finalized": bool(finalize),
        "invoice_lines_attributes": lines,
    }


def sent_line_positions(lines: Sequence[LineItem]) -> list[int]:
    """
    Form index of each line sent in the payload, by payload position.

    Lines marked for deletion are not sent, so payload positions shift
    past them; destroy instructions trail the sent lines and map to no row.
    """
    return [index for index, line in enumerate(lines) if not line.marked_for_deletion]


def map_server_errors(
    field_errors: dict[str, str],
    line_positions: Sequence[int] | None = None,
) -> dict[str, str]:
    """
    Keep the server field errors that address a form field.

    ``lineItems.<n>`` keys count payload lines; ``line_positions`` (from
    ``sent_line_positions``) translates them back to form rows.
    """
    mapped: dict[str, str] = {}
    for path, message in field_errors.items():
        if path in _HEADER_FIELDS:
            mapped[path] = message
            continue
        index = line_index(path)
        if index is None:
            continue
        if line_positions is not None:
            if index >= len(line_positions):
                continue
            index = line_positions[index]
        mapped[f"lineItems.{index}.{path.split('.', 2)[2]}"] = message
    return mapped


class SubmissionReconciler:
    """
    Submit the invoice form in create or edit mode.

    Args:
        api: Invoice API collaborator.
        draft_store: Store whose draft is discarded on success.
        draft_key: Key of the draft being submitted.
        server_invoice: Invoice being edited; None in create mode.
    """

    def __init__(
        self,
        api: InvoiceApi,
        draft_store: DraftStore,
        draft_key: str,
        server_invoice: ServerInvoice | None = None,
    ) -> None:
        self.api = api
        self.draft_store = draft_store
        self.draft_key = draft_key
        self.server_invoice = server_invoice
        self._submitting = False

    @property
    def is_edit_mode(self) -> bool:
        return self.server_invoice is not None

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def submit(
        self,
        values: InvoiceFormValues,
        finalize: bool = False,
        errors: FormErrors | None = None,
    ) -> SubmitOutcome:
        """
        Validate, send and classify one submission.

        Raises:
            RuntimeError: If a submission is already in flight.
            ValueError: If the invoice being edited is finalized.
        """
        if self._submitting:
            raise RuntimeError("A submission is already in progress")
        if self.server_invoice is not None and self.server_invoice.finalized:
            raise ValueError(f"Invoice {self.server_invoice.id} is finalized and cannot be edited")

        errors = errors if errors is not None else FormErrors()
        local_errors = validate_submission(values)
        if local_errors:
            for path, message in local_errors.items():
                errors.set(path, message, source="client")
            LOG.info("submit - blocked by %s local errors", len(local_errors))
            return ValidationFailure(field_errors=local_errors)

        self._submitting = True
        try:
            return self._send(values, finalize, errors)
        finally:
            self._submitting = False

    def _send(self, values: InvoiceFormValues, finalize: bool, errors: FormErrors) -> SubmitOutcome:
        action = "update" if self.is_edit_mode else "create"
        try:
            if self.server_invoice is None:
                invoice = self.api.create_invoice(build_payload(values, finalize))
            else:
                payload = build_payload(values, finalize, self.server_invoice.line_ids)
                invoice = self.api.update_invoice(self.server_invoice.id, payload)
        except ServerValidationError as exc:
            field_errors = map_server_errors(exc.field_errors, sent_line_positions(values.line_items))
            for path, message in field_errors.items():
                errors.set(path, message, source="server")
            LOG.warning("submit - %s rejected: %s", action, field_errors)
            return ValidationFailure(field_errors=field_errors)
        except ConflictError:
            LOG.warning("submit - %s conflict on invoice %s", action, self.server_invoice and self.server_invoice.id)
            return ConflictFailure()
        except ApiError as exc:
            LOG.error("Invoice %s error: %s (status %s)", action, exc.message, exc.status_code)
            return ConnectionFailure(_CONNECTION_MESSAGE.format(action=action))

        self.draft_store.discard(self.draft_key)
        errors.clear()
        LOG.info("submit - %sd invoice %s finalize:%s", action, invoice.id, finalize)
        return SubmitSuccess(invoice=invoice, message=f"Invoice {action}d successfully")
