"""
Local validation of invoice form values.

Runs before any request is built; every problem is reported on the same
field paths the server uses for 422 errors (``customer``, ``date``,
``deadline``, ``lineItems.<n>.<field>``).
"""

from invoice_workbench import config
from invoice_workbench.errors import ValidationError
from invoice_workbench.models.invoice import InvoiceFormValues, LineItem, ServerInvoice
from invoice_workbench.utils import ZERO, round2, to_decimal

CUSTOMER_REQUIRED = "Please select a customer"
DATE_REQUIRED = "Invoice date is required"
DEADLINE_BEFORE_DATE = "Payment deadline must be after invoice date"
PRODUCT_REQUIRED = "Please select a product"
QUANTITY_MIN = "Quantity must be greater than 0"
QUANTITY_MAX = f"Quantity cannot exceed {config.MAX_QUANTITY:,}"
PRICE_NEGATIVE = "Unit price cannot be negative"
PRICE_FORMAT = "Please enter a valid price (max 2 decimal places)"


def validate_header(values: InvoiceFormValues) -> dict[str, str]:
    """Customer and date are required; a deadline may not precede the date."""
    errors: dict[str, str] = {}
    if values.customer is None:
        errors["customer"] = CUSTOMER_REQUIRED
    if values.date is None:
        errors["date"] = DATE_REQUIRED
    elif values.deadline is not None and values.deadline < values.date:
        errors["deadline"] = DEADLINE_BEFORE_DATE
    return errors


def validate_line_item(item: LineItem, index: int) -> dict[str, str]:
    """Rules a line must satisfy to be submitted."""
    errors: dict[str, str] = {}
    prefix = f"lineItems.{index}"

    if item.product is None:
        errors[f"{prefix}.product"] = PRODUCT_REQUIRED

    quantity = to_decimal(item.quantity)
    if quantity <= ZERO:
        errors[f"{prefix}.quantity"] = QUANTITY_MIN
    elif quantity > config.MAX_QUANTITY:
        errors[f"{prefix}.quantity"] = QUANTITY_MAX

    unit_price = to_decimal(item.unit_price)
    if unit_price < ZERO:
        errors[f"{prefix}.unit_price"] = PRICE_NEGATIVE
    elif unit_price != round2(unit_price):
        errors[f"{prefix}.unit_price"] = PRICE_FORMAT

    return errors


def validate_submission(values: InvoiceFormValues) -> dict[str, str]:
    """
    Validate everything a submit needs. Lines marked for deletion are not
    checked since they will not be sent.

    Returns:
        Mapping of field path to message; empty when the form is valid.
    """
    errors = validate_header(values)
    for index, item in enumerate(values.line_items):
        if item.marked_for_deletion:
            continue
        errors.update(validate_line_item(item, index))
    return errors


def ensure_submittable(values: InvoiceFormValues) -> None:
    """
    Raises:
        ValidationError: With every field error found.
    """
    errors = validate_submission(values)
    if errors:
        raise ValidationError(errors)


def can_finalize(invoice: ServerInvoice) -> list[str]:
    """Reasons an invoice cannot be finalized; empty when it can."""
    reasons = []
    if invoice.finalized:
        reasons.append("This invoice is already finalized")
    if invoice.customer_id is None and invoice.customer is None:
        reasons.append("Cannot finalize invoice without a customer")
    if not invoice.lines:
        reasons.append("Cannot finalize invoice without line items")
    return reasons


def can_delete(invoice: ServerInvoice) -> list[str]:
    """Reasons an invoice cannot be deleted; empty when it can."""
    reasons = []
    if invoice.finalized:
        reasons.append("Cannot delete a finalized invoice")
    if invoice.paid:
        reasons.append("Cannot delete a paid invoice")
    return reasons
