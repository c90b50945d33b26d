"""
Line-item editing for the invoice form.

``LineItemEditor`` mutates the ordered ``line_items`` of an
``InvoiceFormValues`` in place and keeps the form's field-level error
channel aligned with the rows it moves. It never validates; missing
products are reported by the validation layer on blur or submit.
"""

from dataclasses import replace
from typing import Any

from invoice_workbench import config
from invoice_workbench.lib import logs
from invoice_workbench.models.common import FormErrors
from invoice_workbench.models.invoice import (
    InvoiceFormValues,
    LineItem,
    Product,
    VatRate,
    default_line_item,
)
from invoice_workbench.utils import to_decimal

LOG = logs.logger(__file__)

_EDITABLE_FIELDS = {"label", "quantity", "unit", "unit_price", "vat_rate", "marked_for_deletion"}


def product_error_paths(index: int) -> tuple[str, str]:
    return f"lineItems.{index}.product", f"lineItems.{index}.product_id"


class LineItemEditor:
    """
    Add, remove, duplicate and fill line items.

    Args:
        values: Form values whose ``line_items`` are edited in place.
        errors: Shared form error channel.
    """

    def __init__(self, values: InvoiceFormValues, errors: FormErrors | None = None) -> None:
        self.values = values
        self.errors = errors if errors is not None else FormErrors()

    @property
    def items(self) -> list[LineItem]:
        return self.values.line_items

    def __len__(self) -> int:
        return len(self.items)

    def _line(self, index: int) -> LineItem:
        if not 0 <= index < len(self.items):
            raise IndexError(f"No line item at index {index}")
        return self.items[index]

    def select_product(self, index: int, product: Product | None) -> LineItem:
        """
        Select (or clear) the catalog product of a line.

        Selecting copies label, unit, VAT rate and unit price from the
        product and clears the line's missing-product error. Clearing resets
        those fields to the blank-line defaults.
        """
        line = self._line(index)
        base = default_line_item()

        if product is None:
            line.product = None
            line.label = base.label
            line.unit = base.unit
            line.vat_rate = base.vat_rate
            line.unit_price = base.unit_price
            return line

        line.product = replace(product)
        line.label = product.label or base.label
        line.unit = product.unit or base.unit
        line.vat_rate = VatRate.parse(product.vat_rate)
        line.unit_price = to_decimal(product.unit_price)
        self.errors.clear(*product_error_paths(index))
        return line

    def add(self) -> LineItem | None:
        """Append a blank line. Returns None when the line limit is reached."""
        if len(self.items) >= config.MAX_LINE_ITEMS:
            LOG.warning("add - line limit %s reached", config.MAX_LINE_ITEMS)
            return None
        line = default_line_item()
        self.items.append(line)
        return line

    def remove(self, index: int) -> bool:
        """
        Remove a line. The invoice always keeps at least one line, so
        removing the only remaining one does nothing.

        Returns:
            True if a line was removed.
        """
        if len(self.items) <= 1:
            return False
        self._line(index)
        del self.items[index]
        self.errors.clear_line(index)
        self.errors.shift_lines(index + 1, -1)
        return True

    def duplicate(self, index: int) -> LineItem | None:
        """
        Insert a copy of a line right after it.

        The copy carries every field, including the product, except the
        persisted line identifier: a duplicate is always a new line.
        """
        if len(self.items) >= config.MAX_LINE_ITEMS:
            LOG.warning("duplicate - line limit %s reached", config.MAX_LINE_ITEMS)
            return None
        source = self._line(index)
        copy = source.copy()
        copy.origin_line_id = None
        self.errors.shift_lines(index + 1, 1)
        self.items.insert(index + 1, copy)
        return copy

    def update(self, index: int, **changes: Any) -> LineItem:
        """
        Edit plain fields of a line (label, quantity, unit, unit_price,
        vat_rate, marked_for_deletion).
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        line = self._line(index)
        for name, value in changes.items():
            if name in ("quantity", "unit_price"):
                value = to_decimal(value)
            elif name == "vat_rate":
                value = VatRate.parse(value)
            elif name == "marked_for_deletion":
                value = value in (True, "true", "1")
            setattr(line, name, value)
            self.errors.clear(f"lineItems.{index}.{name}")
        return line
