"""
Invoice money calculations.

Every amount is a ``Decimal`` rounded half-up to the cent at each step:

    subtotal   = round2(quantity × unit_price)
    vat_amount = round2(subtotal × rate / 100)     # on the rounded subtotal
    total      = subtotal + vat_amount

Invoice totals are sums of the per-line rounded values, so adding up the
lines shown on screen always reproduces the invoice totals to the cent.
All functions are pure and safe to call on every render.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from invoice_workbench.models.invoice import LineItem, VatRate
from invoice_workbench.utils import ZERO, format_currency, round2, to_decimal

__all__ = [
    "InvoiceTotals",
    "LineItemCalculation",
    "calculate_invoice_totals",
    "calculate_line_item",
    "calculate_per_line",
    "ensure_decimal",
    "format_currency",
]

_HUNDRED = Decimal("100")

ensure_decimal = to_decimal


@dataclass(frozen=True, slots=True)
class LineItemCalculation:
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal


_ZERO_LINE = LineItemCalculation(subtotal=ZERO, vat_amount=ZERO, total=ZERO)


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    """
    Whole-invoice totals.

    Attributes:
        vat_breakdown: Accumulated VAT per rate, only for rates in use.
    """

    subtotal: Decimal = ZERO
    total_vat: Decimal = ZERO
    grand_total: Decimal = ZERO
    vat_breakdown: dict[VatRate, Decimal] = field(default_factory=dict)


def calculate_line_item(item: LineItem) -> LineItemCalculation:
    """Compute subtotal, VAT and total for one line."""
    subtotal = round2(to_decimal(item.quantity) * to_decimal(item.unit_price))
    vat_amount = round2(subtotal * VatRate.parse(item.vat_rate).percent / _HUNDRED)
    return LineItemCalculation(
        subtotal=subtotal,
        vat_amount=vat_amount,
        total=subtotal + vat_amount,
    )


def calculate_per_line(items: Iterable[LineItem]) -> list[LineItemCalculation]:
    """
    Per-line calculations in form order.

    Lines marked for deletion get a zero calculation, so the per-line
    subtotals always add up to ``calculate_invoice_totals``.
    """
    return [
        _ZERO_LINE if item.marked_for_deletion else calculate_line_item(item)
        for item in items
    ]


def calculate_invoice_totals(items: Sequence[LineItem]) -> InvoiceTotals:
    """
    Sum per-line results into invoice totals.

    Lines marked for deletion are not billed and are skipped.
    """
    subtotal = ZERO
    total_vat = ZERO
    breakdown: dict[VatRate, Decimal] = {}

    for item in items:
        if item.marked_for_deletion:
            continue
        calc = calculate_line_item(item)
        subtotal += calc.subtotal
        total_vat += calc.vat_amount
        rate = VatRate.parse(item.vat_rate)
        breakdown[rate] = breakdown.get(rate, ZERO) + calc.vat_amount

    return InvoiceTotals(
        subtotal=subtotal,
        total_vat=total_vat,
        grand_total=subtotal + total_vat,
        vat_breakdown=breakdown,
    )
