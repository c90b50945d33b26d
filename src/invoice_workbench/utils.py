"""
Utility functions for money and date handling.

Provides helpers for:
- Decimal coercion and two-place rounding
- Currency formatting
- Date parsing (ISO and m/d/y) and API date formatting
- Payment status labels for list display
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from invoice_workbench import config

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a number-like value to Decimal.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary
    expansion. Anything unparsable (None, "", "abc", NaN) yields 0.

    Args:
        value: int, float, str, Decimal or None.

    Returns:
        A finite Decimal.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        return ZERO
    else:
        try:
            result = Decimal(str(value).strip().replace(",", ""))
        except (InvalidOperation, ValueError):
            return ZERO
    return result if result.is_finite() else ZERO


def round2(value: Decimal) -> Decimal:
    """Round to two fractional digits, half away from zero."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_currency(amount: Any, symbol: str | None = None) -> str:
    """
    Format an amount with the configured currency symbol.

    Args:
        amount: Numeric amount to format.
        symbol: Currency symbol; defaults to ``config.CURRENCY_SYMBOL``.

    Returns:
        Formatted string like '€1,234.56' (or '-€1,234.56').
    """
    symbol = config.CURRENCY_SYMBOL if symbol is None else symbol
    value = round2(to_decimal(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def parse_date(value: Any) -> date | None:
    """
    Parse a calendar date.

    Accepts ``date``/``datetime`` objects, ISO strings (``2024-12-25`` or a
    full timestamp such as ``2024-12-25T00:00:00.000Z``) and m/d/y strings.

    Returns:
        The date, or None if the value is empty or unparsable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%m/%d/%y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    return None


def format_api_date(value: date | None) -> str | None:
    """Return the ``YYYY-MM-DD`` form the API expects, or None."""
    return value.isoformat() if value else None


def payment_status_label(
    paid: bool,
    deadline: date | None,
    today: date | None = None,
) -> tuple[str, str]:
    """
    Return a (label, color) pair describing an invoice's payment state.

    Unpaid invoices past their deadline read "N days overdue"; those due
    within a week read "Due in N days".
    """
    if paid:
        return "Paid", "success"

    if deadline:
        today = today or date.today()
        if today > deadline:
            return f"{(today - deadline).days} days overdue", "danger"
        days_until_due = (deadline - today).days
        if days_until_due <= 7:
            return f"Due in {days_until_due} days", "warning"

    return "Unpaid", "secondary"
