from decimal import Decimal

import pytest

from conftest import make_line
from invoice_workbench import config
from invoice_workbench.editor import LineItemEditor
from invoice_workbench.models.common import FormErrors
from invoice_workbench.models.invoice import InvoiceFormValues, Product, VatRate, default_line_item


@pytest.fixture
def editor():
    return LineItemEditor(InvoiceFormValues(line_items=[default_line_item()]), FormErrors())


def test_select_product_copies_fields_and_clears_error(editor, product):
    editor.errors.set("lineItems.0.product", "Please select a product")

    line = editor.select_product(0, product)

    assert (line.label, line.unit, line.vat_rate, line.unit_price) == (
        "Consulting day",
        "day",
        VatRate.STANDARD,
        Decimal("650.00"),
    )
    assert "lineItems.0.product" not in editor.errors


def test_select_product_falls_back_to_defaults(editor):
    line = editor.select_product(0, Product(id=99, label="", unit=""))
    assert line.unit == "piece"
    assert line.unit_price == Decimal("0")


def test_clearing_product_resets_line(editor, product):
    editor.select_product(0, product)
    line = editor.select_product(0, None)

    assert line.product is None
    assert line.label == ""
    assert line.vat_rate is VatRate.ZERO


def test_add_appends_default_line(editor):
    line = editor.add()
    assert len(editor) == 2
    assert (line.quantity, line.unit, line.unit_price, line.vat_rate) == (
        Decimal("1"),
        "piece",
        Decimal("0"),
        VatRate.ZERO,
    )


def test_add_stops_at_line_limit(editor, monkeypatch):
    monkeypatch.setattr(config, "MAX_LINE_ITEMS", 2)
    assert editor.add() is not None
    assert editor.add() is None
    assert len(editor) == 2


def test_remove_keeps_last_line(editor):
    assert not editor.remove(0)
    assert len(editor) == 1


def test_remove_shifts_errors(product, other_product):
    values = InvoiceFormValues(line_items=[make_line(product), make_line(None), make_line(other_product)])
    errors = FormErrors()
    errors.set("lineItems.1.product", "Please select a product")
    errors.set("lineItems.2.quantity", "Quantity must be greater than 0")
    editor = LineItemEditor(values, errors)

    assert editor.remove(1)

    assert [item.product_ref for item in editor.items] == [10, 12]
    assert errors.to_dict() == {"lineItems.1.quantity": "Quantity must be greater than 0"}


def test_duplicate_inserts_independent_copy(product):
    values = InvoiceFormValues(line_items=[make_line(product, "4", origin_line_id="A"), make_line(product)])
    editor = LineItemEditor(values)

    copy = editor.duplicate(0)

    assert editor.items[1] is copy
    assert copy.origin_line_id is None
    assert copy.product == product
    assert copy.quantity == Decimal("4")
    copy.product.label = "Changed"
    assert editor.items[0].product.label == "Consulting day"


def test_update_coerces_values(editor):
    editor.errors.set("lineItems.0.quantity", "Quantity must be greater than 0")

    line = editor.update(0, quantity="2.5", vat_rate=10, label="Custom")

    assert line.quantity == Decimal("2.5")
    assert line.vat_rate is VatRate.INTERMEDIATE
    assert line.label == "Custom"
    assert "lineItems.0.quantity" not in editor.errors


def test_update_rejects_unknown_field_and_bad_index(editor):
    with pytest.raises(ValueError):
        editor.update(0, product="x")
    with pytest.raises(IndexError):
        editor.update(5, quantity=1)
