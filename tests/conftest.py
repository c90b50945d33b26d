from datetime import date
from decimal import Decimal

import pytest

from invoice_workbench.drafts import DraftStore
from invoice_workbench.lib.storage import MemoryStore
from invoice_workbench.lib.timers import ManualScheduler
from invoice_workbench.models.invoice import (
    Customer,
    InvoiceFormValues,
    LineItem,
    Product,
    ServerInvoice,
    ServerInvoiceLine,
    VatRate,
)
from invoice_workbench.services.invoice_api_demo import DemoInvoiceApi


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def draft_store(memory_store):
    return DraftStore(memory_store)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def customer():
    return Customer(id=1, first_name="Ada", last_name="Lovelace")


@pytest.fixture
def product():
    return Product(
        id=10,
        label="Consulting day",
        unit="day",
        vat_rate=VatRate.STANDARD,
        unit_price=Decimal("650.00"),
    )


@pytest.fixture
def other_product():
    return Product(
        id=12,
        label="Printed manual",
        unit="piece",
        vat_rate=VatRate.REDUCED,
        unit_price=Decimal("19.99"),
    )


def make_line(product, quantity="1", origin_line_id=None):
    return LineItem(
        product=product,
        label=product.label if product else "",
        quantity=Decimal(quantity),
        unit=product.unit if product else "piece",
        unit_price=product.unit_price if product else Decimal("0"),
        vat_rate=product.vat_rate if product else VatRate.ZERO,
        origin_line_id=origin_line_id,
    )


@pytest.fixture
def form_values(customer, product):
    return InvoiceFormValues(
        customer=customer,
        date=date(2024, 5, 1),
        deadline=date(2024, 5, 31),
        line_items=[make_line(product, "2")],
    )


@pytest.fixture
def server_invoice(customer, product, other_product):
    """Editable invoice with two persisted lines ("A" and "B")."""
    return ServerInvoice(
        id="101",
        customer_id=1,
        customer=customer,
        date=date(2024, 3, 2),
        deadline=date(2024, 4, 1),
        finalized=False,
        paid=False,
        lines=[
            ServerInvoiceLine(
                id="A",
                product_id=product.id,
                label=product.label,
                quantity=Decimal("1"),
                unit=product.unit,
                unit_price=product.unit_price,
                vat_rate=product.vat_rate,
                product=product,
            ),
            ServerInvoiceLine(
                id="B",
                product_id=other_product.id,
                label=other_product.label,
                quantity=Decimal("3"),
                unit=other_product.unit,
                unit_price=other_product.unit_price,
                vat_rate=other_product.vat_rate,
                product=other_product,
            ),
        ],
    )


@pytest.fixture
def demo_api():
    return DemoInvoiceApi()
