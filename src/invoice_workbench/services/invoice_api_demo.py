"""
Demo implementation of InvoiceApi backed by in-memory data.

This backend is useful for:
- Local development without the invoicing server
- Exercising the workflows against realistic status semantics
- Tests that need a backend which actually applies payloads

It behaves like the real API where the workflows care: unknown invoices
are 404, changing or deleting a finalized invoice is 409, and payloads
referencing unknown customers/products are 422 with per-field errors.
Line instructions are applied to a copy and committed only if all of them
succeed.
"""

import copy
import itertools
import json
from decimal import Decimal
from typing import Any, Mapping, Sequence

from invoice_workbench import config
from invoice_workbench.calculations import calculate_invoice_totals
from invoice_workbench.data.demo_catalog import DEMO_CUSTOMERS, DEMO_INVOICES, DEMO_PRODUCTS
from invoice_workbench.errors import api_error_for_status
from invoice_workbench.lib import logs
from invoice_workbench.models.invoice import InvoicePage, ServerInvoice, ServerInvoiceLine
from invoice_workbench.services.invoice_api import InvoiceApi
from invoice_workbench.utils import parse_date, to_decimal

LOG = logs.logger(__file__)

_SORTABLE = {"id", "date", "deadline", "total", "finalized", "paid", "customer_id"}


class DemoInvoiceApi(InvoiceApi):
    """
    In-memory invoice backend.

    Args:
        invoices: Invoices in API shape (``invoice_lines`` may omit label,
            unit, price and vat_rate; they are filled from the product).
        customers: Customers in API shape.
        products: Products in API shape.
    """

    def __init__(
        self,
        invoices: Sequence[Mapping[str, Any]] | None = None,
        customers: Sequence[Mapping[str, Any]] | None = None,
        products: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        self._customers = {c["id"]: dict(c) for c in (customers if customers is not None else DEMO_CUSTOMERS)}
        self._products = {p["id"]: dict(p) for p in (products if products is not None else DEMO_PRODUCTS)}
        if invoices is None:
            invoices = DEMO_INVOICES if config.DEMO_SEED else []
        self._invoices: dict[int, dict] = {}
        for invoice in invoices:
            record = copy.deepcopy(dict(invoice))
            record["invoice_lines"] = [self._fill_line(line) for line in record.get("invoice_lines", [])]
            self._invoices[int(record["id"])] = self._with_totals(record)

        self._invoice_ids = itertools.count(max(self._invoices, default=0) + 1)
        all_lines = [line["id"] for inv in self._invoices.values() for line in inv["invoice_lines"]]
        self._line_ids = itertools.count(max(all_lines, default=0) + 1)
        self.calls: list[tuple[str, Any]] = []

    # InvoiceApi

    def create_invoice(self, payload: Mapping[str, Any]) -> ServerInvoice:
        self.calls.append(("create_invoice", copy.deepcopy(dict(payload))))
        errors = self._header_errors(payload, require_all=True)
        record = {
            "id": None,
            "customer_id": payload.get("customer_id"),
            "date": payload.get("date"),
            "deadline": payload.get("deadline"),
            "paid": bool(payload.get("paid", False)),
            "finalized": bool(payload.get("finalized", False)),
            "invoice_lines": [],
        }
        errors.update(self._apply_lines(record, payload.get("invoice_lines_attributes") or []))
        if errors:
            raise api_error_for_status(422, {"errors": errors})

        record["id"] = next(self._invoice_ids)
        self._invoices[record["id"]] = self._with_totals(record)
        LOG.info("create_invoice - id:%s lines:%s", record["id"], len(record["invoice_lines"]))
        return self._to_model(record)

    def update_invoice(self, invoice_id: str, payload: Mapping[str, Any]) -> ServerInvoice:
        self.calls.append(("update_invoice", (str(invoice_id), copy.deepcopy(dict(payload)))))
        current = self._get(invoice_id)
        if current["finalized"]:
            raise api_error_for_status(409, {"message": "Invoice is finalized and cannot be changed"})

        record = copy.deepcopy(current)
        errors = self._header_errors(payload, require_all=False)
        for key in ("customer_id", "date", "deadline", "paid", "finalized"):
            if key in payload:
                record[key] = payload[key]
        errors.update(self._apply_lines(record, payload.get("invoice_lines_attributes") or []))
        if errors:
            raise api_error_for_status(422, {"errors": errors})

        self._invoices[record["id"]] = self._with_totals(record)
        LOG.info("update_invoice - id:%s lines:%s", record["id"], len(record["invoice_lines"]))
        return self._to_model(record)

    def delete_invoice(self, invoice_id: str) -> None:
        self.calls.append(("delete_invoice", str(invoice_id)))
        record = self._get(invoice_id)
        if record["finalized"]:
            raise api_error_for_status(409, {"message": "Finalized invoices cannot be deleted"})
        del self._invoices[record["id"]]

    def fetch_invoices(self, params: Mapping[str, Any]) -> InvoicePage:
        self.calls.append(("fetch_invoices", dict(params)))
        predicates = json.loads(params.get("filter") or "[]")
        records = [r for r in self._invoices.values() if all(_matches(r, p) for p in predicates)]

        sort = params.get("sort") or "-date"
        field_name = sort.lstrip("+-")
        if field_name not in _SORTABLE:
            raise api_error_for_status(400, {"message": f"Cannot sort by {field_name}"})
        records.sort(key=lambda r: _sort_key(r, field_name), reverse=sort.startswith("-"))

        page = max(int(params.get("page", 1)), 1)
        page_size = max(int(params.get("page_size", 10)), 1)
        start = (page - 1) * page_size
        total_pages = max((len(records) + page_size - 1) // page_size, 1)
        return InvoicePage(
            items=[self._to_model(r) for r in records[start : start + page_size]],
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            total_entries=len(records),
        )

    def fetch_invoice(self, invoice_id: str) -> ServerInvoice:
        self.calls.append(("fetch_invoice", str(invoice_id)))
        return self._to_model(self._get(invoice_id))

    # Helpers

    def _get(self, invoice_id: str) -> dict:
        try:
            return self._invoices[int(invoice_id)]
        except (KeyError, ValueError):
            raise api_error_for_status(404, {"message": f"Invoice {invoice_id} not found"}) from None

    def _header_errors(self, payload: Mapping[str, Any], require_all: bool) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        if require_all or "customer_id" in payload:
            if payload.get("customer_id") not in self._customers:
                errors["customer"] = ["must exist"]
        if require_all or "date" in payload:
            if parse_date(payload.get("date")) is None:
                errors["date"] = ["can't be blank"]
        deadline = payload.get("deadline")
        if deadline is not None and parse_date(deadline) is None:
            errors["deadline"] = ["is invalid"]
        return errors

    def _apply_lines(self, record: dict, instructions: Sequence[Mapping[str, Any]]) -> dict[str, list[str]]:
        """Apply line instructions to record in place; returns per-field errors."""
        errors: dict[str, list[str]] = {}
        lines = {line["id"]: line for line in record["invoice_lines"]}
        ordered = list(record["invoice_lines"])

        for index, instruction in enumerate(instructions):
            prefix = f"lineItems.{index}"
            line_id = instruction.get("id")
            if line_id is not None and int(line_id) not in lines:
                errors[f"{prefix}.id"] = ["does not exist"]
                continue
            if instruction.get("_destroy"):
                ordered.remove(lines.pop(int(line_id)))
                continue

            product_id = instruction.get("product_id")
            if product_id is not None and product_id not in self._products:
                errors[f"{prefix}.product"] = ["must exist"]
                continue
            quantity = to_decimal(instruction.get("quantity"))
            if "quantity" in instruction and quantity <= 0:
                errors[f"{prefix}.quantity"] = ["must be greater than 0"]
                continue

            if line_id is None:
                if product_id is None:
                    errors[f"{prefix}.product"] = ["must exist"]
                    continue
                line = self._fill_line(
                    {"id": next(self._line_ids), "product_id": product_id, "quantity": instruction.get("quantity")}
                )
                ordered.append(line)
                continue

            line = lines[int(line_id)]
            if product_id is not None and product_id != line["product_id"]:
                line.update(self._fill_line({"id": line["id"], "product_id": product_id, "quantity": line["quantity"]}))
            if "quantity" in instruction:
                line["quantity"] = instruction["quantity"]
            if instruction.get("label"):
                line["label"] = instruction["label"]

        record["invoice_lines"] = ordered
        return errors

    def _fill_line(self, line: Mapping[str, Any]) -> dict:
        product = self._products.get(line.get("product_id"), {})
        return {
            "id": int(line["id"]),
            "product_id": line.get("product_id"),
            "label": line.get("label") or product.get("label", ""),
            "quantity": line.get("quantity"),
            "unit": line.get("unit") or product.get("unit", "piece"),
            "price": line.get("price") or product.get("unit_price_without_tax", "0"),
            "vat_rate": line.get("vat_rate") or product.get("vat_rate", "0"),
            "product": dict(product) if product else None,
        }

    def _with_totals(self, record: dict) -> dict:
        lines = [ServerInvoiceLine.from_api(line).to_line_item() for line in record["invoice_lines"]]
        totals = calculate_invoice_totals(lines)
        record["total"] = str(totals.grand_total)
        record["tax"] = str(totals.total_vat)
        return record

    def _to_model(self, record: Mapping[str, Any]) -> ServerInvoice:
        data = copy.deepcopy(dict(record))
        data["customer"] = self._customers.get(record.get("customer_id"))
        return ServerInvoice.from_api(data)


def _matches(record: Mapping[str, Any], predicate: Mapping[str, Any]) -> bool:
    field_name, operator, value = predicate["field"], predicate["operator"], predicate["value"]
    if field_name == "invoice_lines.product_id":
        return any(str(line["product_id"]) == value for line in record["invoice_lines"])

    actual = record.get(field_name)
    if isinstance(actual, bool):
        actual = "true" if actual else "false"
    elif actual is not None:
        actual = str(actual)

    if operator == "eq":
        return actual == value
    if actual is None:
        return False
    if operator == "gteq":
        return actual >= value
    if operator == "lteq":
        return actual <= value
    raise api_error_for_status(400, {"message": f"Unsupported operator {operator}"})


def _sort_key(record: Mapping[str, Any], field_name: str) -> tuple:
    value = record.get(field_name)
    if field_name == "total":
        value = Decimal(value or "0")
    # Missing values sort first ascending, last descending
    return (value is not None, value if value is not None else 0, record["id"])
