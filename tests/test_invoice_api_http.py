from __future__ import annotations

import json

import pytest
import requests

from invoice_workbench.errors import ApiConnectionError, ConflictError, ServerValidationError
from invoice_workbench.services.invoice_api_http import HttpInvoiceApi

_INVOICE = {
    "id": 7,
    "customer_id": 1,
    "date": "2024-05-01",
    "deadline": None,
    "finalized": False,
    "paid": False,
    "total": "120.00",
    "tax": "20.00",
    "invoice_lines": [
        {"id": 70, "product_id": 10, "label": "Thing", "quantity": "1", "unit": "piece", "price": "100.00", "vat_rate": "20"}
    ],
}


class _FakeResp:
    def __init__(self, status_code: int, payload=None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self.content = self.text.encode("utf-8")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


def _client() -> HttpInvoiceApi:
    return HttpInvoiceApi(base_url="https://invoices.test/api/v1/", token="tok", timeout_seconds=5)


def test_create_wraps_body_and_sends_token(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, json=None, timeout=None):
        seen.update(method=method, url=url, headers=headers, json=json, timeout=timeout)
        return _FakeResp(201, _INVOICE)

    monkeypatch.setattr("requests.request", fake_request)

    invoice = _client().create_invoice({"customer_id": 1})

    assert invoice.id == "7"
    assert invoice.lines[0].unit_price == 100
    assert seen["method"] == "POST"
    assert seen["url"] == "https://invoices.test/api/v1/invoices"
    assert seen["json"] == {"invoice": {"customer_id": 1}}
    assert seen["headers"]["X-SESSION"] == "tok"
    assert seen["headers"]["Authorization"] == "Bearer tok"
    assert seen["timeout"] == 5


def test_fetch_invoices_passes_params(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, json=None, timeout=None):
        seen.update(method=method, params=params)
        return _FakeResp(
            200,
            {"invoices": [_INVOICE], "pagination": {"page": 2, "page_size": 1, "total_pages": 3, "total_entries": 3}},
        )

    monkeypatch.setattr("requests.request", fake_request)

    page = _client().fetch_invoices({"sort": "-date", "page": 2, "page_size": 1})

    assert seen == {"method": "GET", "params": {"sort": "-date", "page": 2, "page_size": 1}}
    assert page.has_more
    assert page.items[0].total == 120


def test_delete_accepts_empty_body(monkeypatch) -> None:
    monkeypatch.setattr("requests.request", lambda *a, **k: _FakeResp(204))
    assert _client().delete_invoice("7") is None


def test_error_statuses_map_to_errors(monkeypatch) -> None:
    monkeypatch.setattr(
        "requests.request",
        lambda *a, **k: _FakeResp(422, {"errors": {"customer": ["must exist"]}}),
    )
    with pytest.raises(ServerValidationError) as excinfo:
        _client().update_invoice("7", {"customer_id": 99})
    assert excinfo.value.field_errors == {"customer": "must exist"}

    monkeypatch.setattr("requests.request", lambda *a, **k: _FakeResp(409, text="stale"))
    with pytest.raises(ConflictError) as excinfo:
        _client().update_invoice("7", {})
    assert excinfo.value.message == "stale"


def test_transport_failure_is_connection_error(monkeypatch) -> None:
    def fake_request(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("requests.request", fake_request)

    with pytest.raises(ApiConnectionError):
        _client().fetch_invoice("7")
