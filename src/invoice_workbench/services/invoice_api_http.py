"""
REST implementation of InvoiceApi built on requests.

Endpoints (relative to ``INVOICE_API_BASE_URL``):

    GET    /invoices            list (filter, sort, page, page_size)
    GET    /invoices/<id>       fetch one
    POST   /invoices            create, body {"invoice": payload}
    PUT    /invoices/<id>       update, body {"invoice": payload}
    DELETE /invoices/<id>       delete

Non-2xx responses are raised as the ``ApiError`` subclass for their status;
transport failures are raised as ``ApiConnectionError``.
"""

from __future__ import annotations

from typing import Any, Mapping

import requests

from invoice_workbench import config
from invoice_workbench.errors import ApiConnectionError, api_error_for_status, user_friendly_message
from invoice_workbench.lib import logs
from invoice_workbench.models.invoice import InvoicePage, ServerInvoice
from invoice_workbench.services.invoice_api import InvoiceApi

LOG = logs.logger(__file__)


class HttpInvoiceApi(InvoiceApi):
    def __init__(
        self,
        *,
        base_url: str,
        token: str = "",
        timeout_seconds: int = 30,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_env(cls) -> "HttpInvoiceApi":
        return cls(
            base_url=config.API_BASE_URL,
            token=config.API_TOKEN,
            timeout_seconds=config.API_TIMEOUT_SECONDS,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["X-SESSION"] = self._token
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = requests.request(
                method,
                url,
                headers=self._headers(),
                params=dict(params) if params is not None else None,
                json=dict(body) if body is not None else None,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            LOG.error("%s %s failed: %s", method, path, exc)
            raise ApiConnectionError(user_friendly_message(None)) from exc

        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = {"message": resp.text} if resp.text else None
            LOG.warning("%s %s - status:%s", method, path, resp.status_code)
            raise api_error_for_status(resp.status_code, payload)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def create_invoice(self, payload: Mapping[str, Any]) -> ServerInvoice:
        data = self._request_json("POST", "/invoices", body={"invoice": dict(payload)})
        return ServerInvoice.from_api(data)

    def update_invoice(self, invoice_id: str, payload: Mapping[str, Any]) -> ServerInvoice:
        data = self._request_json("PUT", f"/invoices/{invoice_id}", body={"invoice": dict(payload)})
        return ServerInvoice.from_api(data)

    def delete_invoice(self, invoice_id: str) -> None:
        self._request_json("DELETE", f"/invoices/{invoice_id}")

    def fetch_invoices(self, params: Mapping[str, Any]) -> InvoicePage:
        data = self._request_json("GET", "/invoices", params=params)
        return InvoicePage.from_api(data or {})

    def fetch_invoice(self, invoice_id: str) -> ServerInvoice:
        return ServerInvoice.from_api(self._request_json("GET", f"/invoices/{invoice_id}"))
