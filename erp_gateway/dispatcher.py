import logging
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from typing import Any, Dict, List, Optional

import requests

from erp_gateway.client import ERPClient
from erp_gateway.config import GatewayConfig
from erp_gateway.endpoints import EndpointTable
from erp_gateway.errors import BackendError, CallerError, NotFoundError
from erp_gateway.odata import QueryDescriptor, build_odata_url, entity_url, eq_clause, search_clause
from erp_gateway.soap import CustomerCreator

logger = logging.getLogger(__name__)

# search type -> (endpoint key, fields matched with contains())
SEARCH_TARGETS = {
    "customers": ("customers", ("Name", "No")),
    "items": ("items", ("Description", "No")),
    "invoices": ("salesInvoices", ("No",)),
}
SEARCH_TYPES = ("all",) + tuple(SEARCH_TARGETS)


def _values(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("value"), list):
        return payload["value"]
    return []


def _template_out(t: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "code": t.get("Code"),
        "description": t.get("Description"),
        "contactType": t.get("Contact_Type"),
    }


class Gateway:
    """Maps gateway requests onto ERP OData/SOAP calls."""

    def __init__(self, config: GatewayConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.endpoints = EndpointTable(config.company_url)
        self.client = ERPClient(config, session=session)
        self.customers = CustomerCreator(self.client, config.soap_url)

    # ---------------- Generic ----------------
    def url_for(self, entity_key: str, path_id: Optional[str] = None, descriptor: Optional[QueryDescriptor] = None) -> str:
        base = self.endpoints[entity_key]
        if path_id is not None:
            return build_odata_url(entity_url(base, path_id), descriptor)
        return build_odata_url(base, descriptor)

    def handle(
        self,
        entity_key: str,
        path_id: Optional[str] = None,
        descriptor: Optional[QueryDescriptor] = None,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = self.url_for(entity_key, path_id, descriptor)
        return self.client.request(url, method=method, body=body, headers=headers)

    def lines_or_empty(self, entity_key: str, document_no: str) -> List[Dict[str, Any]]:
        """Non-essential sub-fetch: any failure degrades to an empty list."""
        q = QueryDescriptor(server_filters=[eq_clause("Document_No", document_no)])
        try:
            return _values(self.handle(entity_key, descriptor=q))
        except BackendError as e:
            logger.warning("Lines fetch failed entity=%s document=%s err=%s", entity_key, document_no, e.details)
            return []

    # ---------------- Sales invoices ----------------
    def get_sales_invoice(self, invoice_no: str) -> Dict[str, Any]:
        # upstream set is not keyed by No, so look it up by filter
        q = QueryDescriptor(server_filters=[eq_clause("No", invoice_no)])
        headers = _values(self.handle("salesInvoices", descriptor=q))
        if not headers:
            logger.info("No invoice found with number=%s", invoice_no)
            raise NotFoundError(
                f"Sales invoice with number {invoice_no} was not found.",
                suggestion="Please verify the invoice number and try again.",
            )

        invoice = dict(headers[0])
        invoice["lines"] = self.lines_or_empty("salesInvoiceLines", invoice.get("No", invoice_no))
        return invoice

    def create_sales_invoice(self, header: Dict[str, Any], lines: Optional[List[Dict[str, Any]]] = None) -> Any:
        created = self.handle("salesInvoices", method="POST", body=header)
        invoice_no = created.get("No") if isinstance(created, dict) else None
        if not invoice_no:
            raise BackendError("upstream did not return an invoice number")

        base = self.endpoints["salesInvoices"]
        for line in lines or []:
            self.client.post(f"{entity_url(base, invoice_no)}/salesInvoiceLines", line)

        return self.handle("salesInvoices", invoice_no, QueryDescriptor(expand="salesInvoiceLines"))

    # ---------------- Posted sales invoices ----------------
    def get_posted_invoice(self, invoice_no: str) -> Dict[str, Any]:
        data = self.handle("postedSalesInvoices", invoice_no)
        if not data:
            raise NotFoundError(f"Posted sales invoice with number {invoice_no} was not found.")
        return data

    def get_posted_invoice_lines(self, invoice_no: str) -> Dict[str, Any]:
        self.get_posted_invoice(invoice_no)
        return {"value": self.lines_or_empty("postedSalesInvoiceLines", invoice_no)}

    # ---------------- Customer templates ----------------
    def customer_templates(self) -> Dict[str, Any]:
        data = self.handle("customerTemplates")
        return {"value": [_template_out(t) for t in _values(data)]}

    def customer_template(self, code: str) -> Dict[str, Any]:
        return _template_out(self.handle("customerTemplates", code))

    # ---------------- Search ----------------
    def search(self, term: Optional[str], type_: str = "all", top: str = "10") -> Dict[str, List[Any]]:
        term = (term or "").strip()
        if not term:
            raise CallerError("Search query is required")
        if type_ not in SEARCH_TYPES:
            raise CallerError("Invalid search type", details=f"expected one of {', '.join(SEARCH_TYPES)}")

        selected = list(SEARCH_TARGETS) if type_ == "all" else [type_]

        def run(name: str) -> List[Any]:
            key, fields = SEARCH_TARGETS[name]
            q = QueryDescriptor(server_filters=[search_clause(term, fields)], top=top)
            return _values(self.handle(key, descriptor=q))

        with ThreadPoolExecutor(max_workers=len(selected)) as pool:
            # workers inherit the request context, including its cancellation flag
            futures = {name: pool.submit(copy_context().run, run, name) for name in selected}
            return {name: f.result() for name, f in futures.items()}

    # ---------------- Customer portal ----------------
    def customer_orders(self, customer_no: str) -> List[Dict[str, Any]]:
        orders_q = QueryDescriptor(server_filters=[eq_clause("Customer_No", customer_no)])
        invoices_q = QueryDescriptor(server_filters=[eq_clause("Sell_to_Customer_No", customer_no)])
        sales_orders = _values(self.handle("SalesOrder", descriptor=orders_q))
        posted = _values(self.handle("postedSalesInvoices", descriptor=invoices_q))

        rows = [
            {
                "id": o.get("No"),
                "type": "order",
                "number": o.get("No"),
                "date": o.get("Order_Date"),
                "status": o.get("Status"),
                "amount": o.get("Amount"),
                "currencyCode": o.get("Currency_Code"),
                "documentType": "Order",
            }
            for o in sales_orders
        ]
        rows += [
            {
                "id": i.get("No"),
                "type": "invoice",
                "number": i.get("No"),
                "date": i.get("Posting_Date"),
                "dueDate": i.get("Due_Date"),
                "status": i.get("Status"),
                "amount": i.get("Amount_Including_VAT") or i.get("Amount"),
                "currencyCode": i.get("Currency_Code"),
                "documentType": "Invoice",
                "isPaid": i.get("Status") == "Paid",
            }
            for i in posted
        ]
        # ISO dates sort lexically; undated rows go last
        rows.sort(key=lambda r: r["date"] or "", reverse=True)
        return rows

    def customer_profile(self, customer_no: str) -> Dict[str, Any]:
        customer = self.handle("customers", customer_no)
        orders = self.handle(
            "SalesOrder",
            descriptor=QueryDescriptor(server_filters=[eq_clause("Customer_No", customer_no)], count=True),
        )
        invoices = self.handle(
            "postedSalesInvoices",
            descriptor=QueryDescriptor(server_filters=[eq_clause("Sell_to_Customer_No", customer_no)], count=True),
        )
        return {
            **customer,
            "stats": {
                "totalOrders": orders.get("@odata.count", 0),
                "totalInvoices": invoices.get("@odata.count", 0),
                "currencyCode": customer.get("Currency_Code") or "USD",
                "memberSince": customer.get("Customer_Since"),
            },
        }

    # ---------------- Service document ----------------
    def service_document(self) -> Dict[str, Any]:
        service_url = self.endpoints.company_url
        return {
            "serviceUrl": service_url,
            "endpoints": self.endpoints.listing(),
            "serviceDocument": self.client.get(service_url),
        }

    def create_customer(self, fields: Dict[str, Any]) -> str:
        return self.customers.create(fields)
