from typing import Optional

from fastapi import APIRouter, Depends, Query

from erp_gateway.deps import get_gateway, odata_params
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import failure_label
from erp_gateway.odata import QueryDescriptor, eq_clause, entity_url
from erp_gateway.schemas import CreateSalesInvoiceReq

router = APIRouter(prefix="/api", tags=["sales"])

QUOTE_DOCUMENT_TYPE = "Quote"


# ---------------- Sales invoices ----------------
@router.get("/salesInvoices")
def list_sales_invoices(q: QueryDescriptor = Depends(odata_params), gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch sales invoices"):
        return gw.handle("salesInvoices", descriptor=q)


@router.get("/salesInvoices/{invoice_no}")
def get_sales_invoice(invoice_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch sales invoice"):
        return gw.get_sales_invoice(invoice_no)


@router.post("/salesInvoices", status_code=201)
def create_sales_invoice(body: CreateSalesInvoiceReq, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to create sales invoice"):
        return gw.create_sales_invoice(body.header, body.lines)


# ---------------- Posted sales invoices ----------------
@router.get("/postedSalesInvoices")
def list_posted_invoices(
    q: QueryDescriptor = Depends(odata_params),
    customer_no: Optional[str] = Query(None, alias="$customerNo"),
    gw: Gateway = Depends(get_gateway),
):
    if customer_no:
        q.with_server_filter(eq_clause("Sell_to_Customer_No", customer_no))
    with failure_label("Failed to fetch posted sales invoices"):
        return gw.handle("postedSalesInvoices", descriptor=q)


@router.get("/postedSalesInvoices/{invoice_no}")
def get_posted_invoice(invoice_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch posted sales invoice"):
        return gw.get_posted_invoice(invoice_no)


@router.get("/postedSalesInvoices/{invoice_no}/lines")
def get_posted_invoice_lines(invoice_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch posted sales invoice lines"):
        return gw.get_posted_invoice_lines(invoice_no)


# ---------------- Sales quotes ----------------
@router.get("/salesquotes")
def list_sales_quotes(q: QueryDescriptor = Depends(odata_params), gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch sales quotes"):
        return gw.handle("salesQuote", descriptor=q)


@router.get("/salesquotes/{quote_no}")
def get_sales_quote(quote_no: str, gw: Gateway = Depends(get_gateway)):
    # keyed by (Document_Type, No)
    url = entity_url(gw.endpoints["salesQuote"], QUOTE_DOCUMENT_TYPE, quote_no)
    with failure_label("Failed to fetch sales quote"):
        return gw.client.get(f"{url}?$expand=salesQuoteLines")


@router.get("/salesquotes/{quote_no}/lines")
def get_sales_quote_lines(quote_no: str, gw: Gateway = Depends(get_gateway)):
    url = entity_url(gw.endpoints["salesQuote"], QUOTE_DOCUMENT_TYPE, quote_no)
    with failure_label("Failed to fetch sales quote lines"):
        return gw.client.get(f"{url}/salesQuoteLines")


# ---------------- Sales orders ----------------
@router.get("/salesorders")
def list_sales_orders(q: QueryDescriptor = Depends(odata_params), gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch sales orders"):
        return gw.handle("SalesOrder", descriptor=q)


@router.get("/salesorders/{order_no}")
def get_sales_order(order_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch sales order"):
        return gw.handle("SalesOrder", order_no, QueryDescriptor(expand="Sales_Order_Lines"))


@router.get("/salesorders/{order_no}/lines")
def get_sales_order_lines(order_no: str, gw: Gateway = Depends(get_gateway)):
    url = entity_url(gw.endpoints["SalesOrder"], order_no)
    with failure_label("Failed to fetch sales order lines"):
        return gw.client.get(f"{url}/Sales_Order_Lines")
