from typing import Optional

from fastapi import APIRouter, Depends

from erp_gateway.deps import get_gateway, odata_params
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import CallerError, failure_label
from erp_gateway.odata import QueryDescriptor, eq_clause
from erp_gateway.schemas import CreateCustomerOut, CreateCustomerReq, CustomerTemplateOut

router = APIRouter(prefix="/api", tags=["customers"])


@router.get("/customers")
def list_customers(q: QueryDescriptor = Depends(odata_params), gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch customers"):
        return gw.handle("customers", descriptor=q)


@router.get("/customers/{customer_no}")
def get_customer(customer_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch customer"):
        return gw.handle("customers", customer_no)


@router.get("/customers/{customer_no}/ledger-entries")
def customer_ledger_entries(
    customer_no: str,
    q: QueryDescriptor = Depends(odata_params),
    gw: Gateway = Depends(get_gateway),
):
    q.with_server_filter(eq_clause("Customer_No", customer_no))
    with failure_label("Failed to fetch customer ledger entries"):
        return gw.handle("customerLedgerEntries", descriptor=q)


@router.post("/customers", status_code=201, response_model=CreateCustomerOut)
def create_customer(body: Optional[CreateCustomerReq] = None, gw: Gateway = Depends(get_gateway)):
    # a missing body is reported field by field like a partial one
    fields = body.model_dump() if body is not None else {}
    with failure_label("Failed to create customer"):
        customer_no = gw.create_customer(fields)
    return {"success": True, "customerNo": customer_no, "message": "Customer created successfully"}


# ---------------- Templates ----------------
@router.get("/customerTemplates")
def list_customer_templates(gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch customer templates"):
        return gw.customer_templates()


@router.get("/customerTemplates/{code}", response_model=CustomerTemplateOut)
def get_customer_template(code: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch customer template"):
        return gw.customer_template(code)


# ---------------- Customer portal ----------------
def _require_customer_no(customer_no: Optional[str]) -> str:
    if not customer_no:
        raise CallerError("Customer number is required")
    return customer_no


@router.get("/customer/orders")
def customer_orders(customerNo: Optional[str] = None, gw: Gateway = Depends(get_gateway)):
    no = _require_customer_no(customerNo)
    with failure_label("Failed to fetch customer orders"):
        return gw.customer_orders(no)


@router.get("/customer/profile")
def customer_profile(customerNo: Optional[str] = None, gw: Gateway = Depends(get_gateway)):
    no = _require_customer_no(customerNo)
    with failure_label("Failed to fetch customer profile"):
        return gw.customer_profile(no)
