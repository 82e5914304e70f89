from typing import Optional

from fastapi import APIRouter, Depends

from erp_gateway.deps import get_gateway
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import failure_label

router = APIRouter(prefix="/api", tags=["search"])


@router.get("/search")
def search(q: Optional[str] = None, type: str = "all", top: str = "10", gw: Gateway = Depends(get_gateway)):
    """
    Search customers, items and invoices.
    type: all | customers | items | invoices
    """
    with failure_label("Search failed"):
        return gw.search(q, type, top)


@router.get("/service-document")
def service_document(gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch service document"):
        return gw.service_document()
