from typing import Optional

from fastapi import APIRouter, Depends, Query

from erp_gateway.deps import get_gateway, odata_params
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import failure_label
from erp_gateway.odata import QueryDescriptor, entity_url, eq_clause

router = APIRouter(prefix="/api", tags=["items"])

ITEM_SEARCH_FIELDS = ("Description", "No_")


@router.get("/items")
def list_items(
    q: QueryDescriptor = Depends(odata_params),
    search: Optional[str] = Query(None, alias="$search"),
    gw: Gateway = Depends(get_gateway),
):
    if search:
        q.search = search
        q.search_fields = ITEM_SEARCH_FIELDS
    with failure_label("Failed to fetch items"):
        return gw.handle("items", descriptor=q)


@router.get("/items/{item_no}")
def get_item(item_no: str, gw: Gateway = Depends(get_gateway)):
    with failure_label("Failed to fetch item"):
        return gw.handle("items", item_no)


@router.get("/items/{item_no}/inventory")
def get_item_inventory(item_no: str, gw: Gateway = Depends(get_gateway)):
    url = entity_url(gw.endpoints["items"], item_no)
    with failure_label("Failed to fetch item inventory"):
        return gw.client.get(f"{url}/inventory")


@router.get("/items/{item_no}/ledger-entries")
def item_ledger_entries(
    item_no: str,
    q: QueryDescriptor = Depends(odata_params),
    gw: Gateway = Depends(get_gateway),
):
    q.with_server_filter(eq_clause("Item_No", item_no))
    with failure_label("Failed to fetch item ledger entries"):
        return gw.handle("itemLedgerEntries", descriptor=q)
