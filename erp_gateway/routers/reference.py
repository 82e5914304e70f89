from fastapi import APIRouter, Depends

from erp_gateway.deps import get_gateway, odata_params
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import failure_label
from erp_gateway.odata import QueryDescriptor

router = APIRouter(prefix="/api", tags=["reference"])

# path -> endpoint key
STANDARD_ENDPOINTS = {
    "customerLedgerEntries": "customerLedgerEntries",
    "paymentTerms": "paymentTerms",
    "paymentMethods": "paymentMethods",
    "countries": "countries",
    "customerPostingGroups": "customerPostingGroups",
    "vatBusinessPostingGroups": "vatBusinessPostingGroups",
    "genBusinessPostingGroups": "genBusinessPostingGroups",
    "locations": "locations",
    "shipmentMethods": "shipmentMethods",
    "shippingAgents": "shippingAgents",
    "currencies": "currencies",
    "customerPriceGroups": "customerPriceGroups",
    "customerDiscGroups": "customerDiscountGroups",
    "salespeople": "salespersons",
    "responsibilityCenters": "responsibilityCenters",
    "contacts": "contacts",
}


def add_standard_endpoints(path: str, entity_key: str):
    """GET list + GET by id pass-through for one entity set."""

    def list_all(q: QueryDescriptor = Depends(odata_params), gw: Gateway = Depends(get_gateway)):
        with failure_label(f"Failed to fetch {path}"):
            return gw.handle(entity_key, descriptor=q)

    def get_one(id: str, gw: Gateway = Depends(get_gateway)):
        with failure_label(f"Failed to fetch {path} item"):
            return gw.handle(entity_key, id)

    router.add_api_route(f"/{path}", list_all, methods=["GET"], name=f"list_{path}")
    router.add_api_route(f"/{path}/{{id}}", get_one, methods=["GET"], name=f"get_{path}")


for _path, _key in STANDARD_ENDPOINTS.items():
    add_standard_endpoints(_path, _key)
