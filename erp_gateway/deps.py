from typing import Optional

from fastapi import Query, Request

from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import ConfigurationError
from erp_gateway.odata import QueryDescriptor


def get_gateway(request: Request) -> Gateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise ConfigurationError("Gateway not initialised")
    return gateway


def odata_params(
    filter_: Optional[str] = Query(None, alias="$filter"),
    orderby: Optional[str] = Query(None, alias="$orderby"),
    top: Optional[str] = Query(None, alias="$top"),
    skip: Optional[str] = Query(None, alias="$skip"),
) -> QueryDescriptor:
    return QueryDescriptor(filter=filter_, orderby=orderby, top=top, skip=skip)
