import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from erp_gateway.config import GatewayConfig, cors_origins, log_level
from erp_gateway.dispatcher import Gateway
from erp_gateway.errors import BackendError, CallerError, GatewayError
from erp_gateway.middleware import DisconnectWatch
from erp_gateway.routers.customers import router as customers_router
from erp_gateway.routers.items import router as items_router
from erp_gateway.routers.reference import router as reference_router
from erp_gateway.routers.sales import router as sales_router
from erp_gateway.routers.search import router as search_router

logger = logging.getLogger(__name__)


def setup_logging():
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def error_status(exc: GatewayError, config: Optional[GatewayConfig]) -> int:
    # upstream status is reported as 500 unless propagation is switched on
    if (
        isinstance(exc, BackendError)
        and exc.upstream_status
        and exc.upstream_status >= 400
        and config is not None
        and config.propagate_upstream_status
    ):
        return exc.upstream_status
    return exc.status_code


def validation_error(exc: RequestValidationError) -> CallerError:
    """Malformed caller input rendered like any other caller error."""
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
        problems.append(f"{where}: {err.get('msg')}")
    return CallerError("Invalid request", details="; ".join(problems))


def create_app(config: Optional[GatewayConfig] = None, session: Optional[requests.Session] = None) -> FastAPI:
    """
    Build the gateway app. Without an explicit config it is read from the
    environment at startup; missing credentials abort startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "gateway", None) is None:
            cfg = GatewayConfig.from_env()
            app.state.config = cfg
            app.state.gateway = Gateway(cfg, session=session)
        logger.info("Connected to Business Central at %s", app.state.config.company_url)
        yield
        app.state.gateway.client.session.close()

    app = FastAPI(title="ERP Gateway", lifespan=lifespan)
    app.state.config = config
    app.state.gateway = Gateway(config, session=session) if config is not None else None

    app.add_middleware(DisconnectWatch)

    origins = config.cors_origins if config is not None else cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        status = error_status(exc, request.app.state.config)
        if status >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.error, exc.details)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=validation_error(exc).to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/api/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(reference_router)
    app.include_router(customers_router)
    app.include_router(sales_router)
    app.include_router(items_router)
    app.include_router(search_router)
    return app


app = create_app()
