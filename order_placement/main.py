import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import api
from .catalog import SEED_PRODUCTS, CatalogStore
from .config import Settings, get_settings
from .errors import OrderPlacementError
from .ledger import OrderLedger
from .metrics import MetricsMiddleware, MetricsRecorder
from .placement import OrderPlacementCoordinator
from .user_client import UserDirectory, UserServiceClient

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    path: str | None = None,
) -> JSONResponse:
    body = {
        "error": message,
        "service": request.app.state.settings.SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if path is not None:
        body["path"] = path
    return JSONResponse(status_code=status_code, content=body)


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderPlacementError)
    async def handle_order_placement_error(request: Request, exc: OrderPlacementError) -> JSONResponse:
        return _error_response(request, exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(request, status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _error_response(request, exc.status_code, "Endpoint not found", path=request.url.path)
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    settings: Settings | None = None,
    users: UserDirectory | None = None,
    catalog: CatalogStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if catalog is None:
        catalog = CatalogStore(SEED_PRODUCTS if settings.SEED_CATALOG else ())
    owns_user_client = users is None
    if users is None:
        users = UserServiceClient(settings)

    ledger = OrderLedger()
    metrics = MetricsRecorder()
    coordinator = OrderPlacementCoordinator(catalog, ledger, users, metrics)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Order service starting up. User service URL: %s", settings.USER_SERVICE_URL)
        yield
        logger.info("Order service shutting down...")
        if owns_user_client:
            users.close()

    app = FastAPI(
        title="Order Service",
        description="Places orders against the local catalog, paid from balances held by the user service.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.ledger = ledger
    app.state.metrics = metrics
    app.state.coordinator = coordinator

    app.add_middleware(MetricsMiddleware, recorder=metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(api.monitoring_router)
    app.include_router(api.product_router)
    app.include_router(api.order_router)

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "order_placement.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
