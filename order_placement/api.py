import logging
import re
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST

from . import schema
from .catalog import CatalogStore
from .config import Settings
from .dependencies import get_app_settings, get_catalog, get_coordinator, get_ledger, get_metrics
from .errors import InvalidRequestError
from .ledger import OrderLedger
from .metrics import MetricsRecorder
from .placement import OrderPlacementCoordinator

logger = logging.getLogger(__name__)

ID_PATTERN = re.compile(r"-?[0-9]+")


def _parse_id(raw: str, label: str) -> int:
    if not ID_PATTERN.fullmatch(raw):
        msg = f"Invalid {label} ID format"
        raise InvalidRequestError(msg)
    return int(raw)


order_router = APIRouter(prefix="/orders", tags=["Order Management"])

"""
    To place an order
    validate the request
    check the product exists and has enough stock -> local catalog
    verify the user exists and can afford it -> user service
    deduct the balance -> user service
    take the units out of stock, record the order as completed
"""


@order_router.post(
    "",
    response_model=schema.OrderEnvelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    order_request: schema.PlaceOrderRequest,
    coordinator: Annotated[OrderPlacementCoordinator, Depends(get_coordinator)],
) -> schema.OrderEnvelope:
    order = coordinator.place_order(
        product_id=order_request.product_id,
        quantity=order_request.quantity,
        user_id=order_request.user_id,
    )
    return schema.OrderEnvelope(data=order, message="Order placed successfully")


@order_router.get("", response_model=schema.OrderListEnvelope)
def list_orders(
    ledger: Annotated[OrderLedger, Depends(get_ledger)],
) -> schema.OrderListEnvelope:
    orders = ledger.list_all()
    return schema.OrderListEnvelope(data=orders, count=len(orders))


@order_router.get("/user/{user_id}", response_model=schema.OrderListEnvelope)
def list_orders_by_user(
    user_id: str,
    ledger: Annotated[OrderLedger, Depends(get_ledger)],
) -> schema.OrderListEnvelope:
    orders = ledger.list_by_user(_parse_id(user_id, "user"))
    return schema.OrderListEnvelope(data=orders, count=len(orders))


@order_router.get("/{order_id}", response_model=schema.OrderEnvelope, response_model_exclude_none=True)
def retrieve_order(
    order_id: str,
    ledger: Annotated[OrderLedger, Depends(get_ledger)],
) -> schema.OrderEnvelope:
    return schema.OrderEnvelope(data=ledger.get(_parse_id(order_id, "order")))


product_router = APIRouter(prefix="/products", tags=["Product Catalog"])


@product_router.get("", response_model=schema.ProductListEnvelope)
def list_products(
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
) -> schema.ProductListEnvelope:
    products = catalog.list_all()
    return schema.ProductListEnvelope(data=products, count=len(products))


@product_router.get("/{product_id}", response_model=schema.ProductEnvelope)
def retrieve_product(
    product_id: str,
    catalog: Annotated[CatalogStore, Depends(get_catalog)],
) -> schema.ProductEnvelope:
    return schema.ProductEnvelope(data=catalog.get(_parse_id(product_id, "product")))


monitoring_router = APIRouter(tags=["Monitoring"])


@monitoring_router.get("/health", response_model=schema.Health, status_code=status.HTTP_200_OK)
def health_check(settings: Annotated[Settings, Depends(get_app_settings)]) -> schema.Health:
    return schema.Health(
        status="OK",
        service=settings.SERVICE_NAME,
        timestamp=datetime.now(timezone.utc),
    )


@monitoring_router.get("/metrics", include_in_schema=False)
def metrics_exposition(metrics: Annotated[MetricsRecorder, Depends(get_metrics)]) -> Response:
    return Response(content=metrics.exposition(), media_type=CONTENT_TYPE_LATEST)
