from datetime import datetime

from pydantic import BaseModel, ConfigDict, StrictInt
from pydantic.alias_generators import to_camel

from .models import Order, Product


class PlaceOrderRequest(BaseModel):
    # Presence and sign are checked by the coordinator so that a missing field
    # is reported the same way whichever front end calls it.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: StrictInt | None = None
    quantity: StrictInt | None = None
    user_id: StrictInt | None = None


# --- Order Schemas ---
class OrderEnvelope(BaseModel):
    success: bool = True
    data: Order
    message: str | None = None


class OrderListEnvelope(BaseModel):
    success: bool = True
    data: list[Order]
    count: int


# --- Product Schemas ---
class ProductEnvelope(BaseModel):
    success: bool = True
    data: Product


class ProductListEnvelope(BaseModel):
    success: bool = True
    data: list[Product]
    count: int


# --- Service Schemas ---
class Health(BaseModel):
    status: str
    service: str
    timestamp: datetime


class ErrorBody(BaseModel):
    error: str
    service: str
    timestamp: datetime
    path: str | None = None
