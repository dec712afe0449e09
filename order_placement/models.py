import enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Monetary values stay Decimal in memory and go out as JSON numbers.
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class OrderStatusEnum(str, enum.Enum):
    COMPLETED = "completed"


class DomainModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Product(DomainModel):
    id: int
    name: str
    price: Money = Field(ge=0)
    stock: int = Field(ge=0)
    category: str


class RemoteUser(DomainModel):
    """A user as reported by the user service for the duration of one request."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    email: str = ""
    balance: Decimal


class OrderDraft(DomainModel):
    user_id: int
    product_id: int
    product_name: str
    quantity: int = Field(gt=0)
    price_per_unit: Money
    total: Money
    status: OrderStatusEnum = OrderStatusEnum.COMPLETED
    timestamp: datetime


class Order(DomainModel):
    id: int
    user_id: int
    product_id: int
    product_name: str
    quantity: int
    price_per_unit: Money
    total: Money
    status: OrderStatusEnum
    timestamp: datetime
