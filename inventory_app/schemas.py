"""Pydantic-схемы входящих JSON-запросов API (ответы собираются в utils/serializers.py)."""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class LoginRequest(BaseModel):
    username: str
    password: str


# ---------- товары ----------
class ProductRequest(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: StrictInt
    category: Optional[str] = None


class QuantityRequest(BaseModel):
    quantity: StrictInt


# ---------- заказы ----------
class ProductRef(BaseModel):
    id: Optional[int] = None


class OrderItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product: ProductRef
    quantity: StrictInt
    unit_price: Optional[Decimal] = Field(default=None, alias="unitPrice")


class OrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_items: List[OrderItemRequest] = Field(default_factory=list, alias="orderItems")


class StatusRequest(BaseModel):
    status: str
