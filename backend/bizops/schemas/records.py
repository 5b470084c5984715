from datetime import date, datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ClientRecord(BaseModel):
    id: int
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    route: Optional[str] = None
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductRecord(BaseModel):
    id: int
    name: str
    price: Decimal
    category: Optional[str] = None
    external_id: Optional[str] = None
    stock: int = 0
    description: Optional[str] = None

    class Config:
        from_attributes = True


class OrderItemRecord(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    unit_price: Decimal
    quantity: int
    line_total: Optional[Decimal] = None

    class Config:
        from_attributes = True


class OrderRecord(BaseModel):
    id: int
    short_code: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    total: Decimal
    status: str
    order_date: Optional[date] = None
    created_at: Optional[datetime] = None


class OrderDetail(OrderRecord):
    notes: Optional[str] = None
    items: List[OrderItemRecord] = []


class PageOut(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    last_page: int
