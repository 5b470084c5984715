"""Read-only records for the dashboard: clients, products, orders."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bizops.api.deps import get_db
from bizops.core.config import settings
from bizops.core.exceptions import BusinessError, RecordStoreError
from bizops.models.client import Client
from bizops.models.order import Order
from bizops.schemas.records import (
    ClientRecord,
    OrderDetail,
    OrderItemRecord,
    OrderRecord,
    PageOut,
    ProductRecord,
)
from bizops.services import records
from bizops.services.records import Page
from bizops.services.short_code import short_code_for

router = APIRouter()

MAX_PAGE_SIZE = 100


def _page_out(page: Page, items: list) -> dict:
    return {
        "items": items,
        "total": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "last_page": page.last_page,
    }


def _order_record(db: Session, order: Order) -> dict:
    client: Optional[Client] = order.client
    return {
        "id": order.id,
        "short_code": short_code_for(db, order),
        "client_id": order.client_id,
        "client_name": client.name if client else None,
        "total": order.total,
        "status": order.status,
        "order_date": order.order_date,
        "created_at": order.created_at,
    }


@router.get("/clients", response_model=PageOut[ClientRecord])
def list_clients(
    search: str | None = Query(None),
    page: int = Query(0, ge=0),
    page_size: int = Query(settings.CLIENTS_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    try:
        if search:
            result = records.search_clients_text(db, search, page, page_size)
        else:
            result = records.list_clients(db, page, page_size)
    except RecordStoreError as e:
        raise BusinessError.server_error(e)
    return _page_out(result, [ClientRecord.model_validate(c) for c in result.rows])


@router.get("/products", response_model=PageOut[ProductRecord])
def list_products(
    search: str | None = Query(None),
    page: int = Query(0, ge=0),
    page_size: int = Query(settings.PRODUCTS_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    try:
        result = records.list_products(db, search, page, page_size)
    except RecordStoreError as e:
        raise BusinessError.server_error(e)
    return _page_out(result, [ProductRecord.model_validate(p) for p in result.rows])


@router.get("/orders", response_model=PageOut[OrderRecord])
def list_orders(
    client_id: int | None = Query(None),
    order_date: date | None = Query(None, alias="date"),
    page: int = Query(0, ge=0),
    page_size: int = Query(settings.ORDERS_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    """Newest first, optionally for one client and/or one business date."""
    try:
        result = records.list_orders(db, page, page_size, client_id=client_id, order_date=order_date)
        items = [_order_record(db, o) for o in result.rows]
    except RecordStoreError as e:
        raise BusinessError.server_error(e)
    return _page_out(result, items)


@router.get("/orders/{order_id}", response_model=OrderDetail)
def get_order(order_id: int, db: Session = Depends(get_db)):
    try:
        order = records.get_order(db, order_id)
        if not order:
            raise BusinessError.not_found("Order", f"id={order_id}")
        items = records.get_order_items(db, order.id)
        detail = _order_record(db, order)
    except RecordStoreError as e:
        raise BusinessError.server_error(e)
    detail["notes"] = order.notes
    detail["items"] = [OrderItemRecord.model_validate(i) for i in items]
    return detail
