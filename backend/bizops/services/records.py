"""
Record store access: clients, products, orders, sellers.

Every function here is one independently atomic call against the database:
reads are plain filtered selects, writes commit (or roll back) before
returning. Nothing composes several calls into a transaction; callers that
need several reads simply make several calls.

SQLAlchemy failures are re-raised as RecordStoreError so the conversation
layer can tell "the store broke" apart from its own bugs.
"""
import functools
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from bizops.core.exceptions import RecordStoreError
from bizops.models.client import Client
from bizops.models.order import Order, OrderItem
from bizops.models.product import Product
from bizops.models.user import User
from bizops.services.cart import cart_total

logger = logging.getLogger(__name__)

CLIENT_TEXT_FIELDS = ("name", "contact", "address")
CLIENT_EDITABLE_FIELDS = ("name", "contact", "address", "category", "route")
OPTION_COLUMNS = {"category": "category", "route": "route", "city": "route"}


def store_call(fn):
    """Roll back and wrap SQLAlchemy failures raised by a record function."""

    @functools.wraps(fn)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return fn(db, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"[Records] {fn.__name__} failed: {e}", exc_info=True)
            try:
                db.rollback()
            except SQLAlchemyError:
                logger.error(f"[Records] rollback after {fn.__name__} failed", exc_info=True)
            raise RecordStoreError(fn.__name__, e) from e

    return wrapper


def as_id(value) -> Optional[int]:
    """Token segments arrive as strings; anything non-numeric is no id at all."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


# ==============================================================================
# PAGINATION
# ==============================================================================

@dataclass
class Page:
    rows: list
    total: int
    page: int
    page_size: int
    extra: dict = field(default_factory=dict)

    @property
    def last_page(self) -> int:
        return last_page_for(self.total, self.page_size)


def last_page_for(total: int, page_size: int) -> int:
    if total <= 0 or page_size <= 0:
        return 0
    return math.ceil(total / page_size) - 1


def clamp_page(page: int, total: int, page_size: int) -> int:
    return min(max(page or 0, 0), last_page_for(total, page_size))


def paginate(query: Query, page: int, page_size: int) -> Page:
    """Count, clamp the requested page into range, then fetch it."""
    total = query.order_by(None).count()
    page = clamp_page(page, total, page_size)
    rows = query.offset(page * page_size).limit(page_size).all() if total else []
    return Page(rows=rows, total=total, page=page, page_size=page_size)


def paginate_list(items: list, page: int, page_size: int) -> Page:
    page = clamp_page(page, len(items), page_size)
    start = page * page_size
    return Page(rows=items[start:start + page_size], total=len(items), page=page, page_size=page_size)


# ==============================================================================
# SELLERS
# ==============================================================================

@store_call
def ensure_user(db: Session, telegram_id, name: str | None = None, username: str | None = None) -> User:
    """Find the seller for a Telegram account, creating it on first contact."""
    user = db.query(User).filter(User.telegram_id == str(telegram_id)).first()
    if user:
        return user
    user = User(telegram_id=str(telegram_id), name=name or None, username=username or None, role="seller")
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"[Records] New seller registered: telegram_id={telegram_id}, user_id={user.id}")
    return user


# ==============================================================================
# CLIENTS
# ==============================================================================

@store_call
def list_clients(db: Session, page: int, page_size: int, owner_id: int | None = None) -> Page:
    """
    Clients ordered by name. The seller's own clients come first; when the
    seller owns none the whole table is listed (`extra["is_all"]`).
    """
    if owner_id is not None:
        own = paginate(
            db.query(Client).filter(Client.owner_id == owner_id).order_by(Client.name.asc(), Client.id.asc()),
            page,
            page_size,
        )
        if own.total:
            own.extra["is_all"] = False
            return own
    everyone = paginate(db.query(Client).order_by(Client.name.asc(), Client.id.asc()), page, page_size)
    everyone.extra["is_all"] = True
    return everyone


@store_call
def search_clients_text(db: Session, term: str, page: int, page_size: int) -> Page:
    like = f"%{(term or '').strip()}%"
    query = (
        db.query(Client)
        .filter(or_(*[getattr(Client, f).ilike(like) for f in CLIENT_TEXT_FIELDS]))
        .order_by(Client.name.asc(), Client.id.asc())
    )
    return paginate(query, page, page_size)


@store_call
def clients_by_filter(db: Session, option_type: str, value: str, page: int, page_size: int) -> Page:
    """Category and route match exactly; city is a substring match on route."""
    column = getattr(Client, OPTION_COLUMNS.get(option_type, "route"))
    if option_type == "city":
        condition = column.ilike(f"%{value}%")
    else:
        condition = column == value
    query = db.query(Client).filter(condition).order_by(Client.name.asc(), Client.id.asc())
    return paginate(query, page, page_size)


@store_call
def distinct_client_values(db: Session, option_type: str) -> list[str]:
    column = getattr(Client, OPTION_COLUMNS.get(option_type, "route"))
    rows = db.query(column).filter(column.isnot(None), column != "").distinct().all()
    values = {str(value).strip() for (value,) in rows if value and str(value).strip()}
    return sorted(values, key=lambda v: (v.casefold(), v))


@store_call
def get_client(db: Session, client_id) -> Optional[Client]:
    cid = as_id(client_id)
    if cid is None:
        return None
    return db.query(Client).filter(Client.id == cid).first()


@store_call
def create_client(db: Session, data: dict, owner_id: int | None = None) -> Client:
    client = Client(
        name=data["name"].strip(),
        contact=data.get("contact"),
        address=data.get("address"),
        category=data.get("category"),
        route=data.get("route"),
        owner_id=owner_id,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info(f"[Records] Client created: id={client.id}, name='{client.name}'")
    return client


@store_call
def update_client(db: Session, client_id, updates: dict) -> Optional[Client]:
    client = db.query(Client).filter(Client.id == as_id(client_id)).first()
    if not client:
        return None
    for key in CLIENT_EDITABLE_FIELDS:
        if key in updates:
            setattr(client, key, updates[key])
    db.commit()
    db.refresh(client)
    logger.info(f"[Records] Client updated: id={client.id}, fields={sorted(updates)}")
    return client


@store_call
def count_client_orders(db: Session, client_id) -> int:
    return db.query(func.count(Order.id)).filter(Order.client_id == as_id(client_id)).scalar() or 0


# ==============================================================================
# PRODUCTS
# ==============================================================================

@store_call
def list_products(db: Session, term: str | None, page: int, page_size: int) -> Page:
    query = db.query(Product)
    if term:
        like = f"%{term.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.description.ilike(like),
            Product.category.ilike(like),
            Product.external_id.ilike(like),
        ))
    return paginate(query.order_by(Product.name.asc(), Product.id.asc()), page, page_size)


@store_call
def get_product(db: Session, product_id) -> Optional[Product]:
    pid = as_id(product_id)
    if pid is None:
        return None
    return db.query(Product).filter(Product.id == pid).first()


@store_call
def get_product_by_code(db: Session, code: str) -> Optional[Product]:
    code = (code or "").strip()
    if not code:
        return None
    return db.query(Product).filter(Product.external_id == code).first()


@store_call
def create_product(db: Session, data: dict) -> Product:
    product = Product(
        name=data["name"],
        price=Decimal(str(data["price"])),
        category=data.get("category"),
        external_id=data.get("external_id"),
        stock=int(data.get("stock") or 0),
        description=data.get("description"),
        source=data.get("source", "bot"),
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info(f"[Records] Product created: id={product.id}, sku={product.external_id}")
    return product


# ==============================================================================
# ORDERS
# ==============================================================================

@store_call
def list_orders(
    db: Session,
    page: int,
    page_size: int,
    client_id=None,
    order_date: date | None = None,
) -> Page:
    """Newest first. Filters combine with AND."""
    query = db.query(Order)
    if client_id is not None:
        query = query.filter(Order.client_id == as_id(client_id))
    if order_date is not None:
        query = query.filter(Order.order_date == order_date)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, page_size)


@store_call
def get_order(db: Session, order_id) -> Optional[Order]:
    oid = as_id(order_id)
    if oid is None:
        return None
    return db.query(Order).filter(Order.id == oid).first()


@store_call
def get_order_items(db: Session, order_id) -> list[OrderItem]:
    return (
        db.query(OrderItem)
        .filter(OrderItem.order_id == as_id(order_id))
        .order_by(OrderItem.id.asc())
        .all()
    )


@store_call
def create_order(
    db: Session,
    client_id: int,
    cart: list[dict],
    created_by_id: int | None = None,
    order_date: date | None = None,
    notes: str | None = None,
) -> Order:
    """
    Persist an order and its lines from a cart.

    The order row is flushed to get its id, lines are attached, and the total
    is recomputed from the stored lines before the single commit.
    """
    order = Order(
        client_id=client_id,
        total=cart_total(cart),
        status="pending",
        order_date=order_date or date.today(),
        notes=notes,
        created_by_id=created_by_id,
    )
    db.add(order)
    db.flush()

    for line in cart:
        price = Decimal(str(line.get("price") or 0))
        qty = int(line["qty"])
        db.add(OrderItem(
            order_id=order.id,
            product_id=line.get("product_id"),
            product_name=line["name"],
            unit_price=price,
            quantity=qty,
            line_total=price * qty,
        ))
    db.flush()

    stored_total = (
        db.query(func.coalesce(func.sum(OrderItem.unit_price * OrderItem.quantity), 0))
        .filter(OrderItem.order_id == order.id)
        .scalar()
    )
    order.total = Decimal(str(stored_total))
    db.commit()
    db.refresh(order)
    logger.info(
        f"[Records] Order created: id={order.id}, client_id={client_id}, "
        f"lines={len(cart)}, total={order.total}"
    )
    return order


@store_call
def count_orders_until(db: Session, business_date: date, created_at: datetime) -> int:
    """Orders on `business_date` created at or before `created_at`."""
    return (
        db.query(func.count(Order.id))
        .filter(Order.order_date == business_date, Order.created_at <= created_at)
        .scalar()
        or 0
    )
